"""
Integrity Codec

Tamper-evident digests binding a file identity, its classification and the
classification timestamp.

The digest is deterministic and keyed only by a secret embedded in this
module, so anyone can re-verify a record. It detects accidental or casual
tampering; it is not a guarantee against an adversary who knows the secret.
"""
import hashlib
import os
from typing import Union

from .core import Classified, ClassificationLevel

CLASSIFICATION_SECRET = 'SECRET_SALT_2024'
WATERMARK_SECRET = 'DSPM_SECRET_2024'


def _level_value(level: Union[ClassificationLevel, str]) -> str:
    return level.value if isinstance(level, ClassificationLevel) else str(level)


class IntegrityCodec:
    """Computes and verifies classification integrity hashes."""

    def __init__(self, secret: str = CLASSIFICATION_SECRET,
                 watermark_secret: str = WATERMARK_SECRET):
        self.secret = secret
        self.watermark_secret = watermark_secret

    def compute_hash(self, identity: str, level: Union[ClassificationLevel, str],
                     timestamp: Union[int, str]) -> str:
        """Return the hex SHA-256 digest of identity, level and timestamp."""
        payload = f"{identity}{_level_value(level)}{timestamp}{self.secret}"
        return hashlib.sha256(payload.encode('utf-8')).hexdigest()

    def watermark_hash(self, identity: str, level: Union[ClassificationLevel, str],
                       timestamp: Union[int, str]) -> str:
        """Return the digest stored with the watermark metadata."""
        content = f"WATERMARKED:{_level_value(level)}:{timestamp}:{os.path.basename(identity)}"
        return hashlib.sha256((content + self.watermark_secret).encode('utf-8')).hexdigest()

    def verify(self, record: Classified) -> bool:
        """Recompute the digest from the record's fields and compare."""
        if record.created_at is None or not record.integrity_hash:
            return False
        expected = self.compute_hash(record.identity, record.level, record.created_at)
        return expected == record.integrity_hash
