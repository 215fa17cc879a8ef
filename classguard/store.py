"""
Classification Store

Persists the permanent classification record of a file, keeps redundant
backup copies and caches lookups for a short time.
"""
import os
import json
import time
import hashlib
import logging
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from .attributes import (
    AttributeStore,
    CLASSIFICATION_ATTR,
    TIMESTAMP_ATTR,
    VERIFICATION_ATTR,
    WATERMARK_STATUS_ATTR,
    WATERMARK_HASH_ATTR,
    DSPM_POLICY_ATTR,
    LEAK_PROTECTION_ATTR,
)
from .core import (
    AlreadyClassifiedError,
    Classified,
    ClassificationLevel,
    ClassificationRecord,
    StorageError,
    Unclassified,
)
from .integrity import IntegrityCodec
from .utils import call_with_timeout, normalize_path

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 60.0
DEFAULT_MAX_CACHE_ENTRIES = 1024
WRITE_LOCK_STRIPES = 64
DEFAULT_BACKUP_DIR = os.path.join('~', '.file-classifications')

POLICY_IDS = {
    ClassificationLevel.CONFIDENTIAL: 'POLICY_CONF_001',
    ClassificationLevel.PERSONAL: 'POLICY_PERS_001',
    ClassificationLevel.INTERNAL: 'POLICY_INT_001',
}
PROTECTION_LEVELS = {
    ClassificationLevel.CONFIDENTIAL: 'MAXIMUM',
    ClassificationLevel.PERSONAL: 'HIGH',
    ClassificationLevel.INTERNAL: 'MEDIUM',
}


def policy_id_for(level: ClassificationLevel) -> str:
    return POLICY_IDS.get(level, 'POLICY_PUB_001')


def protection_level_for(level: ClassificationLevel) -> str:
    return PROTECTION_LEVELS.get(level, 'LOW')


def path_digest(identity: str) -> str:
    """Key used for backup copies outside the file's directory."""
    return hashlib.md5(identity.encode('utf-8')).hexdigest()


@dataclass
class CacheEntry:
    level: Optional[ClassificationLevel]
    observed_at: float


class ClassificationStore:
    """Write-once classification records with backups and a read cache."""

    def __init__(
        self,
        attributes: AttributeStore,
        codec: Optional[IntegrityCodec] = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        max_cache_entries: int = DEFAULT_MAX_CACHE_ENTRIES,
        backup_dir: str = DEFAULT_BACKUP_DIR,
        temp_dir: Optional[str] = None,
        io_timeout: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time
    ) -> None:
        """
        Initialize the store.

        Args:
            attributes: Backend holding the primary record
            codec: Integrity codec (default: embedded secret)
            cache_ttl: Seconds a cached lookup stays fresh
            max_cache_entries: Upper bound on cached lookups
            backup_dir: Per-user directory for backup copies
            temp_dir: Temporary directory for backup copies
            io_timeout: Seconds to wait on a single attribute read or write
            clock: Monotonic clock used for cache ageing
            wall_clock: Clock used for record timestamps
        """
        self.attributes = attributes
        self.codec = codec or IntegrityCodec()
        self.cache_ttl = cache_ttl
        self.max_cache_entries = max_cache_entries
        self.backup_dir = os.path.expanduser(backup_dir)
        self.temp_dir = temp_dir or tempfile.gettempdir()
        self.io_timeout = io_timeout
        self._clock = clock
        self._wall_clock = wall_clock

        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='classguard-io')
        self._cache: Dict[str, CacheEntry] = {}
        self._generation = 0
        self._cache_lock = threading.Lock()
        self._write_locks = [threading.Lock() for _ in range(WRITE_LOCK_STRIPES)]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_classification(self, path: str) -> Optional[ClassificationLevel]:
        """Return the classification of a file, or None if it has none."""
        identity = normalize_path(path)
        now = self._clock()

        with self._cache_lock:
            entry = self._cache.get(identity)
            if entry is not None:
                if (now - entry.observed_at) < self.cache_ttl:
                    return entry.level
                del self._cache[identity]
            generation = self._generation

        level = ClassificationLevel.parse(self._read(identity, CLASSIFICATION_ATTR))

        with self._cache_lock:
            # An invalidation that happened while we were reading wins.
            if self._generation == generation:
                self._remember(identity, level)
        return level

    def _remember(self, identity: str, level: Optional[ClassificationLevel]) -> None:
        """Cache a lookup. Caller holds ``_cache_lock``."""
        now = self._clock()
        self._cache.pop(identity, None)
        if len(self._cache) >= self.max_cache_entries:
            for key in [k for k, e in self._cache.items() if now - e.observed_at >= self.cache_ttl]:
                del self._cache[key]
            # Entries are kept in insertion order, oldest first.
            while len(self._cache) >= self.max_cache_entries:
                del self._cache[next(iter(self._cache))]
        self._cache[identity] = CacheEntry(level, now)

    def cache_size(self) -> int:
        with self._cache_lock:
            return len(self._cache)

    def get_record(self, path: str) -> ClassificationRecord:
        """Read the persisted record, bypassing the cache."""
        identity = normalize_path(path)
        level = ClassificationLevel.parse(self._read(identity, CLASSIFICATION_ATTR))
        if level is None:
            return Unclassified(identity)

        raw_timestamp = self._read(identity, TIMESTAMP_ATTR)
        try:
            created_at = int(raw_timestamp) if raw_timestamp is not None else None
        except ValueError:
            created_at = None
        return Classified(
            identity=identity,
            level=level,
            created_at=created_at,
            integrity_hash=self._read(identity, VERIFICATION_ATTR)
        )

    def read_metadata(self, path: str) -> Dict[str, Optional[str]]:
        """Read the watermark and DSPM attributes of a file."""
        identity = normalize_path(path)
        return {
            'watermarkStatus': self._read(identity, WATERMARK_STATUS_ATTR),
            'watermarkHash': self._read(identity, WATERMARK_HASH_ATTR),
            'policyId': self._read(identity, DSPM_POLICY_ATTR),
            'protectionLevel': self._read(identity, LEAK_PROTECTION_ATTR),
        }

    def _read(self, identity: str, name: str) -> Optional[str]:
        """Lookup that treats errors and timeouts as a miss."""
        try:
            return call_with_timeout(self._executor, self.attributes.read, identity, name,
                                     timeout=self.io_timeout)
        except (OSError, TimeoutError, ValueError) as e:
            logger.debug(f"Could not read {name} for {identity}: {e}")
            return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _lock_for(self, identity: str) -> threading.Lock:
        """Lock serializing writes to ``identity`` (shared by a fixed stripe of identities)."""
        return self._write_locks[hash(identity) % len(self._write_locks)]

    def set_classification(self, path: str,
                           level: Union[ClassificationLevel, str]) -> Classified:
        """
        Permanently classify a file.

        Args:
            path: File to classify
            level: Classification level

        Returns:
            The new record

        Raises:
            ValueError: If the level is not a known classification
            AlreadyClassifiedError: If the file already carries a classification
            StorageError: If the primary record could not be written
        """
        if not isinstance(level, ClassificationLevel):
            parsed = ClassificationLevel.parse(level)
            if parsed is None:
                raise ValueError(f"Unknown classification level: {level!r}")
            level = parsed

        identity = normalize_path(path)
        with self._lock_for(identity):
            try:
                existing = call_with_timeout(self._executor, self.attributes.read,
                                             identity, CLASSIFICATION_ATTR,
                                             timeout=self.io_timeout)
            except (OSError, TimeoutError, ValueError) as e:
                logger.error(f"Failed to set file classification for {identity}: {e}")
                raise StorageError('Failed to set permanent file classification') from e

            if existing is not None:
                raise AlreadyClassifiedError(identity, ClassificationLevel.parse(existing))

            timestamp = int(self._wall_clock() * 1000)
            record = Unclassified(identity).classify(
                level, timestamp, self.codec.compute_hash(identity, level, timestamp)
            )

            try:
                # The level attribute is written last and marks the record as committed.
                self._write(identity, TIMESTAMP_ATTR, str(timestamp))
                self._write(identity, VERIFICATION_ATTR, record.integrity_hash)
                self._write(identity, CLASSIFICATION_ATTR, level.value)
            except (OSError, TimeoutError) as e:
                logger.error(f"Failed to set file classification for {identity}: {e}")
                raise StorageError('Failed to set permanent file classification') from e

            self._write_metadata(record)
            self._write_backups(record)
            self.invalidate(identity)

        logger.info(f"Classification set: {level.value} for {os.path.basename(identity)}")
        return record

    def _write(self, identity: str, name: str, value: str) -> None:
        call_with_timeout(self._executor, self.attributes.write, identity, name, value,
                          timeout=self.io_timeout)

    def _write_metadata(self, record: Classified) -> None:
        """Write watermark and DSPM metadata. Failures are logged only."""
        try:
            self._write(record.identity, WATERMARK_STATUS_ATTR, 'ACTIVE')
            self._write(record.identity, WATERMARK_HASH_ATTR,
                        self.codec.watermark_hash(record.identity, record.level, record.created_at))
            self._write(record.identity, DSPM_POLICY_ATTR, policy_id_for(record.level))
            self._write(record.identity, LEAK_PROTECTION_ATTR, protection_level_for(record.level))
        except (OSError, TimeoutError) as e:
            logger.warning(f"Failed to set DSPM watermark metadata for {record.identity}: {e}")

    def backup_locations(self, path: str) -> List[str]:
        """Paths of the backup copies for a file, sidecar first."""
        identity = normalize_path(path)
        digest = path_digest(identity)
        return [
            os.path.join(os.path.dirname(identity), f".{os.path.basename(identity)}.classification"),
            os.path.join(self.temp_dir, f"cls_{digest}.bak"),
            os.path.join(self.backup_dir, digest),
        ]

    def _write_backups(self, record: Classified) -> None:
        backup_data = {
            'originalFile': record.identity,
            'classification': record.level.value,
            'timestamp': str(record.created_at),
            'verificationHash': record.integrity_hash,
            'createdAt': datetime.now(timezone.utc).isoformat(),
        }
        content = json.dumps(backup_data, indent=2)

        for backup_path in self.backup_locations(record.identity):
            try:
                os.makedirs(os.path.dirname(backup_path), exist_ok=True)
                with open(backup_path, 'w', encoding='utf-8') as f:
                    f.write(content)
            except OSError as e:
                logger.warning(f"Could not create backup at {backup_path}: {e}")

    def find_backups(self, path: str) -> List[Dict[str, Any]]:
        """Return the readable backup copies of a file's record."""
        backups = []
        for backup_path in self.backup_locations(path):
            try:
                with open(backup_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except FileNotFoundError:
                continue
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Unreadable backup {backup_path}: {e}")
                continue
            backups.append({'location': backup_path, 'data': data})
        return backups

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def invalidate(self, path: str) -> None:
        """Drop the cached lookup for a file."""
        identity = normalize_path(path)
        with self._cache_lock:
            self._cache.pop(identity, None)
            self._generation += 1

    def close(self) -> None:
        """Release the I/O worker threads."""
        self._executor.shutdown(wait=False)
