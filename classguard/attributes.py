"""
Per-file attribute storage.

Classification records live in extended attributes on the file itself. On
platforms or filesystems without ``user.*`` attribute support a JSON document
per file under a private directory is used instead.
"""
import os
import abc
import json
import errno
import logging
import tempfile
from typing import Dict, Optional

logger = logging.getLogger(__name__)

CLASSIFICATION_ATTR = 'user.file-classification'
TIMESTAMP_ATTR = 'user.file-classification-timestamp'
VERIFICATION_ATTR = 'user.file-classification-verify'
WATERMARK_STATUS_ATTR = 'user.dspm-watermark-status'
WATERMARK_HASH_ATTR = 'user.dspm-watermark-hash'
DSPM_POLICY_ATTR = 'user.dspm-policy-id'
LEAK_PROTECTION_ATTR = 'user.dspm-leak-protection'

_MISSING_ERRNOS = {getattr(errno, name) for name in ('ENODATA', 'ENOATTR') if hasattr(errno, name)}


class AttributeStore(abc.ABC):
    """Durable key/value storage attached to a file."""

    @abc.abstractmethod
    def read(self, path: str, name: str) -> Optional[str]:
        """Return the attribute value, or None if it is absent."""

    @abc.abstractmethod
    def write(self, path: str, name: str, value: str) -> None:
        """Write an attribute. Raises OSError on failure."""


class XattrAttributeStore(AttributeStore):
    """Extended attribute backend (Linux ``user.`` namespace)."""

    def read(self, path: str, name: str) -> Optional[str]:
        try:
            raw = os.getxattr(path, name)
        except OSError as e:
            if e.errno in _MISSING_ERRNOS:
                return None
            raise
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise OSError(errno.EILSEQ, f"Undecodable attribute {name}", path) from e

    def write(self, path: str, name: str, value: str) -> None:
        os.setxattr(path, name, value.encode('utf-8'))

    @staticmethod
    def is_supported(directory: Optional[str] = None) -> bool:
        """Probe whether ``user.*`` attributes can be written in ``directory``."""
        if not hasattr(os, 'setxattr'):
            return False
        try:
            with tempfile.NamedTemporaryFile(dir=directory) as probe:
                os.setxattr(probe.name, 'user.classguard-probe', b'1')
            return True
        except OSError:
            return False


class JsonAttributeStore(AttributeStore):
    """
    Attribute backend keeping one JSON document per file.

    Documents are keyed by the file's device and inode numbers, so a record
    follows its file across renames and a new file created at a deleted
    file's path starts without one.
    """

    def __init__(self, root: str):
        self.root = os.path.expanduser(root)

    def _document_path(self, st: os.stat_result) -> str:
        return os.path.join(self.root, f"{st.st_dev}-{st.st_ino}.json")

    def _load(self, doc_path: str) -> Dict[str, str]:
        try:
            with open(doc_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise OSError(errno.EIO, f"Corrupt attribute document: {e}", doc_path) from e

        attributes = data.get('attributes') if isinstance(data, dict) else None
        if not isinstance(attributes, dict) or \
                not all(isinstance(value, str) for value in attributes.values()):
            raise OSError(errno.EIO, "Malformed attribute document", doc_path)
        return attributes

    def read(self, path: str, name: str) -> Optional[str]:
        return self._load(self._document_path(os.stat(path))).get(name)

    def write(self, path: str, name: str, value: str) -> None:
        st = os.stat(path)
        doc_path = self._document_path(st)

        os.makedirs(self.root, exist_ok=True)
        attributes = self._load(doc_path)
        attributes[name] = value

        fd, tmp_path = tempfile.mkstemp(dir=self.root, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump({
                    'path': path,
                    'device': st.st_dev,
                    'inode': st.st_ino,
                    'attributes': attributes
                }, f, indent=2)
            os.replace(tmp_path, doc_path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


def create_attribute_store(backend: str = 'auto',
                           attribute_dir: str = '~/.file-classifications/attributes') -> AttributeStore:
    """Create the attribute store for the configured backend.

    Args:
        backend: ``xattr``, ``json`` or ``auto`` (xattr when supported)
        attribute_dir: Root directory for the JSON backend
    """
    backend = (backend or 'auto').lower()
    if backend == 'xattr':
        return XattrAttributeStore()
    if backend == 'json':
        return JsonAttributeStore(attribute_dir)
    if backend != 'auto':
        raise ValueError(f"Unknown storage backend: {backend}")

    if XattrAttributeStore.is_supported():
        logger.debug("Using extended attribute storage")
        return XattrAttributeStore()
    logger.info(f"Extended attributes unavailable, storing classifications in {attribute_dir}")
    return JsonAttributeStore(attribute_dir)
