"""
Tests for the IntegrityCodec class in classguard.integrity
"""
import os
import sys
import unittest
from dataclasses import replace

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from classguard.core import Classified, ClassificationLevel, Unclassified
from classguard.integrity import IntegrityCodec


class TestIntegrityCodec(unittest.TestCase):
    """Test cases for the IntegrityCodec class."""

    def setUp(self):
        self.codec = IntegrityCodec()
        self.identity = '/srv/reports/q3.txt'
        self.timestamp = 1718000000000
        self.record = Unclassified(self.identity).classify(
            ClassificationLevel.CONFIDENTIAL,
            self.timestamp,
            self.codec.compute_hash(self.identity, ClassificationLevel.CONFIDENTIAL, self.timestamp)
        )

    def test_hash_is_deterministic(self):
        first = self.codec.compute_hash(self.identity, ClassificationLevel.INTERNAL, self.timestamp)
        second = self.codec.compute_hash(self.identity, ClassificationLevel.INTERNAL, self.timestamp)
        self.assertEqual(first, second)
        self.assertEqual(len(first), 64)

    def test_hash_accepts_raw_strings(self):
        """Enum members and their persisted values hash identically."""
        self.assertEqual(
            self.codec.compute_hash(self.identity, ClassificationLevel.PUBLIC, self.timestamp),
            self.codec.compute_hash(self.identity, 'public', str(self.timestamp))
        )

    def test_verify_unmodified_record(self):
        self.assertTrue(self.codec.verify(self.record))

    def test_verify_detects_level_change(self):
        tampered = replace(self.record, level=ClassificationLevel.PUBLIC)
        self.assertFalse(self.codec.verify(tampered))

    def test_verify_detects_timestamp_change(self):
        tampered = replace(self.record, created_at=self.timestamp + 1)
        self.assertFalse(self.codec.verify(tampered))

    def test_verify_detects_path_change(self):
        tampered = replace(self.record, identity='/srv/reports/q4.txt')
        self.assertFalse(self.codec.verify(tampered))

    def test_verify_incomplete_record(self):
        record = Classified(self.identity, ClassificationLevel.INTERNAL)
        self.assertFalse(self.codec.verify(record))

    def test_different_secret_fails_verification(self):
        other = IntegrityCodec(secret='another-secret')
        self.assertFalse(other.verify(self.record))

    def test_watermark_hash_differs_from_integrity_hash(self):
        watermark = self.codec.watermark_hash(self.identity, ClassificationLevel.CONFIDENTIAL, self.timestamp)
        self.assertNotEqual(watermark, self.record.integrity_hash)
        # Only the basename participates in the watermark digest
        self.assertEqual(
            watermark,
            self.codec.watermark_hash('/elsewhere/q3.txt', ClassificationLevel.CONFIDENTIAL, self.timestamp)
        )


if __name__ == '__main__':
    unittest.main()
