#!/usr/bin/env python3
"""
Tests for the metadata cache.

Run with: python3 -m pytest cdeps/utils/cache/test_metadata_cache.py
"""

import os
import tempfile
import unittest
from unittest.mock import Mock

from cdeps.utils.cache.metadata_cache import INSTALL_CACHE_TTL, MetadataCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestMetadataCache(unittest.TestCase):
    """Test TTL and skip-cache behavior."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.clock = FakeClock()
        self.cache = MetadataCache(self.tmp.name, ttl=60, clock=self.clock)

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_entry(self):
        self.assertIsNone(self.cache.get("clibs_buffer_master"))

    def test_entry_within_ttl(self):
        self.cache.put("clibs_buffer_master", {"text": "{}"})
        self.clock.now += 59.9
        self.assertEqual(self.cache.get("clibs_buffer_master"), {"text": "{}"})

    def test_entry_expires_at_ttl(self):
        """An entry exactly ttl seconds old reads as absent."""
        self.cache.put("clibs_buffer_master", {"text": "{}"})
        self.clock.now += 60
        self.assertIsNone(self.cache.get("clibs_buffer_master"))

    def test_put_overwrites_and_restamps(self):
        self.cache.put("key", "old")
        self.clock.now += 50
        self.cache.put("key", "new")
        self.clock.now += 50
        self.assertEqual(self.cache.get("key"), "new")

    def test_skip_cache_ignores_fresh_entries(self):
        self.cache.put("key", "value")
        skipping = MetadataCache(self.tmp.name, ttl=60, skip_cache=True, clock=self.clock)
        self.assertIsNone(skipping.get("key"))
        # the regular cache still sees it
        self.assertEqual(self.cache.get("key"), "value")

    def test_corrupt_entry_reads_as_miss(self):
        logger = Mock()
        cache = MetadataCache(self.tmp.name, ttl=60, clock=self.clock, logger=logger)
        with open(cache.path_for("key"), "w") as f:
            f.write("{not json")
        self.assertIsNone(cache.get("key"))
        logger.warn.assert_called_once()

    def test_unwritable_directory_is_not_fatal(self):
        blocker = os.path.join(self.tmp.name, "file")
        with open(blocker, "w") as f:
            f.write("x")
        logger = Mock()
        cache = MetadataCache(os.path.join(blocker, "sub"), clock=self.clock, logger=logger)
        cache.put("key", "value")
        self.assertIsNone(cache.get("key"))
        logger.warn.assert_called()

    def test_distinct_keys_stay_distinct(self):
        self.assertNotEqual(self.cache.path_for("a/b"), self.cache.path_for("a_b"))

    def test_unserializable_payload_leaves_no_temp_file(self):
        self.cache.put("bad", {"text": object()})
        self.assertIsNone(self.cache.get("bad"))
        self.assertEqual(os.listdir(self.tmp.name), [])

    def test_default_ttl_is_thirty_days(self):
        self.assertEqual(INSTALL_CACHE_TTL, 30 * 24 * 60 * 60)
        self.assertEqual(MetadataCache(self.tmp.name).ttl, INSTALL_CACHE_TTL)


if __name__ == '__main__':
    unittest.main()
