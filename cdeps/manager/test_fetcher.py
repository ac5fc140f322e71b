#!/usr/bin/env python3
"""
Tests for package source fetching.

Run with: python3 -m pytest cdeps/manager/test_fetcher.py
"""

import json
import os
import tempfile
import unittest
from unittest.mock import Mock

from cdeps.manager.errors import FetchFailure, InvalidManifest
from cdeps.manager.executor import WaveExecutor
from cdeps.manager.fetcher import PackageFetcher
from cdeps.manager.package import Package


class TestPackageFetcher(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.cache_dir = os.path.join(self.tmp.name, "packages")
        self.client = Mock()
        self.client.download.side_effect = lambda a, n, v, path: f"// {path}\n".encode()
        document = {"name": "bar", "version": "1.0.0", "repo": "foo/bar",
                    "src": ["src/bar.c", "include/bar.h"]}
        self.package = Package.from_document(document, manifest_name="package.json")

    def tearDown(self):
        self.tmp.cleanup()

    def target(self, name="bar"):
        return os.path.join(self.tmp.name, "deps", name)

    def test_writes_manifest_and_flattened_sources(self):
        fetcher = PackageFetcher(self.client, executor=WaveExecutor(2))
        fetcher.fetch(self.package, self.target())

        self.assertEqual(sorted(os.listdir(self.target())),
                         ["bar.c", "bar.h", "package.json"])
        with open(os.path.join(self.target(), "package.json")) as f:
            self.assertEqual(json.load(f)["repo"], "foo/bar")
        self.client.download.assert_any_call("foo", "bar", "1.0.0", "src/bar.c")

    def test_second_fetch_copies_from_package_cache(self):
        fetcher = PackageFetcher(self.client, package_cache_dir=self.cache_dir)
        fetcher.fetch(self.package, self.target())
        self.assertTrue(os.path.isdir(os.path.join(self.cache_dir, "foo_bar_1.0.0")))
        self.assertEqual(self.client.download.call_count, 2)

        fetcher.fetch(self.package, self.target("copy"))
        self.assertEqual(self.client.download.call_count, 2)
        self.assertTrue(os.path.isfile(os.path.join(self.target("copy"), "bar.c")))

    def test_skip_cache_downloads_again(self):
        PackageFetcher(self.client, package_cache_dir=self.cache_dir).fetch(
            self.package, self.target())
        PackageFetcher(self.client, package_cache_dir=self.cache_dir,
                       skip_cache=True).fetch(self.package, self.target("again"))
        self.assertEqual(self.client.download.call_count, 4)

    def test_existing_files_kept_unless_forced(self):
        os.makedirs(self.target())
        with open(os.path.join(self.target(), "bar.c"), "w") as f:
            f.write("local edit\n")

        PackageFetcher(self.client).fetch(self.package, self.target())
        with open(os.path.join(self.target(), "bar.c")) as f:
            self.assertEqual(f.read(), "local edit\n")

        PackageFetcher(self.client, force=True).fetch(self.package, self.target())
        with open(os.path.join(self.target(), "bar.c")) as f:
            self.assertEqual(f.read(), "// src/bar.c\n")

    def test_download_failure_raised_after_siblings(self):
        def download(author, name, version, path):
            if path == "src/bar.c":
                raise FetchFailure("boom")
            return b"ok"
        self.client.download.side_effect = download

        fetcher = PackageFetcher(self.client, executor=WaveExecutor(1))
        with self.assertRaises(FetchFailure):
            fetcher.fetch(self.package, self.target())
        self.assertTrue(os.path.isfile(os.path.join(self.target(), "bar.h")))

    def test_version_cannot_escape_package_cache(self):
        self.package.version = "../../../escaped"
        fetcher = PackageFetcher(self.client, package_cache_dir=self.cache_dir)
        with self.assertRaises(InvalidManifest):
            fetcher.fetch(self.package, self.target())
        self.client.download.assert_not_called()


if __name__ == '__main__':
    unittest.main()
