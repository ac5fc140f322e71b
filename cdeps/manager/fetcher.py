#
# Copyright 2024 cdeps Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Fetches package sources into a target directory.

A fetched package directory holds its manifest (under the name it was
published with) and every file listed in `src`, flattened to its basename.
Downloaded directories are kept in a global package cache and copied from
there on later installs.
"""

import json
import os
import shutil
from pathlib import Path
from typing import Optional

from cdeps.manager.errors import FetchFailure
from cdeps.manager.executor import WaveExecutor
from cdeps.manager.manifest import MANIFEST_NAMES
from cdeps.manager.package import Package, parse_slug
from cdeps.manager.registry import child_path


class PackageFetcher:
    def __init__(self, client, package_cache_dir: Optional[str] = None,
                 executor: Optional[WaveExecutor] = None,
                 skip_cache: bool = False, force: bool = False, logger=None):
        self.client = client
        self.package_cache_dir = Path(package_cache_dir) if package_cache_dir else None
        self.executor = executor or WaveExecutor(1)
        self.skip_cache = skip_cache
        self.force = force
        self.logger = logger

    def cache_path(self, package: Package) -> Optional[Path]:
        if self.package_cache_dir is None:
            return None
        author, name, _ = parse_slug(package.repo or package.name)
        return child_path(self.package_cache_dir,
                          f"{author}_{name}_{package.version or 'master'}")

    def fetch(self, package: Package, target_dir) -> Path:
        """
        Populate `target_dir` with the sources of `package`.

        Raises:
            FetchFailure: A file could not be downloaded or written
        """
        target_dir = Path(target_dir)
        cached = self.cache_path(package)
        if cached is not None and not (self.skip_cache or self.force) and cached.is_dir():
            self._info("cache", f"{package.repo}@{package.version}")
            try:
                shutil.copytree(cached, target_dir, dirs_exist_ok=True)
                return target_dir
            except OSError as e:
                self._warn(f"failed to copy {cached}: {e}")

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            manifest_name = package.manifest_name or MANIFEST_NAMES[0]
            with open(target_dir / manifest_name, "w", encoding="utf-8") as f:
                json.dump(package.document, f, indent=2, ensure_ascii=False)
                f.write("\n")
        except OSError as e:
            raise FetchFailure(f"Failed to write {target_dir}: {e}") from e

        error = self.executor.run_batch(
            package.src, lambda source: self._fetch_file(package, source, target_dir)
        )
        if error is not None:
            raise error

        if cached is not None:
            self._store(target_dir, cached)
        return target_dir

    def _fetch_file(self, package: Package, source: str, target_dir: Path):
        author, name, _ = parse_slug(package.repo or package.name)
        version = package.version or "master"
        destination = target_dir / os.path.basename(source)
        if destination.exists() and not self.force:
            self._info("exists", str(destination))
            return

        self._info("fetch", f"{author}/{name}:{source}")
        content = self.client.download(author, name, version, source)
        try:
            with open(destination, "wb") as f:
                f.write(content)
        except OSError as e:
            raise FetchFailure(f"Failed to write {destination}: {e}") from e
        self._info("save", str(destination))

    def _store(self, source_dir: Path, cached: Path):
        try:
            if cached.exists():
                shutil.rmtree(cached)
            shutil.copytree(source_dir, cached)
        except OSError as e:
            self._warn(f"failed to cache {source_dir}: {e}")

    def _info(self, label: str, message: str):
        if self.logger is not None:
            self.logger.info(label, message)

    def _warn(self, message: str):
        if self.logger is not None:
            self.logger.warn("cache", message)
