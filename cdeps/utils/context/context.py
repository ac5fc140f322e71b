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

import os
from dataclasses import dataclass
from typing import Optional

from cdeps.manager.executor import DEFAULT_CONCURRENCY, WaveExecutor
from cdeps.manager.fetcher import PackageFetcher
from cdeps.manager.manifest import ManifestStore
from cdeps.manager.registry import BuildRegistry
from cdeps.manager.resolver import PackageResolver
from cdeps.utils.cache.metadata_cache import MetadataCache
from cdeps.utils.config import CdepsConfig, cdeps_home
from cdeps.utils.http.client import RegistryClient
from cdeps.utils.logger import Logger


# This context data class to save the context of the command
class CliContext:
    def __init__(self, home_path: Optional[str] = None):
        self.home_path = home_path or cdeps_home()


@dataclass
class RunOptions:
    """Options shared by the install and build drivers."""
    out_dir: str = os.path.join(".", "deps")
    prefix: Optional[str] = None
    verbose: bool = True
    dev: bool = False
    save_dev: bool = False
    no_save: bool = False
    force: bool = False
    global_install: bool = False
    skip_cache: bool = False
    token: Optional[str] = None
    concurrency: int = DEFAULT_CONCURRENCY
    clean: Optional[str] = None
    test: Optional[str] = None


class RunContext(CliContext):
    """
    Everything one install or build run shares.

    One registry, cache, resolver and executor per run; nothing of it is
    process global, so several runs can coexist (e.g. in tests).
    """

    def __init__(self, options: RunOptions, resolver, fetcher=None,
                 config: Optional[CdepsConfig] = None,
                 logger: Optional[Logger] = None,
                 manifests: Optional[ManifestStore] = None,
                 registry: Optional[BuildRegistry] = None,
                 executor: Optional[WaveExecutor] = None,
                 home_path: Optional[str] = None):
        super().__init__(home_path or (config.home if config else None))
        self.options = options
        self.config = config
        self.resolver = resolver
        self.fetcher = fetcher
        self.logger = logger or Logger(options.verbose)
        self.manifests = manifests or ManifestStore()
        self.registry = registry or BuildRegistry()
        self.executor = executor or WaveExecutor(options.concurrency)
        # prefix of the project manifest in the working directory
        self.root_prefix: Optional[str] = None

    def prefix_for(self, package=None) -> Optional[str]:
        """--prefix, then the root package prefix, then the package's own."""
        if self.options.prefix:
            return self.options.prefix
        if self.root_prefix:
            return self.root_prefix
        if package is not None and package.prefix:
            return package.prefix
        return None

    def command_env(self, package=None) -> dict:
        prefix = self.prefix_for(package)
        return {"PREFIX": prefix} if prefix else {}

    @classmethod
    def create(cls, options: RunOptions, config: CdepsConfig, ttl: float,
               logger: Optional[Logger] = None) -> "RunContext":
        """Wire the registry client, caches and resolver for one run."""
        logger = logger or Logger(options.verbose)
        client = RegistryClient(config.registry, token=options.token or config.token)
        cache = MetadataCache(
            config.metadata_cache_dir, ttl=ttl,
            skip_cache=options.skip_cache, logger=logger,
        )
        executor = WaveExecutor(options.concurrency)
        fetcher = PackageFetcher(
            client,
            package_cache_dir=config.package_cache_dir,
            executor=executor,
            skip_cache=options.skip_cache,
            force=options.force,
            logger=logger,
        )
        return cls(
            options,
            resolver=PackageResolver(client, cache, logger=logger),
            fetcher=fetcher,
            config=config,
            logger=logger,
            executor=executor,
        )
