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
Install driver.

Each command line argument is a local directory, a local manifest file or
a remote slug. Remote packages are fetched into `<out>/<name>`, their
dependencies installed recursively, and the package itself saved into the
project manifest. Transitive dependencies are never saved.
"""

import os
import shutil
import stat
from pathlib import Path
from typing import List, Optional, Sequence

from cdeps.manager.errors import (
    AllocationFailure,
    BuildCommandFailure,
    CdepsError,
    InvalidManifest,
    NoManifest,
)
from cdeps.manager.manifest import DEPENDENCIES_SECTION, DEVELOPMENT_SECTION
from cdeps.manager.package import DependencySpec, Package
from cdeps.manager.registry import child_path
from cdeps.manager.resolver import backfill_repo
from cdeps.utils.cmd.cmd_util import exec_command, shell_command
from cdeps.utils.context.result import CliResult, first_failure

LOCAL = "local"
LOCAL_MANIFEST = "local-manifest"
REMOTE = "remote"


def classify_argument(argument: str) -> str:
    if argument.startswith(".") and os.path.isdir(argument):
        return LOCAL
    if os.path.lexists(argument):
        mode = os.lstat(argument).st_mode
        if stat.S_ISREG(mode) or stat.S_ISLNK(mode):
            return LOCAL_MANIFEST
    return REMOTE


class Installer:
    def __init__(self, context, project_dir=None):
        self.context = context
        self.options = context.options
        self.logger = context.logger
        self.project_dir = Path(project_dir or os.getcwd())

    # ------------------------------------------------------------------
    # entry points

    def run(self, arguments: Sequence[str]) -> int:
        """
        Install `arguments`, or the local manifest's dependencies if empty.

        Returns:
            Process exit code: 0 on success, 1 if any argument failed
        """
        try:
            self.load_root_package()
        except OSError as e:
            self.logger.error("error", f"Unable to create prefix directory: {e}")
            return 1

        if not arguments:
            results = [self.install_argument(".")]
        else:
            results = [self.install_argument(arg) for arg in arguments]

        installed = self.context.registry.built_count()
        noun = "package" if installed == 1 else "packages"
        self.logger.info("info", f"installed {installed} {noun}")
        return 1 if first_failure(results) else 0

    def install_argument(self, argument: str) -> CliResult:
        self.logger.debug(f"install {argument}")
        try:
            kind = classify_argument(argument)
            if kind == LOCAL:
                value = self.install_local_packages(argument)
            elif kind == LOCAL_MANIFEST:
                value = self.install_local_manifest(argument)
            else:
                value = self.install_remote(argument)
        except CdepsError as e:
            self.logger.error("error", f"Unable to install package {argument}: {e}")
            return CliResult(argument, error=e)
        return CliResult(argument, value=value)

    # ------------------------------------------------------------------
    # argument kinds

    def load_root_package(self) -> Optional[Package]:
        """Read the project manifest, if any, for its prefix."""
        try:
            _, document = self.context.manifests.load(self.project_dir)
            root = Package.from_document(document)
        except (NoManifest, InvalidManifest):
            root = None

        if root is not None and root.prefix:
            self.context.root_prefix = root.prefix
        prefix = self.context.prefix_for()
        if prefix:
            os.makedirs(prefix, exist_ok=True)
            prefix = os.path.realpath(prefix)
            if self.options.prefix:
                self.options.prefix = prefix
            else:
                self.context.root_prefix = prefix
        return root

    def install_local_packages(self, directory) -> Package:
        """Install the dependencies declared by the manifest in `directory`."""
        path, document = self.context.manifests.load(directory)
        self.logger.debug(f"reading local {path}")
        package = Package.from_document(
            document, strict=True, dev=self.options.dev, manifest_name=path.name
        )
        self.install_dependencies(package, top_level=True)
        return package

    def install_local_manifest(self, path) -> Package:
        document = self.context.manifests.read(path)
        package = Package.from_document(
            document, strict=True, dev=self.options.dev,
            manifest_name=os.path.basename(path),
        )
        self.install_dependencies(package, top_level=True)
        return package

    def install_remote(self, slug: str) -> Package:
        package = self.context.resolver.resolve_from_slug(slug, dev=self.options.dev)
        self.install_package(package, top_level=True)

        repo = backfill_repo(package, slug)
        if not self.options.no_save:
            self.save_dependency(package, repo)
        return package

    def save_dependency(self, package: Package, repo: str):
        section = DEVELOPMENT_SECTION if self.options.save_dev else DEPENDENCIES_SECTION
        path = self.context.manifests.merge_dependency(
            self.project_dir, section, repo, package.version
        )
        self.logger.debug(f"saved {repo}@{package.version} to {path} [{section}]")

    # ------------------------------------------------------------------
    # recursion

    def target_dir(self, package: Package) -> Path:
        if self.options.global_install:
            tmp_root = self.context.config.tmp_dir if self.context.config else \
                os.path.join(self.context.home_path, "tmp")
            return child_path(tmp_root, f"{package.name}@{package.version or 'master'}")
        return child_path(self.options.out_dir, package.name)

    def install_package(self, package: Package, top_level: bool = False):
        """
        Fetch `package` and install its dependencies, once per target path.

        Dependencies of a package that failed to fetch are not installed.
        """
        target = self.target_dir(package)
        registry = self.context.registry
        if not registry.claim(target):
            self.logger.debug(f"{package.name} already handled")
            return

        try:
            self.fetch_package(package, target)
        except CdepsError as e:
            registry.mark_outcome(target, False)
            if not top_level:
                self.logger.error("error", f"Unable to install {package.repo}: {e}")
            raise
        registry.mark_outcome(target, True)

        self.install_dependencies(package, top_level=top_level)

        if self.options.global_install:
            try:
                self.run_install_command(package, target)
            except CdepsError:
                registry.mark_outcome(target, False)
                raise

    def fetch_package(self, package: Package, target: Path):
        if not self.options.force and self.context.manifests.find(target) is not None:
            self.logger.info("exists", str(target))
            return
        self.logger.info("install", f"{package.repo}@{package.version}")
        self.context.fetcher.fetch(package, target)

    def run_install_command(self, package: Package, target: Path):
        if not package.install:
            return
        try:
            command = shell_command(
                package.install, str(target), self.context.command_env(package)
            )
        except ValueError as e:
            raise InvalidManifest(f"{package.name}: invalid install command: {e}") from e

        self.logger.info("install", f"{package.name}: {command}")
        code, output = exec_command(command)
        shutil.rmtree(target, ignore_errors=True)
        if code != 0:
            self.logger.error("install", f"{package.name} failed ({code})\n{output}")
            raise BuildCommandFailure(
                f"install command of {package.name} failed", code, output
            )
        if self.options.verbose and output:
            print(output, end="" if output.endswith("\n") else "\n")

    def dependency_batches(self, package: Package, top_level: bool) -> List[List[DependencySpec]]:
        batches = [package.dependencies]
        if top_level and self.options.dev:
            batches.append(package.development)
        return [b for b in batches if b]

    def install_dependencies(self, package: Package, top_level: bool = False):
        """Install every dependency of `package`, siblings in one batch."""
        first_error = None
        for batch in self.dependency_batches(package, top_level):
            error = self.context.executor.run_batch(batch, self.install_dependency)
            first_error = first_error or error
        if first_error is not None:
            raise first_error

    def install_dependency(self, dependency: DependencySpec):
        try:
            package = self.context.resolver.resolve_from_slug(dependency.slug)
        except CdepsError as e:
            self.logger.error("error", f"Unable to resolve {dependency.slug}: {e}")
            raise
        try:
            self.install_package(package)
        except MemoryError as e:
            raise AllocationFailure(f"Out of memory installing {dependency.slug}") from e
