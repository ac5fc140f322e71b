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
Build driver.

Builds an installed package with its `makefile`, then its dependencies found
under `<out>/<name>`. Every directory is built at most once per run, and only
packages that actually ran a build count toward the summary.
"""

import os
from pathlib import Path
from typing import List, Sequence

from cdeps.manager.errors import (
    AllocationFailure,
    BuildCommandFailure,
    CdepsError,
    NoManifest,
)
from cdeps.manager.package import DependencySpec, Package
from cdeps.manager.registry import canonical_path, child_path
from cdeps.utils.cmd.cmd_util import BuildCommand, exec_commands, make_commands
from cdeps.utils.context.result import CliResult, first_failure

# lines of build output shown when a build fails quietly
ERROR_TAIL_LINES = 20


class Builder:
    def __init__(self, context, working_dir=None):
        self.context = context
        self.options = context.options
        self.logger = context.logger
        self.working_dir = Path(working_dir or os.getcwd())
        self.out_dir = Path(canonical_path(self.options.out_dir))
        if self.options.prefix:
            self.options.prefix = canonical_path(self.options.prefix)

    def run(self, arguments: Sequence[str]) -> int:
        """
        Build `arguments`, or the package in the working directory if empty.

        Returns:
            Exit code of the first failure, 0 if everything built
        """
        if not arguments:
            results = [self._build_top_level(self.working_dir)]
        else:
            results = [self.build_argument(argument) for argument in arguments]

        self.print_summary()
        failed = first_failure(results)
        return failed.exit_code if failed else 0

    def print_summary(self):
        built = self.context.registry.built_count()
        noun = "package" if built == 1 else "packages"
        self.logger.info("info", f"built {built} {noun}")

    def build_argument(self, argument: str) -> CliResult:
        if argument.startswith("."):
            directory = Path(canonical_path(self.working_dir / argument))
        else:
            directory = self.out_dir / argument

        try:
            self.build_package(directory)
            return CliResult(argument, value=directory)
        except NoManifest as e:
            first = e
        except CdepsError as e:
            return self._failed(argument, e)

        # try the argument as a plain path
        try:
            self.build_package(Path(argument))
            return CliResult(argument, value=Path(argument))
        except NoManifest:
            return self._failed(argument, first)
        except CdepsError as e:
            return self._failed(argument, e)

    def _build_top_level(self, directory: Path) -> CliResult:
        try:
            self.build_package(directory)
        except CdepsError as e:
            return self._failed(str(directory), e)
        return CliResult(str(directory), value=directory)

    def _failed(self, argument: str, error: CdepsError) -> CliResult:
        self.logger.error("error", f"Unable to build {argument}: {error}")
        return CliResult(argument, error=error)

    def load_package(self, directory: Path) -> Package:
        path, document = self.context.manifests.load(directory)
        self.logger.debug(f"read {path}")
        return Package.from_document(
            document, dev=self.options.dev, manifest_name=path.name
        )

    def build_commands(self, package: Package, directory: Path) -> List[BuildCommand]:
        return make_commands(
            str(directory),
            package.makefile,
            clean=self.options.clean,
            test=self.options.test,
            force=self.options.force,
            env=self.context.command_env(package),
        )

    def build_package(self, directory: Path):
        """
        Build the package in `directory`, then its dependencies.

        Raises:
            NoManifest: `directory` holds no manifest
            BuildCommandFailure: The build returned non-zero; dependencies
                are not built
        """
        self.build_loaded(self.load_package(directory), directory)

    def build_loaded(self, package: Package, directory: Path):
        registry = self.context.registry
        if not registry.claim(directory):
            self.logger.debug(f"{directory} already built")
            return

        if package.makefile:
            self.logger.info("build", f"{package.name}: {package.makefile}")
            code, output = exec_commands(self.build_commands(package, directory))
            if code != 0:
                registry.mark_outcome(directory, False)
                self._report_failure(package, code, output)
                raise BuildCommandFailure(
                    f"{package.name}: build exited with {code}", code, output
                )
            if self.options.verbose and output:
                print(output, end="" if output.endswith("\n") else "\n")
            registry.mark_outcome(directory, True)
        else:
            registry.mark_outcome(directory, False)

        self.build_dependencies(package)

    def _report_failure(self, package: Package, code: int, output: str):
        lines = output.rstrip().splitlines()
        if not self.options.verbose:
            lines = lines[-ERROR_TAIL_LINES:]
        detail = "\n".join(f"   | {line}" for line in lines)
        self.logger.error("build", f"{package.name} failed ({code})\n{detail}")

    def build_dependencies(self, package: Package):
        first_error = None
        batches = [package.dependencies]
        if self.options.dev:
            batches.append(package.development)
        for batch in batches:
            if not batch:
                continue
            error = self.context.executor.run_batch(batch, self.build_dependency)
            first_error = first_error or error
        if first_error is not None:
            raise first_error

    def dependency_dir(self, dependency: DependencySpec) -> Path:
        local = child_path(self.out_dir, dependency.name)
        if self.context.manifests.find(local) is not None:
            return local
        package = self.context.resolver.resolve_from_slug(dependency.slug)
        return child_path(self.out_dir, package.name or dependency.name)

    def build_dependency(self, dependency: DependencySpec):
        try:
            directory = self.dependency_dir(dependency)
            package = self.load_package(directory)
        except CdepsError as e:
            self.logger.error("error", f"Unable to build {dependency.slug}: {e}")
            raise
        try:
            self.build_loaded(package, directory)
        except MemoryError as e:
            raise AllocationFailure(f"Out of memory building {dependency.slug}") from e
