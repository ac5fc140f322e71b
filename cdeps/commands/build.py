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

import argparse
import sys

from cdeps import __version__
from cdeps.manager.builder import Builder
from cdeps.manager.executor import DEFAULT_CONCURRENCY
from cdeps.utils.cmd.cmd_util import DEFAULT_MAKE_CHECK_TARGET, DEFAULT_MAKE_CLEAN_TARGET
from cdeps.utils.config import load_config
from cdeps.utils.context.command import CliCommand
from cdeps.utils.context.context import CliContext, RunContext, RunOptions
from cdeps.utils.context.namespace import CliNameSpace
from cdeps.utils.logger import Logger


class Build(CliCommand):
    prog = "cdeps-build"

    def description(self) -> str:
        return f"""Build installed packages and their dependencies (cdeps {__version__}).

Each NAME is a package directory under the output directory, or a path
starting with '.'. Without NAME, the package in the current directory is
built. A package is built by running `make -f <makefile>` in its
directory, where <makefile> comes from its clib.json (or package.json);
packages without a makefile are visited but not counted as built.

EXAMPLES:
    cdeps-build                  # build the current package and its deps
    cdeps-build buffer           # build deps/buffer
    cdeps-build --clean          # make clean, then build
    cdeps-build -T check -j 8    # run the 'check' target, 8 at a time
        """

    def build_parser(self) -> argparse.ArgumentParser:
        parser = super().build_parser()
        parser.add_argument("names", nargs="*", metavar="name",
                            help="packages to build")
        parser.add_argument("-o", "--out", metavar="<dir>", dest="out",
                            help="change the output directory [deps]")
        parser.add_argument("-P", "--prefix", metavar="<dir>",
                            help="change the prefix directory (usually '/usr/local')")
        parser.add_argument("-q", "--quiet", action="store_true",
                            help="disable verbose output")
        parser.add_argument("-g", "--global", action="store_true", dest="global_install",
                            help="use global target")
        parser.add_argument("-C", "--clean", nargs="?", const=DEFAULT_MAKE_CLEAN_TARGET,
                            metavar="clean_target",
                            help=f"clean target before building (default: {DEFAULT_MAKE_CLEAN_TARGET})")
        parser.add_argument("-T", "--test", nargs="?", const=DEFAULT_MAKE_CHECK_TARGET,
                            metavar="test_target",
                            help=f"test target instead of building (default: {DEFAULT_MAKE_CHECK_TARGET})")
        parser.add_argument("-d", "--dev", action="store_true",
                            help="build development dependencies")
        parser.add_argument("-f", "--force", action="store_true",
                            help="force the action of something, like overwriting a file")
        parser.add_argument("-c", "--skip-cache", action="store_true",
                            help="skip cache when configuring")
        parser.add_argument("-j", "--concurrency", metavar="<concurrency>", type=int,
                            help=f"set concurrency (default: {DEFAULT_CONCURRENCY})")
        parser.add_argument("-V", "--version", action="version", version=__version__)
        return parser

    def exec(self, context: CliContext, args: CliNameSpace) -> int:
        logger = Logger(verbose=not args.quiet, program=self.prog)
        config = load_config(context.home_path, logger=logger)
        options = RunOptions(
            out_dir=args.out or config.out_dir,
            prefix=args.prefix or config.prefix,
            verbose=not args.quiet,
            dev=args.dev,
            force=args.force,
            global_install=args.global_install,
            skip_cache=args.skip_cache,
            concurrency=args.concurrency or config.concurrency,
            clean=args.clean,
            test=args.test,
        )
        run_context = RunContext.create(options, config, config.build_ttl, logger=logger)
        return Builder(run_context).run(args.names)


def main(argv=None):
    cmd = Build()
    sys.exit(cmd.exec(CliContext(), cmd.cli(argv)))


if __name__ == "__main__":
    main()
