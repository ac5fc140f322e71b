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
from cdeps.manager.executor import DEFAULT_CONCURRENCY
from cdeps.manager.installer import Installer
from cdeps.utils.config import load_config
from cdeps.utils.context.command import CliCommand
from cdeps.utils.context.context import CliContext, RunContext, RunOptions
from cdeps.utils.context.namespace import CliNameSpace
from cdeps.utils.logger import Logger


class Install(CliCommand):
    prog = "cdeps-install"

    def description(self) -> str:
        return f"""Install packages and their dependencies (cdeps {__version__}).

Each NAME is a slug (author/name@version), a local manifest file, or '.'
for the manifest in the current directory. Without NAME, the dependencies
of clib.json (or package.json) in the current directory are installed.

Installed packages are saved into the "dependencies" section of the
project manifest unless --no-save is given. Dependencies of dependencies
are installed but never saved.

EXAMPLES:
    cdeps-install                       # install from clib.json
    cdeps-install clibs/buffer@0.0.1    # install and save a package
    cdeps-install -D stephenmathieson/describe.h
    cdeps-install -N -o vendor foo/bar  # install into vendor/, don't save
        """

    def build_parser(self) -> argparse.ArgumentParser:
        parser = super().build_parser()
        parser.add_argument("names", nargs="*", metavar="name",
                            help="packages to install")
        parser.add_argument("-o", "--out", metavar="<dir>", dest="out",
                            help="change the output directory [deps]")
        parser.add_argument("-P", "--prefix", metavar="<dir>",
                            help="change the prefix directory (usually '/usr/local')")
        parser.add_argument("-q", "--quiet", action="store_true",
                            help="disable verbose output")
        parser.add_argument("-d", "--dev", action="store_true",
                            help="install development dependencies")
        parser.add_argument("-S", "--save", action="store_true",
                            help="[DEPRECATED] save dependency in clib.json or package.json")
        parser.add_argument("-D", "--save-dev", action="store_true",
                            help="save development dependency in clib.json or package.json")
        parser.add_argument("-N", "--no-save", action="store_true",
                            help="don't save dependency in clib.json or package.json")
        parser.add_argument("-f", "--force", action="store_true",
                            help="force the action of something, like overwriting a file")
        parser.add_argument("-c", "--skip-cache", action="store_true",
                            help="skip cache when installing")
        parser.add_argument("-g", "--global", action="store_true", dest="global_install",
                            help="global install, don't write to output dir (default: deps/)")
        parser.add_argument("-t", "--token", metavar="<token>",
                            help="access token used to read private content")
        parser.add_argument("-C", "-j", "--concurrency", metavar="<number>", type=int,
                            help=f"set concurrency (default: {DEFAULT_CONCURRENCY})")
        parser.add_argument("-V", "--version", action="version", version=__version__)
        return parser

    def exec(self, context: CliContext, args: CliNameSpace) -> int:
        logger = Logger(verbose=not args.quiet, program=self.prog)
        if args.save:
            logger.warn("deprecated", "--save option is deprecated "
                                      "(dependencies are now saved by default)")

        config = load_config(context.home_path, logger=logger)
        options = RunOptions(
            out_dir=args.out or config.out_dir,
            prefix=args.prefix or config.prefix,
            verbose=not args.quiet,
            dev=args.dev,
            save_dev=args.save_dev,
            no_save=args.no_save,
            force=args.force,
            global_install=args.global_install,
            skip_cache=args.skip_cache,
            token=args.token,
            concurrency=args.concurrency or config.concurrency,
        )
        run_context = RunContext.create(options, config, config.install_ttl, logger=logger)
        return Installer(run_context).run(args.names)


def main(argv=None):
    cmd = Install()
    sys.exit(cmd.exec(CliContext(), cmd.cli(argv)))


if __name__ == "__main__":
    main()
