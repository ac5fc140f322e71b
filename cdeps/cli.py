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
import importlib
import os
import sys

from cdeps import __version__
from cdeps.utils.context.command import CliCommand
from cdeps.utils.context.context import CliContext
from cdeps.utils.context.namespace import CliNameSpace

SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]


# Root Class for Command Line Interface
class Cli(CliCommand):
    prog = "cdeps"

    def description(self) -> str:
        return f"""cdeps {__version__} - package manager for C source dependencies

USAGE:
    cdeps <command> [options] [name ...]

COMMANDS:
    install     Fetch packages and their dependencies into deps/
    build       Build installed packages with their makefile

EXAMPLES:
    cdeps install clibs/buffer@0.0.1
    cdeps build --clean

For more information on a specific command:
    cdeps <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if not command.startswith("_") and command.endswith(".py") \
                    and not command.startswith("test_"):
                arr.append(os.path.splitext(os.path.basename(command))[0])
        return sorted(arr)

    def build_parser(self) -> argparse.ArgumentParser:
        parser = super().build_parser()
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            choices=self.get_command_list(),
        )
        parser.add_argument("args", nargs=argparse.REMAINDER)
        return parser

    def exec(self, context: CliContext, args: CliNameSpace) -> int:
        module = importlib.import_module(f"cdeps.commands.{args.subcommand}")
        klass = getattr(module, args.subcommand.capitalize())
        sub_cmd = klass()
        sub_cmd.prog = f"{self.prog} {args.subcommand}"
        return sub_cmd.exec(context, sub_cmd.cli(args.args))


def main(argv=None):
    cmd = Cli()
    sys.exit(cmd.exec(CliContext(), cmd.cli(argv)))


if __name__ == "__main__":
    main()
