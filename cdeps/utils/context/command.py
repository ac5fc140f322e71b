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

from cdeps.utils.context.context import CliContext
from cdeps.utils.context.namespace import CliNameSpace


# Base class of every command line command
class CliCommand:
    prog = "cdeps"

    def description(self) -> str:
        raise NotImplementedError

    def build_parser(self) -> argparse.ArgumentParser:
        return argparse.ArgumentParser(
            prog=self.prog,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )

    def cli(self, argv=None) -> CliNameSpace:
        parser = self.build_parser()
        if argv is None:
            argv = sys.argv[1:]
        return parser.parse_args(argv, namespace=CliNameSpace())

    def exec(self, context: CliContext, args: CliNameSpace) -> int:
        raise NotImplementedError
