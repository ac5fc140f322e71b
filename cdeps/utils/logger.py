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
import sys
import threading

_print_lock = threading.Lock()


def _emit(stream, label: str, message: str):
    with _print_lock:
        print(f"{label:>10} : {message}", file=stream)
        stream.flush()


class Logger:
    """Console reporter shared by all worker threads.

    `info` lines are gated by verbosity; warnings and errors always print.
    """

    def __init__(self, verbose: bool = True, program: str = "cdeps"):
        self.verbose = verbose
        self.program = program

    def info(self, label: str, message: str):
        if self.verbose:
            _emit(sys.stdout, label, message)

    def warn(self, label: str, message: str):
        _emit(sys.stderr, label, f"⚠️  {message}")

    def error(self, label: str, message: str):
        _emit(sys.stderr, label, f"❌ {message}")

    def debug(self, message: str):
        if debug_enabled(self.program):
            with _print_lock:
                print(f"  {self.program} {message}", file=sys.stderr)


def debug_enabled(program: str) -> bool:
    # DEBUG=cdeps-install,cdeps-build or DEBUG=*
    names = [n.strip() for n in os.environ.get("DEBUG", "").split(",")]
    return "*" in names or program in names or "cdeps" in names
