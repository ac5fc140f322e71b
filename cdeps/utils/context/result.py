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

from typing import Any, Optional, Sequence


class CliResult:
    """Outcome of handling one command line argument."""

    def __init__(self, argument: str, value: Any = None,
                 error: Optional[Exception] = None):
        self.argument = argument
        self.value = value
        self.error = error

    def is_success(self) -> bool:
        return self.error is None

    def is_failure(self) -> bool:
        return self.error is not None

    @property
    def exit_code(self) -> int:
        if self.is_success():
            return 0
        return getattr(self.error, "exit_code", 1) or 1

    def __repr__(self):
        state = "ok" if self.is_success() else f"failed: {self.error}"
        return f"CliResult({self.argument!r}, {state})"


def first_failure(results: Sequence[CliResult]) -> Optional[CliResult]:
    return next((r for r in results if r.is_failure()), None)
