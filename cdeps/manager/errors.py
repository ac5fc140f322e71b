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
Errors raised while resolving, installing and building packages.

Every error carries the exit code the command line tools report when the
error is the first failure of a run.
"""

import errno


class CdepsError(Exception):
    """Base class for dependency-related errors"""

    exit_code = 1

    def __init__(self, message: str, exit_code: int = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidManifest(CdepsError):
    """A manifest exists but does not parse or lacks required fields"""
    pass


class PackageNotFound(CdepsError):
    """No remote listing matches a slug"""
    pass


class NoManifest(CdepsError):
    """Neither candidate manifest exists in a directory"""

    exit_code = -errno.ENOENT


class FetchFailure(CdepsError):
    """Network or filesystem error while obtaining package sources"""
    pass


class BuildCommandFailure(CdepsError):
    """The external build invocation returned non-zero"""

    def __init__(self, message: str, returncode: int = 1, output: str = ""):
        super().__init__(message, exit_code=returncode or 1)
        self.returncode = returncode
        self.output = output


class AllocationFailure(CdepsError):
    """Resource exhaustion while preparing a task"""

    exit_code = -errno.ENOMEM
