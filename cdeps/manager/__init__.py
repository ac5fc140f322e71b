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

"""Dependency resolution, install and build orchestration."""

from .errors import (
    AllocationFailure,
    BuildCommandFailure,
    CdepsError,
    FetchFailure,
    InvalidManifest,
    NoManifest,
    PackageNotFound,
)
from .package import DependencySpec, Package

__all__ = [
    "AllocationFailure",
    "BuildCommandFailure",
    "CdepsError",
    "DependencySpec",
    "FetchFailure",
    "InvalidManifest",
    "NoManifest",
    "Package",
    "PackageNotFound",
]
