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

"""Metadata cache utilities for cdeps."""

from .metadata_cache import BUILD_CACHE_TTL, INSTALL_CACHE_TTL, MetadataCache

__all__ = ['BUILD_CACHE_TTL', 'INSTALL_CACHE_TTL', 'MetadataCache']
