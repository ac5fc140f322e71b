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
Per-run registry of package directories that were already processed.

Keys are canonical absolute paths. A path moves from unseen to claimed
exactly once per run, whatever the thread scheduling.
"""

import os
import threading
from pathlib import Path
from typing import Dict, Optional

from cdeps.manager.errors import InvalidManifest

CLAIMED = "claimed"
BUILT = "built"
UNBUILT = "unbuilt"


def canonical_path(path) -> str:
    return os.path.realpath(os.path.abspath(os.fspath(path)))


def child_path(root, name: str) -> Path:
    """
    Return `root/name`, which must lie strictly below `root`.

    The check is lexical; symlinks inside `root` are left alone.

    Raises:
        InvalidManifest: `name` resolves to `root` itself or outside of it
    """
    path = Path(root) / name
    base = os.path.abspath(os.fspath(root))
    if not os.path.abspath(os.fspath(path)).startswith(base.rstrip(os.sep) + os.sep):
        raise InvalidManifest(f"{name!r} resolves outside of {root}")
    return path


class BuildRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, str] = {}

    def claim(self, path) -> bool:
        """
        Atomically claim `path`.

        Returns:
            True if the caller owns the path and must do the work,
            False if another task already claimed it
        """
        key = canonical_path(path)
        with self._lock:
            if key in self._entries:
                return False
            self._entries[key] = CLAIMED
            return True

    def mark_outcome(self, path, built: bool):
        key = canonical_path(path)
        with self._lock:
            self._entries[key] = BUILT if built else UNBUILT

    def outcome(self, path) -> Optional[str]:
        key = canonical_path(path)
        with self._lock:
            return self._entries.get(key)

    def built_count(self) -> int:
        with self._lock:
            return sum(1 for v in self._entries.values() if v == BUILT)

    def processed_count(self) -> int:
        with self._lock:
            return len(self._entries)
