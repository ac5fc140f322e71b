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
TTL-gated cache of remote package manifests.

Each entry is one JSON file holding the payload and the time it was stored.
Cache failures never fail an install; they read as a miss.
"""

import hashlib
import json
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional

# 30 days expiration
INSTALL_CACHE_TTL = 30 * 24 * 60 * 60
# 1 day expiration
BUILD_CACHE_TTL = 1 * 24 * 60 * 60

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class MetadataCache:
    def __init__(self, cache_dir, ttl: float = INSTALL_CACHE_TTL,
                 skip_cache: bool = False,
                 clock: Callable[[], float] = time.time,
                 logger=None):
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self.skip_cache = skip_cache
        self.clock = clock
        self.logger = logger

    def path_for(self, key: str) -> Path:
        safe = _UNSAFE_CHARS.sub("_", key)
        if safe != key:
            # keep distinct keys distinct after sanitizing
            safe = f"{safe}-{hashlib.md5(key.encode()).hexdigest()[:8]}"
        return self.cache_dir / f"{safe}.json"

    def get(self, key: str) -> Optional[Any]:
        if self.skip_cache:
            return None

        path = self.path_for(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                entry = json.load(f)
            stored_at = float(entry["stored_at"])
            payload = entry["payload"]
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            self._warn(f"ignoring unreadable cache entry {path}: {e}")
            return None

        if self.clock() - stored_at >= self.ttl:
            return None
        return payload

    def put(self, key: str, payload: Any):
        path = self.path_for(key)
        entry = {"stored_at": self.clock(), "payload": payload}
        tmp_path = None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{path.stem}.", suffix=".tmp", dir=str(self.cache_dir)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entry, f)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            self._warn(f"failed to write cache entry {path}: {e}")
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def _warn(self, message: str):
        if self.logger is not None:
            self.logger.warn("cache", message)
