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
User configuration for cdeps.

Configuration structure (<home>/config.toml, home = $CDEPS_HOME or ~/.cdeps):
    [registry]
    url = "https://raw.githubusercontent.com"
    token = "${GITHUB_TOKEN}"

    [install]
    out = "./deps"
    concurrency = 4
    prefix = "/usr/local"

    [cache]
    install_ttl = 2592000     # seconds, 30 days
    build_ttl = 86400         # seconds, 1 day

Priority: command line > environment (CDEPS_TOKEN, CDEPS_REGISTRY) > config
file > defaults.
"""

import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Try to import tomli for Python < 3.11, tomllib for Python >= 3.11
try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib

from cdeps.manager.executor import DEFAULT_CONCURRENCY
from cdeps.utils.cache.metadata_cache import BUILD_CACHE_TTL, INSTALL_CACHE_TTL

DEFAULT_REGISTRY = "https://raw.githubusercontent.com"
DEFAULT_OUT_DIR = os.path.join(".", "deps")
CONFIG_FILE_NAME = "config.toml"


def cdeps_home() -> str:
    return os.environ.get("CDEPS_HOME") or os.path.join(os.path.expanduser("~"), ".cdeps")


def _expand_env(value):
    """Expand ${VAR} references in string values."""
    if not isinstance(value, str):
        return value
    return re.sub(
        r"\$\{([^}]+)\}", lambda m: os.environ.get(m.group(1), ""), value
    )


@dataclass
class CdepsConfig:
    registry: str = DEFAULT_REGISTRY
    token: Optional[str] = None
    out_dir: str = DEFAULT_OUT_DIR
    prefix: Optional[str] = None
    concurrency: int = DEFAULT_CONCURRENCY
    install_ttl: float = INSTALL_CACHE_TTL
    build_ttl: float = BUILD_CACHE_TTL
    home: str = ""

    @property
    def metadata_cache_dir(self) -> str:
        return os.path.join(self.home, "cache", "json")

    @property
    def package_cache_dir(self) -> str:
        return os.path.join(self.home, "cache", "packages")

    @property
    def tmp_dir(self) -> str:
        return os.path.join(self.home, "tmp")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], home: str) -> "CdepsConfig":
        registry = data.get("registry", {})
        install = data.get("install", {})
        cache = data.get("cache", {})

        config = cls(home=home)
        config.registry = _expand_env(registry.get("url", config.registry)).rstrip("/")
        config.token = _expand_env(registry.get("token")) or None
        config.out_dir = _expand_env(install.get("out", config.out_dir))
        config.prefix = _expand_env(install.get("prefix")) or None
        config.concurrency = int(install.get("concurrency", config.concurrency))
        config.install_ttl = float(cache.get("install_ttl", config.install_ttl))
        config.build_ttl = float(cache.get("build_ttl", config.build_ttl))
        return config


def load_config(home: Optional[str] = None, logger=None) -> CdepsConfig:
    """
    Load the user configuration.

    A missing file gives the defaults; an unreadable one is reported and
    the defaults are used.
    """
    home = home or cdeps_home()
    path = os.path.join(home, CONFIG_FILE_NAME)
    data = {}
    if os.path.isfile(path):
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            if logger is not None:
                logger.warn("config", f"ignoring {path}: {e}")
            data = {}

    try:
        config = CdepsConfig.from_dict(data, home)
    except (TypeError, ValueError, AttributeError) as e:
        if logger is not None:
            logger.warn("config", f"invalid value in {path}: {e}")
        config = CdepsConfig(home=home)

    # Environment overrides the file
    if os.environ.get("CDEPS_REGISTRY"):
        config.registry = os.environ["CDEPS_REGISTRY"].rstrip("/")
    if os.environ.get("CDEPS_TOKEN"):
        config.token = os.environ["CDEPS_TOKEN"]
    return config
