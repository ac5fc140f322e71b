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
Turns manifests and slugs into Package descriptors.

Remote lookups go through the metadata cache first; every call returns a
fresh Package so concurrent tasks never share one.
"""

import json
from typing import Optional

from cdeps.manager.errors import InvalidManifest
from cdeps.manager.manifest import MANIFEST_NAMES
from cdeps.manager.package import Package, parse_slug, strip_version


class PackageResolver:
    def __init__(self, client, cache, logger=None):
        """
        Args:
            client: Registry client with a `fetch_manifest(author, name, version)`
            cache: MetadataCache for remote manifests
            logger: Optional Logger
        """
        self.client = client
        self.cache = cache
        self.logger = logger

    def resolve_from_manifest_text(self, text: str, strict: bool = False,
                                   dev: bool = False,
                                   manifest_name: Optional[str] = None) -> Package:
        try:
            document = json.loads(text)
        except (TypeError, ValueError) as e:
            raise InvalidManifest(f"Failed to parse manifest: {e}") from e
        return Package.from_document(
            document, strict=strict, dev=dev, manifest_name=manifest_name
        )

    def resolve_from_slug(self, slug: str, strict: bool = False,
                          dev: bool = False) -> Package:
        author, name, version = parse_slug(slug)
        key = f"{author}_{name}_{version}"

        entry = self.cache.get(key)
        if not _is_cache_entry(entry):
            if self.logger is not None:
                self.logger.debug(f"fetch manifest {author}/{name}@{version}")
            manifest_name, text = self.client.fetch_manifest(author, name, version)
            entry = {"manifest_name": manifest_name, "text": text}
            # only cache manifests that parse
            package = self.resolve_from_manifest_text(
                text, strict=strict, dev=dev, manifest_name=manifest_name
            )
            self.cache.put(key, entry)
        else:
            package = self.resolve_from_manifest_text(
                entry["text"], strict=strict, dev=dev,
                manifest_name=entry.get("manifest_name"),
            )

        if not package.repo:
            package.repo = f"{author}/{name}"
        if not package.name:
            package.name = name
        if not package.version:
            package.version = version
        return package


def backfill_repo(package: Package, argument: str) -> str:
    """Give `package` a canonical `author/name` repo derived from `argument`."""
    if not package.repo or package.repo != argument:
        repo = strip_version(argument)
        if "/" not in repo:
            author, name, _ = parse_slug(repo)
            repo = f"{author}/{name}"
        package.repo = repo
    return package.repo


def _is_cache_entry(entry) -> bool:
    # anything else in the cache reads as a miss
    return (isinstance(entry, dict) and isinstance(entry.get("text"), str)
            and entry.get("manifest_name") in (None,) + MANIFEST_NAMES)
