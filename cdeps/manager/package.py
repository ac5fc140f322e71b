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
Package descriptors for cdeps.

A manifest (clib.json or package.json) looks like:

    {
      "name": "bar",
      "version": "1.2.0",
      "repo": "foo/bar",
      "src": ["src/bar.c", "src/bar.h"],
      "makefile": "Makefile",
      "dependencies": {"clibs/buffer": "0.0.1"},
      "development": {"stephenmathieson/describe.h": "2.0.1"}
    }
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from cdeps.manager.errors import InvalidManifest

DEFAULT_AUTHOR = "clibs"
DEFAULT_VERSION = "master"


def parse_slug(slug: str) -> Tuple[str, str, str]:
    """
    Split a slug into (author, name, version).

    Accepts `author/name@version`, `author/name` and `name`. A missing
    author becomes "clibs"; a missing, empty or "*" version becomes "master".
    """
    slug = slug.strip()
    if not slug:
        raise InvalidManifest("Empty package slug")

    version = None
    if "@" in slug:
        slug, version = slug.split("@", 1)
    if "/" in slug:
        author, name = slug.split("/", 1)
    else:
        author, name = DEFAULT_AUTHOR, slug

    if not author or not name:
        raise InvalidManifest(f"Invalid package slug: {slug}")
    check_name(name)
    return author, name, normalize_version(version)


def check_name(name: str) -> str:
    """
    Reject a package name that is not a single path component.

    Packages are installed to `<out>/<name>`, so a name must never point
    outside the output directory.
    """
    if name in (".", "..") or "/" in name or "\\" in name or os.path.isabs(name):
        raise InvalidManifest(f"Invalid package name: {name!r}")
    return name


def normalize_version(version: Optional[str]) -> str:
    if not version or version == "*":
        return DEFAULT_VERSION
    return version


def strip_version(argument: str) -> str:
    """Return `argument` without an `@version` suffix."""
    return argument.split("@", 1)[0]


@dataclass(frozen=True)
class DependencySpec:
    """A dependency as declared in a manifest."""
    author: str
    name: str
    version: str = DEFAULT_VERSION

    @property
    def repo(self) -> str:
        return f"{self.author}/{self.name}"

    @property
    def slug(self) -> str:
        return f"{self.author}/{self.name}@{self.version}"

    @classmethod
    def from_entry(cls, repo: str, version: Any) -> "DependencySpec":
        author, name, _ = parse_slug(repo)
        return cls(author=author, name=name, version=normalize_version(version))


@dataclass
class Package:
    """A resolved dependency descriptor."""
    name: str
    version: str = ""
    repo: Optional[str] = None
    dependencies: List[DependencySpec] = field(default_factory=list)
    development: List[DependencySpec] = field(default_factory=list)
    makefile: Optional[str] = None
    prefix: Optional[str] = None
    install: Optional[str] = None
    src: List[str] = field(default_factory=list)
    manifest_name: Optional[str] = None
    document: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_document(cls, document: Any, strict: bool = False,
                      dev: bool = False,
                      manifest_name: Optional[str] = None) -> "Package":
        """
        Build a Package from a parsed manifest document.

        Args:
            document: Parsed JSON value
            strict: Raise InvalidManifest on missing name or malformed
                dependency sections instead of skipping them
            dev: Populate development dependencies
            manifest_name: File name the document was read from

        Raises:
            InvalidManifest: Always for a name that is not a single path
                component, in strict mode also for malformed fields
        """
        if not isinstance(document, dict):
            raise InvalidManifest("Manifest must be a JSON object")

        repo = document.get("repo")
        if repo is not None and not isinstance(repo, str):
            if strict:
                raise InvalidManifest("Manifest field 'repo' must be a string")
            repo = None

        name = document.get("name")
        if not isinstance(name, str) or not name:
            if strict:
                raise InvalidManifest("Manifest is missing required field 'name'")
            name = repo.split("/")[-1] if repo else ""
        if name:
            check_name(name)

        version = document.get("version", "")
        if not isinstance(version, str):
            version = str(version)

        src = document.get("src", [])
        if not isinstance(src, list):
            if strict:
                raise InvalidManifest("Manifest field 'src' must be a list")
            src = []

        return cls(
            name=name,
            version=version,
            repo=repo,
            dependencies=_parse_section(document, "dependencies", strict),
            development=_parse_section(document, "development", strict) if dev else [],
            makefile=_optional_str(document, "makefile"),
            prefix=_optional_str(document, "prefix"),
            install=_optional_str(document, "install"),
            src=[s for s in src if isinstance(s, str)],
            manifest_name=manifest_name,
            document=document,
        )


def _optional_str(document: Dict[str, Any], key: str) -> Optional[str]:
    value = document.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _parse_section(document: Dict[str, Any], section: str,
                   strict: bool) -> List[DependencySpec]:
    entries = document.get(section)
    if entries is None:
        return []
    if not isinstance(entries, dict):
        if strict:
            raise InvalidManifest(f"Manifest section '{section}' must be an object")
        return []

    specs = []
    for repo, version in entries.items():
        if not isinstance(version, str):
            if strict:
                raise InvalidManifest(
                    f"Version of '{repo}' in '{section}' must be a string"
                )
            continue
        try:
            specs.append(DependencySpec.from_entry(repo, version))
        except InvalidManifest:
            if strict:
                raise
    return specs
