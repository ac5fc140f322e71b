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
Manifest store: locate, read and update clib.json / package.json.

Merges always re-read the file from disk and replace it atomically, so an
edit made by someone else between two installs is kept.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from cdeps.manager.errors import InvalidManifest, NoManifest

MANIFEST_NAMES = ("clib.json", "package.json")

DEPENDENCIES_SECTION = "dependencies"
DEVELOPMENT_SECTION = "development"


class ManifestStore:
    """Reads and writes project manifests"""

    def __init__(self, names=MANIFEST_NAMES):
        self.names = tuple(names)

    def find(self, directory) -> Optional[Path]:
        """Return the first existing candidate manifest in `directory`."""
        directory = Path(directory)
        for name in self.names:
            path = directory / name
            if path.is_file():
                return path
        return None

    def read(self, path) -> Dict[str, Any]:
        """Parse a single manifest file."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidManifest(f"Failed to parse {path}: {e}") from e
        except OSError as e:
            raise InvalidManifest(f"Failed to read {path}: {e}") from e
        if not isinstance(document, dict):
            raise InvalidManifest(f"{path} must contain a JSON object")
        return document

    def load(self, directory) -> Tuple[Path, Dict[str, Any]]:
        """
        Load the manifest of `directory`.

        Candidates are tried in order; the first one that exists and parses
        wins. A candidate that exists but does not parse raises
        InvalidManifest unless a later candidate parses.

        Raises:
            NoManifest: No candidate exists
            InvalidManifest: Candidates exist but none parses
        """
        directory = Path(directory)
        error = None
        for name in self.names:
            path = directory / name
            if not path.is_file():
                continue
            try:
                return path, self.read(path)
            except InvalidManifest as e:
                error = error or e
        if error is not None:
            raise error
        raise NoManifest(
            f"No {' or '.join(self.names)} found in {directory}"
        )

    def merge_dependency(self, directory, section: str, repo: str,
                         version: str) -> Path:
        """
        Set `repo -> version` under `section` of the manifest in `directory`.

        The primary manifest name is created when no candidate exists.
        Unrelated keys and their order are preserved.

        Returns:
            Path of the written manifest
        """
        directory = Path(directory)
        path = self.find(directory)
        if path is None:
            path = directory / self.names[0]
            document = {}
        else:
            document = self.read(path)

        entries = document.get(section)
        if not isinstance(entries, dict):
            entries = {}
            document[section] = entries
        entries[repo] = version

        self._write(path, document)
        return path

    def _write(self, path: Path, document: Dict[str, Any]):
        text = json.dumps(document, indent=2, ensure_ascii=False) + "\n"
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
