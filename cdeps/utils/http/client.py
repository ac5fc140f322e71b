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
HTTP client for the package registry.

Packages are served as raw files under
`{registry}/{author}/{name}/{version}/{path}`, the layout of
raw.githubusercontent.com. No request is retried here.
"""

from typing import Dict, Iterable, Optional, Tuple

import requests

from cdeps.manager.errors import FetchFailure, PackageNotFound
from cdeps.manager.manifest import MANIFEST_NAMES

DEFAULT_TIMEOUT_SECOND = 30


class RegistryClient:
    """Fetches manifests and source files from the registry."""

    def __init__(self, registry: str, token: Optional[str] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECOND,
                 session: Optional[requests.Session] = None):
        self.registry = registry.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(self.get_headers(token))

    @staticmethod
    def get_headers(token: Optional[str]) -> Dict[str, str]:
        headers = {"User-Agent": "cdeps"}
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    def url_for(self, author: str, name: str, version: str, path: str) -> str:
        return f"{self.registry}/{author}/{name}/{version}/{path.lstrip('/')}"

    def fetch_manifest(self, author: str, name: str, version: str,
                       names: Iterable[str] = MANIFEST_NAMES) -> Tuple[str, str]:
        """
        Fetch the remote manifest of a package.

        Returns:
            (manifest file name, manifest text)

        Raises:
            PackageNotFound: No candidate manifest exists remotely
            FetchFailure: Any other HTTP or connection error
        """
        for manifest_name in names:
            url = self.url_for(author, name, version, manifest_name)
            response = self._get(url)
            if response.status_code == 404:
                continue
            self._raise_for_status(response, url)
            return manifest_name, response.text

        raise PackageNotFound(f"Package {author}/{name}@{version} not found")

    def download(self, author: str, name: str, version: str, path: str) -> bytes:
        url = self.url_for(author, name, version, path)
        response = self._get(url)
        self._raise_for_status(response, url)
        return response.content

    def _get(self, url: str) -> requests.Response:
        try:
            return self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchFailure(f"GET {url} failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: requests.Response, url: str):
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise FetchFailure(f"GET {url} failed: {e}") from e
