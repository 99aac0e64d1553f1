# registry.py
from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

from .errors import RegistryError
from .semver import VersionRange, parse_range

DEFAULT_INDEX_URL = "https://pypi.org/pypi"
DEFAULT_TIMEOUT = 30


class Registry:
    """Read-only client for the PyPI JSON API."""

    def __init__(self, index_url: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT):
        """
        Args:
            index_url: Base URL of the JSON API. Defaults to $TAV_INDEX_URL,
                then https://pypi.org/pypi
            timeout: Socket timeout for each request, in seconds
        """
        index_url = index_url or os.environ.get("TAV_INDEX_URL") or DEFAULT_INDEX_URL
        # Ensure index_url doesn't end with /
        self.index_url = index_url.rstrip("/")
        self.timeout = timeout

    def _request(self, name: str) -> dict:
        url = f"{self.index_url}/{quote(name)}/json"
        req = urllib.request.Request(url, headers={"Accept": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise RegistryError(name, "package not found") from e
            raise RegistryError(name, f"HTTP {e.code} {e.reason}") from e
        except urllib.error.URLError as e:
            raise RegistryError(name, f"network error: {e.reason}") from e
        except OSError as e:
            # timeouts and resets while reading the body
            raise RegistryError(name, f"network error: {e}") from e
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RegistryError(name, f"invalid JSON response: {e}") from e

    def versions(self, name: str) -> List[str]:
        """
        Return every installable version of `name` in publish order.

        Releases without files, or with only yanked files, are left out.
        """
        data = self._request(name)
        releases = data.get("releases") if isinstance(data, dict) else None
        if not isinstance(releases, dict):
            raise RegistryError(name, "response has no releases")

        published: Dict[str, str] = {}
        for version, files in releases.items():
            upload_times = [
                f.get("upload_time_iso_8601") or f.get("upload_time") or ""
                for f in files or []
                if not f.get("yanked", False)
            ]
            if upload_times:
                published[version] = min(upload_times)

        # sorted() is stable, so releases uploaded at the same instant keep the
        # order the index listed them in
        return sorted(published, key=published.__getitem__)


def filter_versions(versions: Iterable[str], version_range: str | VersionRange) -> List[str]:
    """Subsequence of `versions` that satisfies the range, order preserved."""
    if isinstance(version_range, str):
        version_range = parse_range(version_range)
    return version_range.filter(versions)


def resolve_versions(registry: Registry, name: str, version_range: str | VersionRange) -> List[str]:
    return filter_versions(registry.versions(name), version_range)
