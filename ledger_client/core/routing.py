from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


def _is_absolute(path: str) -> bool:
    lowered = path.lower()
    return lowered.startswith("http://") or lowered.startswith("https://")


def _matches_family(path: str, family: str) -> bool:
    return path == family or path.startswith(family + "/") or path.startswith(family + "?")


@dataclass(frozen=True)
class RouteTable:
    """Which backend route families carry the API prefix.

    The backend is split: most routes live under `/api`, a few older families
    (journal hub, FX rates) are mounted at the root. The split is listed here
    rather than inferred.
    """

    base_url: str
    api_prefix: str = "/api"
    unprefixed: Tuple[str, ...] = ("/journal-hub", "/fx")

    @classmethod
    def from_families(cls, base_url: str, api_prefix: str, unprefixed: Iterable[str]) -> "RouteTable":
        families = tuple(f if f.startswith("/") else "/" + f for f in (x.rstrip("/") for x in unprefixed) if f)
        return cls(base_url=base_url.rstrip("/"), api_prefix=api_prefix, unprefixed=families)

    def resolve_path(self, path: str) -> str:
        """Return the path the backend serves `path` under (no host)."""

        if not path.startswith("/"):
            path = "/" + path
        if not self.api_prefix:
            return path
        if _matches_family(path, self.api_prefix):
            return path
        if any(_matches_family(path, family) for family in self.unprefixed):
            return path
        return self.api_prefix + path

    def url_for(self, path: str) -> str:
        if _is_absolute(path):
            return path
        return self.base_url + self.resolve_path(path)
