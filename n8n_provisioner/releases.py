from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Sequence


@dataclass(frozen=True)
class ReleaseCandidate:
    version: str
    codename: str
    release_date: date


@dataclass(frozen=True)
class ResolvedArtifact:
    version: str
    codename: str
    rootfs_uri: str
    release_date: date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "codename": self.codename,
            "rootfs_uri": self.rootfs_uri,
            "release_date": self.release_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedArtifact":
        return cls(
            version=str(data["version"]),
            codename=str(data["codename"]),
            rootfs_uri=str(data["rootfs_uri"]),
            release_date=_as_date(data["release_date"]),
        )


# Newest first.
DEFAULT_RELEASES: List[ReleaseCandidate] = [
    ReleaseCandidate("24.04", "noble", date(2024, 4, 25)),
    ReleaseCandidate("22.04", "jammy", date(2022, 4, 21)),
    ReleaseCandidate("20.04", "focal", date(2020, 4, 23)),
]


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_releases(raw: Iterable[Any]) -> List[ReleaseCandidate]:
    """Build candidates from config entries ({version, codename, release_date}).

    The result is sorted newest-first by release date regardless of input order.
    """

    out: List[ReleaseCandidate] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"releases[{i}] must be a mapping, got {type(entry).__name__}")
        missing = [k for k in ("version", "codename", "release_date") if not entry.get(k)]
        if missing:
            raise ValueError(f"releases[{i}] missing {', '.join(missing)}")
        out.append(
            ReleaseCandidate(
                version=str(entry["version"]),
                codename=str(entry["codename"]).lower(),
                release_date=_as_date(entry["release_date"]),
            )
        )
    if not out:
        raise ValueError("releases must not be empty")
    return newest_first(out)


def newest_first(candidates: Sequence[ReleaseCandidate]) -> List[ReleaseCandidate]:
    return sorted(candidates, key=lambda c: c.release_date, reverse=True)
