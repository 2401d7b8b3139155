"""
Shared dataclasses used across the EPG refresh pipeline and cache.
"""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class DisplayName:
    """Channel display name with its language tag."""
    value: str
    lang: str = ""


@dataclass(slots=True)
class GuideChannel:
    """<channel> element of the guide document."""
    id: str
    display_names: list[DisplayName] = field(default_factory=list)


@dataclass(slots=True)
class GuideProgramme:
    """<programme> element with its raw, unparsed timestamps."""
    channel: str
    start: str
    stop: str
    title: str = ""


@dataclass(slots=True)
class GuideDocument:
    """Parsed guide, kept only for the duration of one refresh run."""
    channels: list[GuideChannel] = field(default_factory=list)
    programmes: list[GuideProgramme] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ProgramItem:
    """Cached programme entry, times formatted as HH:MM."""
    start: str
    end: str
    title: str


@dataclass(slots=True)
class CacheIndex:
    """
    Queryable EPG index.

    channel_map: channel display name -> channel id
    program_data: channel id -> date (YYYY-MM-DD) -> programmes in feed order

    An index is never mutated once it has been installed into the cache store.
    """
    channel_map: dict[str, str] = field(default_factory=dict)
    program_data: dict[str, dict[str, list[ProgramItem]]] = field(default_factory=dict)

    @property
    def program_count(self) -> int:
        return sum(
            len(items)
            for dates in self.program_data.values()
            for items in dates.values()
        )


@dataclass(slots=True)
class BuildStats:
    """Counters collected while building a CacheIndex."""
    channels_named: int = 0
    programmes_indexed: int = 0
    programmes_skipped: int = 0


__all__ = [
    "DisplayName",
    "GuideChannel",
    "GuideProgramme",
    "GuideDocument",
    "ProgramItem",
    "CacheIndex",
    "BuildStats",
]
