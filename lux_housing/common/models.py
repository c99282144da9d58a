"""Data models used across the pipeline."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any

from lux_housing.common.constants import MATCH_KINDS, PROVENANCE_CURRENT, PROVENANCE_FORMER


@dataclass(frozen=True)
class LocalityRecord:
    year: int
    locality: str
    offer_count: int | None = None
    average_price: float | None = None
    average_price_sqm: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CanonicalName:
    """An authoritative commune spelling and where it came from.

    Former communes carry the year they were dissolved. ``successor`` names the
    single current commune they became part of, if there is one. ``merged`` is
    set when the commune was fused with other former units: either several of
    them share one successor, or the split went to more than one commune and
    ``successor`` is None.
    """

    name: str
    provenance: str = PROVENANCE_CURRENT
    dissolved_year: int | None = None
    successor: str | None = None
    merged: bool = False

    @property
    def is_former(self) -> bool:
        return self.provenance == PROVENANCE_FORMER

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OverrideRule:
    pattern: str
    replacement: str
    match: str = "exact"
    _compiled: re.Pattern | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.match not in MATCH_KINDS:
            raise ValueError(f"Unknown match kind: {self.match}")
        if self.match == "regex":
            object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def matches(self, name: str) -> bool:
        if self.match == "exact":
            return name == self.pattern
        if self.match == "prefix":
            return name.startswith(self.pattern)
        if self.match == "contains":
            return self.pattern in name
        return self._compiled.fullmatch(name) is not None

    def to_dict(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "replacement": self.replacement, "match": self.match}


@dataclass(frozen=True)
class ReconcileResult:
    matched: frozenset[str]
    unresolved: frozenset[str]

    @property
    def is_complete(self) -> bool:
        return not self.unresolved
