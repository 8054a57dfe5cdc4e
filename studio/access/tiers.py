"""
Tier vocabulary: упорядоченные уровни доступа и их сравнение.

public < priority < producer < packaging. Сравнение только по rank — не по строкам.
Неизвестные/пустые значения деградируют в public (fail-closed), без исключений.

PreviewTier — отдельный тип для tier, выбранного в UI (?preview=...). Он влияет только на
отображение; любая попытка передать его в rank()/гейт — TypeError.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping


class AccessTier(Enum):
    PUBLIC = "public"
    PRIORITY = "priority"
    PRODUCER = "producer"
    PACKAGING = "packaging"

    def __str__(self) -> str:
        return self.value


TIER_ORDER: tuple[AccessTier, ...] = (
    AccessTier.PUBLIC,
    AccessTier.PRIORITY,
    AccessTier.PRODUCER,
    AccessTier.PACKAGING,
)

TIER_RANK: Mapping[AccessTier, int] = MappingProxyType({tier: i for i, tier in enumerate(TIER_ORDER)})

_BY_VALUE: Mapping[str, AccessTier] = MappingProxyType({tier.value: tier for tier in TIER_ORDER})


@dataclass(frozen=True)
class PreviewTier:
    """Display-only tier. Never an input to an access decision."""

    tier: AccessTier

    @classmethod
    def from_query(cls, raw: object, default: AccessTier) -> "PreviewTier":
        """Empty/unknown ?preview= falls back to the viewer's real tier for display."""
        value = str(raw if raw is not None else "").strip().lower()
        if value in _BY_VALUE:
            return cls(_BY_VALUE[value])
        return cls(default)

    @property
    def value(self) -> str:
        return self.tier.value


def normalize_tier(raw: object) -> AccessTier:
    """Map any input to a tier; unrecognised or empty input becomes public."""
    if isinstance(raw, PreviewTier):
        raise TypeError("preview tier is display-only and cannot be normalised into an access tier")
    if isinstance(raw, AccessTier):
        return raw
    value = str(raw if raw is not None else "").strip().lower()
    return _BY_VALUE.get(value, AccessTier.PUBLIC)


def rank(tier: AccessTier | str | None) -> int:
    return TIER_RANK[normalize_tier(tier)]


def at_least(a: AccessTier | str | None, b: AccessTier | str | None) -> bool:
    return rank(a) >= rank(b)


def max_tier(tiers: Iterable[AccessTier | str | None]) -> AccessTier:
    """Highest-ranked tier of the iterable; public for an empty one."""
    best = AccessTier.PUBLIC
    for tier in tiers:
        candidate = normalize_tier(tier)
        if TIER_RANK[candidate] > TIER_RANK[best]:
            best = candidate
    return best


def min_tier(a: AccessTier | str | None, b: AccessTier | str | None) -> AccessTier:
    ta, tb = normalize_tier(a), normalize_tier(b)
    return ta if TIER_RANK[ta] <= TIER_RANK[tb] else tb
