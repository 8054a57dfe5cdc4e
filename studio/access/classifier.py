"""
Page classifier: visibility и required tier страницы.

Единственный источник таблицы page_type -> tier; packet builder и display layer
(обзор доступа) импортируют её отсюда. Порядок правил менять нельзя:
явный access_tier > vault => packaging > дефолт по page_type > public.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from studio.access.models import ContentPage
from studio.access.tiers import AccessTier, normalize_tier


class Visibility(Enum):
    PUBLIC = "public"
    VAULT = "vault"


PAGE_TYPE_DEFAULT_TIER: Mapping[str, AccessTier] = MappingProxyType({
    # public
    "logline": AccessTier.PUBLIC,
    "pitch_1p": AccessTier.PUBLIC,
    "synopsis_1page": AccessTier.PUBLIC,
    "comparable_titles": AccessTier.PUBLIC,
    "format_rating_audience": AccessTier.PUBLIC,
    "one_sheet": AccessTier.PUBLIC,
    # priority
    "beat_sheet": AccessTier.PRIORITY,
    "season1_outline": AccessTier.PRIORITY,
    "episode_list": AccessTier.PRIORITY,
    "pilot_outline": AccessTier.PRIORITY,
    "signature_scene_clip": AccessTier.PRIORITY,
    "teaser_trailer": AccessTier.PRIORITY,
    "themes_main_hero_villain": AccessTier.PRIORITY,
    "trailer_cue_stingers": AccessTier.PRIORITY,
    # producer
    "series_bible": AccessTier.PRODUCER,
    "world_rules_factions": AccessTier.PRODUCER,
    "timeline": AccessTier.PRODUCER,
    "glossary": AccessTier.PRODUCER,
    "cast_profiles_arcs": AccessTier.PRODUCER,
    "lookbook_pdf": AccessTier.PRODUCER,
    "poster_key_art": AccessTier.PRODUCER,
    "trailer_storyboard": AccessTier.PRODUCER,
    "franchise_roadmap": AccessTier.PRODUCER,
    "pilot_script_or_treatment": AccessTier.PRODUCER,
    # packaging (rights, term sheets, producer packet)
    "chain_of_title_rights_matrix": AccessTier.PACKAGING,
    "option_term_sheet_producer_packet": AccessTier.PACKAGING,
    "negotiation": AccessTier.PACKAGING,
    "vault": AccessTier.PACKAGING,
})


def visibility_of(page: ContentPage) -> Visibility:
    raw = str(page.visibility or "public").strip().lower()
    return Visibility.VAULT if raw == Visibility.VAULT.value else Visibility.PUBLIC


def is_vault(page: ContentPage) -> bool:
    return visibility_of(page) is Visibility.VAULT


def required_tier_of(page: ContentPage) -> AccessTier:
    # explicit override
    explicit = str(page.access_tier or "").strip()
    if explicit:
        return normalize_tier(explicit)
    # vault implies packaging
    if is_vault(page):
        return AccessTier.PACKAGING
    return PAGE_TYPE_DEFAULT_TIER.get(str(page.page_type or "").strip(), AccessTier.PUBLIC)
