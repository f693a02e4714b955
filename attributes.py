"""
Attribute derivation for weapon items: watermark, season, event, source and craftability.

Season and event are resolved through ordered lookup chains (SEASON_LOOKUPS, EVENT_LOOKUPS);
the first lookup returning a value wins.
"""
from typing import Callable, Dict, Iterable, Optional, Set

from models import AuxiliaryData

# (item_def, watermark, source_hash, aux) -> value or None
AttributeLookup = Callable[[dict, Optional[str], Optional[int], AuxiliaryData], Optional[int]]


def get_watermark(item_def: dict) -> Optional[str]:
    """Return iconWatermark, else iconWatermarkShelved, else None."""
    return item_def.get("iconWatermark") or item_def.get("iconWatermarkShelved") or None


def season_from_watermark(item_def, watermark, source_hash, aux):
    return aux.watermarkToSeason.get(watermark) if watermark else None


def season_from_source(item_def, watermark, source_hash, aux):
    return aux.sourceToSeason.get(str(source_hash)) if source_hash else None


def season_from_item_hash(item_def, watermark, source_hash, aux):
    return aux.seasons.get(str(item_def.get("hash")))


def event_from_watermark(item_def, watermark, source_hash, aux):
    return aux.watermarkToEvent.get(watermark) if watermark else None


def event_from_item_hash(item_def, watermark, source_hash, aux):
    return aux.events.get(str(item_def.get("hash")))


SEASON_LOOKUPS: tuple[AttributeLookup, ...] = (
    season_from_watermark,
    season_from_source,
    season_from_item_hash,
)

# No source -> event table is available
EVENT_LOOKUPS: tuple[AttributeLookup, ...] = (
    event_from_watermark,
    event_from_item_hash,
)


def resolve_first(
    lookups: Iterable[AttributeLookup],
    item_def: dict,
    watermark: Optional[str],
    source_hash: Optional[int],
    aux: AuxiliaryData,
) -> Optional[int]:
    """Try each lookup in order and return the first non-None result."""
    for lookup in lookups:
        value = lookup(item_def, watermark, source_hash, aux)
        if value is not None:
            return value
    return None


def derive_season(item_def: dict, watermark: Optional[str], source_hash: Optional[int], aux: AuxiliaryData) -> Optional[int]:
    """Season via watermark, then collectible source, then item hash."""
    return resolve_first(SEASON_LOOKUPS, item_def, watermark, source_hash, aux)


def derive_event(item_def: dict, watermark: Optional[str], source_hash: Optional[int], aux: AuxiliaryData) -> Optional[int]:
    """Event via watermark, then item hash."""
    return resolve_first(EVENT_LOOKUPS, item_def, watermark, source_hash, aux)


def build_source_index(collectibles: Dict[str, dict]) -> Dict[int, int]:
    """
    Build the item hash -> collectible source hash reverse index.
    Built once per sync; collectibles without an item hash are skipped.
    """
    index: Dict[int, int] = {}
    for collectible in collectibles.values():
        if not collectible:
            continue
        item_hash = collectible.get("itemHash")
        if item_hash:
            index[int(item_hash)] = int(collectible.get("sourceHash") or 0)
    return index


def derive_source(item_def: dict, source_index: Dict[int, int]) -> Optional[int]:
    """Collectible source hash for an item, or None."""
    return source_index.get(int(item_def.get("hash", 0)))


def derive_craftable(item_def: dict, craftable_hashes: Set[int]) -> bool:
    return int(item_def.get("hash", 0)) in craftable_hashes


def derive_flag(item_def: dict, field: str) -> bool:
    """Read a boolean flag from an item definition, defaulting to False."""
    return bool(item_def.get(field, False))
