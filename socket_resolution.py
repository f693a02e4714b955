# pylint: disable=line-too-long
"""
Socket/plug resolution for weapon item definitions.

Walks item -> socket category -> socket entry -> plug set or fixed plug -> plug item definition
to produce the weapon's frame, origin traits and ordered perk columns.
"""
from typing import Dict, Iterable, List, Optional, Set

from constants import (EMPTY_PLUG_CATEGORY_HASHES, ENHANCED_PERK_TIER_TYPE,
                       ITEM_CATEGORY_ORIGIN_TRAITS, SOCKET_CATEGORY_INTRINSIC_TRAITS,
                       SOCKET_CATEGORY_WEAPON_PERKS, SOCKET_TYPE_TRACKER)
from helpers import prefix_bungie_or_none
from manifest_api import ManifestTables
from models import Frame, Intrinsic, Perk


def get_sockets_by_category(item_def: dict, category_hash: int) -> List[dict]:
    """
    Return the socket entries a socket category references, in category order.
    Indexes outside the entry list are skipped.
    """
    socket_data = item_def.get("sockets") or {}
    entries = socket_data.get("socketEntries") or []
    for category in socket_data.get("socketCategories") or []:
        if category.get("socketCategoryHash") == category_hash:
            return [entries[i] for i in category.get("socketIndexes") or [] if 0 <= i < len(entries)]
    return []


def _display(plug_def: dict) -> dict:
    return plug_def.get("displayProperties") or {}


def is_empty_plug(plug_def: dict) -> bool:
    """True for empty/placeholder plugs."""
    return (plug_def.get("plug") or {}).get("plugCategoryHash") in EMPTY_PLUG_CATEGORY_HASHES


def is_enhanced_perk(plug_def: dict) -> bool:
    """True for enhanced perks, which share a column with their base perk and are hidden."""
    return (plug_def.get("inventory") or {}).get("tierType") == ENHANCED_PERK_TIER_TYPE


def is_valid_perk(plug_def: dict) -> bool:
    """A perk is displayable if it is named, not an empty plug and not enhanced."""
    return bool(_display(plug_def).get("name")) and not is_empty_plug(plug_def) and not is_enhanced_perk(plug_def)


def make_frame(plug_def: dict, model=Frame):
    props = _display(plug_def)
    return model(
        hash=plug_def["hash"],
        name=props.get("name", ""),
        description=props.get("description", ""),
        iconSrc=prefix_bungie_or_none(props.get("icon")),
    )


def make_perk(plug_def: dict, is_curated: bool, curated_exclusive: bool, is_deprecated: bool) -> Perk:
    props = _display(plug_def)
    return Perk(
        hash=plug_def["hash"],
        name=props.get("name", ""),
        description=props.get("description", ""),
        itemType=plug_def.get("itemTypeDisplayName", ""),
        iconSrc=prefix_bungie_or_none(props.get("icon")),
        isCurated=is_curated,
        curatedExclusive=curated_exclusive,
        isDeprecated=is_deprecated,
    )


def get_frame(item_def: dict, tables: ManifestTables) -> Optional[Frame]:
    """
    Resolve the weapon frame: the fixed plug of the first intrinsic traits socket.

    Returns:
        Frame or None: None when any step of the chain is absent.
    """
    sockets = get_sockets_by_category(item_def, SOCKET_CATEGORY_INTRINSIC_TRAITS)
    if not sockets:
        return None
    plug_def = tables.item(sockets[0].get("singleInitialItemHash"))
    if not plug_def:
        return None
    return make_frame(plug_def)


def get_intrinsics(item_def: dict, tables: ManifestTables) -> List[Intrinsic]:
    """
    Resolve origin traits: weapon perk sockets whose fixed plug is categorised as an origin trait.
    """
    intrinsics = []
    for socket in get_sockets_by_category(item_def, SOCKET_CATEGORY_WEAPON_PERKS):
        plug_def = tables.item(socket.get("singleInitialItemHash"))
        if not plug_def:
            continue
        if ITEM_CATEGORY_ORIGIN_TRAITS in (plug_def.get("itemCategoryHashes") or []):
            intrinsics.append(make_frame(plug_def, model=Intrinsic))
    return intrinsics


class _Column:
    """Accumulates one perk column, keeping the first occurrence of each plug hash."""

    def __init__(self, tables: ManifestTables):
        self.tables = tables
        self.perks: List[Perk] = []
        self._seen: Set[int] = set()

    def add(self, plug_hash, is_curated: bool, curated_exclusive: bool = False, is_deprecated: bool = False) -> None:
        plug_def = self.tables.item(plug_hash)
        if not plug_def or not is_valid_perk(plug_def):
            return
        if plug_def["hash"] in self._seen:
            return
        self._seen.add(plug_def["hash"])
        self.perks.append(make_perk(plug_def, is_curated, curated_exclusive, is_deprecated))


def _plug_hashes(plug_items: Iterable[dict]) -> List[int]:
    return [p["plugItemHash"] for p in plug_items if p.get("plugItemHash")]


def perks_from_plug_set(socket: dict, plug_set: dict, tables: ManifestTables) -> List[Perk]:
    """
    Build a column from a plug set pool.

    Pool order is kept. A pool perk is curated when the socket's own reusablePlugItems also list it,
    and deprecated when it can no longer roll. Curated perks missing from the pool are appended
    as curated-exclusive.
    """
    column = _Column(tables)
    curated_hashes = _plug_hashes(socket.get("reusablePlugItems") or [])
    curated_set = set(curated_hashes)
    pool = plug_set.get("reusablePlugItems") or []
    pool_hashes = set(_plug_hashes(pool))

    for plug in pool:
        plug_hash = plug.get("plugItemHash")
        column.add(
            plug_hash,
            is_curated=plug_hash in curated_set,
            is_deprecated=not plug.get("currentlyCanRoll", True),
        )
    for curated_hash in curated_hashes:
        if curated_hash in pool_hashes:
            continue
        column.add(curated_hash, is_curated=True, curated_exclusive=True)
    return column.perks


def perks_from_reusable_plug_items(socket: dict, tables: ManifestTables) -> List[Perk]:
    """Build a column from a socket's own reusablePlugItems; the fixed plug is the curated one."""
    column = _Column(tables)
    initial = socket.get("singleInitialItemHash")
    for plug_hash in _plug_hashes(socket.get("reusablePlugItems") or []):
        column.add(plug_hash, is_curated=plug_hash == initial)
    return column.perks


def fixed_perk(socket: dict, tables: ManifestTables) -> List[Perk]:
    """A socket with only a fixed plug yields a single curated-exclusive perk."""
    column = _Column(tables)
    column.add(socket.get("singleInitialItemHash"), is_curated=True, curated_exclusive=True)
    return column.perks


def get_perks(item_def: dict, tables: ManifestTables) -> List[List[Perk]]:
    """
    Resolve perk columns from the weapon perks socket category.

    Sockets are visited in order; tracker sockets are skipped and empty columns are dropped.
    """
    columns: List[List[Perk]] = []
    for socket in get_sockets_by_category(item_def, SOCKET_CATEGORY_WEAPON_PERKS):
        if socket.get("socketTypeHash") == SOCKET_TYPE_TRACKER:
            continue
        plug_set_hash = socket.get("randomizedPlugSetHash") or socket.get("reusablePlugSetHash")
        if plug_set_hash:
            plug_set = tables.plug_set(plug_set_hash)
            perks = perks_from_plug_set(socket, plug_set, tables) if plug_set else []
        elif socket.get("reusablePlugItems"):
            perks = perks_from_reusable_plug_items(socket, tables)
        else:
            perks = fixed_perk(socket, tables)
        if perks:
            columns.append(perks)
    return columns


def resolve_sockets(item_def: dict, tables: ManifestTables) -> Dict[str, object]:
    """Resolve frame, intrinsics and perk columns in one call."""
    return {
        "frame": get_frame(item_def, tables),
        "intrinsics": get_intrinsics(item_def, tables),
        "perks": get_perks(item_def, tables),
    }
