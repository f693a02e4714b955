# pylint: disable=broad-exception-caught, line-too-long
"""
Weapon record builder.

Turns raw manifest tables plus d2ai lookups into WeaponFull and WeaponConcise records for every
qualifying weapon. A weapon that fails to build is logged, recorded as a failure and omitted.
"""
import logging
from typing import Dict, List, NamedTuple, Set

from attributes import (build_source_index, derive_craftable, derive_event,
                        derive_flag, derive_season, derive_source, get_watermark)
from constants import (ITEM_CATEGORY_DUMMIES, ITEM_CATEGORY_WEAPON,
                       UNKNOWN_SLOT, WEAPON_SLOT_BY_BUCKET)
from helpers import prefix_bungie_or_none
from manifest_api import ManifestTables
from models import AuxiliaryData, WeaponConcise, WeaponFull, WeaponItem
from socket_resolution import resolve_sockets


class TransformResult(NamedTuple):
    """Records built by transform_weapons, plus per-item failures (hash -> error message)."""
    full: List[WeaponFull]
    concise: List[WeaponConcise]
    failures: Dict[int, str]


def is_weapon(item_def: dict | None) -> bool:
    """
    Check whether an item definition is a real, displayable weapon.

    Requires the weapon item category, no dummy category, one of the three weapon slot buckets,
    a display name, and not redacted.
    """
    if not item_def:
        return False
    categories = item_def.get("itemCategoryHashes") or []
    bucket_hash = (item_def.get("inventory") or {}).get("bucketTypeHash")
    return (
        ITEM_CATEGORY_WEAPON in categories
        and ITEM_CATEGORY_DUMMIES not in categories
        and bucket_hash in WEAPON_SLOT_BY_BUCKET
        and bool((item_def.get("displayProperties") or {}).get("name"))
        and not item_def.get("redacted", False)
    )


def get_slot(bucket_hash: int | None) -> int:
    """Slot index for a weapon bucket hash, -1 if unknown."""
    return WEAPON_SLOT_BY_BUCKET.get(bucket_hash, UNKNOWN_SLOT)


def extract_weapon_item(
    item_def: dict,
    tables: ManifestTables,
    aux: AuxiliaryData,
    source_index: Dict[int, int],
    craftable_hashes: Set[int],
) -> WeaponItem:
    """
    Build the WeaponItem for one weapon definition.

    Args:
        item_def (dict): Raw DestinyInventoryItemDefinition.
        tables (ManifestTables): Manifest tables (damage types).
        aux (AuxiliaryData): d2ai lookups.
        source_index (Dict[int, int]): Item hash -> collectible source hash.
        craftable_hashes (Set[int]): Craftable weapon hashes.
    """
    props = item_def.get("displayProperties") or {}
    inventory = item_def.get("inventory") or {}
    watermark = get_watermark(item_def)
    source_hash = derive_source(item_def, source_index)
    damage_type_def = tables.damage_type(item_def.get("defaultDamageTypeHash")) or {}

    return WeaponItem(
        hash=item_def["hash"],
        name=props.get("name", ""),
        flavorText=item_def.get("flavorText", ""),
        tierType=inventory.get("tierType", 0),
        itemType=item_def.get("itemTypeDisplayName", ""),
        damageType=damage_type_def.get("enumValue", 0),
        slot=get_slot(inventory.get("bucketTypeHash")),
        ammoType=(item_def.get("equippingBlock") or {}).get("ammoType", 0),
        source=source_hash,
        iconSrc=prefix_bungie_or_none(props.get("icon")),
        watermarkSrc=prefix_bungie_or_none(item_def.get("iconWatermark")),
        watermarkFeaturedSrc=prefix_bungie_or_none(item_def.get("iconWatermarkFeatured")),
        screenshotSrc=prefix_bungie_or_none(item_def.get("screenshot")),
        foundrySrc=prefix_bungie_or_none(item_def.get("secondaryIcon")),
        isCraftable=derive_craftable(item_def, craftable_hashes),
        isAdept=derive_flag(item_def, "isAdept"),
        isHolofoil=derive_flag(item_def, "isHolofoil"),
        isFeatured=derive_flag(item_def, "isFeaturedItem"),
        season=derive_season(item_def, watermark, source_hash, aux),
        event=derive_event(item_def, watermark, source_hash, aux),
    )


def build_weapon(
    item_def: dict,
    tables: ManifestTables,
    aux: AuxiliaryData,
    source_index: Dict[int, int],
    craftable_hashes: Set[int],
) -> WeaponFull:
    """Build the full record for one weapon."""
    item = extract_weapon_item(item_def, tables, aux, source_index, craftable_hashes)
    return WeaponFull(hash=item.hash, item=item, **resolve_sockets(item_def, tables))


def to_weapon_concise(weapon: WeaponFull) -> WeaponConcise:
    """Convert WeaponFull to WeaponConcise for list views."""
    return WeaponConcise.from_full(weapon)


def transform_weapons(tables: ManifestTables, aux: AuxiliaryData) -> TransformResult:
    """
    Transform raw manifest tables into WeaponFull and WeaponConcise lists.

    Output order follows the item table and is not guaranteed; consumers sort as needed.
    """
    source_index = build_source_index(tables.collectibles)
    craftable_hashes = {int(h) for h in aux.craftableHashes}
    weapons = [item_def for item_def in tables.items.values() if is_weapon(item_def)]
    logging.info("[transformer] Found %d weapons to transform", len(weapons))

    full: List[WeaponFull] = []
    concise: List[WeaponConcise] = []
    failures: Dict[int, str] = {}
    for item_def in weapons:
        try:
            weapon = build_weapon(item_def, tables, aux, source_index, craftable_hashes)
        except Exception as e:
            logging.warning("[transformer] Failed to transform weapon %s: %s", item_def.get("hash"), e)
            failures[item_def.get("hash")] = str(e)
            continue
        full.append(weapon)
        concise.append(to_weapon_concise(weapon))

    logging.info("[transformer] Transformed %d weapons successfully", len(full))
    return TransformResult(full=full, concise=concise, failures=failures)


def extract_damage_type_icons(tables: ManifestTables) -> Dict[int, str]:
    """Map damage type enum values to absolute icon URLs."""
    icons: Dict[int, str] = {}
    for damage_type_def in tables.damage_types.values():
        if not damage_type_def:
            continue
        icon = prefix_bungie_or_none((damage_type_def.get("displayProperties") or {}).get("icon"))
        if icon:
            icons[damage_type_def.get("enumValue", 0)] = icon
    return icons
