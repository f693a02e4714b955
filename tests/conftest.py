"""Shared fixtures: a small manifest snapshot, d2ai lookups, a file-backed store and a fake Bungie HTTP layer."""
import copy
from unittest.mock import MagicMock, patch

import pytest

# pylint: disable=import-error
from constants import (BUCKET_ENERGY_WEAPONS, BUCKET_KINETIC_WEAPONS,
                       BUNGIE_API_BASE, BUNGIE_NET, BUNGIE_REQUIRED_DEFS,
                       D2AI_FILES, D2AI_MODULE_URL,
                       SOCKET_CATEGORY_INTRINSIC_TRAITS,
                       SOCKET_CATEGORY_WEAPON_PERKS, SOCKET_TYPE_TRACKER)
from manifest_api import ManifestTables
from models import AuxiliaryData
from weapon_store import WeaponStore

WEAPON_HASH = 1000
REDACTED_HASH = 1001
DUMMY_HASH = 1002
ARMOR_HASH = 1003
NAMELESS_HASH = 1004
BROKEN_HASH = 1005
EXOTIC_HASH = 1006

FRAME_HASH = 2000
BARREL_A, BARREL_B, BARREL_ENHANCED = 2101, 2102, 2103
TRAIT_A, TRAIT_B, TRAIT_C, TRAIT_CURATED_ONLY = 2201, 2202, 2203, 2204
ORIGIN_A, ORIGIN_B = 2300, 2301
TRACKER_PLUG = 2400
FIXED_PLUG = 2500
EMPTY_PLUG = 2600

BARREL_SET, TRAIT_SET, EMPTY_SET = 3000, 3100, 3200
KINETIC_DAMAGE = 3373582085
SOURCE_HASH = 777

WEAPON_WATERMARK = "/common/destiny2_content/icons/watermark_s20.png"
SHELVED_WATERMARK = "/common/destiny2_content/icons/watermark_shelved.png"


def plug(plug_hash, name, **extra):
    definition = {
        "hash": plug_hash,
        "displayProperties": {"name": name, "description": f"{name} description", "icon": f"/icons/{plug_hash}.png"},
        "itemTypeDisplayName": "Trait",
        "inventory": {"tierType": 2},
        "plug": {"plugCategoryHash": 7906839},
        "itemCategoryHashes": [],
    }
    definition.update(extra)
    return definition


def weapon(item_hash, name, bucket=BUCKET_KINETIC_WEAPONS, categories=(1, 5), sockets=None, **extra):
    definition = {
        "hash": item_hash,
        "displayProperties": {"name": name, "description": "", "icon": f"/icons/{item_hash}.png"},
        "flavorText": f"{name} flavor",
        "itemTypeDisplayName": "Auto Rifle",
        "itemCategoryHashes": list(categories),
        "inventory": {"bucketTypeHash": bucket, "tierType": 5},
        "equippingBlock": {"ammoType": 1},
        "defaultDamageTypeHash": KINETIC_DAMAGE,
        "iconWatermark": "",
        "iconWatermarkShelved": "",
        "iconWatermarkFeatured": "",
        "screenshot": f"/screenshots/{item_hash}.jpg",
        "secondaryIcon": "",
        "redacted": False,
    }
    if sockets is not None:
        definition["sockets"] = sockets
    definition.update(extra)
    return definition


def weapon_sockets():
    entries = [
        # 0: intrinsic frame
        {"socketTypeHash": 1, "singleInitialItemHash": FRAME_HASH, "reusablePlugItems": []},
        # 1: barrel column from a randomized pool
        {"socketTypeHash": 2, "singleInitialItemHash": BARREL_A, "randomizedPlugSetHash": BARREL_SET,
         "reusablePlugItems": [{"plugItemHash": BARREL_A}]},
        # 2: trait column with a deprecated and a curated-exclusive perk
        {"socketTypeHash": 3, "singleInitialItemHash": TRAIT_A, "randomizedPlugSetHash": TRAIT_SET,
         "reusablePlugItems": [{"plugItemHash": TRAIT_A}, {"plugItemHash": TRAIT_CURATED_ONLY}]},
        # 3: origin traits listed on the socket itself
        {"socketTypeHash": 4, "singleInitialItemHash": ORIGIN_A,
         "reusablePlugItems": [{"plugItemHash": ORIGIN_A}, {"plugItemHash": ORIGIN_B}]},
        # 4: kill tracker
        {"socketTypeHash": SOCKET_TYPE_TRACKER, "singleInitialItemHash": TRACKER_PLUG, "reusablePlugItems": []},
        # 5: fixed plug only
        {"socketTypeHash": 5, "singleInitialItemHash": FIXED_PLUG, "reusablePlugItems": []},
        # 6: pool holding only an empty plug
        {"socketTypeHash": 6, "singleInitialItemHash": EMPTY_PLUG, "randomizedPlugSetHash": EMPTY_SET,
         "reusablePlugItems": []},
    ]
    return {
        "socketEntries": entries,
        "socketCategories": [
            {"socketCategoryHash": SOCKET_CATEGORY_INTRINSIC_TRAITS, "socketIndexes": [0]},
            {"socketCategoryHash": SOCKET_CATEGORY_WEAPON_PERKS, "socketIndexes": [1, 2, 3, 4, 5, 6]},
        ],
    }


def build_raw_tables():
    items = {
        WEAPON_HASH: weapon(WEAPON_HASH, "Gnawing Hunger", sockets=weapon_sockets(), iconWatermark=WEAPON_WATERMARK),
        REDACTED_HASH: weapon(REDACTED_HASH, "Classified", sockets=weapon_sockets(), redacted=True),
        DUMMY_HASH: weapon(DUMMY_HASH, "Dummy Gun", categories=(1, 3109687656)),
        ARMOR_HASH: weapon(ARMOR_HASH, "Helmet", bucket=3448274439, categories=(20,)),
        NAMELESS_HASH: weapon(NAMELESS_HASH, ""),
        BROKEN_HASH: weapon(BROKEN_HASH, "Broken Gun", sockets={
            "socketEntries": [{"singleInitialItemHash": FRAME_HASH}],
            "socketCategories": [{"socketCategoryHash": SOCKET_CATEGORY_WEAPON_PERKS, "socketIndexes": 5}],
        }),
        EXOTIC_HASH: weapon(
            EXOTIC_HASH, "Ace of Spades", bucket=BUCKET_ENERGY_WEAPONS,
            iconWatermarkShelved=SHELVED_WATERMARK, isAdept=True, isHolofoil=True, isFeaturedItem=True,
            itemTypeDisplayName="Hand Cannon", inventory={"bucketTypeHash": BUCKET_ENERGY_WEAPONS, "tierType": 6},
        ),
        FRAME_HASH: plug(FRAME_HASH, "Adaptive Frame", itemTypeDisplayName="Intrinsic"),
        BARREL_A: plug(BARREL_A, "Arrowhead Brake"),
        BARREL_B: plug(BARREL_B, "Chambered Compensator"),
        BARREL_ENHANCED: plug(BARREL_ENHANCED, "Arrowhead Brake", inventory={"tierType": 3}),
        TRAIT_A: plug(TRAIT_A, "Outlaw"),
        TRAIT_B: plug(TRAIT_B, "Rampage"),
        TRAIT_C: plug(TRAIT_C, "Kill Clip"),
        TRAIT_CURATED_ONLY: plug(TRAIT_CURATED_ONLY, "Firmly Planted"),
        ORIGIN_A: plug(ORIGIN_A, "Veist Stinger", itemCategoryHashes=[1052191891]),
        ORIGIN_B: plug(ORIGIN_B, "Nano-Munitions", itemCategoryHashes=[1052191891]),
        TRACKER_PLUG: plug(TRACKER_PLUG, "Kill Tracker"),
        FIXED_PLUG: plug(FIXED_PLUG, "Fixed Perk"),
        EMPTY_PLUG: plug(EMPTY_PLUG, "Empty Socket", plug={"plugCategoryHash": 3618704867}),
    }
    plug_sets = {
        BARREL_SET: {"hash": BARREL_SET, "reusablePlugItems": [
            {"plugItemHash": BARREL_A, "currentlyCanRoll": True},
            {"plugItemHash": BARREL_B, "currentlyCanRoll": True},
            {"plugItemHash": BARREL_ENHANCED, "currentlyCanRoll": True},
        ]},
        TRAIT_SET: {"hash": TRAIT_SET, "reusablePlugItems": [
            {"plugItemHash": TRAIT_A, "currentlyCanRoll": True},
            {"plugItemHash": TRAIT_B, "currentlyCanRoll": True},
            {"plugItemHash": TRAIT_C, "currentlyCanRoll": False},
            {"plugItemHash": TRAIT_A, "currentlyCanRoll": True},
        ]},
        EMPTY_SET: {"hash": EMPTY_SET, "reusablePlugItems": [
            {"plugItemHash": EMPTY_PLUG, "currentlyCanRoll": True},
        ]},
    }
    collectibles = {
        9000: {"hash": 9000, "itemHash": WEAPON_HASH, "sourceHash": SOURCE_HASH},
        9001: {"hash": 9001, "itemHash": 0, "sourceHash": 123},
    }
    damage_types = {
        KINETIC_DAMAGE: {"hash": KINETIC_DAMAGE, "enumValue": 1, "displayProperties": {"icon": "/icons/kinetic.png"}},
        2303181850: {"hash": 2303181850, "enumValue": 2, "displayProperties": {"icon": "/icons/arc.png"}},
        1: {"hash": 1, "enumValue": 0, "displayProperties": {"icon": ""}},
    }
    raw = {
        "DestinyInventoryItemDefinition": items,
        "DestinyPlugSetDefinition": plug_sets,
        "DestinyCollectibleDefinition": collectibles,
        "DestinyDamageTypeDefinition": damage_types,
        "DestinySocketTypeDefinition": {},
        "DestinySocketCategoryDefinition": {},
    }
    # Manifest JSON keys tables by decimal-string hash
    return {name: {str(k): v for k, v in table.items()} for name, table in raw.items()}


def build_raw_d2ai():
    return {
        "watermarkToSeason": {WEAPON_WATERMARK: 20},
        "watermarkToEvent": {},
        "sourceToSeason": {str(SOURCE_HASH): 19},
        "seasons": {str(EXOTIC_HASH): 12},
        "events": {str(EXOTIC_HASH): 3},
        "craftableHashes": [WEAPON_HASH],
    }


@pytest.fixture
def raw_tables():
    return build_raw_tables()


@pytest.fixture
def tables(raw_tables):
    return ManifestTables(raw_tables)


@pytest.fixture
def aux():
    return AuxiliaryData.model_validate(build_raw_d2ai())


@pytest.fixture
def store(tmp_path):
    return WeaponStore(database_url=f"sqlite:///{tmp_path / 'weapons.db'}")


def json_response(payload, ok=True, status_code=200):
    response = MagicMock(ok=ok, status_code=status_code)
    response.json.return_value = copy.deepcopy(payload)
    return response


class FakeBungie:
    """
    Routes requests.get calls to canned manifest, table and d2ai payloads.

    Set version to change the manifest token; add table names or d2ai file names to failing to make them fail.
    """

    def __init__(self, version="v1"):
        self.version = version
        self.raw_tables = build_raw_tables()
        self.d2ai = build_raw_d2ai()
        self.failing = set()
        self.metadata_override = None
        self.urls = []

    def table_path(self, name):
        return f"/common/destiny2_content/json/en/{name}-{self.version}.json"

    def __call__(self, url, **kwargs):
        self.urls.append(url)
        if url == f"{BUNGIE_API_BASE}/Destiny2/Manifest/":
            if self.metadata_override is not None:
                return json_response(self.metadata_override)
            return json_response({"Response": {
                "version": self.version,
                "jsonWorldComponentContentPaths": {"en": {name: self.table_path(name) for name in BUNGIE_REQUIRED_DEFS}},
            }})
        for name in BUNGIE_REQUIRED_DEFS:
            if url == f"{BUNGIE_NET}{self.table_path(name)}":
                if name in self.failing:
                    return json_response({}, ok=False, status_code=503)
                return json_response(self.raw_tables[name])
        for field, filename in D2AI_FILES.items():
            if url == f"{D2AI_MODULE_URL}/{filename}":
                if filename in self.failing:
                    return json_response({}, ok=False, status_code=404)
                return json_response(self.d2ai[field])
        return json_response({}, ok=False, status_code=404)

    def table_fetches(self):
        return [u for u in self.urls if u.startswith(f"{BUNGIE_NET}/common/destiny2_content/json/")]

    def d2ai_fetches(self):
        return [u for u in self.urls if u.startswith(D2AI_MODULE_URL)]


@pytest.fixture
def fake_bungie():
    """Patch requests.get with a FakeBungie router and skip retry back-off sleeps."""
    fake = FakeBungie()
    with patch("helpers.requests.get", side_effect=fake), patch("helpers.time.sleep"):
        yield fake
