"""
Module containing constants for the Destiny 2 weapon manifest sync.
"""

import os

# API and storage configuration constants
BUNGIE_NET = "https://www.bungie.net"
BUNGIE_API_BASE = f"{BUNGIE_NET}/Platform"
API_KEY = os.getenv("BUNGIE_API_KEY")
# Default headers for Bungie API requests
DEFAULT_HEADERS = {"X-API-Key": API_KEY} if API_KEY else {}
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "30"))  # seconds
MANIFEST_LANGUAGE = os.getenv("MANIFEST_LANGUAGE", "en")

# DIM's d2ai-module repository for season/event/craftable lookups
D2AI_MODULE_URL = os.getenv(
    "D2AI_MODULE_URL",
    "https://raw.githubusercontent.com/DestinyItemManager/d2ai-module/master",
)

# Persistence configuration
DATABASE_URL = os.getenv("DATABASE_URL")
SQLITE_PATH = os.getenv("WEAPON_DB_PATH", "/tmp/weapons.db")
SQL_SERVER = os.getenv("AZURE_SQL_SERVER")
SQL_DATABASE = os.getenv("AZURE_SQL_DATABASE")
SQL_DRIVER = os.getenv("AZURE_SQL_DRIVER", "ODBC Driver 18 for SQL Server")
SQL_USER = os.getenv("AZURE_SQL_ADMIN_LOGIN")
SQL_PASSWORD = os.getenv("AZURE_SQL_ADMIN_PASSWORD")

# Scheduled sync (NCRONTAB, Azure Functions timer trigger)
SYNC_SCHEDULE = os.getenv("MANIFEST_SYNC_SCHEDULE", "0 30 17 * * *")

# Bungie manifest definition tables required for weapon extraction
BUNGIE_REQUIRED_DEFS = [
    "DestinyInventoryItemDefinition",      # weapons and the plugs they reference
    "DestinyPlugSetDefinition",            # reusable/randomized perk pools
    "DestinyCollectibleDefinition",        # item -> source hash
    "DestinyDamageTypeDefinition",         # Arc, Solar, Void, Stasis, Strand, Kinetic
    "DestinySocketTypeDefinition",         # socket compatibility / plug whitelist
    "DestinySocketCategoryDefinition",     # socket categories (INTRINSIC TRAITS, WEAPON PERKS, ...)
]

# Auxiliary d2ai files, keyed by the AuxiliaryData field they populate
D2AI_FILES = {
    "watermarkToSeason": "watermark-to-season.json",
    "watermarkToEvent": "watermark-to-event.json",
    "sourceToSeason": "source-to-season-v2.json",
    "seasons": "seasons.json",
    "events": "events.json",
    "craftableHashes": "craftable-hashes.json",
}

# Store keys
VERSION_KEY = "version"
D2AI_CACHE_KEY = "d2ai"
DAMAGE_TYPE_ICONS_KEY = "damageTypeIcons"

# --- Identifier catalog ---

# Inventory bucket hashes for the three weapon slots
BUCKET_KINETIC_WEAPONS = 1498876634
BUCKET_ENERGY_WEAPONS = 2465295065
BUCKET_POWER_WEAPONS = 953998645

# Maps weapon bucket hash to slot index (0 kinetic, 1 energy, 2 power)
WEAPON_SLOT_BY_BUCKET = {
    BUCKET_KINETIC_WEAPONS: 0,
    BUCKET_ENERGY_WEAPONS: 1,
    BUCKET_POWER_WEAPONS: 2,
}
UNKNOWN_SLOT = -1

# Socket category hashes
SOCKET_CATEGORY_INTRINSIC_TRAITS = 3956125808
SOCKET_CATEGORY_WEAPON_PERKS = 4241085061

# Kill tracker socket type; never contributes a perk column
SOCKET_TYPE_TRACKER = 1282012138

# Plug category hashes of empty/placeholder plugs
EMPTY_PLUG_CATEGORY_HASHES = frozenset({
    3618704867,  # empty socket plug
    1915962497,  # empty mod socket plug
})

# Item category hashes
ITEM_CATEGORY_WEAPON = 1
ITEM_CATEGORY_DUMMIES = 3109687656
ITEM_CATEGORY_ORIGIN_TRAITS = 1052191891

# Plug inventory tier marking an enhanced perk (distinct from item tier types)
ENHANCED_PERK_TIER_TYPE = 3
