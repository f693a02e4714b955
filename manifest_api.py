# pylint: disable=broad-exception-caught, line-too-long
"""
Bungie manifest fetch layer.

Fetches the small manifest metadata document (version token and per-table paths) and, when needed,
the full JSON definition tables required for weapon extraction.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional

from constants import (BUNGIE_API_BASE, BUNGIE_NET, BUNGIE_REQUIRED_DEFS,
                       DEFAULT_HEADERS, MANIFEST_LANGUAGE, REQUEST_TIMEOUT)
from helpers import fetch_json, lookup_definition
from models import ManifestMetadata


class ManifestSyncError(RuntimeError):
    """Raised when a manifest sync cannot complete; cached data stays untouched."""


class ManifestTables:
    """
    Read-only set of raw manifest definition tables keyed by unsigned decimal-string hash.

    Every lookup may miss (redacted or cross-version data); get() returns None instead of raising.
    """

    def __init__(self, tables: Dict[str, Dict[str, dict]]):
        self._tables = {name: tables.get(name) or {} for name in BUNGIE_REQUIRED_DEFS}

    def table(self, definition_type: str) -> Dict[str, dict]:
        """Return the whole table for a definition type (empty if unknown)."""
        return self._tables.get(definition_type, {})

    def get(self, definition_type: str, item_hash: int | str | None) -> Optional[dict]:
        """Resolve one hash against a definition type."""
        return lookup_definition(self._tables.get(definition_type), item_hash)

    def item(self, item_hash: int | str | None) -> Optional[dict]:
        """Shortcut for DestinyInventoryItemDefinition lookups."""
        return self.get("DestinyInventoryItemDefinition", item_hash)

    def plug_set(self, plug_set_hash: int | str | None) -> Optional[dict]:
        """Shortcut for DestinyPlugSetDefinition lookups."""
        return self.get("DestinyPlugSetDefinition", plug_set_hash)

    def damage_type(self, damage_type_hash: int | str | None) -> Optional[dict]:
        """Shortcut for DestinyDamageTypeDefinition lookups."""
        return self.get("DestinyDamageTypeDefinition", damage_type_hash)

    @property
    def items(self) -> Dict[str, dict]:
        return self.table("DestinyInventoryItemDefinition")

    @property
    def collectibles(self) -> Dict[str, dict]:
        return self.table("DestinyCollectibleDefinition")

    @property
    def damage_types(self) -> Dict[str, dict]:
        return self.table("DestinyDamageTypeDefinition")


def fetch_manifest_metadata(
    api_base: str = BUNGIE_API_BASE,
    headers: dict = None,
    timeout: int = REQUEST_TIMEOUT,
    language: str = MANIFEST_LANGUAGE,
) -> ManifestMetadata:
    """
    Fetch manifest metadata (~2KB): the version token and per-table relative paths.

    Returns:
        ManifestMetadata: Version and table paths for the requested language.
    Raises:
        ManifestSyncError: If the request fails or the response lacks the version or table paths.
    """
    try:
        data = fetch_json(f"{api_base}/Destiny2/Manifest/", headers=headers or DEFAULT_HEADERS, timeout=timeout)
    except (RuntimeError, ValueError) as e:
        raise ManifestSyncError(f"Failed to fetch manifest metadata: {e}") from e
    response = (data or {}).get("Response") if isinstance(data, dict) else None
    if not response:
        raise ManifestSyncError("Invalid manifest response: missing Response field")
    version = response.get("version")
    paths = (response.get("jsonWorldComponentContentPaths") or {}).get(language)
    if not version or not paths:
        raise ManifestSyncError(f"Invalid manifest response: missing version or '{language}' table paths")
    return ManifestMetadata(version=version, paths=paths)


def _fetch_table(table_name: str, paths: Dict[str, str], timeout: int) -> dict:
    path = paths.get(table_name)
    if not path:
        raise ManifestSyncError(f"Missing path for table: {table_name}")
    try:
        table = fetch_json(f"{BUNGIE_NET}{path}", timeout=timeout)
    except (RuntimeError, ValueError) as e:
        raise ManifestSyncError(f"Failed to fetch {table_name}: {e}") from e
    if not isinstance(table, dict):
        raise ManifestSyncError(f"Unexpected payload for {table_name}")
    return table


def fetch_manifest_tables(paths: Dict[str, str], timeout: int = REQUEST_TIMEOUT) -> ManifestTables:
    """
    Fetch every required definition table (~50MB total) in parallel.
    Only call this when the version has changed.

    Args:
        paths (Dict[str, str]): Table name -> relative download path.
        timeout (int): Per-request timeout in seconds.

    Returns:
        ManifestTables: All required tables.
    Raises:
        ManifestSyncError: If any table is missing from paths or fails to download.
    """
    logging.info("[manifest] Fetching tables: %s", ", ".join(BUNGIE_REQUIRED_DEFS))
    with ThreadPoolExecutor(max_workers=len(BUNGIE_REQUIRED_DEFS)) as pool:
        futures = {name: pool.submit(_fetch_table, name, paths, timeout) for name in BUNGIE_REQUIRED_DEFS}
        # Join every fetch; the first failure aborts the whole set
        raw = {name: future.result() for name, future in futures.items()}
    tables = ManifestTables(raw)
    logging.info("[manifest] Tables fetched. Items: %d", len(tables.items))
    return tables
