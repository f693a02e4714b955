# pylint: disable=broad-exception-caught, line-too-long
"""
ManifestLoader module: the manifest sync protocol.

Checks the manifest version token on every call and only downloads and transforms the full
manifest when the token differs from the one persisted with the current weapon records.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from auxiliary_data import load_auxiliary_data
from constants import (BUNGIE_API_BASE, D2AI_MODULE_URL, DAMAGE_TYPE_ICONS_KEY,
                       DEFAULT_HEADERS, MANIFEST_LANGUAGE, REQUEST_TIMEOUT,
                       VERSION_KEY)
from manifest_api import (ManifestSyncError, fetch_manifest_metadata,
                          fetch_manifest_tables)
from models import SyncResult
from transformer import extract_damage_type_icons, transform_weapons
from weapon_store import WeaponStore


class ManifestLoader:
    """
    Thread-safe singleton running manifest syncs against a WeaponStore.

    Use ManifestLoader.instance() for the shared loader. Only one sync runs at a time per loader.
    """
    _instance = None

    @classmethod
    def instance(cls, *args, **kwargs) -> "ManifestLoader":
        """
        Get the thread-safe shared instance of ManifestLoader singleton.

        Returns:
            ManifestLoader: Shared singleton instance.
        """
        if not hasattr(cls, "_instance_lock"):
            cls._instance_lock = threading.RLock()
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls(*args, **kwargs)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (useful for tests)."""
        if hasattr(cls, "_instance_lock"):
            with cls._instance_lock:
                cls._instance = None
        else:
            cls._instance = None

    def __init__(
        self,
        store: WeaponStore = None,
        api_base: str = BUNGIE_API_BASE,
        headers: dict = None,
        timeout: int = REQUEST_TIMEOUT,
        language: str = MANIFEST_LANGUAGE,
        d2ai_base_url: str = D2AI_MODULE_URL,
    ):
        """
        Initialize ManifestLoader with its store and API configuration.

        Args:
            store (WeaponStore): Record store. Defaults to the shared WeaponStore.
            api_base (str): Bungie API base URL.
            headers (dict): HTTP headers for Bungie requests.
            timeout (int): Request timeout in seconds.
            language (str): Manifest language for table paths.
            d2ai_base_url (str): d2ai-module raw content base URL.
        """
        self.store = store or WeaponStore.instance()
        self.api_base = api_base
        self.headers = headers or DEFAULT_HEADERS
        self.timeout = timeout
        self.language = language
        self.d2ai_base_url = d2ai_base_url
        self._sync_lock = threading.Lock()

    def check_and_sync(self) -> SyncResult:
        """
        Sync weapon records with the live manifest.

        1. Fetch manifest metadata (~2KB) to get the current version.
        2. Compare with the persisted version token.
        3. If equal, return the cached record count without further network access.
        4. Otherwise fetch the tables and d2ai data in parallel, transform, and persist
           records + token atomically.

        Returns:
            SyncResult: version, weaponCount and whether the cache was reused.
        Raises:
            ManifestSyncError: If metadata or any table cannot be fetched, or persistence fails.
                Previously persisted records and token remain intact.
        """
        with self._sync_lock:
            return self._sync()

    def _sync(self) -> SyncResult:
        """Run one sync; the caller holds _sync_lock."""
        logging.info("[manifest] Checking for updates...")
        metadata = fetch_manifest_metadata(
            api_base=self.api_base, headers=self.headers, timeout=self.timeout, language=self.language
        )
        cached_version = self.store.get_cached_version()
        if cached_version == metadata.version:
            logging.info("[manifest] Cache valid, skipping download. Version: %s", metadata.version)
            return SyncResult(version=metadata.version, weaponCount=self.store.get_weapon_count(), cached=True)

        logging.info("[manifest] New version detected, downloading... (%s -> %s)", cached_version or "none", metadata.version)
        with ThreadPoolExecutor(max_workers=2) as pool:
            tables_future = pool.submit(fetch_manifest_tables, metadata.paths, self.timeout)
            aux_future = pool.submit(load_auxiliary_data, self.store, self.d2ai_base_url, self.timeout)
            tables = tables_future.result()
            aux = aux_future.result()

        logging.info("[manifest] Transforming weapon data...")
        result = transform_weapons(tables, aux)
        if result.failures:
            logging.warning("[manifest] %d weapons failed to transform and were skipped.", len(result.failures))
        damage_type_icons = extract_damage_type_icons(tables)

        logging.info("[manifest] Persisting weapon records...")
        try:
            self.store.replace_weapons(
                metadata.version,
                result.full,
                result.concise,
                helper_data={DAMAGE_TYPE_ICONS_KEY: {str(k): v for k, v in damage_type_icons.items()}},
            )
        except Exception as e:
            logging.error("[manifest] Failed to persist weapon records: %s", e)
            raise ManifestSyncError(f"Failed to persist weapon records: {e}") from e

        logging.info("[manifest] Updated. Weapons cached: %d", len(result.full))
        return SyncResult(version=metadata.version, weaponCount=len(result.full), cached=False)

    def force_refresh(self) -> SyncResult:
        """
        Force a full manifest refresh by clearing the stored version token first.
        The token delete and the sync run under the same lock. The d2ai cache is not touched.
        """
        with self._sync_lock:
            self.store.delete_metadata(VERSION_KEY)
            return self._sync()

    def get_cached_version(self) -> Optional[str]:
        """Get the currently cached manifest version."""
        return self.store.get_cached_version()

    def is_manifest_cached(self) -> bool:
        """Check if weapon data is available in the store."""
        return self.store.is_initialized()
