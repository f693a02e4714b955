"""Unit tests for the manifest sync protocol."""
from unittest.mock import patch

import pytest

# pylint: disable=import-error
from conftest import EXOTIC_HASH, WEAPON_HASH
from manifest_api import ManifestSyncError
from manifest_loader import ManifestLoader


@pytest.fixture
def loader(store):
    return ManifestLoader(store=store)


def test_first_sync_downloads_and_persists(loader, store, fake_bungie):
    result = loader.check_and_sync()

    assert result.version == "v1"
    assert result.weaponCount == 2
    assert not result.cached
    assert store.get_cached_version() == "v1"
    assert {w.hash for w in store.get_all_weapons_concise()} == {WEAPON_HASH, EXOTIC_HASH}
    assert store.get_damage_type_icons()[1].endswith("/icons/kinetic.png")
    assert loader.is_manifest_cached()


def test_unchanged_version_skips_download(loader, fake_bungie):
    loader.check_and_sync()
    fake_bungie.urls.clear()

    result = loader.check_and_sync()

    assert result.cached
    assert result.version == "v1"
    assert result.weaponCount == 2
    assert not fake_bungie.table_fetches()
    assert not fake_bungie.d2ai_fetches()


def test_new_version_replaces_records(loader, store, fake_bungie):
    loader.check_and_sync()
    fake_bungie.version = "v2"
    del fake_bungie.raw_tables["DestinyInventoryItemDefinition"][str(EXOTIC_HASH)]
    fake_bungie.urls.clear()

    result = loader.check_and_sync()

    assert not result.cached
    assert result.weaponCount == 1
    assert store.get_cached_version() == "v2"
    assert store.get_weapon_by_hash(EXOTIC_HASH) is None
    # d2ai data has no version token, so the cached copy is reused
    assert not fake_bungie.d2ai_fetches()


def test_auxiliary_failure_still_completes_sync(loader, store, fake_bungie):
    fake_bungie.failing.add("watermark-to-season.json")

    result = loader.check_and_sync()

    assert result.weaponCount == 2
    assert store.get_weapon_by_hash(WEAPON_HASH).item.season == 19


def test_table_failure_keeps_previous_records(loader, store, fake_bungie):
    loader.check_and_sync()
    fake_bungie.version = "v2"
    fake_bungie.failing.add("DestinyPlugSetDefinition")

    with pytest.raises(ManifestSyncError):
        loader.check_and_sync()

    assert store.get_cached_version() == "v1"
    assert store.get_weapon_count() == 2
    assert loader.get_cached_version() == "v1"


def test_invalid_metadata_raises(loader, store, fake_bungie):
    fake_bungie.metadata_override = {"Response": {"version": "v1"}}
    with pytest.raises(ManifestSyncError):
        loader.check_and_sync()
    assert store.get_cached_version() is None
    assert not fake_bungie.table_fetches()


def test_persistence_failure_is_wrapped(loader, store, fake_bungie):
    with patch.object(store, "replace_weapons", side_effect=RuntimeError("disk full")):
        with pytest.raises(ManifestSyncError):
            loader.check_and_sync()
    assert store.get_cached_version() is None


def test_force_refresh_downloads_even_when_current(loader, store, fake_bungie):
    loader.check_and_sync()
    fake_bungie.urls.clear()

    result = loader.force_refresh()

    assert not result.cached
    assert result.version == "v1"
    assert len(fake_bungie.table_fetches()) == 6
    assert not fake_bungie.d2ai_fetches()
    assert store.get_cached_version() == "v1"


def test_transform_failures_do_not_abort_sync(loader, store, fake_bungie):
    # weapon 1005 has malformed socket data and is skipped
    loader.check_and_sync()
    assert store.get_weapon_by_hash(1005) is None
    assert store.get_weapon_count() == 2


def test_malformed_auxiliary_values_do_not_abort_sync(loader, store, fake_bungie):
    fake_bungie.d2ai["events"] = {str(EXOTIC_HASH): None}

    result = loader.check_and_sync()

    assert result.weaponCount == 2
    assert store.get_weapon_by_hash(EXOTIC_HASH).item.event is None
    assert store.get_weapon_by_hash(EXOTIC_HASH).item.season == 12


def test_force_refresh_holds_sync_lock(loader, store, fake_bungie):
    loader.check_and_sync()
    delete_metadata = store.delete_metadata
    lock_held = []

    def delete_while_locked(key):
        lock_held.append(loader._sync_lock.locked())  # pylint: disable=protected-access
        delete_metadata(key)

    with patch.object(store, "delete_metadata", side_effect=delete_while_locked):
        result = loader.force_refresh()

    assert lock_held == [True]
    assert not result.cached


def test_instance_is_shared_until_reset(store):
    ManifestLoader.reset_instance()
    try:
        first = ManifestLoader.instance(store=store)
        assert ManifestLoader.instance() is first
        ManifestLoader.reset_instance()
        assert ManifestLoader.instance(store=store) is not first
    finally:
        ManifestLoader.reset_instance()
