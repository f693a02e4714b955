# pylint: disable=missing-module-docstring, missing-function-docstring, invalid-name, broad-except, line-too-long
# pylint: disable=unused-argument
"""
Azure Function App for the Destiny 2 weapon manifest sync.

Exposes HTTP-triggered Azure Functions for:
- Health checks and diagnostics
- Running and forcing manifest syncs
- Reading persisted weapon records (concise lists, full records, lookup tables)
plus a timer trigger that keeps the weapon records in step with the live manifest.
All endpoints return JSON responses.
"""

import json
import logging
import os
import platform
import sys

import azure.functions as func
import psutil

from constants import SYNC_SCHEDULE
from manifest_api import ManifestSyncError
from manifest_loader import ManifestLoader
from weapon_store import WeaponStore

app = func.FunctionApp()


def _json_response(payload, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(json.dumps(payload, indent=2), mimetype="application/json", status_code=status_code)


def _parse_int(value: str | None, default: int | None = None, minimum: int | None = None) -> int | None:
    """Parse an optional integer query param; raises ValueError if malformed or below minimum."""
    if value is None:
        return default
    parsed = int(value)
    if minimum is not None and parsed < minimum:
        raise ValueError(f"{parsed} is below {minimum}")
    return parsed


# ----------------------
# Route Handler Functions
# ----------------------


@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def healthcheck(req: func.HttpRequest) -> func.HttpResponse:
    """
    Health check endpoint for Azure monitoring.
    Returns process diagnostics including Python version, platform, CPU, memory, and key environment variables.

    Args:
        req (func.HttpRequest): The HTTP request object.
    Returns:
        func.HttpResponse: JSON response with diagnostics or error.
    """
    try:
        process = psutil.Process()
        mem_info = process.memory_info()
        diagnostics = {
            "status": "ok",
            "python_version": sys.version,
            "platform": platform.platform(),
            "cpu_count": psutil.cpu_count(),
            "memory": {
                "rss": mem_info.rss,  # Resident Set Size in bytes
                "vms": mem_info.vms,  # Virtual Memory Size in bytes
            },
            "env": {
                "LOG_LEVEL": logging.getLevelName(logging.getLogger().getEffectiveLevel()),
                "BUNGIE_API_KEY": bool(os.getenv("BUNGIE_API_KEY")),
                "DATABASE_URL": bool(os.getenv("DATABASE_URL")),
            },
            "manifestVersion": WeaponStore.instance().get_cached_version(),
        }
        return _json_response(diagnostics)
    except Exception as e:
        return _json_response({"status": "error", "error": str(e)}, status_code=500)


# --- Manifest Sync ---


@app.route(route="manifest/sync", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def manifest_sync(req: func.HttpRequest) -> func.HttpResponse:
    """
    Syncs weapon records with the live manifest, reusing the cache when the version is unchanged.

    Returns:
        func.HttpResponse: JSON SyncResult, or 500 with the error while cached data stays available.
    """
    logging.info("[manifest/sync] POST request received.")
    try:
        result = ManifestLoader.instance().check_and_sync()
    except ManifestSyncError as e:
        logging.error("[manifest/sync] Sync failed: %s", e)
        return _json_response({"status": "error", "error": str(e), "cachedVersion": WeaponStore.instance().get_cached_version()}, status_code=500)
    return _json_response(result.model_dump())


@app.route(route="manifest/refresh", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def manifest_refresh(req: func.HttpRequest) -> func.HttpResponse:
    """
    Forces a full manifest download regardless of the cached version.
    """
    logging.info("[manifest/refresh] POST request received.")
    try:
        result = ManifestLoader.instance().force_refresh()
    except ManifestSyncError as e:
        logging.error("[manifest/refresh] Refresh failed: %s", e)
        return _json_response({"status": "error", "error": str(e)}, status_code=500)
    return _json_response(result.model_dump())


@app.route(route="manifest/version", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def manifest_version(req: func.HttpRequest) -> func.HttpResponse:
    loader = ManifestLoader.instance()
    return _json_response({"version": loader.get_cached_version(), "cached": loader.is_manifest_cached()})


@app.timer_trigger(schedule=SYNC_SCHEDULE, arg_name="timer", run_on_startup=False)
def scheduled_manifest_sync(timer: func.TimerRequest) -> None:
    """Timer-triggered sync; failures are logged and the cached records are kept."""
    try:
        result = ManifestLoader.instance().check_and_sync()
        logging.info("[timer] Manifest sync finished: version=%s weapons=%d cached=%s", result.version, result.weaponCount, result.cached)
    except ManifestSyncError as e:
        logging.error("[timer] Manifest sync failed: %s", e)


# --- Weapon Records ---


@app.route(route="weapons", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def weapons(req: func.HttpRequest) -> func.HttpResponse:
    """
    Returns concise weapon records.
    Optional query params: tier, slot, itemType, q (name search), limit, offset.

    Args:
        req (func.HttpRequest): The HTTP request object.
    Returns:
        func.HttpResponse: JSON list of concise weapons, sorted by name.
    """
    logging.info("[weapons] GET request received.")
    try:
        tier = _parse_int(req.params.get("tier"))
        slot = _parse_int(req.params.get("slot"))
        limit = _parse_int(req.params.get("limit"), minimum=0)
        offset = _parse_int(req.params.get("offset"), 0, minimum=0)
    except ValueError:
        return func.HttpResponse("Invalid tier, slot, limit or offset parameter (limit and offset must be non-negative).", status_code=400)
    item_type = req.params.get("itemType")
    query = req.params.get("q")

    store = WeaponStore.instance()
    if query:
        results = store.search_weapons_by_name(query)
    elif item_type:
        results = store.get_weapons_by_item_type(item_type)
    else:
        results = store.get_all_weapons_concise()
    if tier is not None:
        results = [w for w in results if w.tierType == tier]
    if slot is not None:
        results = [w for w in results if w.slot == slot]
    if item_type:
        results = [w for w in results if w.itemType == item_type]
    results.sort(key=lambda w: (w.name, w.hash))
    paged = results[offset:offset + limit] if limit is not None else results[offset:]
    return _json_response([w.model_dump() for w in paged])


@app.route(route="weapons/types", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def weapon_types(req: func.HttpRequest) -> func.HttpResponse:
    return _json_response(WeaponStore.instance().get_unique_item_types())


@app.route(route="weapons/{hash:long}", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def weapon_by_hash(req: func.HttpRequest) -> func.HttpResponse:
    """
    Returns the full weapon record (frame, origin traits, perk columns) for one weapon hash.
    """
    hash_val = req.route_params.get("hash")
    try:
        weapon_hash = int(hash_val)
    except (TypeError, ValueError):
        return func.HttpResponse("'hash' must be an integer.", status_code=400)
    weapon = WeaponStore.instance().get_weapon_by_hash(weapon_hash)
    if weapon is None:
        logging.warning("[weapons/hash] Weapon %s not found.", weapon_hash)
        return func.HttpResponse("Weapon not found", status_code=404)
    return _json_response(weapon.model_dump())


@app.route(route="damage-types/icons", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def damage_type_icons(req: func.HttpRequest) -> func.HttpResponse:
    icons = WeaponStore.instance().get_damage_type_icons()
    return _json_response({str(k): v for k, v in icons.items()})
