"""
Loader for DIM's d2ai-module lookups (watermark/source/item -> season or event, craftable hashes).

The data has no version token of its own: once cached it is reused until the cache is explicitly cleared.
Only a complete load is cached. The cache lives in the store's helper data namespace, independent of the
manifest version token.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Tuple

from pydantic import TypeAdapter, ValidationError

from constants import D2AI_CACHE_KEY, D2AI_FILES, D2AI_MODULE_URL, REQUEST_TIMEOUT
from helpers import fetch_json
from models import AuxiliaryData

# One validator per AuxiliaryData field, so a bad file only degrades itself
_FIELD_ADAPTERS = {
    field: TypeAdapter(info.annotation) for field, info in AuxiliaryData.model_fields.items()
}


def fetch_d2ai_file(filename: str, base_url: str = D2AI_MODULE_URL, timeout: int = REQUEST_TIMEOUT) -> Any:
    """Fetch a single file from the d2ai-module repository."""
    return fetch_json(f"{base_url}/{filename}", timeout=timeout, tries=2)


def _fetch_or_empty(field: str, filename: str, base_url: str, timeout: int) -> Tuple[Any, bool]:
    """
    Fetch and validate one d2ai file.

    Returns:
        Tuple[Any, bool]: The validated value (empty on failure) and whether the load succeeded.
    """
    empty = [] if field == "craftableHashes" else {}
    try:
        data = fetch_d2ai_file(filename, base_url=base_url, timeout=timeout)
    except (RuntimeError, ValueError) as e:
        logging.warning("[d2ai] Failed to fetch %s, using empty fallback: %s", filename, e)
        return empty, False
    try:
        return _FIELD_ADAPTERS[field].validate_python(data), True
    except ValidationError as e:
        logging.warning("[d2ai] Invalid payload in %s, using empty fallback: %s", filename, e)
        return empty, False


def load_auxiliary_data(store, base_url: str = D2AI_MODULE_URL, timeout: int = REQUEST_TIMEOUT) -> AuxiliaryData:
    """
    Load d2ai data, from the store cache when present, otherwise from the network.

    All six files are fetched in parallel. A file that fails to load or validate degrades to an
    empty map/list so that season and event simply resolve to None more often. The assembled
    result is cached as one unit, and only when every file loaded.

    Args:
        store (WeaponStore): Store providing get_helper_data/put_helper_data.
        base_url (str): d2ai-module raw content base URL.
        timeout (int): Per-request timeout in seconds.

    Returns:
        AuxiliaryData: The six lookups.
    """
    cached = store.get_helper_data(D2AI_CACHE_KEY)
    if cached:
        logging.info("[d2ai] Using cached d2ai data")
        return AuxiliaryData.model_validate(cached)

    logging.info("[d2ai] Fetching data from d2ai-module...")
    with ThreadPoolExecutor(max_workers=len(D2AI_FILES)) as pool:
        futures = {
            field: pool.submit(_fetch_or_empty, field, filename, base_url, timeout)
            for field, filename in D2AI_FILES.items()
        }
        results = {field: future.result() for field, future in futures.items()}

    data = AuxiliaryData(**{field: value for field, (value, _) in results.items()})
    failed = [D2AI_FILES[field] for field, (_, ok) in results.items() if not ok]
    if failed:
        logging.warning("[d2ai] Not caching partial data; failed files: %s", ", ".join(failed))
        return data
    store.put_helper_data(D2AI_CACHE_KEY, data.model_dump(mode="json"))
    logging.info("[d2ai] Data cached successfully")
    return data


def clear_auxiliary_data_cache(store) -> None:
    """Clear cached d2ai data (forces a re-fetch on next load)."""
    store.delete_helper_data(D2AI_CACHE_KEY)
    logging.info("[d2ai] Cache cleared")


def is_auxiliary_data_cached(store) -> bool:
    """Check if d2ai data is cached."""
    return store.get_helper_data(D2AI_CACHE_KEY) is not None
