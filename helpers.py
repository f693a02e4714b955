# pylint: disable=broad-except, line-too-long
"""
Utility functions for the Destiny 2 weapon manifest sync.

This module provides:
    - API request retry logic
    - JSON download helper built on the retry logic
    - Manifest hash normalization and lookup
    - Bungie.net asset path prefixing
"""
import time
import logging
import ctypes
from typing import Any, Optional

import requests

from constants import BUNGIE_NET


def retry_request(method: callable, url: str, **kwargs) -> requests.Response:
    """
    Perform an API request with exponential backoff retry logic.

    Args:
        method (callable): The requests method (e.g., requests.get).
        url (str): The URL to request.
        **kwargs: Additional arguments for the request, plus 'tries' and 'delay'.

    Returns:
        requests.Response: The response object if successful.

    Raises:
        RuntimeError: If all retry attempts fail.
    """
    tries = kwargs.pop("tries", 3)
    delay = kwargs.pop("delay", 1)
    for attempt in range(tries):
        try:
            response = method(url, **kwargs)
            if response.ok:
                return response
            logging.warning("Request failed (status %d): %s",
                            response.status_code, url)
        except requests.RequestException as exc:
            logging.warning("Request error on attempt %d: %s",
                            attempt + 1, exc)
        if attempt < tries - 1:
            logging.info(
                "Retrying request in %d seconds (attempt %d/%d)", delay, attempt + 2, tries)
            time.sleep(delay)
            delay *= 2
    logging.error("Max retries exceeded for request: %s", url)
    raise RuntimeError(f"Request failed after {tries} attempts: {url}")


def fetch_json(url: str, **kwargs) -> Any:
    """
    GET a URL with retries and decode the JSON body.

    Raises:
        RuntimeError: If the request keeps failing.
        ValueError: If the body is not valid JSON.
    """
    response = retry_request(requests.get, url, **kwargs)
    return response.json()


def normalize_item_hash(item_hash: int | str) -> str:
    """
    Convert a Destiny 2 item hash to an unsigned 32-bit integer string for manifest lookup.

    Args:
        item_hash (int or str): The item hash to normalize.

    Returns:
        str: Unsigned 32-bit integer string representation of the item hash.
    """
    try:
        # Accept int or str
        h = int(item_hash)
        h = ctypes.c_uint32(h).value
        return str(h)
    except Exception:
        return str(item_hash)


def lookup_definition(table: dict | None, item_hash: int | str | None) -> Optional[dict]:
    """
    Look up a definition by hash in a raw manifest table.
    Returns None for a missing table, a zero/None hash or a miss.
    """
    if not table or not item_hash:
        return None
    definition = table.get(normalize_item_hash(item_hash))
    return definition or None


def prefix_bungie_or_none(path: str | None) -> Optional[str]:
    """Prefix a relative asset path with the Bungie.net domain, or None if the path is empty."""
    if not path:
        return None
    return f"{BUNGIE_NET}{path}"
