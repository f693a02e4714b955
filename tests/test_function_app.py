"""Unit tests for function_app request handling."""
import azure.functions as func
import pytest

# pylint: disable=import-error
import function_app
from function_app import _parse_int


def test_parse_int():
    assert _parse_int(None) is None
    assert _parse_int(None, 0, minimum=0) == 0
    assert _parse_int("25", minimum=0) == 25
    assert _parse_int("-1") == -1
    with pytest.raises(ValueError):
        _parse_int("-1", minimum=0)
    with pytest.raises(ValueError):
        _parse_int("ten")


@pytest.mark.parametrize("params", [{"limit": "-5"}, {"offset": "-1"}, {"tier": "legendary"}])
def test_weapons_rejects_bad_paging_params(params):
    req = func.HttpRequest(method="GET", url="/api/weapons", params=params, body=b"")
    handler = function_app.weapons.build().get_user_function()
    resp = handler(req)
    assert resp.status_code == 400
