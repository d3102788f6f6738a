import asyncio

import pytest

from pttflow.config import Settings
from pttflow.errors import ConfigurationError, PTTServiceError
from pttflow.metrics import auth_latency_ms
from pttflow.transport.sdk import (
    AuthResult,
    authenticate,
    load_client,
    parse_group_ids,
    resolve_groups,
)
from tests.fakes.fake_ptt_service import FakePTTClient


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("g1,g2", ["g1", "g2"]),
        ("g1,\r\ng2,\ng3\r", ["g1", "g2", "g3"]),
        (" g1 , , g2 ,", ["g1", "g2"]),
        ("", []),
        (None, []),
        (["g1", " g2 "], ["g1", "g2"]),
    ],
)
def test_parse_group_ids(value, expected):
    assert parse_group_ids(value) == expected


def test_resolve_all_groups_lists_memberships():
    client = FakePTTClient(groups=[{"id": "a"}, {"id": 7}])
    groups = asyncio.run(resolve_groups(client, "tok", "ALL"))
    assert groups == ["a", "7"]
    assert client.calls == [("get_all_user_groups", "tok")]


def test_resolve_explicit_groups_makes_no_calls():
    client = FakePTTClient()
    assert asyncio.run(resolve_groups(client, "tok", "x,y")) == ["x", "y"]
    assert client.calls == []


def test_authenticate_returns_token_and_user():
    auth_latency_ms.last_ms = None
    client = FakePTTClient(user_id="u1", token="t1")
    result = asyncio.run(authenticate(client, "alice", "pw"))
    assert (result.token, result.user_id) == ("t1", "u1")
    assert client.calls == [("auth", "alice", "pw")]
    assert auth_latency_ms.last_ms is not None


def test_auth_result_requires_token_and_id():
    with pytest.raises(PTTServiceError):
        AuthResult.from_response({"token": "t"})
    assert AuthResult.from_response({"token": "t", "id": 5}).user_id == "5"


def test_load_client_calls_factory_with_settings():
    settings = Settings(client_factory="tests.fakes.fake_ptt_service:build_client")
    client = load_client(settings.client_factory, settings)
    assert isinstance(client, FakePTTClient)
    assert client.settings is settings


@pytest.mark.parametrize(
    "path",
    ["", "no_colon", "tests.fakes.fake_ptt_service:missing", "not_a_module_anywhere:factory"],
)
def test_load_client_rejects_bad_paths(path):
    with pytest.raises(ConfigurationError):
        load_client(path, Settings())
