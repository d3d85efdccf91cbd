"""Tests for the REST-backed stores, against a mocked transport."""

import json

import httpx
import pytest

from survival.config import get_theme
from survival.core.errors import NotFound, StoreUnavailable
from survival.schemas.progress import NewTransition
from survival.stores.remote import RemoteGraphStore, RemoteLedgerStore

THEME = get_theme("island")

START_NODE = {
    "id": 10,
    "decision_id": "START",
    "sequence": 0,
    "decision_title": "Shipwrecked",
    "reflective_prompt_1": "What now?",
    "reflective_prompt_2": "",
    "hero_image": "",
    "next": [
        {"id": 11, "decision_id": "D1_A", "decision_number": 1, "morale": -0.1, "resources": -10},
        {"id": 12, "decision_id": "D1_B", "decision_number": 1, "condition": 0.05},
    ],
}


def score_json(id: int, email: str, created_at: int, previous: str = "START", dest: str = "D1_A") -> dict:
    return {
        "id": id,
        "created_at": created_at,
        "email": email,
        "stories_id": 1,
        "decision_id": dest,
        "current_story": 11,
        "decision_number": 1,
        "previous_decision": previous,
        "morale_after": 0.7,
        "shipcondition_after": 0.8,
        "resources_after": 55,
        "complete": False,
    }


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://backend.test")


async def test_get_node_parses_choices():
    def handler(request: httpx.Request):
        assert request.url.path == "/stories_individual"
        assert request.url.params["decision_id"] == "START"
        assert request.url.params["stories_id"] == "1"
        return httpx.Response(200, json=START_NODE)

    async with make_client(handler) as client:
        node = await RemoteGraphStore(client, THEME, 1).get_node("START")

    assert node.decision_number == 0
    assert node.title == "Shipwrecked"
    assert node.reflective_prompts == ["What now?"]
    assert node.hero_image is None
    assert [(c.id, c.target_key) for c in node.choices] == [(11, "D1_A"), (12, "D1_B")]
    assert node.choices[0].resources == -10
    assert node.choices[1].condition == 0.05


async def test_get_start_node_from_list():
    other = {**START_NODE, "id": 99, "decision_id": "D1_A", "sequence": 1, "decision_number": 1, "next": []}

    def handler(request):
        return httpx.Response(200, json=[other, {**START_NODE, "decision_number": 0}])

    async with make_client(handler) as client:
        node = await RemoteGraphStore(client, THEME, 1).get_start_node()
    assert node.decision_id == "START"


async def test_get_node_not_found():
    async with make_client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(NotFound):
            await RemoteGraphStore(client, THEME, 1).get_node("NOWHERE")


async def test_get_node_empty_list_is_not_found():
    async with make_client(lambda request: httpx.Response(200, json=[])) as client:
        with pytest.raises(NotFound):
            await RemoteGraphStore(client, THEME, 1).get_node("NOWHERE")


async def test_server_error_is_store_unavailable():
    async with make_client(lambda request: httpx.Response(502)) as client:
        with pytest.raises(StoreUnavailable):
            await RemoteLedgerStore(client, THEME, 1).list_by_owner("a@example.com")


async def test_network_error_is_store_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(StoreUnavailable):
            await RemoteLedgerStore(client, THEME, 1).mark_complete(1)


async def test_list_by_owner_filters_and_sorts():
    def handler(request):
        assert request.url.path == "/island_survival_score"
        assert request.url.params["user_email"] == "a@example.com"
        return httpx.Response(200, json=[
            score_json(3, "a@example.com", 2_000),
            score_json(1, "b@example.com", 1_000),
            score_json(2, "a@example.com", 1_000),
        ])

    async with make_client(handler) as client:
        records = await RemoteLedgerStore(client, THEME, 1).list_by_owner("a@example.com")

    assert [r.id for r in records] == [2, 3]
    assert records[0].condition_after == 0.8
    assert records[0].decision_ref == 11


async def test_create_posts_backend_field_names():
    sent = {}

    def handler(request):
        sent.update(json.loads(request.content))
        return httpx.Response(200, json=score_json(7, "a@example.com", 5_000))

    record = NewTransition(
        email="a@example.com",
        decision_id="D1_A",
        decision_ref=11,
        decision_number=1,
        previous_decision="START",
        morale_before=0.8,
        condition_before=0.8,
        resources_before=65,
        morale_after=0.7,
        condition_after=0.8,
        resources_after=55,
    )
    async with make_client(handler) as client:
        created = await RemoteLedgerStore(client, THEME, 1).create(record)

    assert created.id == 7
    assert sent["shipcondition_after"] == 0.8
    assert sent["current_story"] == 11
    assert sent["stories_id"] == 1
    assert sent["complete"] is False


async def test_mark_complete_patches_record():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={})

    async with make_client(handler) as client:
        await RemoteLedgerStore(client, THEME, 1).mark_complete(5)

    assert seen == [("PATCH", "/island_survival_score/5", {"complete": True})]


async def test_bulk_delete_returns_count():
    def handler(request):
        assert request.method == "DELETE"
        assert request.url.path == "/delete_user_scores"
        return httpx.Response(200, json={"deleted": 4})

    async with make_client(handler) as client:
        assert await RemoteLedgerStore(client, THEME, 1).delete_by_owner("a@example.com") == 4


async def test_zombie_theme_uses_its_endpoints():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json=None)

    async with make_client(handler) as client:
        ledger = RemoteLedgerStore(client, get_theme("zombie"), 2)
        await ledger.delete(1)
        await ledger.delete_by_owner("a@example.com")

    assert paths == ["/story_score/1", "/delete_user_scores_zombies"]


async def test_record_missing_fields_is_store_unavailable():
    broken = score_json(1, "a@example.com", 1_000)
    del broken["shipcondition_after"]

    async with make_client(lambda request: httpx.Response(200, json=[broken])) as client:
        with pytest.raises(StoreUnavailable):
            await RemoteLedgerStore(client, THEME, 1).list_by_owner("a@example.com")


async def test_node_missing_fields_is_store_unavailable():
    async with make_client(lambda request: httpx.Response(200, json={"decision_id": "START"})) as client:
        with pytest.raises(StoreUnavailable):
            await RemoteGraphStore(client, THEME, 1).get_node("START")


async def test_percentage_meters_are_scaled_down():
    scaled = {**score_json(1, "a@example.com", 1_000), "morale_after": 70, "shipcondition_after": 80}

    async with make_client(lambda request: httpx.Response(200, json=[scaled])) as client:
        [record] = await RemoteLedgerStore(client, THEME, 1).list_by_owner("a@example.com")

    assert record.morale_after == 0.7
    assert record.condition_after == 0.8
    assert record.after.morale == 0.7


async def test_out_of_range_meter_is_store_unavailable():
    bad = {**score_json(1, "a@example.com", 1_000), "morale_after": 250}

    async with make_client(lambda request: httpx.Response(200, json=[bad])) as client:
        with pytest.raises(StoreUnavailable):
            await RemoteLedgerStore(client, THEME, 1).list_by_owner("a@example.com")
