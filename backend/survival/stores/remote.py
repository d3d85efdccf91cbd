"""REST-backed graph and ledger stores.

Talks to a hosted backend with the endpoint layout of the original story
service: nodes come from ``stories_individual`` with their ``next`` choices
embedded, and score records live under a per-theme score endpoint. Score
records name the condition stat ``shipcondition_*`` and timestamp
``created_at`` in epoch milliseconds.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from survival.config import StoryTheme, settings
from survival.core.errors import NotFound, StoreUnavailable
from survival.core.logging import get_logger
from survival.schemas.progress import NewTransition, TransitionRecord
from survival.schemas.story import Choice, DecisionNode
from survival.stores.base import GraphStore, LedgerStore

logger = get_logger(__name__)


def make_client(theme: StoryTheme) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=theme.remote_base_url, timeout=settings.REMOTE_TIMEOUT)


async def _request(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Any:
    """Send a request and decode its JSON body, classifying failures."""
    try:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            raise NotFound(f"{method} {url}: not found") from e
        logger.error("%s %s failed with status %s", method, url, e.response.status_code)
        raise StoreUnavailable(f"{method} {url} failed: {e.response.status_code}") from e
    except httpx.RequestError as e:
        logger.error("%s %s failed: %s", method, url, e)
        raise StoreUnavailable(f"{method} {url} failed: {e}") from e

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise StoreUnavailable(f"{method} {url} returned invalid JSON") from e


def _meter(value: Any) -> float:
    """Morale or condition as a fraction; some rows hold it as a percentage."""
    v = float(value)
    if v > 1:
        v /= 100
    if not 0 <= v <= 1:
        raise ValueError(f"meter out of range: {value}")
    return v


def _resources(value: Any) -> int:
    v = int(value)
    if v < 0:
        raise ValueError(f"negative resources: {value}")
    return v


@contextmanager
def _malformed(what: str) -> Iterator[None]:
    try:
        yield
    except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
        logger.error("malformed %s from backend: %r", what, e)
        raise StoreUnavailable(f"Backend returned a malformed {what}") from e


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return datetime.fromisoformat(str(value))


def record_from_json(data: dict) -> TransitionRecord:
    with _malformed("score record"):
        return TransitionRecord(
            id=data["id"],
            story_id=data.get("stories_id"),
            created_at=_parse_timestamp(data["created_at"]),
            email=data["email"],
            decision_id=data["decision_id"],
            decision_ref=data.get("current_story") or data.get("decision_ref") or 0,
            decision_number=data.get("decision_number") or 0,
            previous_decision=data.get("previous_decision") or "",
            morale_before=_meter(data.get("morale_before") or 0.0),
            condition_before=_meter(data.get("shipcondition_before") or 0.0),
            resources_before=_resources(data.get("resources_before") or 0),
            morale_after=_meter(data["morale_after"]),
            condition_after=_meter(data["shipcondition_after"]),
            resources_after=_resources(data["resources_after"]),
            complete=bool(data.get("complete", False)),
        )


def record_to_json(record: NewTransition, story_id: int) -> dict:
    return {
        "email": record.email,
        "stories_id": story_id,
        "decision_id": record.decision_id,
        "current_story": record.decision_ref,
        "decision_number": record.decision_number,
        "previous_decision": record.previous_decision,
        "morale_before": record.morale_before,
        "shipcondition_before": record.condition_before,
        "resources_before": record.resources_before,
        "morale_after": record.morale_after,
        "shipcondition_after": record.condition_after,
        "resources_after": record.resources_after,
        "complete": record.complete,
    }


def node_from_json(data: dict) -> DecisionNode:
    with _malformed("decision node"):
        key = data["decision_id"]
        prompts = [data.get(f"reflective_prompt_{i}") for i in range(1, 5)]
        return DecisionNode(
            id=data["id"],
            decision_id=key,
            decision_number=data.get("decision_number") or data.get("sequence") or 0,
            title=data.get("decision_title") or "",
            description=data.get("decision_description") or "",
            text=data.get("decision_text") or "",
            hero_image=data.get("hero_image") or None,
            reflective_prompts=[p for p in prompts if p],
            choices=[
                Choice(
                    # The hosted backend identifies a choice by its target node
                    id=nxt["id"],
                    source_key=key,
                    target_id=nxt["id"],
                    target_key=nxt["decision_id"],
                    target_number=nxt.get("decision_number") or 0,
                    title=nxt.get("decision_title") or "",
                    description=nxt.get("decision_description") or "",
                    morale=nxt.get("morale") or 0.0,
                    condition=nxt.get("condition") or 0.0,
                    resources=nxt.get("resources") or 0,
                    morale_effect=nxt.get("morale_effect"),
                    condition_effect=nxt.get("condition_effect"),
                    resources_effect=nxt.get("resources_effect"),
                )
                for nxt in data.get("next") or []
            ],
        )


class RemoteGraphStore(GraphStore):
    def __init__(self, client: httpx.AsyncClient, theme: StoryTheme, story_id: int):
        self.client = client
        self.theme = theme
        self.story_id = story_id

    async def _find(self, params: dict, label: str) -> DecisionNode:
        data = await _request(
            self.client, "GET", f"/{self.theme.nodes_endpoint}",
            params={**params, "stories_id": self.story_id},
        )
        # The endpoint answers with either one node or a list of candidates
        if isinstance(data, list):
            data = next(
                (n for n in data if all(n.get(k) == v for k, v in params.items())), None
            )
        if not data:
            raise NotFound(f"Decision not found: {label}")
        return node_from_json(data)

    async def get_node(self, key: str) -> DecisionNode:
        return await self._find({"decision_id": key}, key)

    async def get_start_node(self) -> DecisionNode:
        return await self._find({"decision_number": 0}, "start")


class RemoteLedgerStore(LedgerStore):
    def __init__(self, client: httpx.AsyncClient, theme: StoryTheme, story_id: int):
        self.client = client
        self.theme = theme
        self.story_id = story_id

    @property
    def _scores(self) -> str:
        return f"/{self.theme.score_endpoint}"

    async def list_by_owner(self, player: str) -> list[TransitionRecord]:
        data = await _request(
            self.client, "GET", self._scores,
            params={"user_email": player, "stories_id": self.story_id},
        )
        records = [record_from_json(item) for item in data or []]
        # The backend filters server-side; re-check so a lax filter can't leak
        records = [r for r in records if r.email == player]
        return sorted(records, key=lambda r: (r.created_at, r.id))

    async def list_all(self) -> list[TransitionRecord]:
        data = await _request(self.client, "GET", self._scores, params={"stories_id": self.story_id})
        records = [record_from_json(item) for item in data or []]
        return sorted(records, key=lambda r: (r.created_at, r.id))

    async def create(self, record: NewTransition) -> TransitionRecord:
        data = await _request(
            self.client, "POST", self._scores, json=record_to_json(record, self.story_id)
        )
        return record_from_json(data)

    async def mark_complete(self, record_id: int) -> None:
        await _request(self.client, "PATCH", f"{self._scores}/{record_id}", json={"complete": True})

    async def delete_by_owner(self, player: str) -> int:
        data = await _request(
            self.client, "DELETE", f"/{self.theme.bulk_delete_endpoint}",
            params={"user_email": player, "stories_id": self.story_id},
        )
        return int((data or {}).get("deleted", 0))

    async def delete(self, record_id: int) -> None:
        await _request(self.client, "DELETE", f"{self._scores}/{record_id}")


_clients: dict[str, httpx.AsyncClient] = {}


def get_remote_client(theme: StoryTheme) -> httpx.AsyncClient:
    """One shared client per backend base URL (lazy init)."""
    client = _clients.get(theme.remote_base_url)
    if client is None:
        client = _clients[theme.remote_base_url] = make_client(theme)
    return client


async def close_remote_clients() -> None:
    while _clients:
        _, client = _clients.popitem()
        await client.aclose()
