"""Progression engine - the decision state machine.

A player's position is never stored. It is re-derived on every call from
their score records: the destination of the most recent record, or the
story's start node when there are none.
"""

import re

from survival.config import settings
from survival.core.errors import (
    IncompleteTransition,
    InvalidChoice,
    NotFound,
    PartialCleanupFailure,
    StoreUnavailable,
)
from survival.core.logging import get_logger
from survival.core.stats import apply_delta, delta_of, initial_stats
from survival.schemas.progress import NewTransition, PlayerStats, Position, TransitionRecord
from survival.schemas.story import Choice
from survival.services.consistency_monitor import ConsistencyMonitor
from survival.stores.base import GraphStore, LedgerStore

logger = get_logger(__name__)


def _recency(record: TransitionRecord):
    return (record.created_at, record.id)


def latest_record(records: list[TransitionRecord]) -> TransitionRecord | None:
    """Most recent record by timestamp, ties broken by id."""
    return max(records, key=_recency, default=None)


class ProgressionEngine:
    def __init__(
        self,
        graph: GraphStore,
        ledger: LedgerStore,
        story_id: int = 0,
        monitor: ConsistencyMonitor | None = None,
        final_pattern: str | None = None,
    ):
        self.graph = graph
        self.ledger = ledger
        self.story_id = story_id
        self.monitor = monitor
        self._final_re = re.compile(final_pattern or settings.FINAL_NODE_PATTERN)

    def is_terminal(self, decision_key: str) -> bool:
        return self._final_re.search(decision_key) is not None

    async def get_current_position(self, player: str) -> Position:
        records = await self.ledger.list_by_owner(player)
        latest = latest_record(records)
        if latest is None:
            node = await self.graph.get_start_node()
            stats = initial_stats()
        else:
            node = await self.graph.get_node(latest.decision_id)
            stats = latest.after
        return Position(
            node=node,
            stats=stats,
            is_finished=self.is_terminal(node.decision_id),
            last_record=latest,
        )

    async def list_choices(self, node_key: str) -> list[Choice]:
        node = await self.graph.get_node(node_key)
        return node.choices

    async def choice_already_made_from(
        self, node_key: str, player: str
    ) -> TransitionRecord | None:
        """The record of the choice this player made while standing on ``node_key``."""
        records = await self.ledger.list_by_owner(player)
        matches = [r for r in records if r.previous_decision == node_key]
        if len(matches) > 1:
            logger.warning(
                "data integrity: %d records leave %s for %s (ids %s); using the latest",
                len(matches), node_key, player, [r.id for r in matches],
            )
        return latest_record(matches)

    async def commit_choice(
        self,
        player: str,
        node_key: str,
        choice_id: int,
        current_stats: PlayerStats | None = None,
    ) -> TransitionRecord:
        """Take ``choice_id`` out of ``node_key`` and record the transition.

        Writes the new record first, then marks the record that landed on
        ``node_key`` complete. If the first write fails nothing else happens.
        If only the second fails on a non-atomic ledger, IncompleteTransition
        is raised; the new record stands and no repair is attempted. An
        atomic ledger gets a plain StoreUnavailable, since its caller rolls
        both writes back.

        Raises:
            NotFound: unknown node.
            InvalidChoice: the choice does not leave ``node_key``.
            StoreUnavailable: a store write failed.
        """
        node = await self.graph.get_node(node_key)
        choice = next((c for c in node.choices if c.id == choice_id), None)
        if choice is None:
            logger.warning(
                "invalid choice %s from %s by %s (valid: %s)",
                choice_id, node_key, player, [c.id for c in node.choices],
            )
            raise InvalidChoice(f"Choice {choice_id} does not belong to decision {node_key}")

        records = await self.ledger.list_by_owner(player)
        if current_stats is None:
            latest = latest_record(records)
            current_stats = latest.after if latest else initial_stats()
        arrival = latest_record([r for r in records if r.decision_id == node_key])

        new_stats = apply_delta(current_stats, delta_of(choice))
        created = await self.ledger.create(
            NewTransition(
                email=player,
                decision_id=choice.target_key,
                decision_ref=choice.target_id,
                decision_number=choice.target_number,
                previous_decision=node_key,
                morale_before=current_stats.morale,
                condition_before=current_stats.condition,
                resources_before=current_stats.resources,
                morale_after=new_stats.morale,
                condition_after=new_stats.condition,
                resources_after=new_stats.resources,
                complete=False,
            )
        )

        if arrival is not None:
            try:
                await self.ledger.mark_complete(arrival.id)
            except (StoreUnavailable, NotFound) as e:
                if self.ledger.atomic:
                    # The request rolls back, taking the new record with it
                    logger.warning(
                        "marking record %s complete failed, transition rolled back: %s",
                        arrival.id, e,
                    )
                    raise StoreUnavailable(
                        f"Record {arrival.id} was not marked complete"
                    ) from e
                logger.warning(
                    "record %s created but record %s not marked complete: %s",
                    created.id, arrival.id, e,
                )
                if self.monitor is not None:
                    await self.monitor.record_incomplete(self.story_id, player, created.id)
                raise IncompleteTransition(
                    f"Record {arrival.id} was not marked complete", record=created
                ) from e

        logger.info(
            "%s moved %s -> %s (morale=%.2f condition=%.2f resources=%d)",
            player, node_key, choice.target_key,
            new_stats.morale, new_stats.condition, new_stats.resources,
        )
        return created

    async def history(self, player: str) -> list[TransitionRecord]:
        """Every record of the player, in story order."""
        records = await self.ledger.list_by_owner(player)
        return sorted(records, key=lambda r: (r.decision_number, r.created_at, r.id))

    async def restart(self, player: str) -> int:
        """Delete all of the player's records; returns how many were removed.

        Tries one bulk delete, then falls back to deleting record by record.
        The fallback keeps going past individual failures but raises
        PartialCleanupFailure at the end if any remained.
        """
        try:
            deleted = await self.ledger.delete_by_owner(player)
            logger.info("restarted %s: %d records removed", player, deleted)
            return deleted
        except StoreUnavailable as e:
            logger.warning("bulk delete for %s failed, deleting one by one: %s", player, e)

        records = await self.ledger.list_by_owner(player)
        deleted = 0
        failed: list[int] = []
        for record in records:
            if record.email != player:
                continue
            try:
                await self.ledger.delete(record.id)
            except NotFound:
                # Already gone counts as deleted
                pass
            except StoreUnavailable as e:
                logger.error("could not delete record %s of %s: %s", record.id, player, e)
                failed.append(record.id)
                continue
            deleted += 1

        if failed:
            raise PartialCleanupFailure(
                f"Restart left {len(failed)} of {len(failed) + deleted} records",
                failed_ids=failed,
                deleted=deleted,
            )
        logger.info("restarted %s one by one: %d records removed", player, deleted)
        return deleted
