"""Leaderboard service - ranks players by where their latest transition left them."""

from survival.core.progression_engine import latest_record
from survival.core.stats import total_score
from survival.schemas.progress import LeaderboardEntry, TransitionRecord
from survival.stores.base import LedgerStore


class LeaderboardService:
    @staticmethod
    def rank(records: list[TransitionRecord]) -> list[LeaderboardEntry]:
        """One entry per player from their most recent record, best score first."""
        by_player: dict[str, list[TransitionRecord]] = {}
        for record in records:
            by_player.setdefault(record.email, []).append(record)

        latest = [latest_record(player_records) for player_records in by_player.values()]
        scored = sorted(
            ((total_score(r.after), r) for r in latest),
            key=lambda pair: (-pair[0], pair[1].email),
        )
        return [
            LeaderboardEntry(
                rank=i + 1,
                email=r.email,
                decision_id=r.decision_id,
                morale_after=r.morale_after,
                condition_after=r.condition_after,
                resources_after=r.resources_after,
                total_score=score,
            )
            for i, (score, r) in enumerate(scored)
        ]

    async def standings(self, ledger: LedgerStore) -> list[LeaderboardEntry]:
        return self.rank(await ledger.list_all())


leaderboard_service = LeaderboardService()
