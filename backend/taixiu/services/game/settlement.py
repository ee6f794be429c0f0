from datetime import datetime, timezone

from taixiu.models import Result, Room, SIDE_HIGH, SIDE_LOW
from .fairness import Randomizer

HIGH_THRESHOLD = 11


def winning_side(total: int) -> str:
    return SIDE_HIGH if total >= HIGH_THRESHOLD else SIDE_LOW


def _iso_timestamp(now_ms: int) -> str:
    ts = datetime.fromtimestamp(now_ms / 1000.0, tz=timezone.utc)
    return ts.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class SettlementEngine:
    def __init__(self, randomizer: Randomizer, history_limit: int = 20):
        self.randomizer = randomizer
        self.history_limit = history_limit

    def settle(self, room: Room, now_ms: int) -> Result:
        """Roll the dice and pay out every live bet of the room's round.

        Even-money payouts: a winning bet adds its amount to the balance, a
        losing one subtracts it (never below zero). Bets whose player has
        left are dropped without touching balances or the leaderboard.
        """
        dice = tuple(self.randomizer.roll_dice())
        total = sum(dice)
        side = winning_side(total)

        for player_id, bet in room.ledger.items():
            player = room.players.get(player_id)
            if not player:
                continue
            won = bet.side == side
            delta = bet.amount if won else -bet.amount
            player.balance = max(0, player.balance + delta)
            room.leaderboard.record(player.stats_key, player.name, won, bet.amount)

        commitment = room.commitment
        result = Result(
            round_id=room.round_id,
            dice=dice,
            total=total,
            side=side,
            seed=commitment.reveal(),
            commit=commitment.commit,
            ts=_iso_timestamp(now_ms),
        )
        room.last_result = result
        room.history.insert(0, result)
        del room.history[self.history_limit:]
        room.ledger.clear()
        return result
