import math
from typing import Dict, Iterator, Optional, Tuple

from taixiu.models import Bet, Player, SIDES

MSG_BETTING_CLOSED = 'Hết thời gian cược.'
MSG_INVALID_BET = 'Cược không hợp lệ.'
MSG_OVER_CAP = 'Cược tối đa: {cap}'


class BetRejected(Exception):
    """A bet failed validation; ``message`` is shown to the player."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def normalize_side(raw) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    side = raw.strip().upper()
    return side if side in SIDES else None


def parse_amount(raw) -> Optional[int]:
    """Return a positive whole amount, or None if ``raw`` is not one.

    Numeric strings are accepted the way a JSON client may send them;
    booleans are not numbers here.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    elif isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            return None
    else:
        return None
    if not math.isfinite(value) or value <= 0 or value != int(value):
        return None
    return int(value)


class BetLedger:
    """Live bets for the current round, one per player."""

    def __init__(self, max_bet: int = 5000):
        self.max_bet = max_bet
        self._bets: Dict[str, Bet] = {}

    def place(self, player: Player, side, amount, betting_open: bool) -> Bet:
        if not betting_open:
            raise BetRejected(MSG_BETTING_CLOSED)
        norm_side = normalize_side(side)
        value = parse_amount(amount)
        if norm_side is None or value is None:
            raise BetRejected(MSG_INVALID_BET)
        cap = min(self.max_bet, player.balance)
        if value > cap:
            raise BetRejected(MSG_OVER_CAP.format(cap=cap))
        bet = Bet(side=norm_side, amount=value)
        self._bets[player.id] = bet
        return bet

    def get(self, player_id: str) -> Optional[Bet]:
        return self._bets.get(player_id)

    def discard(self, player_id: str) -> None:
        self._bets.pop(player_id, None)

    def clear(self) -> None:
        self._bets.clear()

    def items(self) -> Iterator[Tuple[str, Bet]]:
        return iter(list(self._bets.items()))

    def __len__(self) -> int:
        return len(self._bets)

    def __contains__(self, player_id) -> bool:
        return player_id in self._bets

    def to_list(self):
        return [
            {'playerId': pid, 'side': bet.side, 'amount': bet.amount}
            for pid, bet in self._bets.items()
        ]
