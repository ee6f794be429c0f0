import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from taixiu import protocol
from taixiu.models import BETTING, ROLLING, SETTLED, Room
from taixiu.protocol import Message
from .fairness import FairnessCommitment
from .settlement import SettlementEngine


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class PhaseDurations:
    betting_ms: int = 18000
    rolling_ms: int = 2500
    result_ms: int = 6000


class RoundStateMachine:
    """Drive one room through BETTING -> ROLLING -> SETTLED -> BETTING ...

    Transitions are time based: the room loop calls ``tick`` at a fine
    interval and the machine compares the clock with the deadline stored for
    the current phase. ``tick`` returns the messages to broadcast for that
    step; callers hold the room lock across tick and broadcast.
    """

    def __init__(
        self,
        room: Room,
        engine: SettlementEngine,
        durations: PhaseDurations = PhaseDurations(),
        clock: Callable[[], int] = now_ms,
        logger: Optional[logging.Logger] = None,
    ):
        self.room = room
        self.engine = engine
        self.durations = durations
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self._last_countdown_sec: Optional[int] = None

    def start(self, now: Optional[int] = None) -> None:
        now = self.clock() if now is None else now
        self.room.round_id = 0
        self._open_round(now)

    def _open_round(self, now: int) -> None:
        room = self.room
        room.round_id += 1
        room.state = BETTING
        # Bets never outlive their round, even if settlement failed.
        room.ledger.clear()
        room.betting_ends_at = now + self.durations.betting_ms
        room.phase_ends_at = room.betting_ends_at
        room.commitment = FairnessCommitment.open()
        self._last_countdown_sec = math.ceil(self.durations.betting_ms / 1000)
        self.logger.info(
            f"[round-open] room={room.room_id} round={room.round_id} commit={room.commitment.commit}"
        )

    def tick(self, now: Optional[int] = None) -> List[Message]:
        now = self.clock() if now is None else now
        room = self.room

        if room.state == BETTING:
            remain = room.betting_ends_at - now
            if remain <= 0:
                room.state = ROLLING
                room.phase_ends_at = now + self.durations.rolling_ms
                self.logger.info(
                    f"[round-roll] room={room.room_id} round={room.round_id} bets={len(room.ledger)}"
                )
                return [Message(protocol.STATE, {'state': ROLLING})]
            second = math.ceil(remain / 1000)
            if second != self._last_countdown_sec:
                self._last_countdown_sec = second
                return [Message(protocol.COUNTDOWN, {'remainMs': remain})]
            return []

        if now < room.phase_ends_at:
            return []

        if room.state == ROLLING:
            # Phase moves first so a failing settlement cannot re-run.
            room.state = SETTLED
            room.phase_ends_at = now + self.durations.result_ms
            result = self.engine.settle(room, now)
            self.logger.info(
                f"[round-settle] room={room.room_id} round={result.round_id} dice={list(result.dice)} "
                f"sum={result.total} side={result.side}"
            )
            return [
                Message(protocol.RESULT, result.to_dict()),
                Message(protocol.ROOM, room.snapshot(now)),
            ]

        if room.state == SETTLED:
            self._open_round(now)
            return [Message(protocol.ROOM, room.snapshot(now))]

        raise ValueError(f"room {room.room_id} in unknown state {room.state!r}")
