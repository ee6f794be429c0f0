import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

BETTING = 'BETTING'
ROLLING = 'ROLLING'
SETTLED = 'SETTLED'

SIDE_HIGH = 'TAI'
SIDE_LOW = 'XIU'
SIDES = (SIDE_HIGH, SIDE_LOW)

DEFAULT_ROOM_ID = 'lobby'
DEFAULT_PLAYER_NAME = 'Player'


class Player:
    def __init__(self, id: str, name: str, sid: str, balance: int, stats_key: str):
        self.id = id
        self.name = name
        self.sid = sid
        self.balance = balance
        self.stats_key = stats_key

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'balance': self.balance,
        }


@dataclass(frozen=True)
class Bet:
    side: str
    amount: int


@dataclass(frozen=True)
class Result:
    round_id: int
    dice: Tuple[int, ...]
    total: int
    side: str
    seed: str
    commit: str
    ts: str

    def to_dict(self):
        return {
            'roundId': self.round_id,
            'dice': list(self.dice),
            'sum': self.total,
            'side': self.side,
            'revealedServerSeed': self.seed,
            'commit': self.commit,
            'ts': self.ts,
        }


@dataclass
class LeaderboardEntry:
    name: str
    wins: int = 0
    losses: int = 0
    played: int = 0
    net: int = 0

    def to_dict(self):
        return {
            'name': self.name,
            'wins': self.wins,
            'losses': self.losses,
            'played': self.played,
            'net': self.net,
        }


@dataclass
class Room:
    """One game table: players, the live round and its settled history.

    ``ledger``, ``leaderboard`` and ``machine`` are attached by the server
    when the room is built. All mutation happens under ``lock``.
    """
    room_id: str
    created_at: int
    state: str = BETTING
    round_id: int = 0
    betting_ends_at: int = 0
    phase_ends_at: int = 0
    commitment: Optional[object] = None
    last_result: Optional[Result] = None
    history: List[Result] = field(default_factory=list)
    players: Dict[str, Player] = field(default_factory=dict)
    ledger: Optional[object] = None
    leaderboard: Optional[object] = None
    machine: Optional[object] = None
    last_active_at: int = 0
    closed: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def stats_key_for(self, name: str) -> str:
        # Room-local identity by display name; there is no authentication.
        return f"{self.room_id}:{name.lower()}"

    def countdown_ms(self, now: int) -> int:
        return max(0, self.betting_ends_at - now)

    def summary(self):
        return {
            'roomId': self.room_id,
            'state': self.state,
            'roundId': self.round_id,
            'playerCount': len(self.players),
            'createdAt': self.created_at,
        }

    def snapshot(self, now: int):
        return {
            'roomId': self.room_id,
            'state': self.state,
            'countdownMs': self.countdown_ms(now),
            'roundId': self.round_id,
            'commit': self.commitment.commit if self.commitment else None,
            'players': [p.to_dict() for p in self.players.values()],
            'bets': self.ledger.to_list() if self.ledger is not None else [],
            'lastResult': self.last_result.to_dict() if self.last_result else None,
            'history': [r.to_dict() for r in self.history],
            'leaderboard': self.leaderboard.snapshot() if self.leaderboard is not None else [],
        }
