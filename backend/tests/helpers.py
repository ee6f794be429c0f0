from collections import deque

from taixiu.models import BETTING, Player, Room
from taixiu.services.game.fairness import FairnessCommitment, Randomizer
from taixiu.services.game.leaderboard import Leaderboard
from taixiu.services.game.ledger import BetLedger


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class ScriptedRandomizer(Randomizer):
    """Returns queued dice rolls first, then falls back to real rolls."""

    def __init__(self, *rolls):
        super().__init__()
        self.rolls = deque(tuple(r) for r in rolls)

    def script(self, *rolls):
        self.rolls.extend(tuple(r) for r in rolls)

    def roll_dice(self, count=3, faces=6):
        if self.rolls:
            return self.rolls.popleft()
        return super().roll_dice(count, faces)


class RecordingBroadcaster:
    def __init__(self):
        self.sent = []
        self.broadcasts = []
        self.subscriptions = {}

    def send(self, sid, message):
        self.sent.append((sid, message))

    def broadcast(self, room_id, message):
        self.broadcasts.append((room_id, message))

    def subscribe(self, sid, room_id):
        self.subscriptions.setdefault(room_id, set()).add(sid)

    def unsubscribe(self, sid, room_id):
        self.subscriptions.get(room_id, set()).discard(sid)

    def sent_to(self, sid, msg_type=None):
        return [m for s, m in self.sent if s == sid and (msg_type is None or m.type == msg_type)]

    def broadcast_to(self, room_id, msg_type=None):
        return [m for r, m in self.broadcasts if r == room_id and (msg_type is None or m.type == msg_type)]

    def clear(self):
        self.sent.clear()
        self.broadcasts.clear()


def make_room(room_id='lobby', now=0, max_bet=5000):
    room = Room(room_id=room_id, created_at=now, last_active_at=now)
    room.ledger = BetLedger(max_bet=max_bet)
    room.leaderboard = Leaderboard()
    room.state = BETTING
    room.round_id = 1
    room.commitment = FairnessCommitment.open()
    return room


def add_player(room, player_id, name, balance=1000):
    player = Player(id=player_id, name=name, sid=f"sid-{player_id}", balance=balance,
                    stats_key=room.stats_key_for(name))
    room.players[player_id] = player
    return player


def received(sio_client, msg_type=None, namespace='/ws'):
    """Drain a Socket.IO test client and return the message envelopes."""
    out = []
    for pkt in sio_client.get_received(namespace):
        if pkt['name'] != 'message':
            continue
        args = pkt['args']
        envelope = args if isinstance(args, dict) else args[0]
        if msg_type is None or envelope['type'] == msg_type:
            out.append(envelope)
    return out
