import secrets
from typing import Dict, Optional

from taixiu import protocol
from taixiu.broadcast import SocketIOBroadcaster
from taixiu.models import BETTING, Player, Room
from taixiu.protocol import (
    BetCommand, ChatCommand, JoinCommand, ListRoomsCommand, Message, ResetBalanceCommand,
    MalformedCommand, UnknownCommand, parse_command,
)
from taixiu.services.game.fairness import Randomizer
from taixiu.services.game.leaderboard import Leaderboard
from taixiu.services.game.ledger import BetLedger, BetRejected
from taixiu.services.game.registry import RoomRegistry, sanitize_name, sanitize_room_id
from taixiu.services.game.rounds import PhaseDurations, RoundStateMachine, now_ms
from taixiu.services.game.settlement import SettlementEngine


class Connection:
    def __init__(self, sid: str):
        self.sid = sid
        self.player_id = secrets.token_hex(8)
        self.room_id: Optional[str] = None


class GameServer:
    """Owns the rooms, the live connections and the per-room loops.

    Created once at import time and bound to an app by ``init_app``, the
    same way the Flask extensions are.
    """

    def __init__(self, app=None, socketio=None):
        self.clock = now_ms
        if app is not None:
            self.init_app(app, socketio)

    def init_app(self, app, socketio, broadcaster=None) -> None:
        cfg = app.config
        self.app = app
        self.logger = app.logger
        self.socketio = socketio
        self.broadcaster = broadcaster or SocketIOBroadcaster(socketio)
        self.starting_balance = int(cfg.get('STARTING_BALANCE', 1000))
        self.max_bet = int(cfg.get('MAX_BET', 5000))
        self.leaderboard_limit = int(cfg.get('LEADERBOARD_LIMIT', 20))
        self.tick_interval = int(cfg.get('TICK_INTERVAL_MS', 60)) / 1000.0
        self.idle_ttl_ms = int(cfg.get('ROOM_IDLE_TTL_SEC', 0)) * 1000
        self.durations = PhaseDurations(
            betting_ms=int(cfg.get('BETTING_DURATION_MS', 18000)),
            rolling_ms=int(cfg.get('ROLLING_DURATION_MS', 2500)),
            result_ms=int(cfg.get('RESULT_DURATION_MS', 6000)),
        )
        self.engine = SettlementEngine(
            Randomizer(rejection_sampling=bool(cfg.get('DICE_REJECTION_SAMPLING'))),
            history_limit=int(cfg.get('HISTORY_LIMIT', 20)),
        )
        self.registry = RoomRegistry(self._build_room, list_limit=int(cfg.get('ROOM_LIST_LIMIT', 50)))
        self.connections: Dict[str, Connection] = {}
        self.scheduler_enabled = not cfg.get('TESTING') or bool(cfg.get('ENABLE_SCHEDULER_IN_TESTS'))
        self.reap_interval = float(cfg.get('ROOM_REAP_INTERVAL_SEC', 5))
        app.extensions['taixiu'] = self
        # One reaper for the whole registry, on its own slower cadence
        if self.scheduler_enabled and self.idle_ttl_ms > 0:
            socketio.start_background_task(self._run_reaper_loop)

    def now(self) -> int:
        return self.clock()

    # ---- Rooms and scheduling ----

    def _build_room(self, room_id: str) -> Room:
        now = self.now()
        room = Room(room_id=room_id, created_at=now, last_active_at=now)
        room.ledger = BetLedger(max_bet=self.max_bet)
        room.leaderboard = Leaderboard(limit=self.leaderboard_limit)
        room.machine = RoundStateMachine(room, self.engine, self.durations, clock=self.now, logger=self.logger)
        room.machine.start(now)
        self.logger.info(f"[room-create] room={room_id} scheduler={self.scheduler_enabled}")
        if self.scheduler_enabled:
            self.socketio.start_background_task(self._run_room_loop, room)
        return room

    def _run_room_loop(self, room: Room) -> None:
        while not room.closed:
            self.socketio.sleep(self.tick_interval)
            self.tick_room_safely(room)
        self.logger.info(f"[room-loop-exit] room={room.room_id}")

    def tick_room_safely(self, room: Room, now: Optional[int] = None) -> bool:
        """Tick one room; a failure is logged and kept inside that room."""
        try:
            self.tick_room(room, now)
        except Exception:
            self.logger.exception(f"[tick-error] room={room.room_id} round={room.round_id} state={room.state}")
            return False
        return True

    def tick_room(self, room: Room, now: Optional[int] = None) -> None:
        now = self.now() if now is None else now
        with room.lock:
            if room.closed:
                return
            for message in room.machine.tick(now):
                self.broadcaster.broadcast(room.room_id, message)

    def tick_all(self, now: Optional[int] = None) -> None:
        for room in self.registry:
            self.tick_room(room, now)

    def _run_reaper_loop(self) -> None:
        while True:
            self.socketio.sleep(self.reap_interval)
            try:
                self.reap_idle_rooms()
            except Exception:
                self.logger.exception("[reap-error]")

    def reap_idle_rooms(self, now: Optional[int] = None):
        now = self.now() if now is None else now
        reaped = []
        for room in self.registry.idle_rooms(now, self.idle_ttl_ms):
            with room.lock:
                if room.players:
                    continue
                self.registry.remove(room.room_id)
            self.logger.info(f"[room-reap] room={room.room_id} idle_ms={now - room.last_active_at}")
            reaped.append(room.room_id)
        return reaped

    # ---- Connections ----

    def connect(self, sid: str) -> Connection:
        conn = self.connections.get(sid)
        if conn is None:
            conn = Connection(sid)
            self.connections[sid] = conn
        return conn

    def disconnect(self, sid: str) -> None:
        conn = self.connections.pop(sid, None)
        if conn is None or conn.room_id is None:
            return
        room = self.registry.get(conn.room_id)
        if room is not None:
            self._leave(room, conn)

    def _leave(self, room: Room, conn: Connection) -> None:
        with room.lock:
            player = room.players.pop(conn.player_id, None)
            room.ledger.discard(conn.player_id)
            room.last_active_at = self.now()
            if player is None:
                return
            self.logger.info(f"[leave] room={room.room_id} player={player.id} name={player.name}")
            self.broadcaster.broadcast(room.room_id, protocol.system_chat(f"{player.name} đã rời phòng."))
            self._broadcast_snapshot(room)

    def _broadcast_snapshot(self, room: Room) -> None:
        self.broadcaster.broadcast(room.room_id, Message(protocol.ROOM, room.snapshot(self.now())))

    def _current(self, sid: str):
        """Return (room, player) for a joined connection, else (None, None)."""
        conn = self.connections.get(sid)
        if conn is None or conn.room_id is None:
            return None, None
        room = self.registry.get(conn.room_id)
        if room is None:
            return None, None
        return room, room.players.get(conn.player_id)

    # ---- Commands ----

    def handle_command(self, sid: str, data) -> None:
        try:
            command = parse_command(data)
        except UnknownCommand as exc:
            self.logger.info(f"[command-reject] sid={sid} type={exc.tag}")
            self.broadcaster.send(sid, protocol.error(protocol.MSG_UNKNOWN_COMMAND))
            return
        except MalformedCommand as exc:
            self.logger.debug(f"[command-drop] sid={sid} reason={exc}")
            return

        if isinstance(command, JoinCommand):
            self.join(sid, command)
        elif isinstance(command, BetCommand):
            self.bet(sid, command)
        elif isinstance(command, ChatCommand):
            self.chat(sid, command)
        elif isinstance(command, ResetBalanceCommand):
            self.reset_balance(sid)
        elif isinstance(command, ListRoomsCommand):
            self.list_rooms(sid)
        else:
            raise TypeError(f"unhandled command {command!r}")

    def join(self, sid: str, command: JoinCommand) -> Player:
        conn = self.connect(sid)
        name = sanitize_name(command.name)
        room_id = sanitize_room_id(command.room_id)

        if conn.room_id is not None and conn.room_id != room_id:
            previous = self.registry.get(conn.room_id)
            if previous is not None:
                self._leave(previous, conn)
            self.broadcaster.unsubscribe(sid, conn.room_id)

        room = self.registry.get_or_create(room_id)
        while True:
            with room.lock:
                if not room.closed:
                    return self._seat(conn, room, name)
            # reaped between lookup and lock; a fresh room takes its place
            room = self.registry.get_or_create(room_id)

    def _seat(self, conn: Connection, room: Room, name: str) -> Player:
        sid = conn.sid
        with room.lock:
            player = Player(
                id=conn.player_id,
                name=name,
                sid=sid,
                balance=self.starting_balance,
                stats_key=room.stats_key_for(name),
            )
            room.players[player.id] = player
            room.last_active_at = self.now()
            conn.room_id = room.room_id
            self.broadcaster.subscribe(sid, room.room_id)
            self.logger.info(f"[join] room={room.room_id} player={player.id} name={name}")

            self.broadcaster.send(sid, Message(protocol.WELCOME, {'playerId': player.id}))
            self.broadcaster.send(sid, Message(protocol.ROOM, room.snapshot(self.now())))
            self.broadcaster.broadcast(room.room_id, protocol.system_chat(f"{name} đã vào phòng."))
            self._broadcast_snapshot(room)
        return player

    def bet(self, sid: str, command: BetCommand) -> None:
        room, player = self._current(sid)
        if player is None:
            return
        with room.lock:
            try:
                bet = room.ledger.place(player, command.side, command.amount, betting_open=room.state == BETTING)
            except BetRejected as exc:
                self.broadcaster.send(sid, protocol.error(exc.message))
                return
            self.logger.info(
                f"[bet] room={room.room_id} round={room.round_id} player={player.id} side={bet.side} amount={bet.amount}"
            )
            self._broadcast_snapshot(room)

    def chat(self, sid: str, command: ChatCommand) -> None:
        room, player = self._current(sid)
        if player is None or not command.text:
            return
        with room.lock:
            self.broadcaster.broadcast(room.room_id, protocol.chat(player.name, command.text))

    def reset_balance(self, sid: str) -> None:
        room, player = self._current(sid)
        if player is None:
            return
        with room.lock:
            player.balance = self.starting_balance
            self._broadcast_snapshot(room)

    def list_rooms(self, sid: str) -> None:
        self.broadcaster.send(sid, Message(protocol.ROOMS, {'rooms': self.registry.list()}))
