"""Wire envelopes exchanged over the ``/ws`` namespace.

Clients emit ``command`` events carrying ``{"type": ..., ...}``; the server
answers with ``message`` events carrying ``{"type": ..., "payload": ...}``.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Union

CHAT_MAX_LEN = 120

# Inbound tags
JOIN = 'JOIN'
BET = 'BET'
CHAT = 'CHAT'
RESET_BALANCE = 'RESET_BALANCE'
LIST_ROOMS = 'LIST_ROOMS'

# Outbound tags
WELCOME = 'WELCOME'
ROOM = 'ROOM'
STATE = 'STATE'
COUNTDOWN = 'COUNTDOWN'
RESULT = 'RESULT'
ERR = 'ERR'
ROOMS = 'ROOMS'

MSG_UNKNOWN_COMMAND = 'Lệnh không hợp lệ.'


class MalformedCommand(ValueError):
    pass


class UnknownCommand(ValueError):
    def __init__(self, tag: str):
        super().__init__(f"unknown command type {tag!r}")
        self.tag = tag


@dataclass(frozen=True)
class JoinCommand:
    room_id: Any
    name: Any


@dataclass(frozen=True)
class BetCommand:
    side: Any
    amount: Any


@dataclass(frozen=True)
class ChatCommand:
    text: str


@dataclass(frozen=True)
class ResetBalanceCommand:
    pass


@dataclass(frozen=True)
class ListRoomsCommand:
    pass


Command = Union[JoinCommand, BetCommand, ChatCommand, ResetBalanceCommand, ListRoomsCommand]


def _chat_text(raw) -> str:
    if raw is None:
        return ''
    return str(raw).strip()[:CHAT_MAX_LEN]


_PARSERS = {
    JOIN: lambda d: JoinCommand(room_id=d.get('roomId'), name=d.get('name')),
    BET: lambda d: BetCommand(side=d.get('side'), amount=d.get('amount')),
    CHAT: lambda d: ChatCommand(text=_chat_text(d.get('text'))),
    RESET_BALANCE: lambda d: ResetBalanceCommand(),
    LIST_ROOMS: lambda d: ListRoomsCommand(),
}


def parse_command(data) -> Command:
    """Turn a raw envelope (dict or JSON text) into a typed command.

    Raises MalformedCommand when the envelope cannot be read at all and
    UnknownCommand when it is well formed but carries an unsupported tag.
    """
    if isinstance(data, (bytes, bytearray)):
        data = data.decode('utf-8', errors='replace')
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise MalformedCommand('envelope is not valid JSON') from exc
    if not isinstance(data, dict):
        raise MalformedCommand('envelope must be an object')
    tag = data.get('type')
    if not isinstance(tag, str):
        raise MalformedCommand('envelope has no type')
    parser = _PARSERS.get(tag)
    if parser is None:
        raise UnknownCommand(tag)
    return parser(data)


@dataclass(frozen=True)
class Message:
    type: str
    payload: Dict[str, Any]

    def to_dict(self):
        return {'type': self.type, 'payload': self.payload}


def error(message: str) -> Message:
    return Message(ERR, {'message': message})


def chat(sender: str, text: str) -> Message:
    return Message(CHAT, {'from': sender, 'text': text})


def system_chat(text: str) -> Message:
    return Message(CHAT, {'system': True, 'text': text})
