from taixiu.protocol import Message

NAMESPACE = '/ws'
EVENT = 'message'


def room_channel(room_id: str) -> str:
    return f"room:{room_id}"


class SocketIOBroadcaster:
    """Push outbound messages to one connection or to a room's subscribers."""

    def __init__(self, socketio, namespace: str = NAMESPACE, event: str = EVENT):
        self.socketio = socketio
        self.namespace = namespace
        self.event = event

    def send(self, sid: str, message: Message) -> None:
        self.socketio.emit(self.event, message.to_dict(), to=sid, namespace=self.namespace)

    def broadcast(self, room_id: str, message: Message) -> None:
        self.socketio.emit(self.event, message.to_dict(), to=room_channel(room_id), namespace=self.namespace)

    def subscribe(self, sid: str, room_id: str) -> None:
        self.socketio.server.enter_room(sid, room_channel(room_id), namespace=self.namespace)

    def unsubscribe(self, sid: str, room_id: str) -> None:
        self.socketio.server.leave_room(sid, room_channel(room_id), namespace=self.namespace)
