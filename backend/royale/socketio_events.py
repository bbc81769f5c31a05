import threading
from typing import Dict, Optional

from flask import current_app, request

from royale.protocol import (
    CREATE,
    GAME_OVER,
    GAME_START,
    GAME_WON,
    JOIN,
    MOVE,
    OPPONENT_LOST,
    OPPONENT_MOVE,
    OPPONENT_STATE,
    PLAYER_LOST,
    RESTART_ACCEPT,
    RESTART_TYPES,
    ROOM_CREATED,
    ROOM_JOINED,
    STATE_UPDATE,
    Message,
    ProtocolError,
    error,
    parse,
)
from royale.rooms import Player, Room, RoomError, RoomNotFound, RoomRegistry

NAMESPACE = '/ws'


class Connection:
    """Per-socket state: the player and the room it currently sits in."""

    def __init__(self, player: Player):
        self.player = player
        self.room: Optional[Room] = None
        # Set on disconnect; frames still in flight are dropped
        self.closed = False
        self.lock = threading.Lock()


class RelayHandler:
    """Socket.IO handlers that pair clients into rooms and relay their frames.

    Each client's events arrive in order on its own worker; the connection
    lock only guards against a disconnect overlapping a frame in flight.
    """

    def __init__(self, registry: RoomRegistry, socketio, namespace: str = NAMESPACE):
        self.registry = registry
        self.socketio = socketio
        self.namespace = namespace
        self._connections: Dict[str, Connection] = {}
        self._connections_lock = threading.Lock()
        self._lobby_handlers = {
            CREATE: self._handle_create,
            JOIN: self._handle_join,
        }
        self._room_handlers = {
            MOVE: self._handle_move,
            STATE_UPDATE: self._handle_state_update,
            GAME_WON: self._handle_game_won,
            PLAYER_LOST: self._handle_player_lost,
        }
        for restart_type in RESTART_TYPES:
            self._room_handlers[restart_type] = self._handle_restart

    # ---- socket lifecycle ----

    def on_connect(self, auth=None):
        sid = request.sid
        player = Player(
            transport=lambda payload: self._emit(sid, payload),
            send_timeout=current_app.config.get('SEND_LOCK_TIMEOUT_SEC', 2.0),
        )
        with self._connections_lock:
            self._connections[sid] = Connection(player)
        current_app.logger.info(f"[player-connected] player={player.id}")

    def on_disconnect(self, reason=None):
        with self._connections_lock:
            conn = self._connections.pop(request.sid, None)
        if conn is None:
            return
        with conn.lock:
            conn.closed = True
            room, conn.room = conn.room, None
        current_app.logger.info(f"[player-disconnected] player={conn.player.id} reason={reason}")
        if room is not None:
            self._leave(conn.player, room)

    def on_message(self, data):
        with self._connections_lock:
            conn = self._connections.get(request.sid)
        if conn is None:
            return
        try:
            msg = parse(data)
        except ProtocolError as exc:
            current_app.logger.debug(f"[frame-dropped] player={conn.player.id} error={exc}")
            return

        with conn.lock:
            if conn.closed:
                return
            handler = self._lobby_handlers.get(msg.type)
            if handler is not None:
                handler(conn, msg)
                return
            handler = self._room_handlers.get(msg.type)
            if handler is None or conn.room is None:
                return
            handler(conn, conn.room, msg)

    # ---- lobby ----

    def _handle_create(self, conn: Connection, msg: Message):
        room = self.registry.create()
        try:
            room.join(conn.player)
        except RoomError as exc:
            conn.player.send(error(str(exc)))
            return
        self._enter(conn, room)
        conn.player.send(Message(type=ROOM_CREATED, room=room.code, player_id=conn.player.id).to_wire())

    def _handle_join(self, conn: Connection, msg: Message):
        player = conn.player
        room = self.registry.lookup(msg.room)
        if room is not None and room is conn.room:
            player.send(Message(type=ROOM_JOINED, room=room.code, player_id=player.id).to_wire())
            return
        try:
            if room is None:
                raise RoomNotFound()
            started = room.join(player)
        except RoomError as exc:
            player.send(error(str(exc)))
            return

        self._enter(conn, room)
        player.send(Message(type=ROOM_JOINED, room=room.code, player_id=player.id).to_wire())
        if started:
            room.broadcast_all(Message(type=GAME_START, room=room.code).to_wire())
            current_app.logger.info(f"[game-start] room={room.code}")

    def _enter(self, conn: Connection, room: Room):
        previous, conn.room = conn.room, room
        if previous is not None and previous is not room:
            self._leave(conn.player, previous)

    def _leave(self, player: Player, room: Room):
        remaining = room.leave(player.id)
        current_app.logger.info(f"[player-left] player={player.id} room={room.code} remaining={remaining}")
        if remaining == 0:
            # Registry removal runs off this worker, after the notice
            self.socketio.start_background_task(self.registry.remove, room.code)

    # ---- in-room relay ----

    def _handle_move(self, conn: Connection, room: Room, msg: Message):
        player = conn.player
        room.relay_to_others(player.id, Message(
            type=OPPONENT_MOVE,
            direction=msg.direction,
            player_id=player.id,
        ).to_wire())

    def _handle_state_update(self, conn: Connection, room: Room, msg: Message):
        player = conn.player
        if msg.grid is not None:
            room.record(player, grid=msg.grid, score=msg.score or 0)
        else:
            room.record(player, score=msg.score or 0)
        room.relay_to_others(player.id, Message(
            type=OPPONENT_STATE,
            grid=msg.grid,
            score=msg.score,
        ).to_wire())

    def _handle_game_won(self, conn: Connection, room: Room, msg: Message):
        player = conn.player
        room.record(player, won=True)
        room.broadcast_all(Message(type=GAME_OVER, winner=player.id).to_wire())
        current_app.logger.info(f"[game-won] player={player.id} room={room.code}")

    def _handle_player_lost(self, conn: Connection, room: Room, msg: Message):
        player = conn.player
        if msg.score is not None:
            room.record(player, lost=True, score=msg.score)
        else:
            room.record(player, lost=True)
        room.relay_to_others(player.id, Message(type=OPPONENT_LOST, score=msg.score).to_wire())

    def _handle_restart(self, conn: Connection, room: Room, msg: Message):
        if msg.type == RESTART_ACCEPT:
            room.reset_results()
        room.relay_to_others(conn.player.id, Message(type=msg.type).to_wire())

    def _emit(self, sid: str, payload):
        self.socketio.emit('message', payload, to=sid, namespace=self.namespace)


def register_socketio_handlers(socketio, handler: RelayHandler) -> None:
    """Bind the relay handler's callbacks on its namespace.

    Clients reach it through the Socket.IO endpoint (``/socket.io/``) on
    namespace ``/ws``, not through a plain WebSocket at ``/ws``.
    """
    socketio.on_event('connect', handler.on_connect, namespace=handler.namespace)
    socketio.on_event('disconnect', handler.on_disconnect, namespace=handler.namespace)
    socketio.on_event('message', handler.on_message, namespace=handler.namespace)
