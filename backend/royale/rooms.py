"""In-memory rooms and the registry that indexes them by code.

Locking is split in three scopes, always taken in this order:
registry lock (code map only), room lock (players, started, closed), then a
player's send lock (frame writes). The registry lock is never held together
with a room lock.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from royale.protocol import (
    ERROR,
    Grid,
    Message,
    generate_player_id,
    generate_room_code,
    normalize_code,
)

logger = logging.getLogger(__name__)

MAX_PLAYERS = 2
OPPONENT_DISCONNECTED = "L'adversaire s'est déconnecté"

Payload = Dict[str, Any]


class RoomError(Exception):
    """Base class for errors reported back to the client that caused them."""

    message = 'Erreur'

    def __init__(self, message=None):
        super().__init__(message or self.message)


class RoomNotFound(RoomError):
    message = 'Room introuvable'


class RoomFull(RoomError):
    message = 'Room pleine'


class AlreadyStarted(RoomError):
    message = 'Partie déjà en cours'


class Player:
    """One connected client. ``transport`` writes a payload to its socket."""

    def __init__(self, transport: Callable[[Payload], None], player_id: Optional[str] = None,
                 send_timeout: float = 2.0):
        self.id = player_id or generate_player_id()
        self._transport = transport
        self._send_lock = threading.Lock()
        self._send_timeout = send_timeout
        # Last self-reported state, informational only
        self.grid: Optional[Grid] = None
        self.score = 0
        self.lost = False
        self.won = False

    def send(self, payload: Payload) -> bool:
        """Write one frame; returns False if it was dropped."""
        if not self._send_lock.acquire(timeout=self._send_timeout):
            logger.warning(f"[send-timeout] player={self.id} type={payload.get('type')}")
            return False
        try:
            self._transport(payload)
            return True
        except Exception as exc:
            logger.warning(f"[send-failed] player={self.id} type={payload.get('type')} error={exc}")
            return False
        finally:
            self._send_lock.release()

    def to_dict(self):
        return {
            'id': self.id,
            'score': self.score,
            'grid': self.grid,
            'lost': self.lost,
            'won': self.won,
        }


class Room:
    def __init__(self, code: str):
        self.code = code
        self.players: List[Player] = []
        self.started = False
        self.closed = False
        self._lock = threading.Lock()

    def join(self, player: Player) -> bool:
        """Add a player; True when this join filled the room and started it."""
        with self._lock:
            if self.closed:
                raise RoomNotFound()
            if len(self.players) >= MAX_PLAYERS:
                raise RoomFull()
            if self.started:
                raise AlreadyStarted()
            self.players.append(player)
            if len(self.players) == MAX_PLAYERS:
                self.started = True
                return True
            return False

    def relay_to_others(self, sender_id: str, payload: Payload) -> int:
        with self._lock:
            delivered = 0
            for p in self.players:
                if p.id != sender_id and p.send(payload):
                    delivered += 1
            return delivered

    def broadcast_all(self, payload: Payload) -> int:
        with self._lock:
            delivered = 0
            for p in self.players:
                if p.send(payload):
                    delivered += 1
            return delivered

    def leave(self, player_id: str) -> int:
        """Drop a player, warn whoever remains, return the remaining count.

        A room that empties is marked closed so a join racing the deferred
        registry removal is refused as not found.
        """
        notice = Message(type=ERROR, message=OPPONENT_DISCONNECTED).to_wire()
        with self._lock:
            for p in self.players:
                if p.id != player_id:
                    p.send(notice)
            self.players = [p for p in self.players if p.id != player_id]
            remaining = len(self.players)
            if remaining == 0:
                self.closed = True
            return remaining

    def record(self, player: Player, **reported):
        """Store what a player reported about its own board (grid, score, lost, won)."""
        with self._lock:
            for name, value in reported.items():
                if name not in ('grid', 'score', 'lost', 'won'):
                    raise TypeError(f"unknown player field {name!r}")
                setattr(player, name, value)

    def reset_results(self):
        with self._lock:
            for p in self.players:
                p.lost = False
                p.won = False

    def has_player(self, player_id: str) -> bool:
        with self._lock:
            return any(p.id == player_id for p in self.players)

    def snapshot(self):
        with self._lock:
            return {
                'room': self.code,
                'started': self.started,
                'players': [p.to_dict() for p in self.players],
            }


class RoomRegistry:
    """Process-wide table of live rooms keyed by their shareable code."""

    def __init__(self, code_factory: Callable[[], str] = generate_room_code):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()
        self._code_factory = code_factory

    def create(self) -> Room:
        with self._lock:
            while True:
                code = self._code_factory()
                if code not in self._rooms:
                    break
            room = Room(code)
            self._rooms[code] = room
        logger.info(f"[room-created] room={code}")
        return room

    def lookup(self, code: Optional[str]) -> Optional[Room]:
        key = normalize_code(code)
        if not key:
            return None
        with self._lock:
            return self._rooms.get(key)

    def remove(self, code: str) -> None:
        with self._lock:
            room = self._rooms.pop(code, None)
        if room is not None:
            logger.info(f"[room-removed] room={code}")

    def codes(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __len__(self):
        with self._lock:
            return len(self._rooms)
