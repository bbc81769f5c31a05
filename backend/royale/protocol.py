"""Wire envelope for the relay namespace.

Every frame is a JSON object with a ``type`` discriminator and a subset of
optional fields. Absent fields are left out of outbound frames, except
``score`` on ``opponent_state`` and ``opponent_lost`` which is always sent
(0 when the sender did not report one).
"""
import json
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

ROOM_CODE_CHARS = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 5
PLAYER_ID_CHARS = 'abcdefghijklmnopqrstuvwxyz0123456789'
PLAYER_ID_LENGTH = 8
GRID_SIZE = 4

# Inbound
CREATE = 'create'
JOIN = 'join'
MOVE = 'move'
STATE_UPDATE = 'state_update'
GAME_WON = 'game_won'
PLAYER_LOST = 'player_lost'
RESTART_REQUEST = 'restart_request'
RESTART_ACCEPT = 'restart_accept'
RESTART_REJECT = 'restart_reject'
RESTART_TYPES = (RESTART_REQUEST, RESTART_ACCEPT, RESTART_REJECT)

# Outbound
ROOM_CREATED = 'room_created'
ROOM_JOINED = 'room_joined'
GAME_START = 'game_start'
OPPONENT_MOVE = 'opponent_move'
OPPONENT_STATE = 'opponent_state'
OPPONENT_LOST = 'opponent_lost'
GAME_OVER = 'game_over'
ERROR = 'error'

# Types whose score is always present on the wire
_SCORED_TYPES = (OPPONENT_STATE, OPPONENT_LOST)
_STRING_FIELDS = ('room', 'direction', 'player_id', 'winner', 'message')

Grid = List[List[int]]


class ProtocolError(ValueError):
    """Raised for frames that do not decode into a valid envelope."""


def generate_room_code(length=ROOM_CODE_LENGTH):
    return ''.join(random.choices(ROOM_CODE_CHARS, k=length))


def generate_player_id(length=PLAYER_ID_LENGTH):
    return ''.join(random.choices(PLAYER_ID_CHARS, k=length))


def normalize_code(code: Optional[str]) -> str:
    return (code or '').strip().upper()


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_grid(grid) -> Grid:
    if not isinstance(grid, list) or len(grid) != GRID_SIZE:
        raise ProtocolError('grid must have %d rows' % GRID_SIZE)
    rows = []
    for row in grid:
        if not isinstance(row, list) or len(row) != GRID_SIZE:
            raise ProtocolError('grid rows must have %d cells' % GRID_SIZE)
        if not all(_is_int(cell) for cell in row):
            raise ProtocolError('grid cells must be integers')
        rows.append(list(row))
    return rows


@dataclass
class Message:
    type: str
    room: Optional[str] = None
    direction: Optional[str] = None
    player_id: Optional[str] = None
    grid: Optional[Grid] = None
    score: Optional[int] = None
    winner: Optional[str] = None
    message: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'type': self.type}
        for name in ('room', 'direction', 'player_id', 'grid'):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        if self.score is not None:
            payload['score'] = self.score
        elif self.type in _SCORED_TYPES:
            payload['score'] = 0
        for name in ('winner', 'message'):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return payload


def parse(raw) -> Message:
    """Decode an inbound frame (dict, JSON text or bytes) into a Message."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise ProtocolError('frame is not utf-8') from exc
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ProtocolError('frame is not json') from exc
    if not isinstance(raw, dict):
        raise ProtocolError('frame must be an object')

    msg_type = raw.get('type')
    if not isinstance(msg_type, str) or not msg_type:
        raise ProtocolError('missing type')

    fields: Dict[str, Any] = {}
    for name in _STRING_FIELDS:
        value = raw.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ProtocolError('%s must be a string' % name)
        fields[name] = value

    if raw.get('grid') is not None:
        fields['grid'] = _check_grid(raw['grid'])

    score = raw.get('score')
    if score is not None:
        if not _is_int(score):
            raise ProtocolError('score must be an integer')
        fields['score'] = score

    return Message(type=msg_type, **fields)


def error(text: str) -> Dict[str, Any]:
    return Message(type=ERROR, message=text).to_wire()
