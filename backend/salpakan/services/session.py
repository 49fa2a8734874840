import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from salpakan import protocol
from .board import Side
from .relay import MoveRelay


logger = logging.getLogger(__name__)

# emit(event, payload, to) where ``to`` is a room name or a connection id
Emitter = Callable[[str, Dict[str, Any], str], None]


def now_ms() -> int:
    return int(time.time() * 1000)


class SessionCoordinator:
    """Readiness and countdown state for one game room.

    Socket.IO may dispatch events from different connections on different
    threads, so membership and readiness are only read and written under
    ``_lock``. Emission happens after the lock is released.
    """

    def __init__(self, room: str, emit: Emitter, clock: Callable[[], int] = now_ms,
                 party_size: int = 2, delay_ms: int = 5000):
        self.room = room
        self._emit = emit
        self._clock = clock
        self._lock = threading.Lock()
        self.party_size = party_size
        self.delay_ms = delay_ms
        self.members: Dict[str, Optional[Side]] = {}
        self.readiness: Dict[str, bool] = {}
        self.start_time: Optional[int] = None
        self.relay = MoveRelay(self.peers_of, emit)

    @property
    def countdown_started(self) -> bool:
        return self.start_time is not None

    def join(self, sid: str) -> Optional[Side]:
        """Register a connection and hand it the first free side, if any."""
        with self._lock:
            if sid in self.members:
                return self.members[sid]
            taken = set(self.members.values())
            side = next((s for s in Side if s not in taken), None)
            self.members[sid] = side
        logger.info(f"[join] room={self.room} sid={sid} side={side.value if side else None}")
        return side

    def peers_of(self, sid: str) -> List[str]:
        with self._lock:
            return [other for other in self.members if other != sid]

    def on_ready(self, sid: str, ready: bool = True) -> bool:
        """Record a ready flag; returns True only for the call that starts the countdown.

        Peers hear about every accepted change through ``opponentReady``;
        only ``startCountdown`` moves clients towards play.
        """
        outbox: List[Tuple[str, Dict[str, Any], str]] = []
        started = False
        with self._lock:
            if sid not in self.members:
                logger.warning(f"[ready-drop] room={self.room} sid={sid} not a member")
                return False
            if self.members[sid] is None:
                logger.info(f"[ready-ignored] room={self.room} sid={sid} spectator")
                return False
            if self.countdown_started:
                logger.info(f"[ready-late] room={self.room} sid={sid} countdown already at {self.start_time}")
                return False
            if self.readiness.get(sid) == ready:
                return False

            self.readiness[sid] = ready
            ready_count = sum(1 for flag in self.readiness.values() if flag)
            logger.info(f"[ready] room={self.room} sid={sid} ready={ready} count={ready_count}/{self.party_size}")
            for peer in self.members:
                if peer != sid:
                    outbox.append((protocol.OPPONENT_READY, {'ready': ready}, peer))

            if ready_count >= self.party_size and all(self.readiness.values()):
                self.start_time = self._clock() + self.delay_ms
                started = True
                logger.info(f"[countdown] room={self.room} start_time={self.start_time}")
                outbox.append((protocol.START_COUNTDOWN, {'startTime': self.start_time}, self.room))

        for event, payload, to in outbox:
            self._emit(event, payload, to)
        return started

    def on_disconnect(self, sid: str) -> None:
        # An already broadcast countdown is left running
        with self._lock:
            was_ready = self.readiness.pop(sid, False)
            self.members.pop(sid, None)
            peers = list(self.members) if was_ready and not self.countdown_started else []
            remaining = len(self.members)
        logger.info(f"[leave] room={self.room} sid={sid} remaining={remaining}")
        for peer in peers:
            self._emit(protocol.OPPONENT_READY, {'ready': False}, peer)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'room': self.room,
                'party_size': self.party_size,
                'members': {sid: side.value if side else None for sid, side in self.members.items()},
                'readiness': dict(self.readiness),
                'start_time': self.start_time,
            }


class SessionRegistry:
    """Maps rooms to their SessionCoordinator and connections to their room."""

    def __init__(self, emit: Emitter, clock: Callable[[], int] = now_ms,
                 party_size: int = 2, delay_ms: int = 5000):
        self._emit = emit
        self._clock = clock
        self._lock = threading.RLock()
        self.party_size = party_size
        self.delay_ms = delay_ms
        self.sessions: Dict[str, SessionCoordinator] = {}
        self._sid_to_room: Dict[str, str] = {}

    def get(self, room: str) -> Optional[SessionCoordinator]:
        with self._lock:
            return self.sessions.get(room)

    def session_for(self, sid: str) -> Optional[SessionCoordinator]:
        with self._lock:
            room = self._sid_to_room.get(sid)
            return self.sessions.get(room) if room else None

    def join(self, sid: str, room: str) -> SessionCoordinator:
        with self._lock:
            current = self._sid_to_room.get(sid)
            if current == room:
                return self.sessions[room]
            if current is not None:
                self.leave(sid)
            session = self.sessions.get(room)
            if session is None:
                session = SessionCoordinator(room, self._emit, self._clock, self.party_size, self.delay_ms)
                self.sessions[room] = session
            session.join(sid)
            self._sid_to_room[sid] = room
            return session

    def leave(self, sid: str) -> Optional[SessionCoordinator]:
        with self._lock:
            room = self._sid_to_room.pop(sid, None)
            session = self.sessions.get(room) if room else None
            if session is None:
                return None
            session.on_disconnect(sid)
            if not session.members:
                # Last connection gone: the room and its countdown are forgotten
                self.sessions.pop(room, None)
                logger.info(f"[room-closed] room={room}")
            return session

    def clear(self) -> None:
        with self._lock:
            self.sessions.clear()
            self._sid_to_room.clear()
