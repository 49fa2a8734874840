import logging
import time
from enum import Enum
from typing import Any, Callable, Optional

from salpakan import protocol
from salpakan.services.board import (
    BoardState,
    Cell,
    CombatPolicy,
    MoveError,
    MoveIntent,
    MoveResult,
    Piece,
    Side,
    apply_move,
    attacker_always_wins,
    in_bounds,
    in_deployment_rows,
)
from .countdown import Countdown


logger = logging.getLogger(__name__)

START_GRACE_MS = 1000


class Phase(str, Enum):
    SETUP = 'setup'
    PLAY = 'play'


class Presenter:
    """Receives board and countdown changes from the engine. Override what you draw."""

    def selection_changed(self, cell: Optional[Cell]) -> None:
        pass

    def piece_moved(self, source: Cell, target: Cell, piece: Piece) -> None:
        pass

    def piece_removed(self, cell: Cell, piece: Piece) -> None:
        pass

    def phase_changed(self, phase: Phase) -> None:
        pass

    def countdown_changed(self, text: Optional[str]) -> None:
        pass

    def ready_changed(self, local: bool, opponent: bool) -> None:
        pass


def wall_clock_ms() -> float:
    return time.time() * 1000


class ClientSyncEngine:
    """One player's view of a game: board, phase, selection and countdown.

    Taps, transport events and timer callbacks all arrive on the same
    event loop, so moves are applied strictly in arrival order.
    """

    def __init__(self, transport, loop, side: Optional[Side] = None,
                 presenter: Optional[Presenter] = None,
                 policy: CombatPolicy = attacker_always_wins,
                 clock: Callable[[], float] = wall_clock_ms,
                 grace_ms: int = START_GRACE_MS,
                 board: Optional[BoardState] = None):
        self.transport = transport
        self.loop = loop
        self.side = side
        self.presenter = presenter or Presenter()
        self.policy = policy
        self.clock = clock
        self.grace_ms = grace_ms
        self.board = board or BoardState.initial()
        self.phase = Phase.SETUP
        self.selected: Optional[Cell] = None
        self.ready_sent = False
        self.opponent_ready = False
        self.countdown: Optional[Countdown] = None
        self._grace_handle = None

        transport.on(protocol.JOINED, self.on_joined)
        transport.on(protocol.START_COUNTDOWN, self.on_start_countdown)
        transport.on(protocol.MOVE, self.on_remote_move)
        transport.on(protocol.OPPONENT_READY, self.on_opponent_ready)

    # ---- local input ----

    def tap(self, row: int, col: int) -> None:
        if not in_bounds(row, col):
            logger.warning(f"[tap-drop] ({row}, {col}) is off the board")
            return
        if self.side is None:
            logger.info(f"[tap-drop] ({row}, {col}) no side assigned")
            return
        if self.phase == Phase.SETUP:
            self._setup_tap((row, col))
        else:
            self._play_tap((row, col))

    def press_ready(self) -> bool:
        if self.phase != Phase.SETUP or self.ready_sent:
            return False
        if self.side is None:
            logger.info("[ready-drop] spectators cannot ready up")
            return False
        self.ready_sent = True
        self.transport.emit(protocol.READY, {'ready': True})
        logger.info(f"[ready] side={self.side.value}")
        self.presenter.ready_changed(True, self.opponent_ready)
        return True

    def _setup_tap(self, cell: Cell) -> None:
        # Setup rearrangement stays local and is never broadcast
        if not in_deployment_rows(self.side, cell[0]):
            return
        piece = self.board.at(*cell)
        if piece is not None and piece.side == self.side:
            self._select(cell)
            return
        if self.selected is not None and piece is None:
            source = self.selected
            self._select(None)
            self._apply(source, cell, self.side, setup=True)

    def _play_tap(self, cell: Cell) -> None:
        if self.selected is None:
            piece = self.board.at(*cell)
            if piece is not None and piece.side == self.side:
                self._select(cell)
            return
        source = self.selected
        self._select(None)
        if self._apply(source, cell, self.side) is not None:
            intent = MoveIntent(source[0], source[1], cell[0], cell[1])
            self.transport.emit(protocol.MOVE, intent.to_payload())

    def _select(self, cell: Optional[Cell]) -> None:
        if cell == self.selected:
            return
        self.selected = cell
        self.presenter.selection_changed(cell)

    # ---- board mutation ----

    def _apply(self, source: Cell, target: Cell, mover: Optional[Side],
               setup: bool = False) -> Optional[MoveResult]:
        """Single mutation path shared by local and remote moves."""
        try:
            result = apply_move(self.board, source, target, mover=mover, setup=setup, policy=self.policy)
        except MoveError as exc:
            logger.warning(f"[move-rejected] {source} -> {target}: {exc}")
            return None
        self.board = result.board
        for cell, piece in result.removed:
            self.presenter.piece_removed(cell, piece)
        if result.relocated:
            self.presenter.piece_moved(source, target, result.piece)
        logger.debug(f"[move] {source} -> {target} outcome={result.outcome}")
        return result

    # ---- transport events ----

    def on_joined(self, data: Any) -> None:
        if not isinstance(data, dict):
            logger.warning(f"[joined-drop] bad joined payload {data!r}")
            return
        side = data.get('side')
        self.side = Side(side) if side in ('A', 'B') else None
        logger.info(f"[joined] room={data.get('room')} side={side}")

    def on_opponent_ready(self, data: Any) -> None:
        ready = data.get('ready') if isinstance(data, dict) else None
        if not isinstance(ready, bool):
            logger.warning(f"[opponent-ready-drop] bad payload {data!r}")
            return
        if self.phase != Phase.SETUP or ready == self.opponent_ready:
            return
        # Display only: play still waits for startCountdown
        self.opponent_ready = ready
        self.presenter.ready_changed(self.ready_sent, ready)

    def on_remote_move(self, data: Any) -> None:
        try:
            intent = MoveIntent.from_payload(data)
        except MoveError as exc:
            logger.warning(f"[remote-move-drop] {exc}")
            return
        mover = self.side.opponent if self.side else None
        # Applied but never re-broadcast
        self._apply(intent.source, intent.target, mover)

    def on_start_countdown(self, data: Any) -> None:
        start_time = data.get('startTime') if isinstance(data, dict) else None
        if isinstance(start_time, bool) or not isinstance(start_time, (int, float)):
            logger.warning(f"[countdown-drop] bad startCountdown payload {data!r}")
            return
        if self.phase == Phase.PLAY or self.countdown is not None:
            logger.info(f"[countdown-dup] ignoring start_time={start_time}")
            return
        logger.info(f"[countdown] start_time={start_time} local_now={self.clock():.0f}")
        self.countdown = Countdown(start_time, self.loop, self.clock,
                                   on_tick=self._on_countdown_tick,
                                   on_zero=self._on_countdown_zero)
        self.countdown.start()

    # ---- countdown ----

    def _on_countdown_tick(self, seconds: int) -> None:
        self.presenter.countdown_changed(f"Game starts in: {seconds}")

    def _on_countdown_zero(self) -> None:
        self.phase = Phase.PLAY
        self._select(None)
        self.presenter.phase_changed(Phase.PLAY)
        self.presenter.countdown_changed('Go!')
        self._grace_handle = self.loop.call_later(self.grace_ms / 1000.0, self._clear_indicator)

    def _clear_indicator(self) -> None:
        self._grace_handle = None
        self.presenter.countdown_changed(None)

    def close(self) -> None:
        if self.countdown is not None:
            self.countdown.cancel()
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None
