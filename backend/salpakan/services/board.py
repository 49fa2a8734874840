"""Board model: a 9x8 grid of optional pieces and the move contract.

BoardState is immutable. ``apply_move`` returns a new board and never
touches the one it was given, so the client can swap its reference only
when a move succeeds.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple


BOARD_COLS = 9
BOARD_ROWS = 8

Cell = Tuple[int, int]


class Side(str, Enum):
    A = 'A'
    B = 'B'

    @property
    def opponent(self) -> 'Side':
        return Side.B if self is Side.A else Side.A


# Rows each side may rearrange its pieces within during setup
DEPLOYMENT_ROWS: Dict[Side, range] = {
    Side.B: range(0, 3),
    Side.A: range(5, 8),
}

# 21 ranks per side, in placement order
PIECE_ORDER: List[str] = [
    '5*G', '4*G', '3*G', '2*G', '1*G',
    'COL', 'LtCol', 'MAJ', 'CPT', '1LT', '2LT', 'SGT',
    'PVT', 'PVT', 'PVT', 'PVT', 'PVT', 'PVT',
    'SPY', 'SPY', 'FLG',
]

ALL_COLS = list(range(BOARD_COLS))

# (row, columns) filled in order with PIECE_ORDER
DEPLOYMENT_TEMPLATE: Dict[Side, List[Tuple[int, List[int]]]] = {
    Side.B: [
        (0, [3, 4, 5]),
        (1, ALL_COLS),
        (2, ALL_COLS),
    ],
    Side.A: [
        (5, [0, 3, 4, 5, 6]),
        (6, [1, 2, 3, 4, 5, 7, 8]),
        (7, ALL_COLS),
    ],
}


class MoveError(ValueError):
    """A move that breaks the occupancy contract or is malformed."""


class Outcome(str, Enum):
    ATTACKER_WINS = 'attacker_wins'
    DEFENDER_WINS = 'defender_wins'
    BOTH_REMOVED = 'both_removed'


CombatPolicy = Callable[[str, str], Outcome]


def attacker_always_wins(attacker_rank: str, defender_rank: str) -> Outcome:
    return Outcome.ATTACKER_WINS


@dataclass(frozen=True)
class Piece:
    rank: str
    side: Side

    def label(self) -> str:
        return f"{self.side.value}:{self.rank}"


def in_bounds(row: int, col: int) -> bool:
    return 0 <= row < BOARD_ROWS and 0 <= col < BOARD_COLS


def in_deployment_rows(side: Side, row: int) -> bool:
    return row in DEPLOYMENT_ROWS[side]


@dataclass(frozen=True)
class BoardState:
    cells: Tuple[Tuple[Optional[Piece], ...], ...] = field(
        default_factory=lambda: tuple((None,) * BOARD_COLS for _ in range(BOARD_ROWS))
    )

    @classmethod
    def empty(cls) -> 'BoardState':
        return cls()

    @classmethod
    def initial(cls) -> 'BoardState':
        """Board with both sides placed per the deployment template."""
        placements: Dict[Cell, Optional[Piece]] = {}
        for side, rows in DEPLOYMENT_TEMPLATE.items():
            ranks = iter(PIECE_ORDER)
            for row, cols in rows:
                for col in cols:
                    placements[(row, col)] = Piece(next(ranks), side)
        return cls.empty().replace(placements)

    def at(self, row: int, col: int) -> Optional[Piece]:
        if not in_bounds(row, col):
            raise MoveError(f"cell ({row}, {col}) is off the board")
        return self.cells[row][col]

    def replace(self, updates: Dict[Cell, Optional[Piece]]) -> 'BoardState':
        rows = [list(r) for r in self.cells]
        for (row, col), piece in updates.items():
            if not in_bounds(row, col):
                raise MoveError(f"cell ({row}, {col}) is off the board")
            rows[row][col] = piece
        return BoardState(tuple(tuple(r) for r in rows))

    def occupied(self) -> Iterator[Tuple[Cell, Piece]]:
        for row, cells in enumerate(self.cells):
            for col, piece in enumerate(cells):
                if piece is not None:
                    yield (row, col), piece

    def count(self, side: Optional[Side] = None) -> int:
        return sum(1 for _, p in self.occupied() if side is None or p.side == side)

    def render(self) -> str:
        header = '    ' + ''.join(f"{c:^7}" for c in range(BOARD_COLS))
        lines = [header]
        for row, cells in enumerate(self.cells):
            body = ''.join(f"{(p.label() if p else '.'):^7}" for p in cells)
            lines.append(f"{row:>2}  {body}")
        return '\n'.join(lines)


@dataclass(frozen=True)
class MoveIntent:
    from_row: int
    from_col: int
    to_row: int
    to_col: int

    @property
    def source(self) -> Cell:
        return (self.from_row, self.from_col)

    @property
    def target(self) -> Cell:
        return (self.to_row, self.to_col)

    @classmethod
    def from_payload(cls, data) -> 'MoveIntent':
        """Parse a ``move`` event payload, rejecting malformed coordinates."""
        if not isinstance(data, dict):
            raise MoveError(f"move payload must be an object, got {type(data).__name__}")
        values = []
        for key in ('fromRow', 'fromCol', 'toRow', 'toCol'):
            value = data.get(key)
            # bool is an int subclass but never a coordinate
            if isinstance(value, bool) or not isinstance(value, int):
                raise MoveError(f"move payload field {key!r} must be an integer, got {value!r}")
            values.append(value)
        intent = cls(*values)
        for row, col in (intent.source, intent.target):
            if not in_bounds(row, col):
                raise MoveError(f"cell ({row}, {col}) is off the board")
        return intent

    def to_payload(self) -> Dict[str, int]:
        return {
            'fromRow': self.from_row,
            'fromCol': self.from_col,
            'toRow': self.to_row,
            'toCol': self.to_col,
        }


@dataclass(frozen=True)
class MoveResult:
    board: BoardState
    piece: Piece
    removed: Tuple[Tuple[Cell, Piece], ...] = ()
    outcome: Optional[Outcome] = None

    @property
    def relocated(self) -> bool:
        return self.outcome in (None, Outcome.ATTACKER_WINS)


def apply_move(
    board: BoardState,
    source: Cell,
    target: Cell,
    mover: Optional[Side] = None,
    setup: bool = False,
    policy: CombatPolicy = attacker_always_wins,
) -> MoveResult:
    """Move the piece at ``source`` to ``target`` and return the new board.

    ``mover`` defaults to the owner of the source piece (remote moves).
    With ``setup`` set, the target must be an empty cell in the mover's
    deployment rows. Raises MoveError without touching ``board``.
    """
    piece = board.at(*source)
    defender = board.at(*target)
    if piece is None:
        raise MoveError(f"no piece at source cell {source}")
    mover = mover or piece.side
    if piece.side != mover:
        raise MoveError(f"piece at {source} belongs to side {piece.side.value}, not {mover.value}")
    if defender is not None and defender.side == piece.side:
        raise MoveError(f"destination {target} holds a friendly piece")

    if setup:
        if defender is not None:
            raise MoveError(f"setup destination {target} is occupied")
        if not in_deployment_rows(mover, source[0]) or not in_deployment_rows(mover, target[0]):
            raise MoveError(f"setup move {source} -> {target} leaves side {mover.value}'s deployment rows")

    if defender is None:
        new_board = board.replace({source: None, target: piece})
        return MoveResult(new_board, piece)

    outcome = policy(piece.rank, defender.rank)
    if outcome == Outcome.ATTACKER_WINS:
        updates = {source: None, target: piece}
        removed = ((target, defender),)
    elif outcome == Outcome.DEFENDER_WINS:
        updates = {source: None}
        removed = ((source, piece),)
    elif outcome == Outcome.BOTH_REMOVED:
        updates = {source: None, target: None}
        removed = ((target, defender), (source, piece))
    else:
        raise MoveError(f"combat policy returned unknown outcome {outcome!r}")
    return MoveResult(board.replace(updates), piece, removed, outcome)
