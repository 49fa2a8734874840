import asyncio
import logging
import sys
from typing import Optional

import click

from salpakan.services.board import Cell, Piece
from .engine import ClientSyncEngine, Phase, Presenter
from .transport import SocketIOTransport


HELP = "Commands: '<row> <col>' taps a cell, 'ready', 'board', 'quit'."


class TextPresenter(Presenter):
    """Prints engine events to the terminal."""

    def __init__(self, echo=click.echo):
        self.echo = echo
        self.engine: Optional[ClientSyncEngine] = None

    def _board(self) -> None:
        if self.engine is not None:
            self.echo(self.engine.board.render())

    def selection_changed(self, cell: Optional[Cell]) -> None:
        if cell is not None:
            self.echo(f"Selected {cell}")

    def piece_moved(self, source: Cell, target: Cell, piece: Piece) -> None:
        self.echo(f"{piece.label()} {source} -> {target}")
        self._board()

    def piece_removed(self, cell: Cell, piece: Piece) -> None:
        self.echo(f"{piece.label()} at {cell} removed")

    def phase_changed(self, phase: Phase) -> None:
        self.echo(f"Phase: {phase.value}")

    def countdown_changed(self, text: Optional[str]) -> None:
        if text:
            self.echo(text)

    def ready_changed(self, local: bool, opponent: bool) -> None:
        if local and opponent:
            self.echo('Both players ready, waiting for the countdown...')
        elif local:
            self.echo('Ready. Waiting for opponent...')
        elif opponent:
            self.echo('Opponent is ready.')
        else:
            self.echo('Opponent is no longer ready.')


def handle_command(engine: ClientSyncEngine, line: str, echo=click.echo) -> bool:
    """Run one stdin command; returns False when the player quits."""
    parts = line.split()
    if not parts:
        return True
    command = parts[0].lower()
    if command in ('quit', 'exit'):
        return False
    if command == 'ready':
        if not engine.press_ready():
            echo('Ready already sent or not in setup.')
    elif command == 'board':
        echo(engine.board.render())
    elif len(parts) == 2 and all(p.lstrip('-').isdigit() for p in parts):
        engine.tap(int(parts[0]), int(parts[1]))
    else:
        echo(HELP)
    return True


async def play(url: str, room: Optional[str]) -> None:
    loop = asyncio.get_running_loop()
    transport = SocketIOTransport(url, room=room)
    presenter = TextPresenter()
    engine = ClientSyncEngine(transport, loop, presenter=presenter)
    presenter.engine = engine
    await transport.connect()
    click.echo(engine.board.render())
    click.echo(HELP)
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line or not handle_command(engine, line):
                break
    finally:
        engine.close()
        await transport.disconnect()


@click.command('salpakan-client')
@click.option('--url', envvar='SALPAKAN_URL', default='http://localhost:3000', show_default=True,
              help='Game server base URL.')
@click.option('--room', envvar='SALPAKAN_ROOM', default=None, help='Room to join (server default if omitted).')
@click.option('--log-level', default='WARNING', show_default=True)
def main(url: str, room: Optional[str], log_level: str) -> None:
    """Play a game from the terminal."""
    logging.basicConfig(level=log_level.upper(), format='%(asctime)s %(levelname)s %(name)s %(message)s')
    asyncio.run(play(url, room))


if __name__ == '__main__':
    main()
