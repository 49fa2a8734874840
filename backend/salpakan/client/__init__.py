"""Client side of a game: local board, tap handling and the anchored countdown."""

from .engine import ClientSyncEngine, Phase, Presenter

__all__ = ['ClientSyncEngine', 'Phase', 'Presenter']
