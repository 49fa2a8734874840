import logging
from typing import Any, Callable, Dict, Iterable

from salpakan import protocol
from .board import MoveError, MoveIntent


logger = logging.getLogger(__name__)


class MoveRelay:
    """Forward move intents to the other connections of a room.

    Delivery is at most once and best effort: nothing is queued, retried
    or acknowledged, and the relay keeps no board.
    """

    def __init__(self, peers: Callable[[str], Iterable[str]],
                 emit: Callable[[str, Dict[str, Any], str], None]):
        self._peers = peers
        self._emit = emit

    def on_move(self, sender_id: str, data: Any) -> int:
        """Relay ``data`` verbatim; returns how many peers it was handed to."""
        try:
            MoveIntent.from_payload(data)
        except MoveError as exc:
            logger.warning(f"[relay-drop] sender={sender_id} malformed move: {exc}")
            return 0

        forwarded = 0
        for peer in self._peers(sender_id):
            try:
                self._emit(protocol.MOVE, data, peer)
                forwarded += 1
            except Exception as exc:
                logger.warning(f"[relay-drop] sender={sender_id} peer={peer} {exc}")
        logger.info(f"[relay] sender={sender_id} move={data} peers={forwarded}")
        return forwarded
