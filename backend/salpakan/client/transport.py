import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Set
from urllib.parse import urlencode

import socketio
from socketio.exceptions import SocketIOError

from salpakan import protocol


logger = logging.getLogger(__name__)


class SocketIOTransport:
    """Duplex event channel to the game server over Socket.IO.

    ``emit`` is fire-and-forget so it can be called from plain callbacks
    running on the event loop; send failures are logged and dropped.
    """

    def __init__(self, url: str, room: Optional[str] = None,
                 namespace: str = protocol.NAMESPACE,
                 client: Optional[socketio.AsyncClient] = None):
        self.url = url
        self.room = room
        self.namespace = namespace
        # Resuming a dropped game is not supported, so never reconnect
        self.sio = client or socketio.AsyncClient(reconnection=False)
        self._pending: Set[asyncio.Future] = set()

    async def connect(self) -> None:
        url = self.url
        if self.room:
            url = f"{url}?{urlencode({'room': self.room})}"
        await self.sio.connect(url, namespaces=[self.namespace])
        logger.info(f"[connect] url={self.url} room={self.room} sid={self.sio.get_sid(self.namespace)}")

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.sio.on(event, handler, namespace=self.namespace)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        task = asyncio.ensure_future(self._send(event, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, event: str, payload: Dict[str, Any]) -> None:
        try:
            await self.sio.emit(event, payload, namespace=self.namespace)
        except SocketIOError as exc:
            logger.warning(f"[send-drop] event={event} payload={payload} {exc}")

    async def disconnect(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.sio.disconnect()
