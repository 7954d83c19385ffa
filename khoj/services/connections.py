# khoj/services/connections.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

log = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    user_id -> live socket for the real-time channel.

    One socket per user: registering again (reconnect, second tab) replaces the
    previous one. Delivery is best effort, with no queue and no retry; offline
    users pick things up from GET /notifications.
    """

    def __init__(self) -> None:
        self._sockets: Dict[str, Any] = {}

    def register(self, user_id: str, socket: Any) -> Optional[Any]:
        """Bind `socket` to the user. Returns the socket it replaced, if any."""
        previous = self._sockets.get(user_id)
        self._sockets[user_id] = socket
        log.info("User %s connected%s", user_id, " (replaced previous socket)" if previous else "")
        return previous

    def unregister(self, user_id: str, socket: Any) -> bool:
        # A late disconnect from an old socket must not evict the reconnect
        if self._sockets.get(user_id) is not socket:
            return False
        del self._sockets[user_id]
        log.info("User %s disconnected", user_id)
        return True

    def get(self, user_id: str) -> Optional[Any]:
        return self._sockets.get(user_id)

    def is_online(self, user_id: str) -> bool:
        return user_id in self._sockets

    def online_users(self) -> List[str]:
        return list(self._sockets)

    async def send(self, user_id: str, event: str, payload: Dict[str, Any]) -> bool:
        socket = self._sockets.get(user_id)
        if socket is None:
            return False
        try:
            await socket.send_json({"event": event, "data": payload})
            return True
        except Exception:
            log.exception("Dropping socket for user %s after failed send", user_id)
            self.unregister(user_id, socket)
            return False

    async def broadcast(self, user_ids: Iterable[str], event: str, payload: Dict[str, Any]) -> int:
        delivered = 0
        for uid in user_ids:
            if await self.send(uid, event, payload):
                delivered += 1
        return delivered
