"""
In-process fan-out of sensor readings to WebSocket clients.

Clients are grouped in rooms named ``device-<deviceId>``. Sends are
fire-and-forget: a socket that fails to accept a message is dropped.
"""
import json
import logging
import threading
from typing import Any, Dict, Set

logger = logging.getLogger(__name__)


def room_for(device_id: str) -> str:
    return f"device-{device_id}"


class LiveUpdateHub:

    def __init__(self):
        self._lock = threading.Lock()
        self._clients: Set[Any] = set()
        self._rooms: Dict[str, Set[Any]] = {}

    def register(self, ws):
        with self._lock:
            self._clients.add(ws)
        logger.info("WebSocket client connected (%d total)", len(self._clients))

    def unregister(self, ws):
        with self._lock:
            self._clients.discard(ws)
            for members in self._rooms.values():
                members.discard(ws)
            self._rooms = {name: members for name, members in self._rooms.items() if members}
        logger.info("WebSocket client disconnected")

    def join(self, ws, device_id: str):
        with self._lock:
            self._rooms.setdefault(room_for(device_id), set()).add(ws)
        logger.info("Client joined room %s", room_for(device_id))

    def leave(self, ws, device_id: str):
        name = room_for(device_id)
        with self._lock:
            members = self._rooms.get(name)
            if members is not None:
                members.discard(ws)
                if not members:
                    del self._rooms[name]
        logger.info("Client left room %s", name)

    def room_members(self, device_id: str) -> int:
        with self._lock:
            return len(self._rooms.get(room_for(device_id), ()))

    def handle_message(self, ws, raw: str):
        """Applies a client control message: join-device / leave-device."""
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed WebSocket message")
            return
        if not isinstance(message, dict) or not message.get("deviceId"):
            return

        device_id = str(message["deviceId"])
        if message.get("event") == "join-device":
            self.join(ws, device_id)
        elif message.get("event") == "leave-device":
            self.leave(ws, device_id)

    def _send(self, targets, event: str, data: Dict[str, Any]):
        payload = json.dumps({"event": event, "data": data}, default=str)
        dead = []
        for ws in targets:
            try:
                ws.send(payload)
            except Exception:
                logger.debug("Dropping WebSocket client after failed send", exc_info=True)
                dead.append(ws)
        for ws in dead:
            self.unregister(ws)

    # broadcaster interface used by the ingest service
    def sensor_data_update(self, device_id: str, data: Dict[str, Any]):
        with self._lock:
            targets = list(self._rooms.get(room_for(device_id), ()))
        self._send(targets, "sensor-data-update", data)

    def all_devices_update(self, data: Dict[str, Any]):
        with self._lock:
            targets = list(self._clients)
        self._send(targets, "all-devices-update", data)
