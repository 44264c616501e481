import logging

from flask_sock import Sock
from simple_websocket import ConnectionClosed

logger = logging.getLogger(__name__)


def init_sockets(app, hub):
    """Mounts the /ws live-update channel backed by ``hub``."""
    sock = Sock(app)

    @sock.route("/ws")
    def live_updates(ws):
        hub.register(ws)
        try:
            while True:
                message = ws.receive()
                if message is not None:
                    hub.handle_message(ws, message)
        except ConnectionClosed:
            logger.debug("WebSocket closed by client")
        finally:
            hub.unregister(ws)

    return sock
