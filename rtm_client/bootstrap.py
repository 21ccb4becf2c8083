
from __future__ import annotations
from typing import Optional

from rtm_client.api import api_get
from rtm_client.config import Settings
from rtm_shared.errors import DecodeError
from rtm_shared.log import get_logger
from rtm_shared.utils import is_websocket_url

logger = get_logger(__name__)


class SessionBootstrapper:
    """
    Discovery handshake: trade the long-lived credential for a one-time
    WebSocket URL.

    The returned URL is only good for one dial, made immediately. Nothing
    here retries; every failure goes straight back to the caller.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    def bootstrap(self, credential: str) -> str:
        """
        Raises:
            TransportError: request failed or status was not 200
            DecodeError: response is not an {ok, url, error} envelope
            RemoteRejection: ok was false (e.g. "invalid_auth")
        """
        method = self.settings.discovery_method
        body = api_get(self.settings, method, {"token": credential}, stage="discovery")

        url = body.get('url')
        if not is_websocket_url(url):
            raise DecodeError(f"{method} response has no usable 'url': {url!r}")

        logger.debug("Discovery returned session endpoint", extra={"stage": "discovery"})
        return url
