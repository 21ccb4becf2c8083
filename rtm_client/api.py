
from __future__ import annotations
from typing import Any, Dict, Optional

import requests

from rtm_client.config import Settings
from rtm_shared.errors import DecodeError, RemoteRejection, TransportError
from rtm_shared.log import get_logger

logger = get_logger(__name__)


def api_get(settings: Settings, method: str, params: Dict[str, str], *, stage: str) -> Dict[str, Any]:
    """
    GET a Web API method and return its decoded {"ok": ...} envelope.

    Raises:
        TransportError: request could not be sent or status was not 200 (body is not read)
        DecodeError: body is not a JSON object with a boolean 'ok'
        RemoteRejection: 'ok' is false; carries the server's 'error' string
    """
    url = settings.method_url(method)
    try:
        resp = requests.get(url, params=params, timeout=settings.http_timeout)
    except requests.RequestException as e:
        logger.warning("GET %s failed: %s", method, e, extra={"stage": stage})
        raise TransportError(stage, f"error requesting {method}: {e}", e) from e

    if resp.status_code != 200:
        logger.warning("GET %s returned HTTP %s", method, resp.status_code, extra={"stage": stage})
        raise TransportError(stage, f"{method} request failed with HTTP {resp.status_code}")

    try:
        body = resp.json()
    except ValueError as e:
        raise DecodeError(f"Error decoding {method} response: {e}") from e

    if not isinstance(body, dict):
        raise DecodeError(f"{method} response must be a JSON object")
    if not isinstance(body.get('ok'), bool):
        raise DecodeError(f"{method} response is missing boolean 'ok'")

    if not body['ok']:
        error = _error_string(body.get('error'))
        logger.warning("%s rejected: %s", method, error, extra={"stage": stage})
        raise RemoteRejection(error)

    return body


def _error_string(error: Optional[Any]) -> str:
    if isinstance(error, str) and error:
        return error
    return "unknown_error"
