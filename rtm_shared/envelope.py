
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import json

from rtm_shared.errors import DecodeError, RemoteRejection
from rtm_shared.utils import is_strict_int


@dataclass
class OutboundMessage:
    """
    Request frame written to the RTM socket:
    {
    "id":      UINT64 (assigned by the session at send time),
    "type":    "STRING",
    "channel": "STRING",
    "text":    "STRING",
    "user":    "STRING (optional)"
    }

    Whatever the caller puts in ``id`` is overwritten by RealTimeSession.send.
    """
    type: str = "message"
    channel: str = ""
    text: str = ""
    user: Optional[str] = None
    id: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'id': self.id,
            'type': self.type,
            'channel': self.channel,
            'text': self.text,
        }
        if self.user is not None:
            result['user'] = self.user
        return result


@dataclass
class AckError:
    """Error object carried by a failed acknowledgement: {"code": INT, "msg": "STRING"}"""
    code: int
    msg: str

    @classmethod
    def from_dict(cls, data: Any) -> 'AckError':
        if not isinstance(data, dict):
            raise DecodeError("'error' must be an object")
        if not is_strict_int(data.get('code')):
            raise DecodeError("'error.code' must be an integer")
        if not isinstance(data.get('msg'), str):
            raise DecodeError("'error.msg' must be a string")
        return cls(code=data['code'], msg=data['msg'])

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'msg': self.msg}


@dataclass
class MessageAck:
    """
    Server acknowledgement of an OutboundMessage:
    {
    "ok":       BOOL,
    "reply_to": INT (id of the request being acknowledged),
    "ts":       "STRING" e.g. "1355517523.000005",
    "text":     "STRING" (possibly modified version of the request text),
    "error":    {"code": INT, "msg": "STRING"} (when ok is false)
    }
    """
    ok: bool
    reply_to: int
    ts: Optional[str] = None
    text: Optional[str] = None
    error: Optional[AckError] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MessageAck':
        """Create MessageAck from dictionary, validating required fields"""
        missing = {'ok', 'reply_to'} - set(data.keys())
        if missing:
            raise DecodeError(f"Missing required ack fields: {sorted(missing)}")

        if not isinstance(data['ok'], bool):
            raise DecodeError("'ok' must be a boolean")
        if not is_strict_int(data['reply_to']):
            raise DecodeError("'reply_to' must be an integer")

        ts = data.get('ts')
        if ts is not None and not isinstance(ts, str):
            raise DecodeError("'ts' must be a string")
        text = data.get('text')
        if text is not None and not isinstance(text, str):
            raise DecodeError("'text' must be a string")

        error = data.get('error')
        return cls(
            ok=data['ok'],
            reply_to=data['reply_to'],
            ts=ts,
            text=text,
            error=AckError.from_dict(error) if error is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'ok': self.ok, 'reply_to': self.reply_to}
        if self.ts is not None:
            result['ts'] = self.ts
        if self.text is not None:
            result['text'] = self.text
        if self.error is not None:
            result['error'] = self.error.to_dict()
        return result

    def raise_for_error(self) -> None:
        """Raise RemoteRejection if the server refused the request."""
        if self.ok:
            return
        if self.error is None:
            raise RemoteRejection("request rejected without error details")
        raise RemoteRejection(self.error.msg, self.error.code)


@dataclass
class EventMessage:
    """
    Server-pushed event. Only ``type`` is required; the whole decoded object
    is kept in ``data`` so fields this client does not model are not lost.
    """
    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventMessage':
        if 'type' not in data:
            raise DecodeError("Missing required field: 'type'")
        if not isinstance(data['type'], str):
            raise DecodeError("'type' must be a string")
        return cls(type=data['type'], data=dict(data))

    @property
    def channel(self) -> Optional[str]:
        return self.data.get('channel')

    @property
    def text(self) -> Optional[str]:
        return self.data.get('text')

    @property
    def user(self) -> Optional[str]:
        return self.data.get('user')

    @property
    def ts(self) -> Optional[str]:
        return self.data.get('ts')

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.data)
        result['type'] = self.type
        return result


InboundMessage = Union[EventMessage, MessageAck]
Encodable = Union[OutboundMessage, MessageAck, EventMessage]


def encode(message: Encodable) -> str:
    """Serialize a frame to compact JSON text"""
    return json.dumps(message.to_dict(), separators=(',', ':'))


def decode(raw: Union[str, bytes]) -> InboundMessage:
    """Parse one inbound frame into an EventMessage or a MessageAck"""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(f"Frame is not valid UTF-8: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(f"Frame must be a JSON object, got {type(data).__name__}")

    # acks carry reply_to and ok; a typed frame echoing reply_to without ok is an event
    if 'reply_to' in data and ('ok' in data or 'type' not in data):
        return MessageAck.from_dict(data)
    return EventMessage.from_dict(data)
