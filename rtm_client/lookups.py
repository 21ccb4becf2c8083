
from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from rtm_client.api import api_get
from rtm_client.config import Settings
from rtm_shared.errors import DecodeError
from rtm_shared.utils import is_direct_message_channel


def _pick(cls, data: Any, name: str) -> Dict[str, Any]:
    """Keep only the keys ``cls`` declares; anything else in the payload is ignored"""
    if not isinstance(data, dict):
        raise DecodeError(f"'{name}' must be an object")
    known = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in known}


@dataclass
class ChannelInfo:
    """Topic or purpose of a channel, as last set by a user"""
    value: str = ""
    creator: str = ""
    last_set: int = 0

    @classmethod
    def from_dict(cls, data: Any, name: str = "topic") -> 'ChannelInfo':
        return cls(**_pick(cls, data, name))


@dataclass
class Channel:
    id: str
    name: str = ""
    is_channel: bool = False
    created: int = 0
    creator: str = ""
    is_archived: bool = False
    is_general: bool = False
    members: List[str] = field(default_factory=list)
    is_member: bool = False
    last_read: str = ""
    unread_count: int = 0
    unread_count_display: int = 0
    topic: ChannelInfo = field(default_factory=ChannelInfo)
    purpose: ChannelInfo = field(default_factory=ChannelInfo)

    @classmethod
    def from_dict(cls, data: Any) -> 'Channel':
        values = _pick(cls, data, "channel")
        if not isinstance(values.get('id'), str):
            raise DecodeError("'channel.id' must be a string")
        if 'topic' in values:
            values['topic'] = ChannelInfo.from_dict(values['topic'], "topic")
        if 'purpose' in values:
            values['purpose'] = ChannelInfo.from_dict(values['purpose'], "purpose")
        return cls(**values)


@dataclass
class UserProfile:
    first_name: str = ""
    last_name: str = ""
    real_name: str = ""
    email: str = ""
    skype: str = ""
    phone: str = ""
    image_24: str = ""
    image_32: str = ""
    image_48: str = ""
    image_72: str = ""
    image_192: str = ""


@dataclass
class User:
    id: str
    team_id: str = ""
    name: str = ""
    deleted: bool = False
    color: str = ""
    profile: UserProfile = field(default_factory=UserProfile)
    is_admin: bool = False
    is_owner: bool = False
    has_2fa: bool = False
    has_files: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> 'User':
        values = _pick(cls, data, "user")
        if not isinstance(values.get('id'), str):
            raise DecodeError("'user.id' must be a string")
        if 'profile' in values:
            values['profile'] = UserProfile(**_pick(UserProfile, values['profile'], "profile"))
        return cls(**values)


def get_channel_info(credential: str, channel_id: str, settings: Optional[Settings] = None) -> Channel:
    """
    Fetch metadata for a channel. Direct message conversations are not
    channels and are refused with ValueError before any request is made.
    """
    if is_direct_message_channel(channel_id):
        raise ValueError(f"channel ID '{channel_id}' is not a channel, but a direct message")

    settings = settings or Settings()
    body = api_get(settings, "channels.info", {"token": credential, "channel": channel_id}, stage="lookup")
    if 'channel' not in body:
        raise DecodeError(f"channels.info response for {channel_id} has no 'channel'")
    return Channel.from_dict(body['channel'])


def get_user_info(credential: str, user_id: str, settings: Optional[Settings] = None) -> User:
    """Fetch profile information for a user"""
    settings = settings or Settings()
    body = api_get(settings, "users.info", {"token": credential, "user": user_id}, stage="lookup")
    if 'user' not in body:
        raise DecodeError(f"users.info response for {user_id} has no 'user'")
    return User.from_dict(body['user'])
