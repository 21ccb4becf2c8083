import pytest

from rtm_client import api
from rtm_client.lookups import Channel, User, get_channel_info, get_user_info
from rtm_shared.errors import DecodeError, RemoteRejection, TransportError
from rtm_shared.utils import is_direct_message_channel


CHANNEL = {
    "id": "C024BE91L",
    "name": "fun",
    "is_channel": True,
    "created": 1360782804,
    "creator": "U024BE7LH",
    "is_archived": False,
    "is_general": False,
    "members": ["U024BE7LH", "U024BE7LJ"],
    "is_member": True,
    "last_read": "1401383885.000061",
    "unread_count": 0,
    "unread_count_display": 0,
    "topic": {"value": "Fun times", "creator": "U024BE7LV", "last_set": 1369677212},
    "purpose": {"value": "This channel is for fun", "creator": "U024BE7LH", "last_set": 1360782804},
    "latest": {"type": "message"},
}

USER = {
    "id": "U023BECGF",
    "team_id": "T021F9ZE2",
    "name": "bobby",
    "deleted": False,
    "color": "9f69e7",
    "profile": {
        "first_name": "Bobby",
        "last_name": "Tables",
        "real_name": "Bobby Tables",
        "email": "bobby@slack.com",
        "image_72": "https://example.test/72.png",
        "status_text": "ignored",
    },
    "is_admin": True,
    "is_owner": False,
    "has_2fa": True,
    "has_files": True,
    "tz": "America/Los_Angeles",
}


def test_get_channel_info(monkeypatch, fake_response, recording_get):
    get = recording_get(fake_response(200, {"ok": True, "channel": CHANNEL}))
    monkeypatch.setattr(api.requests, "get", get)

    channel = get_channel_info("tok", "C024BE91L")

    assert isinstance(channel, Channel)
    assert channel.name == "fun"
    assert channel.members == ["U024BE7LH", "U024BE7LJ"]
    assert channel.topic.value == "Fun times"
    assert channel.purpose.last_set == 1360782804
    assert get.calls[0]["url"] == "https://slack.com/api/channels.info"
    assert get.calls[0]["params"] == {"token": "tok", "channel": "C024BE91L"}


def test_direct_message_channel_refused_without_request(monkeypatch, recording_get):
    get = recording_get()
    monkeypatch.setattr(api.requests, "get", get)

    with pytest.raises(ValueError) as exc:
        get_channel_info("tok", "D024BE91L")

    assert "D024BE91L" in str(exc.value)
    assert get.calls == []


def test_get_user_info(monkeypatch, fake_response, recording_get):
    get = recording_get(fake_response(200, {"ok": True, "user": USER}))
    monkeypatch.setattr(api.requests, "get", get)

    user = get_user_info("tok", "U023BECGF")

    assert isinstance(user, User)
    assert user.name == "bobby"
    assert user.profile.real_name == "Bobby Tables"
    assert user.profile.image_72 == "https://example.test/72.png"
    assert user.has_2fa is True
    assert get.calls[0]["params"] == {"token": "tok", "user": "U023BECGF"}


def test_user_not_found(monkeypatch, fake_response, recording_get):
    monkeypatch.setattr(api.requests, "get", recording_get(fake_response(200, {"ok": False, "error": "user_not_found"})))

    with pytest.raises(RemoteRejection) as exc:
        get_user_info("tok", "U404")
    assert exc.value.error == "user_not_found"


def test_lookup_http_failure(monkeypatch, fake_response, recording_get):
    monkeypatch.setattr(api.requests, "get", recording_get(fake_response(502)))

    with pytest.raises(TransportError) as exc:
        get_channel_info("tok", "C1")
    assert exc.value.stage == "lookup"


@pytest.mark.parametrize("payload", [
    {"ok": True},
    {"ok": True, "channel": "C1"},
    {"ok": True, "channel": {"name": "no-id"}},
    {"ok": True, "channel": {"id": "C1", "topic": "flat"}},
])
def test_malformed_channel_payload(monkeypatch, fake_response, recording_get, payload):
    monkeypatch.setattr(api.requests, "get", recording_get(fake_response(200, payload)))

    with pytest.raises(DecodeError):
        get_channel_info("tok", "C1")


def test_direct_message_prefix():
    assert is_direct_message_channel("D12345")
    assert not is_direct_message_channel("C12345")
    assert not is_direct_message_channel("G12345")
