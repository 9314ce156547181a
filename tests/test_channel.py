import base64
import json

import pytest
import responses

from imserverkit.channel import (
    send_channel_update,
    send_channel_update_to_group,
    send_channel_update_to_user,
    send_channel_update_with_from_uid,
)
from imserverkit.client import IMClient, IMError
from imserverkit.constants import ChannelType
from imserverkit.messages import ContentType
from imserverkit.models import ChannelReq, setting_from_uint8

API = "http://im.test"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        mock.add(responses.POST, API + "/message/send", json={"data": {}})
        yield mock


@pytest.fixture
def client():
    return IMClient(API)


def _sent(rsps):
    body = json.loads(rsps.calls[0].request.body)
    payload = json.loads(base64.b64decode(body["payload"]))
    return body, payload


def test_update_with_from_uid(rsps, client):
    send_channel_update_with_from_uid(
        client, ChannelReq("u1", 1), ChannelReq("g9", 2), "sender"
    )
    body, payload = _sent(rsps)
    assert body["channel_id"] == "u1"
    assert body["channel_type"] == 1
    assert body["from_uid"] == "sender"
    assert setting_from_uint8(body["setting"]).no_update_conversation is True
    assert payload["cmd"] == "channelUpdate"
    assert payload["param"] == {"channel_id": "g9", "channel_type": 2}
    assert payload["type"] == ContentType.CMD


def test_update_has_empty_sender(rsps, client):
    result = send_channel_update(client, ChannelReq("u1", 1), ChannelReq("u2", 1))
    assert result is None
    body, payload = _sent(rsps)
    assert body["from_uid"] == ""
    assert payload["param"]["channel_id"] == "u2"


def test_update_to_group_targets_itself(rsps, client):
    result = send_channel_update_to_group(client, "g1")
    assert result is None
    body, payload = _sent(rsps)
    assert body["channel_id"] == "g1"
    assert body["channel_type"] == int(ChannelType.GROUP)
    assert payload["param"] == {"channel_id": "g1", "channel_type": int(ChannelType.GROUP)}


def test_update_to_user(rsps, client):
    send_channel_update_to_user(client, "u5", ChannelReq("g2", int(ChannelType.GROUP)))
    body, payload = _sent(rsps)
    assert body["channel_id"] == "u5"
    assert body["channel_type"] == int(ChannelType.PERSON)
    assert payload["param"]["channel_id"] == "g2"


def test_failure_is_raised(client):
    with responses.RequestsMock() as mock:
        mock.add(responses.POST, API + "/message/send", status=500, body="")
        with pytest.raises(IMError) as info:
            send_channel_update_to_group(client, "g1")
    assert info.value.status_code == 500