import json
from datetime import datetime

import pytest

from imserverkit.constants import ChannelType
from imserverkit.messages import ContentType
from imserverkit.payments import (
    MsgRedpacketReceive,
    MsgRedpacketRecover,
    MsgTradeSystemNotifyTemplate,
    MsgTransfer,
    MsgTransferRecover,
    cent_to_yuan,
    format_timestamp,
    send_redpacket_receive,
    send_redpacket_recover,
    send_trade_system_notify_template,
    send_transfer,
    send_transfer_recover,
)


class RecordingClient:
    def __init__(self):
        self.sent = []

    def send_message(self, req):
        self.sent.append(req)


def payload_of(req):
    return json.loads(req.payload.decode("utf-8"))


def receive_msg(channel_type, channel_id="g1"):
    return MsgRedpacketReceive(
        channel_id=channel_id,
        channel_type=channel_type,
        record_no="r1",
        creater="alice",
        creater_name="Alice",
        receiver="bob",
        receiver_name="Bob",
    )


def test_cent_to_yuan_scales_by_hundred():
    assert cent_to_yuan(100) == 1.0
    assert cent_to_yuan(0) == 0


def test_format_timestamp_round_trip():
    ts = 1_700_000_000
    text = format_timestamp(ts)
    parsed = datetime.strptime(text, "%Y-%m-%d %H:%M:%S")
    assert int(parsed.timestamp()) == ts


def test_redpacket_receive_person_goes_to_creator():
    client = RecordingClient()
    send_redpacket_receive(client, receive_msg(int(ChannelType.PERSON)))
    assert len(client.sent) == 1
    req = client.sent[0]
    assert req.channel_id == "alice"
    assert req.from_uid == "bob"
    assert req.channel_type == ChannelType.PERSON
    assert req.header.red_dot == 1
    payload = payload_of(req)
    assert payload["type"] == ContentType.REDPACKET_RECEIVE
    assert payload["content"] == "“{0}“领取了“{1}“的红包"
    assert payload["redpacket_no"] == "r1"
    assert payload["extra"] == [
        {"uid": "bob", "name": "Bob"},
        {"uid": "alice", "name": "Alice"},
    ]
    assert payload["visibles"] == ["Alice", "Bob"]


def test_redpacket_receive_group_goes_to_group():
    client = RecordingClient()
    send_redpacket_receive(client, receive_msg(int(ChannelType.GROUP), "grp"))
    req = client.sent[0]
    assert req.channel_id == "grp"
    assert req.channel_type == ChannelType.GROUP
    assert req.subscribers == []
    assert req.from_uid == ""


def test_redpacket_receive_rejects_other_channel_types():
    client = RecordingClient()
    with pytest.raises(ValueError, match="不支持的频道类型"):
        send_redpacket_receive(client, receive_msg(int(ChannelType.CUSTOMER_SERVICE)))
    assert client.sent == []


def test_trade_template_uses_creater_attr():
    client = RecordingClient()
    msg = MsgTradeSystemNotifyTemplate(
        channel_id="c1",
        channel_type=int(ChannelType.GROUP),
        left_title="L",
        trade_no="T9",
        attrs={"creater": "alice", "creater_name": "Alice"},
    )
    send_trade_system_notify_template(client, msg)
    req = client.sent[0]
    assert req.from_uid == "alice"
    assert req.channel_id == "c1"
    payload = payload_of(req)
    assert payload["imprest_code"] == "T9"
    assert payload["left_title"] == "L"
    assert payload["extra"] == [{"uid": "alice", "name": "Alice"}]
    assert payload["content"] == "{0}的红包24小时未领取，已退回。"


def test_redpacket_recover_builds_notice():
    client = RecordingClient()
    msg = MsgRedpacketRecover(
        creater="alice",
        creater_name="Alice",
        amount=1234,
        expired_at=1_700_000_000,
        channel_id="grp",
        channel_type=int(ChannelType.GROUP),
    )
    send_redpacket_recover(client, msg)
    req = client.sent[0]
    payload = payload_of(req)
    assert payload["left_title"] == "红包退款到账通知"
    assert payload["center_title"] == "¥12.34"
    assert payload["attrs"]["到账时间"] == format_timestamp(1_700_000_000)
    assert payload["attrs"]["creater"] == "alice"
    assert req.from_uid == "alice"


def test_transfer_message():
    client = RecordingClient()
    send_transfer(
        client,
        MsgTransfer(record_no="n1", remark="rent", amount=500, from_uid="a", to_uid="b",
                    status="noaccept"),
    )
    req = client.sent[0]
    assert req.channel_id == "b"
    assert req.from_uid == "a"
    payload = payload_of(req)
    assert payload["type"] == ContentType.TRANSFER
    assert payload["amount"] == 500
    assert payload["status"] == "noaccept"


def test_transfer_recover_goes_to_creator_person_channel():
    client = RecordingClient()
    send_transfer_recover(client, MsgTransferRecover(creater="alice", amount=50, expired_at=0))
    req = client.sent[0]
    assert req.channel_id == "alice"
    assert req.channel_type == ChannelType.PERSON
    assert req.from_uid == ""
    payload = payload_of(req)
    assert payload["left_title"] == "转账退款到账通知"
    assert payload["attrs"]["退款原因"] == "转账超过24小时未被领取"
    assert payload["center_title"] == f"¥{cent_to_yuan(50):.2f}"