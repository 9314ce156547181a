"""Red packet, transfer and trade notification messages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imserverkit.client import IMClient
from imserverkit.constants import ChannelType
from imserverkit.messages import ContentType
from imserverkit.models import MsgHeader, MsgSendReq, UserBaseVo, to_json_dict

_RECEIVE_CONTENT = "“{0}“领取了“{1}“的红包"
_RECOVER_NOTICE_CONTENT = "{0}的红包24小时未领取，已退回。"


@dataclass
class MsgTradeSystemNotifyTemplate:
    """A trade notification card (refunds and the like)."""

    channel_id: str = ""
    channel_type: int = 0
    left_title: str = ""
    left_subtitle: str = ""
    center_title: str = ""
    center_subtitle: str = ""
    url_title: str = ""
    notice: str = ""
    trade_no: str = ""
    attrs: dict[str, str] | None = None


@dataclass
class MsgRedpacketReceive:
    channel_id: str = ""
    channel_type: int = 0
    record_no: str = ""
    creater: str = ""
    creater_name: str = ""
    receiver: str = ""
    receiver_name: str = ""


@dataclass
class MsgRedpacketRecover:
    creater: str = ""
    creater_name: str = ""
    amount: int = 0
    expired_at: int = 0
    channel_id: str = ""
    channel_type: int = 0


@dataclass
class MsgTransfer:
    record_no: str = ""
    remark: str = ""
    amount: int = 0
    from_uid: str = ""
    to_uid: str = ""
    status: str = ""


@dataclass
class MsgTransferRecover:
    creater: str = ""
    amount: int = 0
    expired_at: int = 0


def cent_to_yuan(cents: int) -> float:
    """Convert an amount in cents to yuan."""
    return cents / 100


def format_timestamp(seconds: int) -> str:
    """Render a Unix timestamp as local ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(seconds).strftime("%Y-%m-%d %H:%M:%S")


def _payload(content: dict[str, Any]) -> bytes:
    return json.dumps(to_json_dict(content), ensure_ascii=False, separators=(",", ":")).encode(
        "utf-8"
    )


def send_trade_system_notify_template(
    client: IMClient, msg: MsgTradeSystemNotifyTemplate
) -> None:
    """Send a trade notification card on behalf of the ``creater`` attribute."""
    attrs = msg.attrs or {}
    creater = attrs.get("creater", "")
    payload = {
        "left_title": msg.left_title,
        "left_subtitle": msg.left_subtitle,
        "center_title": msg.center_title,
        "center_subtitle": msg.center_subtitle,
        "url_title": msg.url_title,
        "notice": msg.notice,
        "imprest_code": msg.trade_no,
        "attrs": msg.attrs,
        "type": ContentType.REDPACKET_RECEIVE,
        "content": _RECOVER_NOTICE_CONTENT,
        "extra": [UserBaseVo(uid=creater, name=attrs.get("creater_name", ""))],
    }
    client.send_message(
        MsgSendReq(
            header=MsgHeader(red_dot=1),
            channel_id=msg.channel_id,
            channel_type=msg.channel_type,
            from_uid=creater,
            payload=_payload(payload),
        )
    )


def _receive_payload(msg: MsgRedpacketReceive) -> dict[str, Any]:
    content: dict[str, Any] = {
        "redpacket_no": msg.record_no,
        "type": ContentType.REDPACKET_RECEIVE,
        "content": _RECEIVE_CONTENT,
        "extra": [
            UserBaseVo(uid=msg.receiver, name=msg.receiver_name),
            UserBaseVo(uid=msg.creater, name=msg.creater_name),
        ],
    }
    visibles = [msg.creater_name, msg.receiver_name]
    if visibles:
        content["visibles"] = visibles
    return content


def send_redpacket_receive(client: IMClient, msg: MsgRedpacketReceive) -> None:
    """Announce that a red packet was claimed; only person and group channels."""
    if msg.channel_type == ChannelType.PERSON:
        client.send_message(
            MsgSendReq(
                header=MsgHeader(red_dot=1),
                channel_id=msg.creater,
                channel_type=int(ChannelType.PERSON),
                from_uid=msg.receiver,
                payload=_payload(_receive_payload(msg)),
            )
        )
    elif msg.channel_type == ChannelType.GROUP:
        client.send_message(
            MsgSendReq(
                header=MsgHeader(red_dot=1),
                channel_id=msg.channel_id,
                channel_type=msg.channel_type,
                subscribers=[],
                payload=_payload(_receive_payload(msg)),
            )
        )
    else:
        raise ValueError(f"不支持的频道类型: {int(msg.channel_type)}")


def send_redpacket_recover(client: IMClient, msg: MsgRedpacketRecover) -> None:
    """Notify the creator that an unclaimed red packet was refunded."""
    send_trade_system_notify_template(
        client,
        MsgTradeSystemNotifyTemplate(
            channel_id=msg.channel_id,
            channel_type=msg.channel_type,
            left_title="红包退款到账通知",
            center_title=f"¥{cent_to_yuan(msg.amount):.2f}",
            center_subtitle="退款金额",
            url_title="查看详情",
            notice="红包退款",
            attrs={
                "退款方式": "退回零钱",
                "退款原因": "红包超过24小时未被领取",
                "到账时间": format_timestamp(msg.expired_at),
                "备注": "退款金额已到账",
                "creater_name": msg.creater_name,
                "creater": msg.creater,
            },
        ),
    )


def send_transfer(client: IMClient, msg: MsgTransfer) -> None:
    """Send a transfer message from payer to payee."""
    client.send_message(
        MsgSendReq(
            header=MsgHeader(red_dot=1),
            channel_id=msg.to_uid,
            channel_type=int(ChannelType.PERSON),
            from_uid=msg.from_uid,
            payload=_payload(
                {
                    "record_no": msg.record_no,
                    "remark": msg.remark,
                    "amount": msg.amount,
                    "type": ContentType.TRANSFER,
                    "status": msg.status,
                }
            ),
        )
    )


def send_transfer_recover(client: IMClient, msg: MsgTransferRecover) -> None:
    """Notify the payer that an unaccepted transfer was refunded."""
    send_trade_system_notify_template(
        client,
        MsgTradeSystemNotifyTemplate(
            channel_id=msg.creater,
            channel_type=int(ChannelType.PERSON),
            left_title="转账退款到账通知",
            center_title=f"¥{cent_to_yuan(msg.amount):.2f}",
            center_subtitle="退款金额",
            url_title="查看详情",
            notice="转账退款",
            attrs={
                "退款方式": "退回零钱",
                "退款原因": "转账超过24小时未被领取",
                "到账时间": format_timestamp(msg.expired_at),
                "备注": "退款金额已到账",
            },
        ),
    )