"""Audio/video call result messages."""

from __future__ import annotations

import json
from dataclasses import dataclass

from imserverkit.client import IMClient
from imserverkit.constants import ChannelType, RTCCallType, RTCResultType
from imserverkit.messages import ContentType
from imserverkit.models import MsgHeader, MsgSendReq, to_json_dict


@dataclass
class P2pRtcMessageReq:
    from_uid: str = ""
    to_uid: str = ""
    call_type: RTCCallType = RTCCallType.AUDIO
    result_type: RTCResultType = RTCResultType.CANCEL
    second: int = 0


def _truncated_divmod(value: int, divisor: int) -> tuple[int, int]:
    quotient = abs(value) // divisor
    if value < 0:
        quotient = -quotient
    return quotient, value - quotient * divisor


def format_second(seconds: int) -> str:
    """Render a duration in seconds as ``mm:ss``."""
    minutes, second = _truncated_divmod(seconds, 60)
    second_str = f"0{second}" if second < 10 else str(second)
    minute_str = f"0{minutes}" if minutes < 10 else str(minutes)
    return f"{minute_str}:{second_str}"


def _result_text(req: P2pRtcMessageReq) -> str:
    if req.result_type == RTCResultType.CANCEL:
        return "通话取消"
    if req.result_type == RTCResultType.MISSED:
        return "未接听"
    if req.result_type == RTCResultType.REFUSE:
        return "通话拒绝"
    if req.result_type == RTCResultType.HANGUP:
        return f"通话时长：{format_second(req.second)}"
    return ""


def send_rtc_call_result(client: IMClient, req: P2pRtcMessageReq) -> None:
    """Record the outcome of a one-to-one call in the conversation."""
    payload = {
        "type": ContentType.VIDEO_CALL_RESULT,
        "content": _result_text(req),
        "second": req.second,
        "call_type": req.call_type,
        "result_type": req.result_type,
    }
    client.send_message(
        MsgSendReq(
            header=MsgHeader(red_dot=1),
            from_uid=req.from_uid,
            channel_id=req.to_uid,
            channel_type=int(ChannelType.PERSON),
            payload=json.dumps(
                to_json_dict(payload), ensure_ascii=False, separators=(",", ":")
            ).encode("utf-8"),
        )
    )