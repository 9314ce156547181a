"""Request and response models exchanged with the IM service."""

from __future__ import annotations

import base64
import binascii
import dataclasses
import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from imserverkit.constants import DataFormatError


class DeviceLevel(IntEnum):
    SLAVE = 0
    MASTER = 1


class DeviceFlag(IntEnum):
    APP = 0
    WEB = 1
    PC = 2


class PullMode(IntEnum):
    DOWN = 0
    UP = 1


class UpdateTokenStatus(IntEnum):
    SUCCESS = 200
    BAN = 19


def _skip(default: Any = None) -> Any:
    """A field that never appears in the JSON form."""
    return field(default=default, metadata={"skip": True})


def _omitempty(default: Any = None) -> Any:
    """A field left out of the JSON form when it is empty."""
    return field(default=default, metadata={"omitempty": True})


def _renamed(key: str, default: Any = None) -> Any:
    return field(default=default, metadata={"json": key})


def to_json_dict(obj: Any) -> Any:
    """Convert a model (or nested structure of models) to JSON-ready values.

    Bytes become base64 text and enums their values, as the IM service expects.
    """
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        result: dict[str, Any] = {}
        for f in dataclasses.fields(obj):
            if f.metadata.get("skip"):
                continue
            value = getattr(obj, f.name)
            if f.metadata.get("omitempty") and not value:
                continue
            result[f.metadata.get("json", f.name)] = to_json_dict(value)
        return result
    if isinstance(obj, dict):
        return {key: to_json_dict(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_dict(item) for item in obj]
    return obj


def _decode_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DataFormatError() from exc
    raise DataFormatError()


def _get(data: dict[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    return default if value is None else value


@dataclass
class Setting:
    """Per-message flags packed into one byte."""

    receipt: bool = False
    no_update_conversation: bool = False
    signal: bool = False

    def to_uint8(self) -> int:
        return (
            (int(self.receipt) << 7)
            | (int(self.no_update_conversation) << 6)
            | (int(self.signal) << 5)
        )


def setting_from_uint8(value: int) -> Setting:
    """Unpack the flag byte produced by :meth:`Setting.to_uint8`."""
    return Setting(
        receipt=bool((value >> 7) & 0x01),
        no_update_conversation=bool((value >> 6) & 0x01),
        signal=bool((value >> 5) & 0x01),
    )


@dataclass
class MsgHeader:
    no_persist: int = 0
    red_dot: int = 0
    sync_once: int = 0

    def __str__(self) -> str:
        return f"NoPersist:{self.no_persist} RedDot:{self.red_dot} SyncOnce:{self.sync_once}"


@dataclass
class Channel:
    channel_id: str = ""
    channel_type: int = 0


@dataclass
class ChannelReq:
    channel_id: str = ""
    channel_type: int = 0


@dataclass
class UserBaseVo:
    uid: str = ""
    name: str = ""


@dataclass
class UpdateIMTokenReq:
    uid: str = ""
    token: str = ""
    device_flag: DeviceFlag = DeviceFlag.APP
    device_level: DeviceLevel = DeviceLevel.SLAVE


@dataclass
class UpdateIMTokenResp:
    status: int = 0


@dataclass
class MsgSendReq:
    header: MsgHeader = field(default_factory=MsgHeader)
    setting: int = 0
    from_uid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    stream_no: str = ""
    subscribers: list[str] | None = None
    payload: bytes = b""

    def __str__(self) -> str:
        payload = self.payload.decode("utf-8", errors="replace")
        return f"ChannelID:{self.channel_id} ChannelType:{self.channel_type} Payload:{payload}"


@dataclass
class MsgSendResp:
    message_id: int = 0
    client_msg_no: str = ""
    message_seq: int = 0


@dataclass
class MsgSendBatch:
    header: MsgHeader = field(default_factory=MsgHeader)
    from_uid: str = ""
    subscribers: list[str] | None = None
    payload: bytes = b""


@dataclass
class MsgCMDReq:
    no_persist: bool = _skip(False)
    from_uid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    subscribers: list[str] | None = None
    cmd: str = ""
    param: dict[str, Any] | None = None


@dataclass
class MsgFriendApplyReq:
    apply_uid: str = ""
    apply_name: str = ""
    to_uid: str = ""
    remark: str = ""
    token: str = ""


@dataclass
class MsgFriendSureReq:
    to_uid: str = ""
    from_uid: str = ""
    from_name: str = ""


@dataclass
class MsgFriendDeleteReq:
    from_uid: str = ""
    to_uid: str = ""


@dataclass
class MsgRevokeReq:
    from_uid: str = ""
    operator: str = ""
    operator_name: str = ""
    channel_id: str = ""
    channel_type: int = 0
    message_id: int = 0


@dataclass
class MsgSyncReq:
    uid: str = ""
    message_seq: int = 0
    limit: int = 0


@dataclass
class SyncackReq:
    uid: str = ""
    last_message_seq: int = 0

    def __str__(self) -> str:
        return f"UID: {self.uid} LastMessageSeq: {self.last_message_seq}"

    def check(self) -> None:
        """Raise ValueError if the request is incomplete."""
        if not self.uid.strip():
            raise ValueError("用户UID不能为空！")
        if self.last_message_seq == 0:
            raise ValueError("最后一次messageSeq不能为0！")


@dataclass
class SyncChannelMessageReq:
    login_uid: str = ""
    device_uuid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    start_message_seq: int = 0
    end_message_seq: int = 0
    limit: int = 0
    pull_mode: PullMode = PullMode.DOWN


@dataclass
class ChannelMaxSeqResp:
    message_seq: int = 0


@dataclass
class ClearConversationUnreadReq:
    uid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    unread: int = 0
    message_seq: int = 0


@dataclass
class DeleteConversationReq:
    uid: str = ""
    channel_id: str = ""
    channel_type: int = 0


@dataclass
class ChannelCreateReq:
    channel_id: str = ""
    channel_type: int = 0
    ban: int = 0
    large: int = 0
    subscribers: list[str] | None = None


@dataclass
class ChannelInfoCreateReq:
    channel_id: str = ""
    channel_type: int = 0
    ban: int = 0
    large: int = 0


@dataclass
class ChannelDeleteReq:
    channel_id: str = ""
    channel_type: int = 0


@dataclass
class ChannelBlacklistReq:
    channel_id: str = ""
    channel_type: int = 0
    uids: list[str] | None = None


@dataclass
class ChannelWhitelistReq:
    channel_id: str = ""
    channel_type: int = 0
    uids: list[str] | None = None


@dataclass
class SubscriberAddReq:
    channel_id: str = ""
    channel_type: int = 0
    reset: int = 0
    subscribers: list[str] | None = None


@dataclass
class SubscriberRemoveReq:
    channel_id: str = ""
    channel_type: int = 0
    subscribers: list[str] | None = None


@dataclass
class MessageRevokeReq:
    channel_id: str = ""
    channel_type: int = 0
    message_ids: list[int] | None = None


@dataclass
class SearchUserMessageReq:
    uid: str = ""
    payload: dict[str, Any] | None = None
    payload_types: list[int] | None = None
    from_uid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    topic: str = ""
    limit: int = 0
    page: int = 0
    start_time: int = 0
    end_time: int = 0
    highlights: list[str] | None = None


@dataclass
class MsgSearchReq:
    login_uid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    message_seqs: list[int] | None = None
    message_ids: list[int] | None = None
    client_msg_nos: list[str] | None = None


@dataclass
class OnlinestatusResp:
    uid: str = ""
    device_flag: int = 0
    last_offline: int = 0
    online: int = 0


@dataclass
class StreamItemResp:
    stream_seq: int = 0
    client_msg_no: str = ""
    blob: bytes = b""


@dataclass
class MessageResp:
    """A message as returned by the IM service."""

    header: MsgHeader = field(default_factory=MsgHeader)
    setting: int = 0
    message_id_str: str = _renamed("message_idstr", "")
    message_id: int = 0
    message_seq: int = 0
    client_msg_no: str = ""
    expire: int = 0
    from_uid: str = ""
    to_uid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    timestamp: int = 0
    payload: bytes = b""
    stream_no: str = _omitempty("")
    streams: list[StreamItemResp] | None = _omitempty(None)
    is_deleted: int = 0
    voice_status: int = 0
    _payload_map: dict[str, Any] | None = field(
        default=None, init=False, repr=False, compare=False, metadata={"skip": True}
    )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> MessageResp:
        """Build a message from its decoded JSON form."""
        if not isinstance(data, dict):
            raise DataFormatError()
        header_data = data.get("header") or {}
        if not isinstance(header_data, dict):
            raise DataFormatError()
        header = MsgHeader(
            no_persist=_get(header_data, "no_persist", 0),
            red_dot=_get(header_data, "red_dot", 0),
            sync_once=_get(header_data, "sync_once", 0),
        )
        streams_data = data.get("streams")
        streams = None
        if streams_data is not None:
            if not isinstance(streams_data, list):
                raise DataFormatError()
            streams = [
                StreamItemResp(
                    stream_seq=_get(item, "stream_seq", 0),
                    client_msg_no=_get(item, "client_msg_no", ""),
                    blob=_decode_bytes(item.get("blob")),
                )
                for item in streams_data
            ]
        return MessageResp(
            header=header,
            setting=_get(data, "setting", 0),
            message_id_str=_get(data, "message_idstr", ""),
            message_id=_get(data, "message_id", 0),
            message_seq=_get(data, "message_seq", 0),
            client_msg_no=_get(data, "client_msg_no", ""),
            expire=_get(data, "expire", 0),
            from_uid=_get(data, "from_uid", ""),
            to_uid=_get(data, "to_uid", ""),
            channel_id=_get(data, "channel_id", ""),
            channel_type=_get(data, "channel_type", 0),
            timestamp=_get(data, "timestamp", 0),
            payload=_decode_bytes(data.get("payload")),
            stream_no=_get(data, "stream_no", ""),
            streams=streams,
            is_deleted=_get(data, "is_deleted", 0),
            voice_status=_get(data, "voice_status", 0),
        )

    def payload_map(self) -> dict[str, Any]:
        """The payload parsed as a JSON object; raise DataFormatError if it is not one."""
        if self._payload_map is None:
            try:
                parsed = json.loads(self.payload.decode("utf-8"))
            except (UnicodeDecodeError, ValueError) as exc:
                raise DataFormatError() from exc
            if parsed is None:
                return {}
            if not isinstance(parsed, dict):
                raise DataFormatError()
            self._payload_map = parsed
        return self._payload_map

    def content_type(self) -> int:
        """The integer ``type`` of the payload, or 0 if it cannot be read."""
        try:
            payload = self.payload_map()
        except DataFormatError:
            return 0
        value = payload.get("type")
        if isinstance(value, bool) or not isinstance(value, int):
            return 0
        return value


@dataclass
class SyncChannelMessageResp:
    start_message_seq: int = 0
    end_message_seq: int = 0
    pull_mode: PullMode = PullMode.DOWN
    messages: list[MessageResp] | None = None


@dataclass
class SearchUserMessageResp:
    total: int = 0
    limit: int = 0
    page: int = 0
    messages: list[MessageResp] | None = None


@dataclass
class ConversationResp:
    channel_id: str = ""
    channel_type: int = 0
    unread: int = 0
    timestamp: int = 0
    last_message: MessageResp | None = None


@dataclass
class SyncUserConversationResp:
    channel_id: str = ""
    channel_type: int = 0
    unread: int = 0
    timestamp: int = 0
    last_msg_seq: int = 0
    last_client_msg_no: str = ""
    offset_msg_seq: int = 0
    version: int = 0
    recents: list[MessageResp] | None = None


@dataclass
class MessageStreamStartReq:
    header: MsgHeader = field(default_factory=MsgHeader)
    client_msg_no: str = ""
    from_uid: str = ""
    channel_id: str = ""
    channel_type: int = 0
    payload: bytes = b""


@dataclass
class MessageStreamEndReq:
    stream_no: str = ""
    channel_id: str = ""
    channel_type: int = 0