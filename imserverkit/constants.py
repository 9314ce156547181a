"""Shared constants, enumerations and the QR code payload model."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any


class DataFormatError(ValueError):
    """Raised when data does not have the expected format."""

    def __init__(self, message: str = "数据格式有误！") -> None:
        super().__init__(message)


class ChannelType(IntEnum):
    """Kind of channel a message is addressed to."""

    NONE = 0
    PERSON = 1
    GROUP = 2
    CUSTOMER_SERVICE = 3
    COMMUNITY = 4
    COMMUNITY_TOPIC = 5
    INFO = 6


class GroupMemberStatus(IntEnum):
    NORMAL = 1
    BLACKLIST = 2


class GroupMemberRole(IntEnum):
    NORMAL = 0
    CREATOR = 1
    MANAGER = 2


class GroupAllowViewHistoryMsgStatus(IntEnum):
    DISABLED = 0
    ENABLED = 1


class AuthCodeType(str, Enum):
    JOIN_GROUP = "joinGroup"
    GROUP_MEMBER_INVITE = "groupMemberInvite"
    SCAN_LOGIN = "scanLogin"


class DeviceType(str, Enum):
    IOS = "IOS"
    MI = "MI"
    HMS = "HMS"
    FIREBASE = "FIREBASE"
    OPPO = "OPPO"
    VIVO = "VIVO"


class QRCodeType(str, Enum):
    GROUP = "group"
    SCAN_LOGIN = "scanLogin"


class ScanLoginStatus(str, Enum):
    EXPIRED = "expired"
    WAIT_SCAN = "waitScan"
    SCANNED = "scanned"
    AUTHED = "authed"


class VercodeType(IntEnum):
    """Where a friend request originated."""

    USER = 1
    GROUP_MEMBER = 2
    QR_CODE = 3
    FRIEND = 4
    MAIL_LIST = 5
    INVITATION_CODE = 6


class UserStatus(IntEnum):
    DISABLE = 0
    AVAILABLE = 1


class RTCCallType(IntEnum):
    AUDIO = 0
    VIDEO = 1


class RTCResultType(IntEnum):
    CANCEL = 0
    HANGUP = 1
    MISSED = 2
    REFUSE = 3


# Sequence keys
GROUP_MEMBER_SEQ_KEY = "groupMember"
GROUP_SETTING_SEQ_KEY = "groupSetting"
GROUP_SEQ_KEY = "group"
USER_SETTING_SEQ_KEY = "userSetting"
USER_SEQ_KEY = "user"
FRIEND_SEQ_KEY = "friend"
MESSAGE_EXTRA_SEQ_KEY = "messageExtra"
MESSAGE_REACTION_SEQ_KEY = "messageReaction"
ROBOT_SEQ_KEY = "robot"
ROBOT_EVENT_SEQ_KEY = "robotEventSeq:"
SENSITIVE_WORDS_KEY = "sensitiveWords"
REMINDERS_KEY = "reminders"
SYNC_CONVERSATION_EXTRA_KEY = "syncConversationExtra"
PROHIBIT_WORD_KEY = "ProhibitWord"

# Group attribute keys
GROUP_ATTR_KEY_NAME = "name"
GROUP_ATTR_KEY_NOTICE = "notice"
GROUP_ATTR_KEY_FORBIDDEN = "forbidden"
GROUP_ATTR_KEY_INVITE = "invite"
GROUP_ATTR_KEY_FORBIDDEN_ADD_FRIEND = "forbidden_add_friend"
GROUP_ATTR_KEY_STATUS = "status"
GROUP_ALLOW_VIEW_HISTORY_MSG = "allow_view_history_msg"
GROUP_ALLOW_MEMBER_PINNED_MESSAGE = "allow_member_pinned_message"

# Command message names
CMD_CHANNEL_UPDATE = "channelUpdate"
CMD_GROUP_MEMBER_UPDATE = "memberUpdate"
CMD_CONVERSATION_UNREAD_CLEAR = "unreadClear"
CMD_GROUP_AVATAR_UPDATE = "groupAvatarUpdate"
CMD_COMMUNITY_AVATAR_UPDATE = "communityAvatarUpdate"
CMD_COMMUNITY_COVER_UPDATE = "communityCoverUpdate"
CMD_CONVERSATION_DELETE = "conversationDelete"
CMD_FRIEND_REQUEST = "friendRequest"
CMD_FRIEND_ACCEPT = "friendAccept"
CMD_FRIEND_DELETED = "friendDeleted"
CMD_USER_AVATAR_UPDATE = "userAvatarUpdate"
CMD_TYPING = "typing"
CMD_ONLINE_STATUS = "onlineStatus"
CMD_MOMENT_MSG = "momentMsg"
CMD_SYNC_MESSAGE_EXTRA = "syncMessageExtra"
CMD_SYNC_MESSAGE_REACTION = "syncMessageReaction"
CMD_PC_QUIT = "pcQuit"
CMD_CONVERSATION_DELETED = "conversationDeleted"
CMD_SYNC_REMINDERS = "syncReminders"
CMD_SYNC_CONVERSATION_EXTRA = "syncConversationExtra"
CMD_ORGANIZATION_INFO_UPDATE = "organizationInfoUpdate"
CMD_QUIT_ORGANIZATION = "quitOrganization"
CMD_JOIN_ORGANIZATION = "joinOrganization"
CMD_SYNC_PINNED_MESSAGE = "syncPinnedMessage"
CMD_MESSAGE_ERASE = "messageEerase"

# Cache key prefixes
USER_DEVICE_TOKEN_PREFIX = "userDeviceToken:"
USER_DEVICE_BADGE_PREFIX = "userDeviceBadge"
QRCODE_CACHE_PREFIX = "qrcode:"
AUTH_CODE_CACHE_PREFIX = "authcode:"
DEVICE_CACHE_UUID_PREFIX = "deviceCacheUUID:"


@dataclass
class QRCodeModel:
    """Payload carried by a QR code: a type and free-form data."""

    type: QRCodeType | str
    data: dict[str, Any] | None = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialise to the compact JSON form used on the wire."""
        type_value = self.type.value if isinstance(self.type, QRCodeType) else self.type
        return json.dumps(
            {"type": type_value, "data": self.data},
            ensure_ascii=False,
            separators=(",", ":"),
        )


def parse_qrcode_model(text: str | bytes) -> QRCodeModel:
    """Parse a QR code payload; raise DataFormatError on malformed input."""
    try:
        raw = json.loads(text)
    except (ValueError, TypeError) as exc:
        raise DataFormatError() from exc
    if not isinstance(raw, dict):
        raise DataFormatError()
    type_value = raw.get("type", "")
    if type_value is None:
        type_value = ""
    if not isinstance(type_value, str):
        raise DataFormatError()
    data = raw.get("data")
    if data is not None and not isinstance(data, dict):
        raise DataFormatError()
    try:
        qr_type: QRCodeType | str = QRCodeType(type_value)
    except ValueError:
        qr_type = type_value
    return QRCodeModel(type=qr_type, data=data)