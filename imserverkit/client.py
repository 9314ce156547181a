"""HTTP client for the IM service API."""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from imserverkit.constants import CMD_FRIEND_DELETED, CMD_TYPING, ChannelType, DataFormatError
from imserverkit.messages import ContentType
from imserverkit.models import (
    Channel,
    ChannelBlacklistReq,
    ChannelCreateReq,
    ChannelDeleteReq,
    ChannelInfoCreateReq,
    ChannelMaxSeqResp,
    ChannelWhitelistReq,
    ClearConversationUnreadReq,
    ConversationResp,
    DeleteConversationReq,
    MessageResp,
    MessageRevokeReq,
    MessageStreamEndReq,
    MessageStreamStartReq,
    MsgCMDReq,
    MsgFriendApplyReq,
    MsgFriendDeleteReq,
    MsgFriendSureReq,
    MsgHeader,
    MsgRevokeReq,
    MsgSearchReq,
    MsgSendBatch,
    MsgSendReq,
    MsgSendResp,
    MsgSyncReq,
    OnlinestatusResp,
    PullMode,
    SearchUserMessageReq,
    SearchUserMessageResp,
    Setting,
    SubscriberAddReq,
    SubscriberRemoveReq,
    SyncackReq,
    SyncChannelMessageReq,
    SyncChannelMessageResp,
    SyncUserConversationResp,
    UpdateIMTokenReq,
    UpdateIMTokenResp,
    to_json_dict,
)

logger = logging.getLogger(__name__)

_TIMEOUT = 30.0
_FRIEND_SURE_CONTENT = "你们已经是好友了，可以愉快的聊天了！"


class IMError(Exception):
    """The IM service answered with an error status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def _json_bytes(obj: Any) -> bytes:
    return json.dumps(to_json_dict(obj), ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise DataFormatError() from exc


def _as_dict(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DataFormatError()
    return data


def _as_list(data: Any) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise DataFormatError()
    return data


def _field(data: dict[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    return default if value is None else value


def _loose_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return 0
    return 0


def _pull_mode(value: Any) -> Any:
    try:
        return PullMode(value)
    except ValueError:
        return value


def _messages(data: Any) -> list[MessageResp]:
    return [MessageResp.from_dict(item) for item in _as_list(data)]


def _sync_channel_resp(data: Any) -> SyncChannelMessageResp | None:
    if data is None:
        return None
    data = _as_dict(data)
    return SyncChannelMessageResp(
        start_message_seq=_field(data, "start_message_seq", 0),
        end_message_seq=_field(data, "end_message_seq", 0),
        pull_mode=_pull_mode(_field(data, "pull_mode", 0)),
        messages=_messages(data.get("messages")),
    )


def _conversation(data: Any) -> ConversationResp:
    data = _as_dict(data)
    last = data.get("last_message")
    return ConversationResp(
        channel_id=_field(data, "channel_id", ""),
        channel_type=_field(data, "channel_type", 0),
        unread=_field(data, "unread", 0),
        timestamp=_field(data, "timestamp", 0),
        last_message=MessageResp.from_dict(last) if last is not None else None,
    )


def _user_conversation(data: Any) -> SyncUserConversationResp:
    data = _as_dict(data)
    return SyncUserConversationResp(
        channel_id=_field(data, "channel_id", ""),
        channel_type=_field(data, "channel_type", 0),
        unread=_field(data, "unread", 0),
        timestamp=_field(data, "timestamp", 0),
        last_msg_seq=_field(data, "last_msg_seq", 0),
        last_client_msg_no=_field(data, "last_client_msg_no", ""),
        offset_msg_seq=_field(data, "offset_msg_seq", 0),
        version=_field(data, "version", 0),
        recents=_messages(data.get("recents")),
    )


def _online_status(data: Any) -> OnlinestatusResp:
    data = _as_dict(data)
    return OnlinestatusResp(
        uid=_field(data, "uid", ""),
        device_flag=_field(data, "device_flag", 0),
        last_offline=_field(data, "last_offline", 0),
        online=_field(data, "online", 0),
    )


class IMClient:
    """Talks to the IM service's HTTP API at ``api_url``."""

    def __init__(self, api_url: str, test_mode: bool = False) -> None:
        self.api_url = api_url.rstrip("/")
        self.test_mode = test_mode
        self._session = requests.Session()

    # ---------- transport ----------

    def _post(self, path: str, body: Any) -> requests.Response:
        return self._session.post(
            self.api_url + path,
            data=_json_bytes(body),
            headers={"Content-Type": "application/json"},
            timeout=_TIMEOUT,
        )

    def _get(self, path: str, params: dict[str, str]) -> requests.Response:
        return self._session.get(self.api_url + path, params=params, timeout=_TIMEOUT)

    @staticmethod
    def _check(resp: requests.Response, label: str | None = None) -> None:
        if resp.status_code == 200:
            return
        service = f"IM服务[{label}]" if label else "IM服务"
        if resp.status_code == 400:
            result = _decode(resp.text)
            if result is not None and not isinstance(result, dict):
                raise DataFormatError()
            if result and result.get("msg") is not None:
                raise IMError(f"{service}失败！ -> {result['msg']}", resp.status_code)
        raise IMError(f"{service}返回状态[{resp.status_code}]失败！", resp.status_code)

    def _post_checked(self, path: str, body: Any) -> requests.Response:
        resp = self._post(path, body)
        self._check(resp)
        return resp

    # ---------- users ----------

    def update_im_token(self, req: UpdateIMTokenReq) -> UpdateIMTokenResp | None:
        """Register a user's token for a device."""
        resp = self._post_checked(
            "/user/token",
            {
                "uid": req.uid,
                "token": req.token,
                "device_level": req.device_level,
                "device_flag": req.device_flag,
            },
        )
        data = _decode(resp.text)
        if data is None:
            return None
        return UpdateIMTokenResp(status=_field(_as_dict(data), "status", 0))

    def quit_user_device(self, uid: str, device_flag: int) -> None:
        """Log a user out of one device kind; ``-1`` means all devices."""
        resp = self._post("/user/device_quit", {"uid": uid, "device_flag": device_flag})
        if resp.status_code != 200:
            logger.error("IM服务错误！ status=%d", resp.status_code)
            raise IMError(f"IM服务返回状态[{resp.status_code}]失败！", resp.status_code)

    def online_status(self, uids: list[str]) -> list[OnlinestatusResp] | None:
        """Online state of the given users; ``None`` in test mode."""
        if self.test_mode:
            logger.info("获取指定用户的在线状态 req=%s", json.dumps(uids, ensure_ascii=False))
            return None
        resp = self._post_checked("/user/onlinestatus", uids)
        return [_online_status(item) for item in _as_list(_decode(resp.text))]

    # ---------- messages ----------

    def send_message_batch(self, req: MsgSendBatch) -> None:
        resp = self._post("/message/sendbatch", req)
        self._check(resp, "SendMessageBatch")

    def send_message(self, req: MsgSendReq) -> None:
        self.send_message_with_result(req)

    def send_message_with_result(self, req: MsgSendReq) -> MsgSendResp:
        resp = self._post("/message/send", req)
        self._check(resp, "SendMessage")
        try:
            body = json.loads(resp.text)
        except ValueError:
            body = {}
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            data = {}
        client_msg_no = data.get("client_msg_no")
        return MsgSendResp(
            message_id=_loose_int(data.get("message_id")),
            message_seq=_loose_int(data.get("message_seq")) & 0xFFFFFFFF,
            client_msg_no="" if client_msg_no is None else str(client_msg_no),
        )

    def send_friend_apply(self, req: MsgFriendApplyReq) -> None:
        self.send_message(
            MsgSendReq(
                header=MsgHeader(no_persist=0, red_dot=0, sync_once=1),
                channel_id=req.to_uid,
                channel_type=int(ChannelType.PERSON),
                payload=_json_bytes(
                    {
                        "apply_uid": req.apply_uid,
                        "apply_name": req.apply_name,
                        "to_uid": req.to_uid,
                        "remark": req.remark,
                        "token": req.token,
                        "type": ContentType.FRIEND_APPLY,
                    }
                ),
            )
        )

    def send_friend_sure(self, req: MsgFriendSureReq) -> None:
        self.send_message(
            MsgSendReq(
                header=MsgHeader(no_persist=0, red_dot=0, sync_once=1),
                channel_id=req.to_uid,
                channel_type=int(ChannelType.PERSON),
                payload=_json_bytes(
                    {
                        "sure_uid": req.from_uid,
                        "sure_name": req.from_name,
                        "to_uid": req.to_uid,
                        "content": _FRIEND_SURE_CONTENT,
                        "type": ContentType.FRIEND_SURE,
                    }
                ),
            )
        )

    def send_friend_delete(self, req: MsgFriendDeleteReq) -> None:
        self.send_cmd(
            MsgCMDReq(
                channel_id=req.from_uid,
                channel_type=int(ChannelType.PERSON),
                cmd=CMD_FRIEND_DELETED,
                param={"uid": req.to_uid},
            )
        )

    def send_revoke(self, req: MsgRevokeReq) -> None:
        self.send_cmd(
            MsgCMDReq(
                from_uid=req.from_uid,
                channel_id=req.channel_id,
                channel_type=req.channel_type,
                cmd="messageRevoke",
                param={"message_id": str(req.message_id)},
            )
        )

    def send_cmd(self, req: MsgCMDReq) -> None:
        """Send a command message that does not update conversations."""
        content: dict[str, Any] = {"cmd": req.cmd, "type": ContentType.CMD}
        if req.param is not None:
            content["param"] = req.param
        setting = Setting(no_update_conversation=True)
        self.send_message(
            MsgSendReq(
                header=MsgHeader(no_persist=1 if req.no_persist else 0, red_dot=0, sync_once=1),
                setting=setting.to_uint8(),
                from_uid=req.from_uid,
                channel_id=req.channel_id,
                channel_type=req.channel_type,
                subscribers=req.subscribers,
                payload=_json_bytes(content),
            )
        )

    def send_typing(self, channel_id: str, channel_type: int, from_uid: str) -> None:
        self.send_cmd(
            MsgCMDReq(
                no_persist=True,
                cmd=CMD_TYPING,
                channel_id=channel_id,
                channel_type=channel_type,
                param={
                    "from_uid": from_uid,
                    "channel_id": channel_id,
                    "channel_type": channel_type,
                },
            )
        )

    def sync_message(self, req: MsgSyncReq) -> list[MessageResp]:
        resp = self._post_checked("/message/sync", req)
        return _messages(_decode(resp.text))

    def sync_message_ack(self, req: SyncackReq) -> None:
        self._post_checked("/message/syncack", req)

    def revoke_message(self, req: MessageRevokeReq) -> None:
        self._post_checked("/message/revoke", req)

    def search_user_messages(self, req: SearchUserMessageReq) -> SearchUserMessageResp | None:
        resp = self._post_checked("/plugins/wk.plugin.search/usersearch", req)
        data = _decode(resp.text)
        if data is None:
            return None
        data = _as_dict(data)
        return SearchUserMessageResp(
            total=_field(data, "total", 0),
            limit=_field(data, "limit", 0),
            page=_field(data, "page", 0),
            messages=_messages(data.get("messages")),
        )

    def search_messages(self, req: MsgSearchReq) -> SyncChannelMessageResp | None:
        resp = self._post_checked("/messages", req)
        return _sync_channel_resp(_decode(resp.text))

    # ---------- channels ----------

    def create_or_update_channel_info(self, req: ChannelInfoCreateReq) -> None:
        self._post_checked("/channel/info", req)

    def create_or_update_channel(self, req: ChannelCreateReq) -> None:
        self._post_checked("/channel", req)

    def blacklist_add(self, req: ChannelBlacklistReq) -> None:
        self._post_checked("/channel/blacklist_add", req)

    def blacklist_set(self, req: ChannelBlacklistReq) -> None:
        self._post_checked("/channel/blacklist_set", req)

    def blacklist_remove(self, req: ChannelBlacklistReq) -> None:
        self._post_checked("/channel/blacklist_remove", req)

    def whitelist_add(self, req: ChannelWhitelistReq) -> None:
        self._post_checked("/channel/whitelist_add", req)

    def whitelist_set(self, req: ChannelWhitelistReq) -> None:
        self._post_checked("/channel/whitelist_set", req)

    def whitelist_remove(self, req: ChannelWhitelistReq) -> None:
        self._post_checked("/channel/whitelist_remove", req)

    def add_subscriber(self, req: SubscriberAddReq) -> None:
        resp = self._post("/channel/subscriber_add", req)
        if resp.status_code != 200:
            raise IMError(
                f"IM服务[IMAddSubscriber]返回状态[{resp.status_code}]失败！", resp.status_code
            )

    def remove_subscriber(self, req: SubscriberRemoveReq) -> None:
        self._post_checked("/channel/subscriber_remove", req)

    def delete_channel(self, req: ChannelDeleteReq) -> None:
        self._post_checked("/channel/delete", req)

    def get_channel_max_seq(self, channel_id: str, channel_type: int) -> ChannelMaxSeqResp | None:
        resp = self._get(
            "/channel/max_message_seq",
            {"channel_id": channel_id, "channel_type": str(int(channel_type))},
        )
        self._check(resp)
        data = _decode(resp.text)
        if data is None:
            return None
        return ChannelMaxSeqResp(message_seq=_field(_as_dict(data), "message_seq", 0))

    def get_with_channel_and_seqs(
        self, channel_id: str, channel_type: int, login_uid: str, seqs: list[int]
    ) -> SyncChannelMessageResp | None:
        resp = self._post_checked(
            "/messages",
            {
                "channel_id": channel_id,
                "channel_type": channel_type,
                "message_seqs": seqs,
                "login_uid": login_uid,
            },
        )
        return _sync_channel_resp(_decode(resp.text))

    def sync_channel_message(self, req: SyncChannelMessageReq) -> SyncChannelMessageResp | None:
        resp = self._post_checked("/channel/messagesync", req)
        return _sync_channel_resp(_decode(resp.text))

    # ---------- conversations ----------

    def get_conversations(self, uid: str) -> list[ConversationResp]:
        resp = self._get("/conversations", {"uid": uid})
        self._check(resp)
        return [_conversation(item) for item in _as_list(_decode(resp.text))]

    def clear_conversation_unread(self, req: ClearConversationUnreadReq) -> None:
        """Reset unread counts; transport failures are ignored."""
        try:
            resp = self._post("/conversations/setUnread", req)
        except requests.RequestException:
            return None
        self._check(resp)
        return None

    def delete_conversation(self, req: DeleteConversationReq) -> None:
        """Delete a conversation; transport failures are ignored."""
        try:
            resp = self._post("/conversations/delete", req)
        except requests.RequestException:
            return None
        self._check(resp)
        return None

    def sync_user_conversation(
        self,
        uid: str,
        version: int,
        msg_count: int,
        last_msg_seqs: str,
        larges: list[Channel] | None,
    ) -> list[SyncUserConversationResp]:
        resp = self._post_checked(
            "/conversation/sync",
            {
                "uid": uid,
                "version": version,
                "last_msg_seqs": last_msg_seqs,
                "msg_count": msg_count,
                "larges": larges,
            },
        )
        return [_user_conversation(item) for item in _as_list(_decode(resp.text))]

    # ---------- streams ----------

    def stream_start(self, req: MessageStreamStartReq) -> str:
        """Open a message stream and return its stream number."""
        resp = self._post_checked("/streammessage/start", req)
        data = _decode(resp.text)
        if data is None:
            raise ValueError("result is nil")
        stream_no = _as_dict(data).get("stream_no")
        if not isinstance(stream_no, str):
            raise DataFormatError()
        return stream_no

    def stream_end(self, req: MessageStreamEndReq) -> None:
        self._post_checked("/streammessage/end", req)