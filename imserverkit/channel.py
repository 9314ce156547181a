"""Channel update commands."""

from __future__ import annotations

import logging

from imserverkit.client import IMClient
from imserverkit.constants import CMD_CHANNEL_UPDATE, ChannelType
from imserverkit.models import ChannelReq, MsgCMDReq

logger = logging.getLogger(__name__)


def send_channel_update_with_from_uid(
    client: IMClient, channel: ChannelReq, update_channel: ChannelReq, from_uid: str
) -> None:
    """Tell subscribers of ``channel`` that ``update_channel`` changed."""
    try:
        client.send_cmd(
            MsgCMDReq(
                channel_id=channel.channel_id,
                channel_type=channel.channel_type,
                from_uid=from_uid,
                cmd=CMD_CHANNEL_UPDATE,
                param={
                    "channel_id": update_channel.channel_id,
                    "channel_type": update_channel.channel_type,
                },
            )
        )
    except Exception as exc:
        logger.error("发送频道更新命令失败！ error=%s", exc)
        raise


def send_channel_update(client: IMClient, channel: ChannelReq, update_channel: ChannelReq) -> None:
    send_channel_update_with_from_uid(client, channel, update_channel, "")


def send_channel_update_to_group(client: IMClient, group_no: str) -> None:
    """Tell a group that its own channel information changed."""
    group = ChannelReq(channel_id=group_no, channel_type=int(ChannelType.GROUP))
    send_channel_update_with_from_uid(client, group, group, "")


def send_channel_update_to_user(client: IMClient, uid: str, channel: ChannelReq) -> None:
    """Tell one user that ``channel`` changed."""
    target = ChannelReq(channel_id=uid, channel_type=int(ChannelType.PERSON))
    send_channel_update_with_from_uid(client, target, channel, "")