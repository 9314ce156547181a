import pytest

from imserverkit.messages import (
    ContentType,
    display_text,
    fake_channel_id,
    hash_crc32,
    is_fake_channel,
    to_channel_id_from_fake,
)


def test_str_named_types():
    assert str(ContentType(1)) == "Text"
    assert str(ContentType(1006)) == "RevokeMessage"
    assert str(ContentType(99)) == "CMD"


@pytest.mark.parametrize("ct", [ContentType.VIDEO, ContentType.TIP, ContentType.VIDEO_CALL_RESULT])
def test_str_unnamed_types_fall_back_to_number(ct):
    assert str(ct) == str(int(ct))


def test_content_type_values():
    assert ContentType.GROUP_MEMBER_QUIT == 1021
    assert ContentType(9989) is ContentType.VIDEO_CALL_RESULT


def test_display_text_known_and_unknown():
    assert display_text(1) == "文本消息"
    assert display_text(ContentType.RICH_TEXT) == "富文本消息"
    assert display_text(ContentType.CMD) == "未知消息类型"
    assert display_text(123456) == "未知消息类型"


def test_hash_crc32_check_value():
    assert hash_crc32("123456789") == 0xCBF43926


@pytest.mark.parametrize("a,b", [("alice", "bob"), ("u1", "u2"), ("x", "yz")])
def test_fake_channel_id_symmetric(a, b):
    combined = fake_channel_id(a, b)
    assert combined == fake_channel_id(b, a)
    assert sorted(combined.split("@")) == sorted([a, b])
    assert is_fake_channel(combined)


@pytest.mark.parametrize("a,b", [("alice", "bob"), ("u1", "u2")])
def test_to_channel_id_from_fake_returns_other(a, b):
    combined = fake_channel_id(a, b)
    assert to_channel_id_from_fake(combined, a) == b
    assert to_channel_id_from_fake(combined, b) == a


def test_to_channel_id_from_fake_non_fake_unchanged():
    assert to_channel_id_from_fake("group1", "alice") == "group1"
    assert to_channel_id_from_fake("a@b@c", "a") == "a@b@c"


def test_is_fake_channel_false():
    assert is_fake_channel("plain") is False