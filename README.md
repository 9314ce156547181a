# imserverkit

Building blocks for the server side of an instant-messaging application. The
package talks to an IM service over HTTP, builds the command and system
messages a chat backend sends (friend requests, channel updates, red packets,
transfers, call results), and provides small runtime pieces such as caches,
listeners, scheduled tasks and a persistent sequence generator.

## Installation

```
pip install imserverkit
```

For running the test suite:

```
pip install "imserverkit[test]"
pytest
```

## What is inside

| Module | Purpose |
| --- | --- |
| `imserverkit.constants` | Channel types, group roles, device types, command names, `QRCodeModel` and `parse_qrcode_model` |
| `imserverkit.messages` | `ContentType` codes, `display_text`, and helpers for two-user channel ids (`fake_channel_id`, `is_fake_channel`, `to_channel_id_from_fake`) |
| `imserverkit.cache` | `MemoryCache` and a Redis-backed `RedisCache` with the same `set` / `set_and_expire` / `get` / `delete` methods |
| `imserverkit.page` | `PageResult` for paginated responses |
| `imserverkit.models` | Request and response dataclasses for the IM service, `Setting` flags, `to_json_dict` |
| `imserverkit.client` | `IMClient`, an HTTP client for the IM service; errors raise `IMError` |
| `imserverkit.channel` | Channel-update commands |
| `imserverkit.rtc` | Audio/video call result messages and `format_second` |
| `imserverkit.payments` | Red packet and transfer messages, refund notices |
| `imserverkit.context` | `AppContext` holding a memory cache, shared values, listeners and scheduled tasks |
| `imserverkit.seq` | `SeqGenerator` handing out increasing numbers in reserved blocks, with memory and SQLite stores |

## Examples

Sending a command message through the IM service:

```python
from imserverkit.client import IMClient
from imserverkit.models import MsgCMDReq
from imserverkit.constants import ChannelType

client = IMClient("http://localhost:5001", False)
client.send_cmd(MsgCMDReq(
    channel_id="group1",
    channel_type=ChannelType.GROUP,
    cmd="memberUpdate",
    param={"group_no": "group1"},
))
```

Telling a group that its channel information changed:

```python
from imserverkit.channel import send_channel_update_to_group

send_channel_update_to_group(client, "group1")
```

Person-to-person channel ids:

```python
from imserverkit.messages import fake_channel_id, to_channel_id_from_fake

channel_id = fake_channel_id("alice", "bob")
to_channel_id_from_fake(channel_id, "alice")   # "bob"
```

Message setting flags:

```python
from imserverkit.models import Setting, setting_from_uint8

Setting(no_update_conversation=True).to_uint8()   # 64
setting_from_uint8(160).signal                     # True
```

Sequence numbers that survive restarts:

```python
from imserverkit.seq import SeqGenerator, SqliteSeqStore

with SqliteSeqStore("seq.db") as store:
    generator = SeqGenerator(store, 1000)
    generator.next("user")   # 1000001 on a fresh store
```

Running a function periodically:

```python
from datetime import timedelta
from imserverkit.context import AppContext

context = AppContext()
task = context.schedule(timedelta(seconds=30), lambda: print("tick"))
task.stop()
```

## Errors

IM service failures, such as a non-200 status or a `msg` field in a 400
response, raise `imserverkit.client.IMError`, which carries the
`status_code`. Malformed response or payload data raises
`imserverkit.constants.DataFormatError`.

## What it does not do

- There are no ready-made helpers for group notifications (group creation,
  member added or removed, group updates, invites, exits). Such messages can
  be built as a `MsgSendReq` and sent with `IMClient.send_message`.
- It is a library only: it runs no server and offers no command-line tool.
- It has no background task queue, tracing or database session beyond the
  SQLite store used by `SqliteSeqStore`.