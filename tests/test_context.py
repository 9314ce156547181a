import threading
import time
from datetime import timedelta

import pytest

from imserverkit.context import AppContext, OnlineStatus, ScheduledTask
from imserverkit.models import MessageResp


def test_memory_cache_is_shared():
    ctx = AppContext()
    first = ctx.memory_cache()
    first.set("k", "v")
    assert ctx.memory_cache() is first
    assert ctx.memory_cache().get("k") == "v"


def test_values_store_and_missing():
    ctx = AppContext()
    ctx.set_value(42, "answer")
    assert ctx.value("answer") == 42
    assert ctx.value("absent") is None
    ctx.set_value("x", "answer")
    assert ctx.value("answer") == "x"


def test_online_status_listeners_in_order():
    ctx = AppContext()
    seen = []
    first = lambda statuses: seen.append(("first", statuses))
    second = lambda statuses: seen.append(("second", statuses))
    ctx.add_online_status_listener(first)
    ctx.add_online_status_listener(second)
    assert ctx.online_status_listeners() == [first, second]
    statuses = [OnlineStatus(uid="u1", online=True)]
    for listener in ctx.online_status_listeners():
        listener(statuses)
    assert seen == [("first", statuses), ("second", statuses)]


def test_event_listeners_per_event():
    ctx = AppContext()
    a = lambda data, commit: commit(None)
    b = lambda data, commit: commit(None)
    ctx.add_event_listener("e1", a)
    ctx.add_event_listener("e1", b)
    ctx.add_event_listener("e2", b)
    assert ctx.event_listeners("e1") == [a, b]
    assert ctx.event_listeners("e2") == [b]
    assert ctx.event_listeners("none") == []


def test_event_listener_receives_commit():
    ctx = AppContext()
    results = []
    ctx.add_event_listener("evt", lambda data, commit: commit(ValueError(data.decode())))
    for listener in ctx.event_listeners("evt"):
        listener(b"boom", results.append)
    assert len(results) == 1
    assert str(results[0]) == "boom"


def test_notify_messages_listeners():
    ctx = AppContext()
    received = []
    ctx.add_messages_listener(lambda messages: received.append(len(messages)))
    ctx.add_messages_listener(lambda messages: received.append(messages[0].channel_id))
    ctx.notify_messages_listeners([MessageResp(channel_id="c1"), MessageResp()])
    assert received == [2, "c1"]


def test_schedule_runs_repeatedly_and_stops():
    ctx = AppContext()
    calls = []
    done = threading.Event()

    def tick():
        calls.append(1)
        if len(calls) >= 2:
            done.set()

    task = ctx.schedule(timedelta(milliseconds=10), tick)
    assert done.wait(5)
    assert task.stop() is True
    count = len(calls)
    time.sleep(0.05)
    assert len(calls) == count
    assert task.stop() is False


def test_scheduled_task_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        ScheduledTask(0, lambda: None)