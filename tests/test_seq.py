import threading

import pytest

from imserverkit.seq import MemorySeqStore, SeqGenerator, SeqRecord, SqliteSeqStore


def test_first_value_starts_after_initial_seq():
    gen = SeqGenerator(MemorySeqStore())
    assert gen.next("user") == 1000001


def test_values_are_consecutive():
    gen = SeqGenerator(MemorySeqStore(), step=10)
    values = [gen.next("user") for _ in range(35)]
    assert all(b - a == 1 for a, b in zip(values, values[1:]))


def test_record_stored_under_prefixed_key():
    store = MemorySeqStore()
    gen = SeqGenerator(store, step=10)
    issued = gen.next("group")
    record = store.load("seq:group")
    assert record is not None
    assert record.step == 10
    assert record.min_seq >= issued
    assert store.load("group") is None


def test_store_high_water_mark_covers_issued_values():
    store = MemorySeqStore()
    gen = SeqGenerator(store, step=5)
    last = 0
    for _ in range(23):
        last = gen.next("friend")
        assert store.load("seq:friend").min_seq >= last


def test_flags_are_independent():
    gen = SeqGenerator(MemorySeqStore())
    first_a = gen.next("a")
    gen.next("a")
    first_b = gen.next("b")
    assert first_a == first_b


def test_restart_never_reuses_values():
    store = MemorySeqStore()
    gen = SeqGenerator(store, step=10)
    issued = [gen.next("user") for _ in range(7)]
    restarted = SeqGenerator(store, step=10)
    later = [restarted.next("user") for _ in range(15)]
    assert min(later) > max(issued)
    assert all(b - a == 1 for a, b in zip(later, later[1:]))


def test_resume_from_existing_record():
    store = MemorySeqStore()
    store.save(SeqRecord(key="seq:robot", min_seq=500, step=10))
    gen = SeqGenerator(store, step=10)
    assert gen.next("robot") == 501
    assert store.load("seq:robot").min_seq >= 501


def test_memory_store_update_keeps_step():
    store = MemorySeqStore()
    store.save(SeqRecord(key="k", min_seq=1, step=3))
    store.save(SeqRecord(key="k", min_seq=9, step=99))
    record = store.load("k")
    assert record == SeqRecord(key="k", min_seq=9, step=3)


def test_sqlite_store_round_trip(tmp_path):
    path = tmp_path / "seq.db"
    with SqliteSeqStore(path) as store:
        assert store.load("seq:x") is None
        store.save(SeqRecord(key="seq:x", min_seq=42, step=7))
        store.save(SeqRecord(key="seq:x", min_seq=84, step=1))
    with SqliteSeqStore(path) as store:
        assert store.load("seq:x") == SeqRecord(key="seq:x", min_seq=84, step=7)


def test_sqlite_restart_never_reuses_values(tmp_path):
    path = tmp_path / "seq.db"
    store = SqliteSeqStore(path)
    issued = [SeqGenerator(store, step=4).next("user")]
    gen = SeqGenerator(store, step=4)
    issued += [gen.next("user") for _ in range(9)]
    store.close()
    store = SqliteSeqStore(path)
    later = [SeqGenerator(store, step=4).next("user") for _ in range(3)]
    store.close()
    assert len(set(issued + later)) == len(issued + later)
    assert min(later) > max(issued)


def test_threads_get_unique_values():
    gen = SeqGenerator(MemorySeqStore(), step=7)
    results: list[int] = []
    lock = threading.Lock()

    def worker():
        local = [gen.next("msg") for _ in range(100)]
        with lock:
            results.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(results) == 800
    assert len(set(results)) == 800
    assert max(results) - min(results) == 799
    assert gen.next("msg") == max(results) + 1


@pytest.mark.parametrize("step", [0, -5])
def test_non_positive_step_rejected(step):
    with pytest.raises(ValueError):
        SeqGenerator(MemorySeqStore(), step=step)