"""Sequence number generation backed by a persistent high-water mark."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_INITIAL_SEQ = 1_000_000
_DEFAULT_STEP = 1000


@dataclass
class SeqRecord:
    """The persisted state of one sequence: the value it may resume from."""

    key: str
    min_seq: int
    step: int


class SeqStore(Protocol):
    def load(self, key: str) -> SeqRecord | None: ...

    def save(self, record: SeqRecord) -> None: ...


class MemorySeqStore:
    """Keeps sequence records in a dictionary; useful for tests and single runs."""

    def __init__(self) -> None:
        self._records: dict[str, SeqRecord] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> SeqRecord | None:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return SeqRecord(record.key, record.min_seq, record.step)

    def save(self, record: SeqRecord) -> None:
        """Insert the record, or update only ``min_seq`` if the key exists."""
        with self._lock:
            existing = self._records.get(record.key)
            if existing is None:
                self._records[record.key] = SeqRecord(record.key, record.min_seq, record.step)
            else:
                existing.min_seq = record.min_seq


class SqliteSeqStore:
    """Keeps sequence records in an SQLite table named ``seq``."""

    def __init__(self, path: str | Path) -> None:
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS seq ("
                "key TEXT PRIMARY KEY, min_seq INTEGER NOT NULL, step INTEGER NOT NULL)"
            )

    def load(self, key: str) -> SeqRecord | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT key, min_seq, step FROM seq WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return SeqRecord(key=row[0], min_seq=row[1], step=row[2])

    def save(self, record: SeqRecord) -> None:
        """Insert the record, or update only ``min_seq`` if the key exists."""
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO seq (key, min_seq, step) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET min_seq = excluded.min_seq",
                (record.key, record.min_seq, record.step),
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SqliteSeqStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass
class _SeqState:
    current: int
    maximum: int


class SeqGenerator:
    """Hands out increasing numbers per flag, reserving blocks of ``step`` in the store.

    Only the end of each reserved block is written to the store, so after a
    restart numbers resume beyond anything that could have been handed out.
    """

    def __init__(self, store: SeqStore, step: int = _DEFAULT_STEP) -> None:
        if step <= 0:
            raise ValueError("step must be positive")
        self._store = store
        self._step = step
        self._states: dict[str, _SeqState] = {}
        self._lock = threading.Lock()

    def next(self, flag: str) -> int:
        """The next sequence number for ``flag``."""
        key = f"seq:{flag}"
        with self._lock:
            state = self._states.get(flag)
            if state is None:
                record = self._store.load(key)
                if record is None:
                    current = _INITIAL_SEQ
                    self._store.save(
                        SeqRecord(key=key, min_seq=current + self._step, step=self._step)
                    )
                    state = _SeqState(current=current, maximum=current + self._step)
                else:
                    state = _SeqState(current=record.min_seq, maximum=record.min_seq)
                self._states[flag] = state
            if state.current >= state.maximum:
                self._store.save(
                    SeqRecord(key=key, min_seq=state.current + self._step, step=self._step)
                )
                state.maximum += self._step
            state.current += 1
            return state.current