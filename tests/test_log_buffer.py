# tests/test_log_buffer.py

from __future__ import annotations

import pytest

from scriptdeck.tasks.log_buffer import MAX_LOGS, LogBuffer


def test_default_capacity_is_2000() -> None:
    assert MAX_LOGS == 2000
    assert LogBuffer().capacity == 2000


def test_append_keeps_chronological_order() -> None:
    buf: LogBuffer[int] = LogBuffer(5)
    for i in range(3):
        buf.append(i)
    assert buf.snapshot() == [0, 1, 2]
    assert len(buf) == 3


def test_overflow_evicts_exactly_the_oldest_entry() -> None:
    buf: LogBuffer[int] = LogBuffer()
    for i in range(MAX_LOGS):
        buf.append(i)
    assert len(buf) == MAX_LOGS

    buf.append(MAX_LOGS)

    entries = buf.snapshot()
    assert len(entries) == MAX_LOGS
    assert entries[0] == 1
    assert entries[-1] == MAX_LOGS
    assert entries == list(range(1, MAX_LOGS + 1))


def test_clear_empties_the_buffer() -> None:
    buf: LogBuffer[str] = LogBuffer(3)
    buf.append("a")
    buf.append("b")
    buf.clear()
    assert len(buf) == 0
    assert list(buf) == []
    buf.append("c")
    assert buf.snapshot() == ["c"]


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LogBuffer(0)
