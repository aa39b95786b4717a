import asyncio
import threading
import time

import pytest

from friendlinks import writer as writer_mod
from friendlinks.writer import AsyncWriteQueue


def test_same_target_is_written_once(tmp_path, monkeypatch):
    calls = []
    real_write = writer_mod.atomic_write_text

    def slow_write(path, text):
        calls.append(path)
        time.sleep(0.05)
        real_write(path, text)

    monkeypatch.setattr(writer_mod, "atomic_write_text", slow_write)
    target = tmp_path / "a.example.yml"

    async def go():
        async with AsyncWriteQueue(concurrency=2) as q:
            first = q.enqueue(target, "first")
            second = q.enqueue(target, "second")
            assert q.is_reserved(target)
            await q.flush()
            assert not q.is_reserved(target)
            # Once written, the file on disk blocks further writes.
            third = q.enqueue(target, "third")
        return first, second, third

    assert asyncio.run(go()) == (True, False, False)
    assert calls == [target]
    assert target.read_text(encoding="utf-8") == "first"


def test_concurrency_is_bounded(tmp_path, monkeypatch):
    lock = threading.Lock()
    active = 0
    peak = 0

    def tracking_write(path, text):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.03)
        path.write_text(text, encoding="utf-8")
        with lock:
            active -= 1

    monkeypatch.setattr(writer_mod, "atomic_write_text", tracking_write)

    async def go():
        q = AsyncWriteQueue(concurrency=2)
        for i in range(6):
            assert q.enqueue(tmp_path / f"{i}.yml", str(i))
        await q.close()
        return q

    q = asyncio.run(go())
    assert peak <= 2
    assert len(q.written) == 6
    assert q.pending == 0 and q.active == 0


def test_failed_write_is_logged_and_released(tmp_path, monkeypatch, caplog):
    def broken_write(path, text):
        raise PermissionError("read-only")

    monkeypatch.setattr(writer_mod, "atomic_write_text", broken_write)
    target = tmp_path / "a.example.yml"

    async def go():
        async with AsyncWriteQueue() as q:
            q.enqueue(target, "x")
            await q.flush()
            return q

    q = asyncio.run(go())
    assert q.failed == [target]
    assert q.written == []
    assert not q.is_reserved(target)
    assert "Failed to write" in caplog.text


def test_unexpected_write_error_does_not_stall_queue(
    tmp_path, monkeypatch, caplog
):
    real_write = writer_mod.atomic_write_text

    def picky_write(path, text):
        if path.name == "bad.yml":
            raise UnicodeEncodeError("utf-8", text, 0, 1, "surrogates not allowed")
        real_write(path, text)

    monkeypatch.setattr(writer_mod, "atomic_write_text", picky_write)
    bad = tmp_path / "bad.yml"
    good = tmp_path / "good.yml"

    async def go():
        q = AsyncWriteQueue(concurrency=1)
        q.enqueue(bad, "x")
        q.enqueue(good, "ok")
        await asyncio.wait_for(q.flush(), timeout=5)
        await q.close()
        return q

    q = asyncio.run(go())
    assert q.failed == [bad]
    assert q.written == [good]
    assert good.read_text(encoding="utf-8") == "ok"
    assert not bad.exists()
    assert "Failed to write" in caplog.text


def test_flush_without_jobs_returns_immediately():
    async def go():
        q = AsyncWriteQueue()
        await q.flush()
        await q.close()

    asyncio.run(go())


def test_concurrency_must_be_positive():
    with pytest.raises(ValueError):
        AsyncWriteQueue(concurrency=0)
