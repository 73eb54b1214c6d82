import uuid

import pytest

from mitosha.shm import SharedMemoryError, SharedSegment, unlink


@pytest.fixture
def name():
    segment_name = f"mitosha_test_{uuid.uuid4().hex[:12]}"
    unlink(segment_name)
    yield segment_name
    unlink(segment_name)


def test_create_rejects_name_with_slash():
    with pytest.raises(SharedMemoryError):
        SharedSegment.create("tmp/filo", 10)


def test_create_reports_name_buffer_and_size(name):
    with SharedSegment.create(name, 10) as seg:
        assert seg.name == name
        assert len(seg.buffer) == 10
        assert seg.size == 10


def test_create_rejects_zero_size(name):
    with pytest.raises(SharedMemoryError):
        SharedSegment.create(name, 0)


def test_lock_unlock(name):
    with SharedSegment.create(name, 64) as seg, SharedSegment.create(name, 64) as other:
        seg.unlock_force()
        seg.lock()
        assert other.trylock() is False
        seg.unlock()
        assert other.trylock() is True
        other.unlock()


def test_lock_between_two_handles(name):
    with SharedSegment.create(name, 64) as r, SharedSegment.create(name, 64) as r2:
        r.lock()
        assert r2.trylock() is False
        r.unlock()
        assert r2.trylock() is True
        assert r.trylock() is False
        r2.unlock()
        assert r.trylock() is True
        r.unlock()


def test_unlock_force_recovers_abandoned_lock(name):
    holder = SharedSegment.create(name, 64)
    holder.lock()
    holder.buffer[:6] = b"Hello!"
    holder.close()

    with SharedSegment.create(name, 64) as seg:
        assert seg.trylock() is False
        seg.unlock_force()
        assert seg.trylock() is True
        assert bytes(seg.buffer[:6]) == b"Hello!"
        seg.unlock()


def test_unlock_force_does_not_raise_count_when_free(name):
    with SharedSegment.create(name, 64) as seg:
        seg.unlock_force()
        seg.unlock_force()
        assert seg.trylock() is True
        assert seg.trylock() is False
        seg.unlock()


def test_memory_shared_between_handles(name):
    with SharedSegment.create(name, 64) as r, SharedSegment.create(name, 128) as r2:
        text = b"Hello World!"
        r.buffer[: len(text)] = text
        assert bytes(r2.buffer[: len(text)]) == text


def test_size_follows_latest_create(name):
    with SharedSegment.create(name, 64) as r, SharedSegment.create(name, 128) as r2:
        assert r2.size == 128
        assert r.size == 128


def test_open_sees_same_contents(name):
    with SharedSegment.create(name, 1024) as created:
        data = bytes(i % 255 for i in range(created.size))
        created.buffer[:] = data
        with SharedSegment.open(name) as opened:
            assert opened.size == created.size
            assert bytes(opened.buffer) == data


def test_reopen_after_close(name):
    first = SharedSegment.create(name, 128)
    assert first.size == 128
    first.buffer[:12] = b"REOPEN_TEST\0"
    first.close()

    with SharedSegment.open(name) as second:
        assert second.size == 128
        assert bytes(second.buffer[:12]) == b"REOPEN_TEST\0"


def test_open_missing_segment_fails(name):
    with pytest.raises(SharedMemoryError):
        SharedSegment.open(name)


def test_unlink_removes_segment(name):
    SharedSegment.create(name, 32).close()
    unlink(name)
    with pytest.raises(SharedMemoryError):
        SharedSegment.open(name)


def test_closed_segment_refuses_operations(name):
    seg = SharedSegment.create(name, 32)
    seg.close()
    assert seg.size == 0
    with pytest.raises(SharedMemoryError):
        seg.lock()
    with pytest.raises(SharedMemoryError):
        seg.trylock()
    with pytest.raises(SharedMemoryError):
        seg.unlock()
    with pytest.raises(SharedMemoryError):
        seg.buffer