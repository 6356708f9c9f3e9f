"""Tests for the command queue and event bookkeeping."""

import numpy as np
import pytest

from clrays.render_server.taichi_tracer import CommandQueue, DeviceBuffer, EventList


def test_events_are_sequenced(queue):
    a = DeviceBuffer.zeros(queue, 4, np.float32)
    b = DeviceBuffer.zeros(queue, 4, np.float32)
    events = EventList()
    events.append(queue.enqueue_write(a.device, a.host))
    events.append(queue.enqueue_write(b.device, b.host))

    assert events[1].sequence == events[0].sequence + 1
    assert events.last is events[1]


def test_event_completes_after_wait(queue):
    buf = DeviceBuffer.zeros(queue, 4, np.float32)
    event = queue.enqueue_write(buf.device, buf.host)

    assert not event.is_complete
    event.wait()
    assert event.is_complete
    assert queue.stats['syncs'] == 1


def test_event_list_wait_finishes_queue(queue):
    buf = DeviceBuffer.zeros(queue, 4, np.float32)
    events = EventList([queue.enqueue_write(buf.device, buf.host)])

    events.wait()

    assert all(e.is_complete for e in events)


def test_foreign_event_rejected(queue):
    other = CommandQueue()
    buf = DeviceBuffer.zeros(other, 4, np.float32)
    foreign = EventList([other.enqueue_write(buf.device, buf.host)])

    with pytest.raises(ValueError, match="different command queue"):
        queue.enqueue_write(buf.device, buf.host, wait_for=foreign)


def test_derive_is_independent(queue):
    buf = DeviceBuffer.zeros(queue, 4, np.float32)
    events = EventList([queue.enqueue_write(buf.device, buf.host)])

    child = events.derive()
    child.append(queue.enqueue_write(buf.device, buf.host))

    assert len(events) == 1
    assert len(child) == 2
    assert child[0] is events[0]


def test_read_copies_in_place(queue):
    buf = DeviceBuffer.zeros(queue, 3, np.float32)
    buf.device.from_numpy(np.array([1, 2, 3], dtype=np.float32))
    host = np.zeros(3, dtype=np.float32)

    event = queue.enqueue_read(buf.device, host)

    np.testing.assert_array_equal(host, [1, 2, 3])
    assert event.is_complete
    assert queue.stats['reads'] == 1
