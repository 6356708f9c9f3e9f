"""
Taichi device setup, the in-order command queue, and event lists.

Taichi launches kernels asynchronously on a single ordered stream, so every
dispatch enqueued after another one observes its writes. Events record the
position of each command in that stream; the host learns they completed at
synchronization points (a blocking read or an explicit wait).
"""

import logging
import os
from typing import Iterable, Iterator, List, Optional

import numpy as np
import taichi as ti

from clrays.errors import ConfigError

logger = logging.getLogger(__name__)

# Initialize Taichi ONCE at module load
# Set TAICHI_KERNEL_PROFILER=1 to enable kernel profiling
# Set CLRAYS_ARCH=cpu (or cuda, vulkan, metal, ...) to pick a backend; 'gpu' falls back to CPU
ENABLE_PROFILER = os.environ.get('TAICHI_KERNEL_PROFILER', '0') == '1'
ARCH = os.environ.get('CLRAYS_ARCH', 'gpu').lower()

try:
    _arch = getattr(ti, ARCH)
except AttributeError:
    raise ConfigError(f"Unknown Taichi arch '{ARCH}' in CLRAYS_ARCH") from None

ti.init(arch=_arch, kernel_profiler=ENABLE_PROFILER)


class Event:
    """Completion token for one enqueued command."""

    def __init__(self, queue: 'CommandQueue', sequence: int, label: str):
        self.queue = queue
        self.sequence = sequence
        self.label = label

    @property
    def is_complete(self) -> bool:
        return self.queue.completed >= self.sequence

    def wait(self):
        """Block until this command (and everything enqueued before it) finished."""
        if not self.is_complete:
            self.queue.finish()

    def __repr__(self):
        state = 'complete' if self.is_complete else 'pending'
        return f"Event({self.label!r}, seq={self.sequence}, {state})"


class EventList:
    """
    Ordered list of events shared by the kernels of one frame.

    A dispatch enqueued with a list waits on every event in it and then
    appends its own event, so later dispatches depend on it.
    """

    def __init__(self, events: Iterable[Event] = ()):
        self._events: List[Event] = list(events)

    def append(self, event: Event):
        self._events.append(event)

    def derive(self) -> 'EventList':
        """New list carrying the same dependencies; appends to it do not affect this one."""
        return EventList(self._events)

    @property
    def last(self) -> Optional[Event]:
        return self._events[-1] if self._events else None

    def wait(self):
        """Block until every event in the list has completed."""
        for queue in {id(e.queue): e.queue for e in self._events}.values():
            queue.finish()

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __len__(self):
        return len(self._events)

    def __getitem__(self, index) -> Event:
        return self._events[index]


class CommandQueue:
    """
    In-order device work queue.

    Kernel launches never block. Reads block until every command enqueued
    before them has finished.
    """

    def __init__(self):
        self.enqueued = 0
        self.completed = 0
        self.stats = {
            'dispatches': 0,
            'reads': 0,
            'writes': 0,
            'syncs': 0,
        }

    def _record(self, label: str) -> Event:
        self.enqueued += 1
        return Event(self, self.enqueued, label)

    def _check_wait_list(self, wait_for: Optional[Iterable[Event]]):
        if wait_for is None:
            return
        for event in wait_for:
            if event.queue is not self:
                raise ValueError(f"{event!r} belongs to a different command queue")

    def enqueue_kernel(self, entry, work, args, wait_for: Optional[EventList] = None) -> Event:
        """Launch an entry point over `work`; the wait list is satisfied by queue order."""
        self._check_wait_list(wait_for)
        entry.launch(args, work)
        self.stats['dispatches'] += 1
        return self._record(entry.name)

    def enqueue_write(self, device, host: np.ndarray, wait_for: Optional[EventList] = None) -> Event:
        """Copy a host array into a device ndarray of the same shape."""
        self._check_wait_list(wait_for)
        device.from_numpy(host)
        self.stats['writes'] += 1
        return self._record('write')

    def enqueue_read(self, device, host: np.ndarray, wait_for: Optional[EventList] = None) -> Event:
        """Blocking copy of a device ndarray into `host`, in place."""
        self._check_wait_list(wait_for)
        event = self._record('read')
        self.finish()
        np.copyto(host, device.to_numpy().reshape(host.shape))
        self.stats['reads'] += 1
        return event

    def finish(self):
        """Wait for all enqueued commands."""
        ti.sync()
        self.completed = self.enqueued
        self.stats['syncs'] += 1
