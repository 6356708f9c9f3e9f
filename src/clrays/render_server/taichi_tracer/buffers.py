"""
DeviceBuffer: a host numpy array mirrored by a Taichi ndarray.

The buffer carries a two-state sync machine:
    CLEAN - host array equals device content
    DIRTY - a kernel wrote the device side since the last host read
"""

import enum
from typing import Sequence, Union

import numpy as np
import taichi as ti

from .device import CommandQueue

_TI_DTYPES = {
    np.dtype(np.float32): ti.f32,
    np.dtype(np.int32): ti.i32,
}


class SyncState(enum.Enum):
    CLEAN = 'clean'
    DIRTY = 'dirty'


class DeviceBuffer:
    """
    Owned 1-D buffer of float32 or int32 living on host and device.

    The host array object never changes; reads copy into it in place, so
    callers may keep a reference to the array returned by read().
    """

    def __init__(self, queue: CommandQueue, host: np.ndarray):
        host = np.ascontiguousarray(host)
        if host.dtype not in _TI_DTYPES:
            raise TypeError(f"Unsupported buffer dtype {host.dtype}; use float32 or int32")
        if host.ndim != 1:
            raise ValueError(f"DeviceBuffer expects a flat array, got shape {host.shape}")
        if host.size == 0:
            raise ValueError("DeviceBuffer cannot be built from an empty array")

        self.queue = queue
        self.host = host
        self.device = ti.ndarray(dtype=_TI_DTYPES[host.dtype], shape=host.shape)
        self.state = SyncState.CLEAN
        self.transfer_count = 0

        queue.enqueue_write(self.device, self.host)

    @classmethod
    def from_array(cls, queue: CommandQueue, data: Union[Sequence, np.ndarray], dtype) -> 'DeviceBuffer':
        """Allocate a buffer holding a private copy of `data`."""
        return cls(queue, np.array(data, dtype=dtype).ravel())

    @classmethod
    def zeros(cls, queue: CommandQueue, length: int, dtype) -> 'DeviceBuffer':
        return cls(queue, np.zeros(length, dtype=dtype))

    @property
    def dtype(self) -> np.dtype:
        return self.host.dtype

    @property
    def is_dirty(self) -> bool:
        return self.state is SyncState.DIRTY

    def mark_dirty(self):
        """Called by a kernel after enqueuing a write to this buffer."""
        self.state = SyncState.DIRTY

    def read(self) -> np.ndarray:
        """
        Host view of the buffer.

        Performs one blocking device->host copy if DIRTY, none if CLEAN.
        """
        if self.state is SyncState.DIRTY:
            self.queue.enqueue_read(self.device, self.host)
            self.transfer_count += 1
            self.state = SyncState.CLEAN
        return self.host

    def upload(self, data: Union[Sequence, np.ndarray, None] = None):
        """
        Write host content to the device.

        Args:
            data: new content copied into the host array first; must have the
                  buffer's length. None re-uploads the current host array.
        """
        if data is not None:
            data = np.asarray(data, dtype=self.dtype).ravel()
            if data.shape != self.host.shape:
                raise ValueError(f"Cannot upload {data.size} elements into a buffer of {self.host.size}")
            np.copyto(self.host, data)
        self.queue.enqueue_write(self.device, self.host)
        self.state = SyncState.CLEAN

    def __len__(self):
        return self.host.size

    def __repr__(self):
        return f"DeviceBuffer({self.dtype}, len={len(self)}, {self.state.value})"
