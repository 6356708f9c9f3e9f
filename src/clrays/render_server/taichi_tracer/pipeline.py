"""
Host-side kernel wrappers.

VoidKernel    - execute() + get_buffer(); no host-visible result
ResultKernel  - adds get_result(), lazily synchronized through the buffer's
                CLEAN/DIRTY state

A kernel marks the buffers it writes DIRTY on every execute(). get_result()
copies device -> host only when the buffer is DIRTY.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Iterable, Tuple

import numpy as np

from clrays.core.scene_compiler import validate_scene_buffers
from clrays.errors import SceneLayoutError
from .buffers import DeviceBuffer
from .device import Event, EventList
from .kernels import CHANNELS
from .program import ComputeProgram

logger = logging.getLogger(__name__)


class VoidKernel(ABC):
    """A bound entry point plus its work size."""

    program: ComputeProgram
    entry_name: str
    arguments: Tuple
    work: Tuple[int, ...]

    def _bind(self, program: ComputeProgram, entry_name: str, bindings: Iterable[Tuple[str, object]]):
        binding = program.kernel(entry_name)
        for name, value in bindings:
            binding.bind(name, value)
        self.program = program
        self.entry_name = entry_name
        self.arguments = binding.build()

    def _dispatch(self, events: EventList) -> Event:
        """Enqueue after every event in `events`, then append this dispatch's event."""
        entry = self.program.entry_point(self.entry_name)
        event = self.program.queue.enqueue_kernel(entry, self.work, self.arguments, wait_for=events)
        events.append(event)
        return event

    @abstractmethod
    def execute(self, events: EventList) -> None:
        pass

    @abstractmethod
    def get_buffer(self) -> DeviceBuffer:
        pass


class ResultKernel(VoidKernel):
    """Kernel whose output buffer can be read back on the host."""

    def get_result(self) -> np.ndarray:
        """
        Host array of the output buffer.

        One device->host copy if the kernel executed since the last call,
        none otherwise. The same array object is returned every time.
        """
        return self.get_buffer().read()

    @property
    def dirty(self) -> bool:
        return self.get_buffer().is_dirty


def _check_grid(width: int, height: int):
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame size must be positive, got {width}x{height}")


def _new_timing() -> dict:
    return {
        'buffer_alloc': 0.0,
        'scene_compile': 0.0,
        'gpu_upload': 0.0,
        'bind': 0.0,
    }


def _upload_scene(program: ComputeProgram, scene, timing: dict) -> Tuple[DeviceBuffer, DeviceBuffer]:
    """Flatten, validate and upload the scene. Returns the (params, items) buffers."""
    t0 = time.time()
    scene_params_raw = np.asarray(scene.get_params_buffer(), dtype=np.int32)
    scene_raw = np.asarray(scene.get_buffers(), dtype=np.float32)
    try:
        validate_scene_buffers(scene_params_raw, scene_raw)
    except SceneLayoutError as e:
        logger.error("Rejected scene upload: %s", e)
        raise
    timing['scene_compile'] = time.time() - t0

    t0 = time.time()
    scene_params = DeviceBuffer(program.queue, scene_params_raw)
    scene_items = DeviceBuffer(program.queue, scene_raw)
    timing['gpu_upload'] = time.time() - t0
    return scene_params, scene_items


class ClearKernel(VoidKernel):
    """
    Zeroes a float buffer over a width x height pixel grid.

    The buffer length must be a multiple of width*height; each pixel entry
    spans len(buffer) // (width*height) channels.
    """

    def __init__(self, program: ComputeProgram, buffer: DeviceBuffer, width: int, height: int):
        _check_grid(width, height)
        pixels = width * height
        if len(buffer) < pixels or len(buffer) % pixels:
            raise ValueError(f"Buffer of {len(buffer)} elements does not tile a {width}x{height} grid")

        self._bind(program, 'clear', [
            ('buffer', buffer),
            ('width', width),
            ('height', height),
        ])
        self.work = (width, height)
        self.buffer = buffer

    def execute(self, events: EventList):
        self._dispatch(events)
        self.buffer.mark_dirty()

    def get_buffer(self) -> DeviceBuffer:
        return self.buffer


class TraceAaKernel(ResultKernel):
    """
    Supersampled trace into a width x height x 3 float accumulation buffer.

    The scene is flattened and uploaded once here; it is immutable for the
    kernel's lifetime. Work size is (width*aa, height*aa).
    """

    def __init__(self, program: ComputeProgram, scene, width: int, height: int, aa: int):
        _check_grid(width, height)
        if aa < 1:
            raise ValueError(f"Supersampling factor must be >= 1, got {aa}")

        self.timing = _new_timing()

        t0 = time.time()
        self.buffer = DeviceBuffer.zeros(program.queue, width * height * CHANNELS, np.float32)
        self.timing['buffer_alloc'] = time.time() - t0

        self.scene_params, self.scene_items = _upload_scene(program, scene, self.timing)

        t0 = time.time()
        self._bind(program, 'render', [
            ('out_buffer', self.buffer),
            ('width', width),
            ('height', height),
            ('aa', aa),
            ('scene_params', self.scene_params),
            ('scene_items', self.scene_items),
        ])
        self.timing['bind'] = time.time() - t0

        self.work = (width * aa, height * aa)
        for stage, seconds in self.timing.items():
            logger.debug("TraceAaKernel %s: %.2fms", stage, seconds * 1000)

    def execute(self, events: EventList):
        self._dispatch(events)
        self.buffer.mark_dirty()

    def get_buffer(self) -> DeviceBuffer:
        return self.buffer


class TraceKernel(ResultKernel):
    """
    Single-sample trace that packs each pixel straight into a width x height
    int buffer; no Clear or Image pass is needed. Work size is (width, height).
    """

    def __init__(self, program: ComputeProgram, scene, width: int, height: int):
        _check_grid(width, height)
        self.timing = _new_timing()

        t0 = time.time()
        self.buffer = DeviceBuffer.zeros(program.queue, width * height, np.int32)
        self.timing['buffer_alloc'] = time.time() - t0

        self.scene_params, self.scene_items = _upload_scene(program, scene, self.timing)

        t0 = time.time()
        self._bind(program, 'raytracing', [
            ('out_buffer', self.buffer),
            ('width', width),
            ('height', height),
            ('scene_params', self.scene_params),
            ('scene_items', self.scene_items),
        ])
        self.timing['bind'] = time.time() - t0

        self.work = (width, height)
        for stage, seconds in self.timing.items():
            logger.debug("TraceKernel %s: %.2fms", stage, seconds * 1000)

    def execute(self, events: EventList):
        self._dispatch(events)
        self.buffer.mark_dirty()

    def get_buffer(self) -> DeviceBuffer:
        return self.buffer


class ImageKernel(ResultKernel):
    """
    Packs an external float RGB buffer into width x height 0x00RRGGBB ints.

    The source buffer is bound, not owned; the packed buffer is owned here.
    """

    def __init__(self, program: ComputeProgram, source: DeviceBuffer, width: int, height: int):
        _check_grid(width, height)
        if len(source) < width * height * CHANNELS:
            raise ValueError(
                f"Source buffer of {len(source)} floats is too small for {width}x{height} RGB"
            )

        self.buffer = DeviceBuffer.zeros(program.queue, width * height, np.int32)
        self._bind(program, 'image_from_floatmap', [
            ('in_buffer', source),
            ('out_buffer', self.buffer),
            ('width', width),
            ('height', height),
        ])
        self.work = (width, height)
        self.source = source

    def execute(self, events: EventList):
        self._dispatch(events)
        self.buffer.mark_dirty()

    def get_buffer(self) -> DeviceBuffer:
        return self.buffer
