"""
TraceProcessor: per-frame tracing pipeline.
Thin class that wires the kernels together and hands the packed image to the display layer.
"""

import enum
import logging
import time
from typing import List, Optional

import numpy as np

from .device import EventList
from .pipeline import ClearKernel, ImageKernel, ResultKernel, TraceAaKernel, TraceKernel, VoidKernel
from .program import ComputeProgram

logger = logging.getLogger(__name__)


class TraceMode(enum.Enum):
    REAL = 'real'   # one ray per pixel, packed by the trace kernel itself
    AA = 'aa'       # Clear -> supersampled Trace -> Image


class TraceProcessor:
    """
    Tracing pipeline in one of two modes.

    Usage:
        processor = TraceProcessor(640, 480, 2, scene)
        pixels = processor.render()   # width*height packed ints

        processor = TraceProcessor(640, 480, 1, scene, mode=TraceMode.REAL)
    """

    def __init__(self, width: int, height: int, aa: int, scene,
                 program: Optional[ComputeProgram] = None, mode: TraceMode = TraceMode.AA):
        """
        Build the mode's kernels and upload the scene.

        Args:
            width, height: frame size in pixels (> 0)
            aa: supersampling factor per axis (>= 1); REAL mode traces one ray per pixel regardless
            scene: object exposing get_buffers() / get_params_buffer()
            program: compute program to build kernels from (a new one by default)
            mode: TraceMode.AA or TraceMode.REAL
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame size must be positive, got {width}x{height}")
        if aa < 1:
            raise ValueError(f"Supersampling factor must be >= 1, got {aa}")
        mode = TraceMode(mode)

        self.timing = {
            'program_build': 0.0,
            'kernel_build': 0.0,
            'total_setup': 0.0,
        }
        self.frame_times: List[float] = []

        setup_start = time.time()
        self.width = width
        self.height = height
        self.mode = mode
        self.aa = aa if mode is TraceMode.AA else 1

        t0 = time.time()
        self.program = program if program is not None else ComputeProgram()
        self.timing['program_build'] = time.time() - t0

        t0 = time.time()
        self.clear_kernel: Optional[ClearKernel] = None
        self.image_kernel: Optional[ImageKernel] = None
        if mode is TraceMode.REAL:
            self.trace_kernel = TraceKernel(self.program, scene, width, height)
            self.result_kernel: ResultKernel = self.trace_kernel
        else:
            self.trace_kernel = TraceAaKernel(self.program, scene, width, height, aa)
            self.clear_kernel = ClearKernel(self.program, self.trace_kernel.get_buffer(), width, height)
            self.image_kernel = ImageKernel(self.program, self.trace_kernel.get_buffer(), width, height)
            self.result_kernel = self.image_kernel
        self.timing['kernel_build'] = time.time() - t0

        self.timing['total_setup'] = time.time() - setup_start
        logger.info("TraceProcessor ready: %s mode, %dx%d, aa=%d, setup %.2fms",
                    mode.value, width, height, self.aa, self.timing['total_setup'] * 1000)

    @property
    def kernels(self) -> List[VoidKernel]:
        """Pipeline stages in execution order."""
        if self.mode is TraceMode.REAL:
            return [self.trace_kernel]
        return [self.clear_kernel, self.trace_kernel, self.image_kernel]

    def execute(self, events: Optional[EventList] = None) -> EventList:
        """Enqueue one frame without waiting for it. Returns the frame's event list."""
        events = events if events is not None else EventList()
        for kernel in self.kernels:
            kernel.execute(events)
        return events

    def render(self) -> np.ndarray:
        """Run one frame and return the packed pixel array (blocks on the final read)."""
        frame_start = time.time()
        self.execute()
        pixels = self.result_kernel.get_result()
        self.frame_times.append(time.time() - frame_start)
        return pixels

    def print_stats(self):
        """Print setup and frame timing summary"""
        print(f"\n{self.__class__.__name__} ({self.mode.value})")
        print(f"Resolution: {self.width}x{self.height} | AA: {self.aa} | "
              f"Work size: {self.trace_kernel.work[0]}x{self.trace_kernel.work[1]}")
        print(f"Setup: Program {self.timing['program_build']*1000:6.2f}ms | "
              f"Kernels {self.timing['kernel_build']*1000:6.2f}ms | "
              f"Total {self.timing['total_setup']*1000:6.2f}ms")

        if not self.frame_times:
            return

        total = sum(self.frame_times)
        avg = total / len(self.frame_times)
        pixels_per_sec = self.width * self.height / avg if avg > 0 else 0
        print(f"Frames: {len(self.frame_times)} in {total:6.2f}s")
        print(f"Frame Time: Avg {avg*1000:5.2f}ms | Min {min(self.frame_times)*1000:5.2f}ms | "
              f"Max {max(self.frame_times)*1000:5.2f}ms")
        print(f"Throughput: {pixels_per_sec/1e6:5.2f} Mpix/s")
