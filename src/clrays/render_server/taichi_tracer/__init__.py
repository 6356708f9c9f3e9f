"""
Taichi Tracer

Kernel wrappers and device-buffer synchronization for the GPU ray tracer.
Importing this package initializes Taichi (see device.py).
"""

from .device import ENABLE_PROFILER, CommandQueue, Event, EventList
from .buffers import DeviceBuffer, SyncState
from .program import ArgKind, ArgSpec, ComputeProgram, KernelBinding
from .pipeline import ClearKernel, ImageKernel, ResultKernel, TraceAaKernel, TraceKernel, VoidKernel
from .processor import TraceMode, TraceProcessor

__all__ = [
    'ENABLE_PROFILER', 'CommandQueue', 'Event', 'EventList',
    'DeviceBuffer', 'SyncState',
    'ArgKind', 'ArgSpec', 'ComputeProgram', 'KernelBinding',
    'ClearKernel', 'ImageKernel', 'ResultKernel', 'TraceAaKernel', 'TraceKernel', 'VoidKernel',
    'TraceMode', 'TraceProcessor',
]
