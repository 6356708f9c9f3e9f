"""
Compute program: named entry points with declared signatures, and the
binding descriptor kernels use to attach arguments to them.

Every entry point declares its arguments as an ordered list of
ArgSpec(slot, name, kind). A KernelBinding collects arguments by name and is
validated against that list when built, so a wrong buffer type, a missing
argument or a renamed slot fails at kernel construction instead of at
dispatch.
"""

import enum
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np

from clrays.errors import BindingError
from . import kernels
from .buffers import DeviceBuffer
from .device import CommandQueue

logger = logging.getLogger(__name__)

# Trailing parameters of every entry point, filled from the dispatch work size
WORK_DIM_PARAMS = ('global_x', 'global_y')


def _python_function(func: Callable) -> Callable:
    """The Python function behind a @ti.kernel wrapper (or func itself)."""
    primal = getattr(func, '_primal', None)
    return getattr(primal, 'func', func)


class ArgKind(enum.Enum):
    FLOAT_BUFFER = 'float buffer'
    INT_BUFFER = 'int buffer'
    UINT = 'uint'

    def accepts(self, value) -> bool:
        if self is ArgKind.FLOAT_BUFFER:
            return isinstance(value, DeviceBuffer) and value.dtype == np.float32
        if self is ArgKind.INT_BUFFER:
            return isinstance(value, DeviceBuffer) and value.dtype == np.int32
        return isinstance(value, (int, np.integer)) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True)
class ArgSpec:
    slot: int
    name: str
    kind: ArgKind


SIGNATURES: Dict[str, Tuple[ArgSpec, ...]] = {
    'clear': (
        ArgSpec(0, 'buffer', ArgKind.FLOAT_BUFFER),
        ArgSpec(1, 'width', ArgKind.UINT),
        ArgSpec(2, 'height', ArgKind.UINT),
    ),
    'render': (
        ArgSpec(0, 'out_buffer', ArgKind.FLOAT_BUFFER),
        ArgSpec(1, 'width', ArgKind.UINT),
        ArgSpec(2, 'height', ArgKind.UINT),
        ArgSpec(3, 'aa', ArgKind.UINT),
        ArgSpec(4, 'scene_params', ArgKind.INT_BUFFER),
        ArgSpec(5, 'scene_items', ArgKind.FLOAT_BUFFER),
    ),
    'image_from_floatmap': (
        ArgSpec(0, 'in_buffer', ArgKind.FLOAT_BUFFER),
        ArgSpec(1, 'out_buffer', ArgKind.INT_BUFFER),
        ArgSpec(2, 'width', ArgKind.UINT),
        ArgSpec(3, 'height', ArgKind.UINT),
    ),
    'raytracing': (
        ArgSpec(0, 'out_buffer', ArgKind.INT_BUFFER),
        ArgSpec(1, 'width', ArgKind.UINT),
        ArgSpec(2, 'height', ArgKind.UINT),
        ArgSpec(3, 'scene_params', ArgKind.INT_BUFFER),
        ArgSpec(4, 'scene_items', ArgKind.FLOAT_BUFFER),
    ),
}


class EntryPoint:
    """A compiled kernel function plus its declared argument list."""

    def __init__(self, name: str, func: Callable, signature: Sequence[ArgSpec]):
        self.name = name
        self.func = func
        self.signature = tuple(sorted(signature, key=lambda spec: spec.slot))
        self._check_signature()

    def _check_signature(self):
        slots = [spec.slot for spec in self.signature]
        if slots != list(range(len(slots))):
            raise BindingError(f"'{self.name}' declares non-contiguous slots {slots}")

        declared = [spec.name for spec in self.signature] + list(WORK_DIM_PARAMS)
        actual = list(inspect.signature(_python_function(self.func)).parameters)
        if declared != actual:
            raise BindingError(
                f"'{self.name}' declares arguments {declared} but the kernel takes {actual}"
            )

    def spec(self, name: str) -> ArgSpec:
        for spec in self.signature:
            if spec.name == name:
                return spec
        expected = ', '.join(spec.name for spec in self.signature)
        raise BindingError(f"'{self.name}' has no argument '{name}'. Expected: {expected}")

    def launch(self, args: Sequence[Any], work: Sequence[int]):
        """Run the kernel over a 2-D work size. Buffers are passed as their device ndarrays."""
        if len(work) != len(WORK_DIM_PARAMS):
            raise ValueError(f"'{self.name}' needs a {len(WORK_DIM_PARAMS)}-D work size, got {tuple(work)}")
        device_args = [arg.device if isinstance(arg, DeviceBuffer) else arg for arg in args]
        self.func(*device_args, *work)

    def __repr__(self):
        args = ', '.join(f"{spec.name}: {spec.kind.value}" for spec in self.signature)
        return f"{self.name}({args})"


class KernelBinding:
    """
    Named-binding descriptor for one entry point.

    Usage:
        args = (program.kernel('clear')
                .bind('buffer', buf)
                .bind('width', 640)
                .bind('height', 480)
                .build())
    """

    def __init__(self, entry: EntryPoint):
        self.entry = entry
        self._values: Dict[int, Any] = {}

    def bind(self, name: str, value) -> 'KernelBinding':
        spec = self.entry.spec(name)
        if spec.slot in self._values:
            raise BindingError(f"'{self.entry.name}' argument '{name}' is already bound")
        if not spec.kind.accepts(value):
            raise BindingError(
                f"'{self.entry.name}' argument {spec.slot} '{name}' expects a {spec.kind.value}, "
                f"got {value!r}"
            )
        self._values[spec.slot] = value
        return self

    def build(self) -> Tuple[Any, ...]:
        """Arguments in slot order; every declared slot must be bound."""
        missing = [spec.name for spec in self.entry.signature if spec.slot not in self._values]
        if missing:
            raise BindingError(f"'{self.entry.name}' is missing arguments: {', '.join(missing)}")
        return tuple(self._values[spec.slot] for spec in self.entry.signature)


class ComputeProgram:
    """
    The tracer's compute program and the queue its kernels run on.

    Args:
        queue: command queue shared by every kernel built from this program
        entry_points: name -> (kernel function, signature); defaults to the
                      tracer kernels in kernels.py
    """

    def __init__(self, queue: Optional[CommandQueue] = None,
                 entry_points: Optional[Dict[str, Tuple[Callable, Sequence[ArgSpec]]]] = None):
        self.queue = queue if queue is not None else CommandQueue()
        if entry_points is None:
            entry_points = {name: (getattr(kernels, name), sig) for name, sig in SIGNATURES.items()}
        self._entry_points = {
            name: EntryPoint(name, func, sig) for name, (func, sig) in entry_points.items()
        }
        logger.debug("Compute program ready: %s", ', '.join(map(repr, self._entry_points.values())))

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._entry_points)

    def entry_point(self, name: str) -> EntryPoint:
        try:
            return self._entry_points[name]
        except KeyError:
            available = ', '.join(self._entry_points)
            raise BindingError(f"Program has no entry point '{name}'. Available: {available}") from None

    def kernel(self, name: str) -> KernelBinding:
        """Start a binding for the named entry point."""
        return KernelBinding(self.entry_point(name))
