"""
Exceptions raised by the tracer host layer.

Failures reported by the Taichi runtime itself (launch, allocation, transfer)
are not wrapped; they propagate unchanged and abort the frame loop.
"""


class ClraysError(Exception):
    """Base class for all errors raised by clrays."""


class BindingError(ClraysError, TypeError):
    """A kernel binding does not match the entry point's declared signature."""


class SceneLayoutError(ClraysError, ValueError):
    """Scene buffers disagree with the layout the compute program expects."""


class ConfigError(ClraysError, ValueError):
    """Invalid configuration file or environment setting."""
