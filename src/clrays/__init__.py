"""
clrays: host-side orchestration for a Taichi ray tracer.
"""

__version__ = '0.1.0'
