"""
Display helpers: turn the packed pixel result into an image.
Completely standalone - no Taichi dependencies.
"""

from typing import Sequence

import numpy as np
from PIL import Image


def pack_rgb(color: Sequence[float]) -> int:
    """
    Host equivalent of the device packing: clamp to [0, 1], scale by 255,
    truncate, and pack as 0x00RRGGBB. Computed in float32 like the device.
    """
    channels = np.clip(np.asarray(color, dtype=np.float32), 0.0, 1.0) * np.float32(255.0)
    r, g, b = channels.astype(np.int32)
    return int((r << 16) | (g << 8) | b)


def packed_to_rgb(packed: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Unpack a row-major width*height array of 0x00RRGGBB ints.

    Returns: (H, W, 3) uint8 image ready for display
    """
    packed = np.asarray(packed, dtype=np.int32).reshape(height, width)
    rgb = np.empty((height, width, 3), dtype=np.uint8)
    rgb[..., 0] = (packed >> 16) & 0xFF
    rgb[..., 1] = (packed >> 8) & 0xFF
    rgb[..., 2] = packed & 0xFF
    return rgb


def write_image(path: str, packed: np.ndarray, width: int, height: int):
    """Write the packed pixel array to an image file (format from the extension)"""
    img = Image.fromarray(packed_to_rgb(packed, width, height))
    img.save(path)
