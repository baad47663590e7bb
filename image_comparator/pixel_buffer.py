"""
Raw RGBA pixel buffers and the decoded images they come from.
"""

import math
from datetime import datetime
from typing import Optional

import numpy as np

from .errors import BufferLengthMismatch

CHANNELS = 4


class PixelBuffer:
    """Row-major RGBA pixels, 4 interleaved uint8 channels per pixel.

    ``data`` is kept as an (height, width, 4) uint8 array; ``len(buffer)``
    is the flat byte length, always ``width * height * 4``.
    """

    def __init__(self, width: int, height: int, data=None):
        if width < 0 or height < 0:
            raise ValueError(f"Invalid buffer size {width}x{height}")
        self.width = int(width)
        self.height = int(height)

        if data is None:
            # Rasterizer default: fully transparent black
            data = np.zeros((self.height, self.width, CHANNELS), dtype=np.uint8)
        else:
            data = np.asarray(data, dtype=np.uint8)
            expected = self.width * self.height * CHANNELS
            if data.size != expected:
                raise BufferLengthMismatch(
                    f"Buffer holds {data.size} bytes, expected {expected} "
                    f"for {self.width}x{self.height} RGBA")
            data = data.reshape((self.height, self.width, CHANNELS))
        self.data = data

    def __len__(self):
        return self.data.size

    def __repr__(self):
        return f"PixelBuffer({self.width}x{self.height})"

    @classmethod
    def from_bytes(cls, width: int, height: int, raw: bytes) -> "PixelBuffer":
        return cls(width, height, np.frombuffer(raw, dtype=np.uint8))

    def tobytes(self) -> bytes:
        return self.data.tobytes()

    def flat(self) -> np.ndarray:
        """Return the pixels as an (N, 4) view."""
        return self.data.reshape((-1, CHANNELS))

    def pixel(self, x: int, y: int):
        """Return the (R, G, B, A) tuple at (x, y)."""
        return tuple(int(c) for c in self.data[y, x])


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Format a byte count as a human readable size ("1.5 KB")."""
    if num_bytes <= 0:
        return "0 Bytes"
    k = 1024
    decimals = max(0, decimals)
    sizes = ["Bytes", "KB", "MB", "GB", "TB"]
    i = min(int(math.floor(math.log(num_bytes) / math.log(k))), len(sizes) - 1)
    value = round(num_bytes / (k ** i), decimals)
    # Drop trailing zeros the way a parsed float would print
    text = f"{value:.{decimals}f}".rstrip("0").rstrip(".") if decimals else f"{int(value)}"
    return f"{text} {sizes[i]}"


class ImageInfo:
    """Details about a loaded image file."""

    def __init__(self, name: str, width: int, height: int, size: int = 0,
                 mime_type: str = "", last_modified: Optional[float] = None):
        self.name = name
        self.width = width
        self.height = height
        self.size = size
        self.mime_type = mime_type
        self.last_modified = last_modified

    def describe(self):
        """Return (label, value) rows for a details overlay."""
        rows = [
            ("Name", self.name),
            ("Dimensions", f"{self.width} x {self.height}"),
            ("Size", format_bytes(self.size)),
            ("Type", self.mime_type or "-"),
        ]
        if self.last_modified is not None:
            rows.append(("Modified",
                         datetime.fromtimestamp(self.last_modified).strftime("%Y-%m-%d %H:%M:%S")))
        return rows


class DecodedImage:
    """A successfully decoded source image: its pixels plus file details.

    Identity matters: the viewport tells a swap from new content by
    comparing DecodedImage objects, so a reload produces a new instance.
    """

    def __init__(self, pixels: PixelBuffer, info: Optional[ImageInfo] = None):
        self.pixels = pixels
        if info is None:
            info = ImageInfo("untitled", pixels.width, pixels.height)
        self.info = info

    @property
    def width(self):
        return self.pixels.width

    @property
    def height(self):
        return self.pixels.height

    def __repr__(self):
        return f"DecodedImage({self.info.name!r}, {self.width}x{self.height})"
