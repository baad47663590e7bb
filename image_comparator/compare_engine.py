"""
Pixel comparison engine.

Classifies every pixel of two equally sized RGBA buffers as a match (all
four channels equal) or a difference, and paints an overlay marking each
class in its own color.
"""

import logging

import numpy as np
from PySide6.QtCore import QThread, Signal

from .constants import (
    SIMILARITY_COLOR, DIFFERENCE_COLOR,
    OVERLAY_ALPHA_WITH_BASE, OVERLAY_ALPHA_OPAQUE,
)
from .errors import InvalidDimensions, BufferLengthMismatch
from .pixel_buffer import PixelBuffer, CHANNELS

logger = logging.getLogger(__name__)


class DisplayOptions:
    """Which pixel classes the overlay paints, and how opaque."""

    __slots__ = ("show_similarities", "show_differences", "show_base_image")

    def __init__(self, show_similarities=True, show_differences=True, show_base_image=True):
        self.show_similarities = bool(show_similarities)
        self.show_differences = bool(show_differences)
        self.show_base_image = bool(show_base_image)

    @property
    def overlay_alpha(self):
        return OVERLAY_ALPHA_WITH_BASE if self.show_base_image else OVERLAY_ALPHA_OPAQUE

    def replace(self, **changes) -> "DisplayOptions":
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(changes)
        return DisplayOptions(**values)

    def __eq__(self, other):
        if not isinstance(other, DisplayOptions):
            return NotImplemented
        return all(getattr(self, n) == getattr(other, n) for n in self.__slots__)

    def __hash__(self):
        return hash(tuple(getattr(self, n) for n in self.__slots__))

    def __repr__(self):
        return ("DisplayOptions(show_similarities=%s, show_differences=%s, show_base_image=%s)"
                % (self.show_similarities, self.show_differences, self.show_base_image))


class ComparisonResult:
    """Read-only outcome of one comparison: the overlay and the match ratio."""

    def __init__(self, overlay: PixelBuffer, match_count: int, pixel_count: int):
        overlay.data.flags.writeable = False
        self._overlay = overlay
        self._match_count = match_count
        self._pixel_count = pixel_count

    @property
    def overlay(self) -> PixelBuffer:
        return self._overlay

    @property
    def match_count(self) -> int:
        return self._match_count

    @property
    def pixel_count(self) -> int:
        return self._pixel_count

    @property
    def similarity_percent(self) -> float:
        return self._match_count / self._pixel_count * 100

    @property
    def difference_percent(self) -> float:
        return 100.0 - self.similarity_percent

    def __repr__(self):
        return (f"ComparisonResult({self._overlay.width}x{self._overlay.height}, "
                f"similarity={self.similarity_percent:.2f}%)")


def _as_pixels(data) -> np.ndarray:
    if isinstance(data, PixelBuffer):
        data = data.data
    elif isinstance(data, (bytes, bytearray, memoryview)):
        return np.frombuffer(data, dtype=np.uint8)
    return np.asarray(data, dtype=np.uint8).reshape(-1)


def compare_pixels(first_data, second_data, width: int, height: int,
                   options: DisplayOptions = None) -> ComparisonResult:
    """Compare two RGBA buffers pixel by pixel.

    Args:
        first_data, second_data: RGBA bytes as numpy arrays, bytes or
            PixelBuffers. Both must hold exactly width * height * 4 values.
        width, height: Canvas size the buffers were rasterized at.
        options: DisplayOptions controlling the overlay; defaults to all on.

    Returns:
        ComparisonResult with a fresh overlay buffer.

    Raises:
        InvalidDimensions: width * height is zero.
        BufferLengthMismatch: the buffers differ in length or do not match
            the declared size.
    """
    if options is None:
        options = DisplayOptions()

    pixel_count = int(width) * int(height)
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"Cannot compare a {width}x{height} image")

    first = _as_pixels(first_data)
    second = _as_pixels(second_data)
    if first.size != second.size:
        raise BufferLengthMismatch(
            f"Buffer lengths differ: {first.size} vs {second.size}")
    if first.size != pixel_count * CHANNELS:
        raise BufferLengthMismatch(
            f"Buffers hold {first.size} bytes, expected {pixel_count * CHANNELS} "
            f"for {width}x{height}")

    first = first.reshape(-1, CHANNELS)
    second = second.reshape(-1, CHANNELS)

    # Alpha takes part in equality
    matches = np.all(first == second, axis=1)
    match_count = int(np.count_nonzero(matches))

    overlay = np.zeros((pixel_count, CHANNELS), dtype=np.uint8)
    alpha = options.overlay_alpha
    if options.show_similarities:
        overlay[matches] = (*SIMILARITY_COLOR, alpha)
    if options.show_differences:
        overlay[~matches] = (*DIFFERENCE_COLOR, alpha)

    return ComparisonResult(PixelBuffer(width, height, overlay), match_count, pixel_count)


class CompareRequest:
    """Inputs for one background comparison.

    The worker takes ownership of both buffers; the caller must not keep
    using them once the request is submitted.
    """

    def __init__(self, generation: int, first: PixelBuffer, second: PixelBuffer,
                 options: DisplayOptions):
        self.generation = generation
        self.first = first
        self.second = second
        self.options = options
        self.width = first.width
        self.height = first.height

    def release(self):
        """Drop the pixel buffers once they are no longer needed."""
        self.first = None
        self.second = None


class CompareWorker(QThread):
    """Background thread that runs one comparison request."""
    result_ready = Signal(int, object)  # (generation, ComparisonResult)
    compare_failed = Signal(int, str)   # (generation, message)

    def __init__(self, request: CompareRequest, parent=None):
        super().__init__(parent)
        self._request = request
        self.generation = request.generation

    def run(self):
        request = self._request
        self._request = None
        try:
            result = compare_pixels(request.first, request.second,
                                    request.width, request.height, request.options)
        except Exception as e:
            logger.error("Comparison failed for generation %d: %s",
                         request.generation, e, exc_info=True)
            self.compare_failed.emit(request.generation, str(e))
        else:
            logger.debug("Generation %d compared: %.2f%% similar",
                         request.generation, result.similarity_percent)
            self.result_ready.emit(request.generation, result)
        finally:
            request.release()
