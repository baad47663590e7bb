"""
Rasterizer adapter: decode image files into RGBA buffers, place them on a
shared canvas, and encode overlays for display.
"""

import base64
import logging
import os
import tempfile

import cv2
import numpy as np

from .constants import SUPPORTED_EXTENSIONS, MAX_FILE_SIZE_MB
from .errors import DecodeFailure
from .pixel_buffer import PixelBuffer, ImageInfo, DecodedImage, CHANNELS

logger = logging.getLogger(__name__)


def _to_rgba(img: np.ndarray) -> np.ndarray:
    """Convert an OpenCV decode result (BGR order, any depth) to 8-bit RGBA."""
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise DecodeFailure(f"Unsupported channel count: {channels}")


def _decode_gif(data: bytes) -> np.ndarray:
    """Decode the first frame of a GIF (imdecode has no GIF support)."""
    with tempfile.NamedTemporaryFile(suffix=".gif", delete=False) as tmp:
        tmp.write(data)
        tmp_path = tmp.name
    try:
        cap = cv2.VideoCapture(tmp_path)
        ok, frame = cap.read()
        cap.release()
    finally:
        os.remove(tmp_path)
    if not ok or frame is None:
        return None
    return frame


def decode_image(data: bytes, name: str = "untitled") -> PixelBuffer:
    """Decode an encoded image (PNG, JPEG, BMP, WebP, GIF) into RGBA pixels.

    Raises DecodeFailure if the bytes are not a readable image.
    """
    if not data:
        raise DecodeFailure(f"{name}: file is empty")

    arr = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
    if img is None and data[:6] in (b"GIF87a", b"GIF89a"):
        img = _decode_gif(data)
    if img is None:
        raise DecodeFailure(f"{name}: not a valid image or the file is corrupt")

    rgba = _to_rgba(img)
    h, w = rgba.shape[:2]
    if w == 0 or h == 0:
        raise DecodeFailure(f"{name}: image has no pixels")
    logger.debug("Decoded %s: %dx%d (source dtype=%s, shape=%s)",
                 name, w, h, img.dtype, img.shape)
    return PixelBuffer(w, h, np.ascontiguousarray(rgba))


def load_image_file(file_path: str) -> DecodedImage:
    """Validate and decode an image file from disk.

    Unsupported extensions and files over MAX_FILE_SIZE_MB are rejected
    before decoding.
    """
    name = os.path.basename(file_path)
    ext = os.path.splitext(name)[1].lower()
    mime_type = SUPPORTED_EXTENSIONS.get(ext)
    if mime_type is None:
        raise DecodeFailure(f"{name}: unsupported file type. Only images are accepted.")

    try:
        stat = os.stat(file_path)
        if stat.st_size > MAX_FILE_SIZE_MB * 1024 * 1024:
            raise DecodeFailure(
                f"{name}: file is too large. The maximum size is {MAX_FILE_SIZE_MB}MB.")
        with open(file_path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise DecodeFailure(f"{name}: {e.strerror or e}") from e

    pixels = decode_image(data, name)
    info = ImageInfo(name, pixels.width, pixels.height, size=stat.st_size,
                     mime_type=mime_type, last_modified=stat.st_mtime)
    return DecodedImage(pixels, info)


def canvas_size(first: PixelBuffer, second: PixelBuffer):
    """Bounding box (width, height) that holds both images."""
    return max(first.width, second.width), max(first.height, second.height)


def rasterize(source: PixelBuffer, width: int, height: int) -> PixelBuffer:
    """Draw ``source`` at the origin of a fresh transparent-black canvas.

    Areas outside the source stay (0, 0, 0, 0). Each call returns a new
    buffer so it can be handed off to a worker.
    """
    canvas = np.zeros((height, width, CHANNELS), dtype=np.uint8)
    h = min(height, source.height)
    w = min(width, source.width)
    canvas[:h, :w] = source.data[:h, :w]
    return PixelBuffer(width, height, canvas)


def rasterize_pair(first: PixelBuffer, second: PixelBuffer):
    """Rasterize both images onto canvases of the shared bounding size."""
    width, height = canvas_size(first, second)
    return rasterize(first, width, height), rasterize(second, width, height)


def encode_png(buffer: PixelBuffer) -> bytes:
    """Encode an RGBA buffer as PNG bytes."""
    if buffer.width == 0 or buffer.height == 0:
        raise ValueError("Cannot encode an empty buffer")
    bgra = cv2.cvtColor(buffer.data, cv2.COLOR_RGBA2BGRA)
    ok, encoded = cv2.imencode(".png", bgra)
    if not ok:
        raise RuntimeError("PNG encoding failed")
    return encoded.tobytes()


def to_data_uri(buffer: PixelBuffer) -> str:
    """Encode an RGBA buffer as a ``data:image/png;base64,...`` URI."""
    return "data:image/png;base64," + base64.b64encode(encode_png(buffer)).decode("ascii")


def save_png(buffer: PixelBuffer, file_path: str):
    with open(file_path, "wb") as f:
        f.write(encode_png(buffer))
