from __future__ import annotations

import struct
import zlib
from io import BytesIO
from typing import Optional, Tuple

import numpy as np
import pytest
from PIL import Image

from bgremove.models.image_model import ImageCandidate, PixelBuffer
from bgremove.services.raster_surface import RasterSurface


def make_buffer(width: int, height: int, rgba: Tuple[int, int, int, int] = (0, 0, 0, 255)) -> PixelBuffer:
    return PixelBuffer.filled(width, height, rgba)


def encode_png(pixels: np.ndarray) -> bytes:
    out = BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(out, format="PNG")
    return out.getvalue()


def subject_on_background(
    width: int = 40,
    height: int = 30,
    background: Tuple[int, int, int] = (255, 255, 255),
    subject: Tuple[int, int, int] = (200, 20, 20),
) -> np.ndarray:
    """Однородный фон с прямоугольником-объектом в центре."""
    px = np.zeros((height, width, 4), dtype=np.uint8)
    px[..., :3] = background
    px[..., 3] = 255
    px[height // 4: height * 3 // 4, width // 4: width * 3 // 4, :3] = subject
    return px


def png_candidate(pixels: np.ndarray, name: str = "test.png") -> ImageCandidate:
    return ImageCandidate(data=encode_png(pixels), media_type="image/png", name=name)


class FakeSurface(RasterSurface):
    """Поверхность с заданными размерами заголовка; полное декодирование запрещено, если не задан буфер."""

    def __init__(self, size: Tuple[int, int] = (10, 10), fmt: str = "PNG", buffer: Optional[PixelBuffer] = None,
                 decode_error: Optional[BaseException] = None,
                 resample_error: Optional[BaseException] = None) -> None:
        self.size = size
        self.fmt = fmt
        self.buffer = buffer
        self.decode_error = decode_error
        self.resample_error = resample_error
        self.measure_calls = 0
        self.decode_calls = 0
        self.resample_calls = []

    def measure(self, data: bytes):
        self.measure_calls += 1
        return self.size[0], self.size[1], self.fmt

    def decode(self, data: bytes) -> PixelBuffer:
        self.decode_calls += 1
        if self.decode_error is not None:
            raise self.decode_error
        if self.buffer is None:
            raise AssertionError("decode must not be reached")
        return self.buffer.copy()

    def encode(self, buffer: PixelBuffer, media_type: str, quality=None) -> bytes:
        return b"encoded"

    def resample(self, buffer: PixelBuffer, width: int, height: int, high_quality: bool = False) -> PixelBuffer:
        self.resample_calls.append((width, height, high_quality))
        if self.resample_error is not None:
            raise self.resample_error
        return PixelBuffer.filled(width, height)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def any_candidate():
    return ImageCandidate(data=b"\x89PNG-not-really", media_type="image/png", name="fake.png")


def png_header_only(width: int, height: int) -> bytes:
    """PNG с настоящим заголовком IHDR и пустыми данными: годится только для чтения размеров."""
    def chunk(kind: bytes, payload: bytes) -> bytes:
        return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", zlib.crc32(kind + payload))

    ihdr = struct.pack(">IIBBBBB", width, height, 1, 0, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", zlib.compress(b"")) + chunk(b"IEND", b"")


def jpeg_with_orientation(width: int, height: int, orientation: int) -> bytes:
    img = Image.new("RGB", (width, height), (30, 60, 90))
    exif = Image.Exif()
    exif[0x0112] = orientation
    out = BytesIO()
    img.save(out, format="JPEG", exif=exif)
    return out.getvalue()
