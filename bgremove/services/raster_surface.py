"""Поверхность растеризации: декодирование, кодирование и ресемплинг.

Принципы:
- DIP: алгоритмы зависят от абстрактной `RasterSurface`, а не от конкретного стека.
- OCP: другой бэкенд (например, серверный без Pillow) добавляется новой реализацией.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from io import BytesIO
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps

from bgremove.models.image_model import PixelBuffer

logger = logging.getLogger(__name__)

# MIME-тип -> формат Pillow
MEDIA_TYPE_FORMATS = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/webp": "WEBP",
}
LOSSY_FORMATS = {"JPEG", "WEBP"}

RESAMPLE_HIGH = Image.Resampling.LANCZOS
RESAMPLE_MEDIUM = Image.Resampling.BILINEAR

EXIF_ORIENTATION_TAG = 0x0112
# Ориентации с поворотом на 90°: ширина и высота меняются местами
TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}

# Image.MAX_IMAGE_PIXELS глобален для процесса
_MAX_PIXELS_LOCK = threading.Lock()


class RasterSurface(ABC):
    @abstractmethod
    def measure(self, data: bytes) -> Tuple[int, int, str]:
        """Читает (width, height, format) из заголовка без выделения пиксельного массива."""

    @abstractmethod
    def decode(self, data: bytes) -> PixelBuffer:
        """Декодирует байты в RGBA-буфер."""

    @abstractmethod
    def encode(self, buffer: PixelBuffer, media_type: str, quality: Optional[float] = None) -> bytes:
        """Кодирует буфер в указанный MIME-тип."""

    @abstractmethod
    def resample(self, buffer: PixelBuffer, width: int, height: int, high_quality: bool = False) -> PixelBuffer:
        """Возвращает новый буфер заданного размера."""


class PillowSurface(RasterSurface):
    """Реализация на Pillow.

    Ошибки библиотеки пробрасываются как есть (`OSError`, `ValueError`, `MemoryError`);
    перевод в доменные ошибки выполняет `ImageService`.
    """

    def measure(self, data: bytes) -> Tuple[int, int, str]:
        # Image.open ленивый: читается только заголовок. Защита от «бомб» Pillow
        # здесь отключена, размеры классифицирует ImageService.check_dimensions.
        with _MAX_PIXELS_LOCK:
            saved = Image.MAX_IMAGE_PIXELS
            Image.MAX_IMAGE_PIXELS = None
            try:
                with Image.open(BytesIO(data)) as img:
                    width, height = img.size
                    fmt = img.format or ""
                    # PNG без eXIf при getexif() загружает пиксели
                    orientation = img.getexif().get(EXIF_ORIENTATION_TAG) if "exif" in img.info else None
            finally:
                Image.MAX_IMAGE_PIXELS = saved
        if orientation in TRANSPOSED_ORIENTATIONS:
            width, height = height, width
        return width, height, fmt

    def decode(self, data: bytes) -> PixelBuffer:
        with _MAX_PIXELS_LOCK:
            img = Image.open(BytesIO(data))
        with img:
            rgba = ImageOps.exif_transpose(img).convert("RGBA")
        return self._to_buffer(rgba)

    def encode(self, buffer: PixelBuffer, media_type: str, quality: Optional[float] = None) -> bytes:
        fmt = MEDIA_TYPE_FORMATS.get(media_type.lower())
        if fmt is None:
            raise ValueError(f"Неподдерживаемый тип вывода: {media_type}")

        img = self._to_image(buffer)
        params = {}
        if fmt == "JPEG":
            # JPEG не хранит альфу
            img = img.convert("RGB")
        if fmt in LOSSY_FORMATS and quality is not None:
            params["quality"] = int(round(quality * 100))

        out = BytesIO()
        img.save(out, format=fmt, **params)
        return out.getvalue()

    def resample(self, buffer: PixelBuffer, width: int, height: int, high_quality: bool = False) -> PixelBuffer:
        img = self._to_image(buffer)
        resized = img.resize((width, height), resample=RESAMPLE_HIGH if high_quality else RESAMPLE_MEDIUM)
        logger.debug(
            "Ресемплинг %dx%d -> %dx%d (%s)",
            buffer.width, buffer.height, width, height, "high" if high_quality else "medium",
        )
        return self._to_buffer(resized)

    # ---------- Вспомогательные функции ----------
    def _to_image(self, buffer: PixelBuffer) -> Image.Image:
        # (H, W, 4) uint8 распознаётся как RGBA
        return Image.fromarray(np.ascontiguousarray(buffer.pixels()))

    def _to_buffer(self, img: Image.Image) -> PixelBuffer:
        width, height = img.size
        arr = np.asarray(img, dtype=np.uint8)
        return PixelBuffer(width=width, height=height, data=arr.reshape(-1).copy())
