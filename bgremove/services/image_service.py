"""Декодирование входа в `PixelBuffer` и кодирование результата.

Принципы:
- SRP: класс отвечает за переход «байты <-> буфер» и за проверку размеров сразу после чтения заголовка.
- DIP: конкретная растеризация скрыта за `RasterSurface`.
"""
from __future__ import annotations

import base64
import logging
from typing import Optional, Tuple

from PIL import Image

from bgremove.errors import (
    ContextUnavailableError,
    DecodeError,
    DimensionTooLargeError,
    EncodeError,
    TooManyPixelsError,
    ZeroDimensionError,
)
from bgremove.models.image_model import ImageCandidate, PixelBuffer
from bgremove.models.options import DEFAULT_OPTIONS, ProcessingOptions
from bgremove.services.raster_surface import MEDIA_TYPE_FORMATS, PillowSurface, RasterSurface

logger = logging.getLogger(__name__)

DECODABLE_FORMATS = frozenset({"PNG", "JPEG", "WEBP"})


class ImageService:
    def __init__(self, surface: Optional[RasterSurface] = None) -> None:
        self._surface = surface or PillowSurface()

    @property
    def surface(self) -> RasterSurface:
        return self._surface

    def probe(self, candidate: ImageCandidate) -> Tuple[int, int]:
        """Возвращает собственные размеры изображения, читая только заголовок.

        Raises:
            DecodeError: если байты не распознаются как PNG, JPEG или WebP.
        """
        try:
            width, height, fmt = self._surface.measure(candidate.data)
        except (OSError, ValueError, SyntaxError) as exc:
            raise DecodeError() from exc

        if fmt.upper() not in DECODABLE_FORMATS:
            raise DecodeError(f"Неподдерживаемый формат изображения: {fmt or 'неизвестен'}.")
        return width, height

    def check_dimensions(self, width: int, height: int, options: ProcessingOptions = DEFAULT_OPTIONS) -> None:
        """Проверка размеров сразу после чтения заголовка, до выделения пиксельного массива."""
        if width == 0 or height == 0:
            raise ZeroDimensionError(width, height)
        if max(width, height) > options.max_dimension_side:
            raise DimensionTooLargeError(width, height, options.max_dimension_side)
        if width * height > options.max_total_pixels:
            raise TooManyPixelsError(width, height, options.max_total_pixels)

    def load(self, candidate: ImageCandidate) -> PixelBuffer:
        """Полное декодирование в RGBA.

        Raises:
            DecodeError: поток повреждён (например, обрезан).
            ContextUnavailableError: не удалось выделить память под растр.
        """
        try:
            buffer = self._surface.decode(candidate.data)
        except MemoryError as exc:
            raise ContextUnavailableError("Недостаточно памяти для растра изображения.") from exc
        except Image.DecompressionBombError as exc:
            raise DecodeError(f"Изображение слишком велико для безопасного декодирования: {exc}") from exc
        except (OSError, ValueError, SyntaxError) as exc:
            raise DecodeError() from exc
        logger.debug("Декодировано %dx%d", buffer.width, buffer.height)
        return buffer

    def decode(self, candidate: ImageCandidate, options: ProcessingOptions = DEFAULT_OPTIONS) -> PixelBuffer:
        """Заголовок -> проверка размеров -> декодирование пикселей."""
        width, height = self.probe(candidate)
        self.check_dimensions(width, height, options)
        return self.load(candidate)

    def encode(self, buffer: PixelBuffer, media_type: str, quality: Optional[float] = None) -> bytes:
        """Кодирует буфер; `quality` учитывается только для JPEG и WebP.

        Raises:
            EncodeError: неподдерживаемый тип, качество вне [0, 1] или сбой кодировщика.
        """
        if media_type.lower() not in MEDIA_TYPE_FORMATS:
            raise EncodeError(f"Неподдерживаемый тип вывода: {media_type}.")
        if quality is not None and not 0.0 <= quality <= 1.0:
            raise EncodeError(f"Качество должно быть в диапазоне [0, 1], получено {quality}.")
        if buffer.width == 0 or buffer.height == 0:
            raise EncodeError("Нельзя закодировать пустое изображение.")
        try:
            return self._surface.encode(buffer, media_type, quality)
        except MemoryError as exc:
            raise ContextUnavailableError("Недостаточно памяти для кодирования изображения.") from exc
        except (OSError, ValueError) as exc:
            raise EncodeError(f"Не удалось закодировать изображение в {media_type}: {exc}") from exc

    @staticmethod
    def to_data_url(data: bytes, media_type: str) -> str:
        return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"
