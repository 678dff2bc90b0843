"""Уменьшение буфера перед тяжёлой попиксельной обработкой."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from bgremove.errors import ContextUnavailableError
from bgremove.models.image_model import PixelBuffer
from bgremove.services.raster_surface import PillowSurface, RasterSurface

logger = logging.getLogger(__name__)

# При уменьшении больше чем в 2 раза по любой оси используется более качественное ядро
HIGH_QUALITY_RATIO = 2.0


@dataclass(frozen=True)
class ResizeResult:
    buffer: PixelBuffer
    was_resized: bool
    original_width: int
    original_height: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ResizeService:
    def __init__(self, surface: Optional[RasterSurface] = None) -> None:
        self._surface = surface or PillowSurface()

    def target_size(self, width: int, height: int, target_max_side: int) -> Tuple[int, int]:
        """
        Размер после вписывания в `target_max_side` с сохранением пропорций.
        Большая сторона становится равной `target_max_side`, меньшая округляется (минимум 1px).
        """
        if width <= target_max_side and height <= target_max_side:
            return width, height
        if width > height:
            new_w = target_max_side
            new_h = _round_half_up(height * target_max_side / width)
        else:
            new_h = target_max_side
            new_w = _round_half_up(width * target_max_side / height)
        return max(1, new_w), max(1, new_h)

    def resize(self, buffer: PixelBuffer, target_max_side: int) -> ResizeResult:
        """Уменьшает буфер, если какая-либо сторона больше `target_max_side`; иначе возвращает его как есть."""
        if target_max_side <= 0:
            raise ValueError("target_max_side должен быть положительным")

        width, height = buffer.width, buffer.height
        new_w, new_h = self.target_size(width, height, target_max_side)
        if (new_w, new_h) == (width, height):
            return ResizeResult(buffer=buffer, was_resized=False, original_width=width, original_height=height)

        high_quality = width / new_w > HIGH_QUALITY_RATIO or height / new_h > HIGH_QUALITY_RATIO
        try:
            resized = self._surface.resample(buffer, new_w, new_h, high_quality=high_quality)
        except MemoryError as exc:
            raise ContextUnavailableError("Недостаточно памяти для уменьшения изображения.") from exc
        logger.info("Изображение уменьшено: %dx%d -> %dx%d", width, height, new_w, new_h)
        return ResizeResult(buffer=resized, was_resized=True, original_width=width, original_height=height)
