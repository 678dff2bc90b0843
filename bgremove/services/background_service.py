"""Оценка цвета фона по краям изображения и обнуление альфы у похожих пикселей.

Принципы:
- SRP: только два шага алгоритма (оценка цвета и сопоставление), без декодирования и кодирования.
- Фон считается однородным: один опорный цвет и один порог.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from bgremove.errors import ProcessingTimeoutError
from bgremove.models.image_model import CHANNELS, Color, PixelBuffer
from bgremove.models.options import DEFAULT_COLOR_TOLERANCE, MAX_TOTAL_PIXELS

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
SamplePoints = Sequence[Tuple[float, float]]

# Запас над допустимым числом пикселей, после которого сопоставление прерывается
SAFETY_MULTIPLE = 1.5
PROGRESS_STEPS = 100


def rgb_distance(c1: Color, c2: Color) -> float:
    """Евклидово расстояние в RGB (альфа не учитывается)."""
    return math.sqrt((c1.r - c2.r) ** 2 + (c1.g - c2.g) ** 2 + (c1.b - c2.b) ** 2)


def default_sample_points(width: int, height: int) -> List[Tuple[int, int]]:
    """Четыре угла и четыре середины сторон."""
    right, bottom = width - 1, height - 1
    mid_x, mid_y = width // 2, height // 2
    return [
        (0, 0), (right, 0),
        (0, bottom), (right, bottom),
        (mid_x, 0), (mid_x, bottom),
        (0, mid_y), (right, mid_y),
    ]


class BackgroundService:
    def estimate(self, buffer: PixelBuffer, sample_points: Optional[SamplePoints] = None) -> Color:
        """Средний цвет RGB в точках выборки.

        Координаты округляются вниз и ограничиваются границами изображения, поэтому каждая
        точка списка учитывается ровно один раз (повторы не схлопываются). Альфа игнорируется.
        Если ни одна точка не разрешилась, берётся первый пиксель, а для пустого буфера (0, 0, 0).
        """
        width, height = buffer.width, buffer.height
        points = default_sample_points(width, height) if sample_points is None else list(sample_points)

        if width > 0 and height > 0 and points:
            coords = np.floor(np.asarray(points, dtype=np.float64)).astype(np.int64)
            xs = np.clip(coords[:, 0], 0, width - 1)
            ys = np.clip(coords[:, 1], 0, height - 1)
            rgb = buffer.pixels()[ys, xs, :3].astype(np.float64)
            r, g, b = rgb.mean(axis=0)
            color = Color(float(r), float(g), float(b))
            logger.debug("Цвет фона по %d точкам: (%.1f, %.1f, %.1f)", len(points), r, g, b)
            return color

        if buffer.data.size >= CHANNELS:
            r, g, b = (int(v) for v in buffer.data[:3])
            return Color(r, g, b)
        return Color(0, 0, 0)

    def match_and_clear(
        self,
        buffer: PixelBuffer,
        target: Color,
        tolerance: float = DEFAULT_COLOR_TOLERANCE,
        on_progress: Optional[ProgressCallback] = None,
        max_total_pixels: int = MAX_TOTAL_PIXELS,
    ) -> int:
        """Обнуляет альфу пикселей, чьё расстояние до `target` строго меньше `tolerance`.

        Буфер изменяется на месте; каналы R, G, B не трогаются. Прогресс сообщается
        в процентах просканированных пикселей, не убывая, последний вызов всегда 100.

        Returns:
            Количество пикселей, ставших прозрачными.

        Raises:
            ProcessingTimeoutError: число пикселей больше `SAFETY_MULTIPLE * max_total_pixels`
                (буфер создан в обход проверки размеров).
        """
        total = buffer.pixel_count
        ceiling = int(max_total_pixels * SAFETY_MULTIPLE)
        if total > ceiling:
            logger.warning("Превышен предел безопасности: %d пикселей при пределе %d", total, ceiling)
            raise ProcessingTimeoutError(total, ceiling)

        if total == 0:
            if on_progress:
                on_progress(100)
            return 0

        px = buffer.data.reshape(-1, CHANNELS)
        target_rgb = np.array([target.r, target.g, target.b], dtype=np.float64)
        chunk = -(-total // PROGRESS_STEPS)  # ceil

        cleared = 0
        last_reported = -1
        for start in range(0, total, chunk):
            block = px[start:start + chunk]
            diff = block[:, :3].astype(np.float64) - target_rgb
            distance = np.sqrt((diff * diff).sum(axis=1))
            mask = distance < tolerance
            block[mask, 3] = 0
            cleared += int(mask.sum())

            if on_progress:
                progress = (start + block.shape[0]) * 100 // total
                if progress > last_reported:
                    on_progress(progress)
                    last_reported = progress

        logger.debug("Прозрачными стали %d из %d пикселей", cleared, total)
        return cleared
