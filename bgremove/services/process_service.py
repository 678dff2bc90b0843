"""Вспомогательные фильтры на том же контракте буфера: оттенки серого и карта границ Собеля."""
from __future__ import annotations

import numpy as np

from bgremove.models.image_model import PixelBuffer

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


class ProcessService:
    def to_grayscale(self, buffer: PixelBuffer) -> None:
        """
        Преобразование в оттенки серого на месте (метод светимости).
        gray = round(0.299*R + 0.587*G + 0.114*B) пишется в R, G, B; альфа не меняется.
        """
        if buffer.pixel_count == 0:
            return
        px = buffer.pixels()
        gray = self._luma(px)
        px[..., 0] = gray
        px[..., 1] = gray
        px[..., 2] = gray

    # ---------- Вспомогательные функции ----------
    def _luma(self, px: np.ndarray) -> np.ndarray:
        """
        Возвращает uint8-массив (H, W) яркости, округление половины вверх.
        """
        lum = px[..., :3].astype(np.float64) @ LUMA_WEIGHTS
        return np.clip(np.floor(lum + 0.5), 0, 255).astype(np.uint8)

    # ---------- Карта границ (Собель) ----------
    def sobel(self, buffer: PixelBuffer) -> PixelBuffer:
        """
        Величина градиента Собеля по серой копии исходника.
        - Исходный буфер не меняется
        - Края дублируются (координаты за пределами прижимаются к ближайшему пикселю)
        - Величина sqrt(gx^2 + gy^2), округлена и ограничена [0, 255], пишется в R, G, B; альфа = 255
        Возвращает новый буфер того же размера.
        """
        if buffer.width == 0 or buffer.height == 0:
            return PixelBuffer.filled(buffer.width, buffer.height, (0, 0, 0, 255))

        gray = buffer.copy()
        self.to_grayscale(gray)
        arr = gray.pixels()[..., 0].astype(np.float64)
        # Паддинг повторением краёв
        p = np.pad(arr, ((1, 1), (1, 1)), mode="edge")

        # Классические Собель-фильтры, векторизованная свёртка через сдвиги
        gx = (
            (p[0:-2, 2:] + 2 * p[1:-1, 2:] + p[2:, 2:])
            - (p[0:-2, 0:-2] + 2 * p[1:-1, 0:-2] + p[2:, 0:-2])
        )
        gy = (
            (p[2:, 0:-2] + 2 * p[2:, 1:-1] + p[2:, 2:])
            - (p[0:-2, 0:-2] + 2 * p[0:-2, 1:-1] + p[0:-2, 2:])
        )
        mag = np.hypot(gx, gy)
        mag_u8 = np.clip(np.floor(mag + 0.5), 0, 255).astype(np.uint8)

        out = np.empty((buffer.height, buffer.width, 4), dtype=np.uint8)
        out[..., 0] = mag_u8
        out[..., 1] = mag_u8
        out[..., 2] = mag_u8
        out[..., 3] = 255
        return PixelBuffer(width=buffer.width, height=buffer.height, data=out.reshape(-1))
