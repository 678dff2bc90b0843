"""Модели данных для изображений.

Принципы:
- SRP: только структуры данных и тривиальный доступ к пикселям, без алгоритмов обработки.
- Чистый код: неизменяемость (`frozen=True`) полей для предсказуемости;
  содержимое `PixelBuffer.data` изменяемо и принадлежит текущей стадии конвейера.
"""
from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

import numpy as np

CHANNELS = 4


class Color(NamedTuple):
    """Цвет RGBA. При усреднении каналы могут быть дробными."""
    r: float
    g: float
    b: float
    a: float = 255

    def to_rgb(self) -> Tuple[int, int, int]:
        """Округляет каналы до байтов (половина вверх)."""
        return tuple(min(255, max(0, int(c + 0.5))) for c in (self.r, self.g, self.b))  # type: ignore[return-value]


@dataclass(frozen=True)
class ImageCandidate:
    """Сырые байты изображения и заявленный тип.

    Fields:
        data: Сжатые байты файла.
        media_type: Заявленный MIME-тип, например "image/png".
        name: Имя источника (для логов и сообщений), если известно.
    """
    data: bytes
    media_type: str
    name: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, file_path: str | Path) -> "ImageCandidate":
        """Читает файл с диска; тип определяется по расширению.

        Raises:
            FileNotFoundError: если путь не существует или не указывает на файл.
        """
        path = Path(file_path)
        if not path.exists() or not path.is_file():
            raise FileNotFoundError(f"Файл не найден: {path}")
        media_type, _ = mimetypes.guess_type(path.name)
        return cls(data=path.read_bytes(), media_type=media_type or "application/octet-stream", name=path.name)


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Плоский растр RGBA.

    Fields:
        width: Ширина, px.
        height: Высота, px.
        data: Плоский `uint8` массив длиной `width * height * 4`, порядок каналов R, G, B, A.
    """
    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Отрицательный размер буфера: {self.width}x{self.height}")
        if self.data.dtype != np.uint8 or self.data.ndim != 1:
            raise ValueError("data должен быть одномерным массивом uint8")
        expected = self.width * self.height * CHANNELS
        if self.data.size != expected:
            raise ValueError(f"Длина data {self.data.size} не равна {expected} ({self.width}x{self.height}x4)")

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "PixelBuffer":
        """Строит буфер из массива формы (H, W, 4); данные копируются."""
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise ValueError(f"Ожидалась форма (H, W, 4), получено {pixels.shape}")
        height, width = pixels.shape[:2]
        flat = np.ascontiguousarray(pixels, dtype=np.uint8).reshape(-1).copy()
        return cls(width=width, height=height, data=flat)

    @classmethod
    def filled(cls, width: int, height: int, rgba: Tuple[int, int, int, int] = (0, 0, 0, 255)) -> "PixelBuffer":
        data = np.empty(width * height * CHANNELS, dtype=np.uint8)
        data.reshape(-1, CHANNELS)[:] = rgba
        return cls(width=width, height=height, data=data)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def pixels(self) -> np.ndarray:
        """Представление (view) данных формы (H, W, 4); изменения видны в буфере."""
        return self.data.reshape(self.height, self.width, CHANNELS)

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(width=self.width, height=self.height, data=self.data.copy())

    def same_pixels(self, other: "PixelBuffer") -> bool:
        """Совпадение размеров и содержимого (сравнение `==` идёт по идентичности)."""
        return (self.width, self.height) == (other.width, other.height) and np.array_equal(self.data, other.data)

    def get_pixel(self, x: int, y: int) -> Optional[Color]:
        """Цвет пикселя или None, если координаты вне изображения."""
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return None
        i = (int(y) * self.width + int(x)) * CHANNELS
        r, g, b, a = (int(v) for v in self.data[i:i + CHANNELS])
        return Color(r, g, b, a)

    def set_alpha(self, x: int, y: int, value: int) -> None:
        """Устанавливает альфу пикселя (с ограничением в [0, 255]); вне изображения ничего не делает."""
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return
        i = (int(y) * self.width + int(x)) * CHANNELS
        self.data[i + 3] = max(0, min(255, int(value)))
