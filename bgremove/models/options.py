"""Параметры обработки: значения по умолчанию и переопределения.

Принципы:
- Неизменяемость (`frozen=True`): параметры фиксируются на время одного вызова.
- Проверка значений при создании, чтобы ошибки конфигурации не доходили до пиксельного цикла.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional

MB = 1024 * 1024

VALID_IMAGE_TYPES: FrozenSet[str] = frozenset({"image/jpeg", "image/png", "image/webp", "image/jpg"})
DEFAULT_OUTPUT_MEDIA_TYPE = "image/png"  # сохраняет альфа-канал
DEFAULT_OUTPUT_QUALITY = 0.92
DEFAULT_COLOR_TOLERANCE = 45.0
MAX_DIMENSION_SIDE = 8000
MAX_TOTAL_PIXELS = 30_000_000
MAX_PROCESSING_DIMENSION_SIDE = 4000


@dataclass(frozen=True)
class ProcessingOptions:
    """Настройки конвейера.

    Fields:
        max_file_size_bytes: Предел размера входного файла.
        allowed_media_types: Разрешённые MIME-типы входа.
        max_dimension_side: Предел большей стороны после декодирования.
        max_total_pixels: Предел `width * height` после декодирования.
        color_tolerance: Порог расстояния в RGB, ниже которого пиксель считается фоном.
        output_media_type: MIME-тип результата.
        output_quality: Качество для JPEG/WebP в [0, 1].
        resize_max_side: Если задано, буфер уменьшается до этой стороны перед обработкой.
    """
    max_file_size_bytes: int = 20 * MB
    allowed_media_types: FrozenSet[str] = field(default_factory=lambda: VALID_IMAGE_TYPES)
    max_dimension_side: int = MAX_DIMENSION_SIDE
    max_total_pixels: int = MAX_TOTAL_PIXELS
    color_tolerance: float = DEFAULT_COLOR_TOLERANCE
    output_media_type: str = DEFAULT_OUTPUT_MEDIA_TYPE
    output_quality: float = DEFAULT_OUTPUT_QUALITY
    resize_max_side: Optional[int] = None

    def __post_init__(self) -> None:
        # frozenset из любого итерируемого, чтобы можно было передать список
        object.__setattr__(self, "allowed_media_types", frozenset(t.lower() for t in self.allowed_media_types))
        if self.max_file_size_bytes <= 0:
            raise ValueError("max_file_size_bytes должен быть положительным")
        if self.max_dimension_side <= 0 or self.max_total_pixels <= 0:
            raise ValueError("Пределы размеров должны быть положительными")
        if self.color_tolerance < 0:
            raise ValueError("color_tolerance не может быть отрицательным")
        if not 0.0 <= self.output_quality <= 1.0:
            raise ValueError("output_quality должен быть в диапазоне [0, 1]")
        if self.resize_max_side is not None and self.resize_max_side <= 0:
            raise ValueError("resize_max_side должен быть положительным")

    def with_overrides(self, **changes) -> "ProcessingOptions":
        """Копия с переопределёнными полями; `None` в значении означает «оставить как есть»."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)


DEFAULT_OPTIONS = ProcessingOptions()

# Значения точки вызова предобработки: меньший лимит файла и обязательное уменьшение.
PREPROCESS_OPTIONS = ProcessingOptions(
    max_file_size_bytes=15 * MB,
    resize_max_side=MAX_PROCESSING_DIMENSION_SIDE,
)
