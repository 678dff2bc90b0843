"""Иерархия ошибок конвейера удаления фона.

Принципы:
- Каждая стадия падает быстро и со своим конкретным видом ошибки.
- `kind` стабилен и пригоден для ветвления в UI; `str(exc)` показывается пользователю как есть.
"""
from __future__ import annotations

from typing import Optional


class ImageProcessingError(RuntimeError):
    """Базовая ошибка обработки изображения."""
    kind: str = "processing"
    retryable: bool = False


class EmptyInputError(ImageProcessingError):
    kind = "empty"

    def __init__(self, message: str = "Файл не выбран.") -> None:
        super().__init__(message)


class InvalidTypeError(ImageProcessingError):
    kind = "invalid_type"

    def __init__(self, media_type: Optional[str], allowed: tuple[str, ...]) -> None:
        super().__init__(
            f'Недопустимый тип файла: "{media_type}". Разрешены: {", ".join(allowed)}.'
        )
        self.media_type = media_type
        self.allowed = allowed


class FileTooLargeError(ImageProcessingError):
    kind = "file_too_large"

    def __init__(self, size_bytes: int, max_size_bytes: int) -> None:
        size_mb = size_bytes / 1024 / 1024
        max_mb = max_size_bytes / 1024 / 1024
        super().__init__(
            f"Файл слишком большой ({size_mb:.2f}MB). Максимально допустимый размер {max_mb:.2f}MB."
        )
        self.size_bytes = size_bytes
        self.max_size_bytes = max_size_bytes


class DecodeError(ImageProcessingError):
    kind = "decode"

    def __init__(
        self,
        message: str = "Не удалось декодировать изображение: файл повреждён или формат не поддерживается.",
    ) -> None:
        super().__init__(message)


class ZeroDimensionError(ImageProcessingError):
    kind = "zero_dimension"

    def __init__(self, width: int, height: int) -> None:
        super().__init__(f"Изображение имеет нулевой размер ({width}x{height}px) и не может быть обработано.")
        self.width = width
        self.height = height


class DimensionTooLargeError(ImageProcessingError):
    kind = "dimension_too_large"

    def __init__(self, width: int, height: int, max_side: int) -> None:
        super().__init__(
            f"Размер изображения ({width}x{height}px) превышает максимально допустимую сторону {max_side}px."
        )
        self.width = width
        self.height = height
        self.max_side = max_side


class TooManyPixelsError(ImageProcessingError):
    kind = "too_many_pixels"

    def __init__(self, width: int, height: int, max_pixels: int) -> None:
        total = width * height
        super().__init__(
            f"Разрешение изображения ({width}x{height}px = {total:,} пикселей) слишком велико. "
            f"Максимум {max_pixels:,} пикселей."
        )
        self.width = width
        self.height = height
        self.max_pixels = max_pixels


class ContextUnavailableError(ImageProcessingError):
    """Поверхность растеризации недоступна (например, не хватило памяти).

    Единственный вид ошибки, который имеет смысл повторить на стороне вызывающего кода.
    """
    kind = "context_unavailable"
    retryable = True

    def __init__(self, message: str = "Поверхность растеризации недоступна.") -> None:
        super().__init__(message)


class ProcessingTimeoutError(ImageProcessingError):
    kind = "processing_timeout"

    def __init__(self, total_pixels: int, ceiling: int) -> None:
        super().__init__(
            f"Обработка прервана: {total_pixels:,} пикселей превышает предел безопасности {ceiling:,}."
        )
        self.total_pixels = total_pixels
        self.ceiling = ceiling


class EncodeError(ImageProcessingError):
    kind = "encode"

    def __init__(self, message: str) -> None:
        super().__init__(message)
