"""Контроллер удаления фона: оркестрация сервисов по стадиям.

SOLID:
- SRP: класс задаёт порядок стадий и прогресс, не содержит попиксельной логики.
- DIP: растеризация приходит через `RasterSurface`; сервисы получают её при создании.
Clean Code:
- Каждая стадия падает быстро своей ошибкой; повторов нет, частичный результат не возвращается.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from bgremove.errors import ImageProcessingError
from bgremove.models.image_model import Color, ImageCandidate, PixelBuffer
from bgremove.models.options import (
    DEFAULT_OPTIONS,
    MAX_PROCESSING_DIMENSION_SIDE,
    PREPROCESS_OPTIONS,
    ProcessingOptions,
)
from bgremove.services.background_service import BackgroundService
from bgremove.services.image_service import ImageService
from bgremove.services.process_service import ProcessService
from bgremove.services.raster_surface import RasterSurface
from bgremove.services.resize_service import ResizeService
from bgremove.services.validation_service import ValidationService

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Контрольные точки прогресса (накопительно, 0..100)
PROGRESS_DECODED = 10
PROGRESS_DIMENSIONS_OK = 20
PROGRESS_LOADED = 25
PROGRESS_RESIZED = 28
PROGRESS_SAMPLED = 30
PROGRESS_MATCH_SPAN = 60  # сопоставление занимает 30 -> 90
PROGRESS_ENCODED = 95
PROGRESS_DONE = 100


class Stage(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    DECODING = "decoding"
    DIMENSION_CHECKING = "dimension_checking"
    LOADING = "loading"
    RESIZING = "resizing"
    SAMPLING = "sampling"
    MATCHING = "matching"
    FILTERING = "filtering"
    ENCODING = "encoding"
    DONE = "done"
    ERRORED = "errored"


@dataclass(frozen=True)
class RemovalResult:
    """Результат удаления фона.

    Fields:
        data: Закодированное изображение.
        media_type: Его MIME-тип.
        width, height: Размер результата (после возможного уменьшения).
        background: Оценённый цвет фона.
        cleared_pixels: Сколько пикселей стали прозрачными.
        was_resized: Было ли уменьшение перед обработкой.
        original_width, original_height: Собственный размер входа.
    """
    data: bytes
    media_type: str
    width: int
    height: int
    background: Color
    cleared_pixels: int
    was_resized: bool
    original_width: int
    original_height: int

    def to_data_url(self) -> str:
        return ImageService.to_data_url(self.data, self.media_type)


@dataclass(frozen=True)
class PreparedImage:
    data: bytes
    media_type: str
    width: int
    height: int
    was_resized: bool
    original_width: int
    original_height: int

    def to_data_url(self) -> str:
        return ImageService.to_data_url(self.data, self.media_type)


class _ProgressReporter:
    """Передаёт прогресс дальше, отбрасывая регрессии и значения выше 100."""

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self._callback = callback
        self.last = -1

    def __call__(self, value: int) -> None:
        value = min(PROGRESS_DONE, int(value))
        if self._callback is None or value <= self.last:
            return
        self.last = value
        self._callback(value)


@dataclass
class RemovalController:
    """Связывает сервисы в конвейер «проверка -> декодирование -> размеры -> выборка -> сопоставление -> кодирование».

    Ответственности:
    - Порядок стадий и текущее состояние (`state`) для отображения оболочкой.
    - Контрольные точки прогресса.
    - Журналирование переходов и ошибок.

    Экземпляр не разделяет буферы между вызовами; для параллельной обработки
    нескольких изображений достаточно отдельного контроллера на каждое.
    """
    options: ProcessingOptions = DEFAULT_OPTIONS
    surface: Optional[RasterSurface] = None
    state: Stage = field(default=Stage.IDLE, init=False)

    def __post_init__(self) -> None:
        self._validation_service = ValidationService()
        self._image_service = ImageService(self.surface)
        self._resize_service = ResizeService(self._image_service.surface)
        self._background_service = BackgroundService()
        self._process_service = ProcessService()

    # ---- Operations ----
    def remove_background(
        self,
        candidate: Optional[ImageCandidate],
        on_progress: Optional[ProgressCallback] = None,
        options: Optional[ProcessingOptions] = None,
    ) -> RemovalResult:
        """Удаляет однородный фон и возвращает закодированный результат.

        Raises:
            ImageProcessingError: конкретный подкласс той стадии, на которой произошёл сбой.
        """
        opts = options or self.options
        progress = _ProgressReporter(on_progress)
        self.state = Stage.IDLE
        try:
            buffer, original_width, original_height = self._load_checked(candidate, opts, progress)

            was_resized = False
            if opts.resize_max_side is not None:
                self._enter(Stage.RESIZING)
                resized = self._resize_service.resize(buffer, opts.resize_max_side)
                buffer, was_resized = resized.buffer, resized.was_resized
                progress(PROGRESS_RESIZED)

            self._enter(Stage.SAMPLING)
            background = self._background_service.estimate(buffer)
            progress(PROGRESS_SAMPLED)

            self._enter(Stage.MATCHING)
            cleared = self._background_service.match_and_clear(
                buffer,
                background,
                opts.color_tolerance,
                on_progress=lambda p: progress(PROGRESS_SAMPLED + p * PROGRESS_MATCH_SPAN // 100),
                max_total_pixels=opts.max_total_pixels,
            )

            self._enter(Stage.ENCODING)
            data = self._image_service.encode(buffer, opts.output_media_type, opts.output_quality)
            progress(PROGRESS_ENCODED)
        except Exception as exc:
            self._fail(exc)
            raise

        self._enter(Stage.DONE)
        progress(PROGRESS_DONE)
        logger.info(
            "Фон удалён: %s, %dx%d, цвет фона %s, прозрачных пикселей %d",
            candidate.name or "<bytes>", buffer.width, buffer.height, background.to_rgb(), cleared,
        )
        return RemovalResult(
            data=data,
            media_type=opts.output_media_type,
            width=buffer.width,
            height=buffer.height,
            background=background,
            cleared_pixels=cleared,
            was_resized=was_resized,
            original_width=original_width,
            original_height=original_height,
        )

    def ensure_processable(
        self,
        candidate: Optional[ImageCandidate],
        on_progress: Optional[ProgressCallback] = None,
        options: ProcessingOptions = PREPROCESS_OPTIONS,
    ) -> PreparedImage:
        """Проверяет, декодирует, при необходимости уменьшает и заново кодирует изображение."""
        progress = _ProgressReporter(on_progress)
        self.state = Stage.IDLE
        target = options.resize_max_side or MAX_PROCESSING_DIMENSION_SIDE
        try:
            buffer, _, _ = self._load_checked(candidate, options, progress)

            self._enter(Stage.RESIZING)
            resized = self._resize_service.resize(buffer, target)
            progress(50)

            self._enter(Stage.ENCODING)
            data = self._image_service.encode(resized.buffer, options.output_media_type, options.output_quality)
        except Exception as exc:
            self._fail(exc)
            raise

        self._enter(Stage.DONE)
        progress(PROGRESS_DONE)
        return PreparedImage(
            data=data,
            media_type=options.output_media_type,
            width=resized.buffer.width,
            height=resized.buffer.height,
            was_resized=resized.was_resized,
            original_width=resized.original_width,
            original_height=resized.original_height,
        )

    def detect_edges(
        self,
        candidate: Optional[ImageCandidate],
        options: Optional[ProcessingOptions] = None,
    ) -> PixelBuffer:
        """Карта границ Собеля для входного файла (исходный буфер не меняется)."""
        opts = options or self.options
        self.state = Stage.IDLE
        try:
            buffer, _, _ = self._load_checked(candidate, opts, _ProgressReporter(None))
            self._enter(Stage.FILTERING)
            edges = self._process_service.sobel(buffer)
        except Exception as exc:
            self._fail(exc)
            raise
        self._enter(Stage.DONE)
        return edges

    def encode(self, buffer: PixelBuffer, options: Optional[ProcessingOptions] = None) -> bytes:
        opts = options or self.options
        return self._image_service.encode(buffer, opts.output_media_type, opts.output_quality)

    # ---- Helpers ----
    def _load_checked(
        self,
        candidate: Optional[ImageCandidate],
        opts: ProcessingOptions,
        progress: _ProgressReporter,
    ) -> tuple[PixelBuffer, int, int]:
        self._enter(Stage.VALIDATING)
        self._validation_service.validate(candidate, opts)

        self._enter(Stage.DECODING)
        width, height = self._image_service.probe(candidate)
        progress(PROGRESS_DECODED)

        self._enter(Stage.DIMENSION_CHECKING)
        self._image_service.check_dimensions(width, height, opts)
        progress(PROGRESS_DIMENSIONS_OK)

        self._enter(Stage.LOADING)
        buffer = self._image_service.load(candidate)
        progress(PROGRESS_LOADED)
        return buffer, width, height

    def _enter(self, stage: Stage) -> None:
        logger.debug("Стадия: %s -> %s", self.state.value, stage.value)
        self.state = stage

    def _fail(self, exc: Exception) -> None:
        if isinstance(exc, ImageProcessingError):
            logger.error("Стадия %s завершилась ошибкой [%s]: %s", self.state.value, exc.kind, exc)
        else:
            logger.exception("Непредвиденная ошибка на стадии %s", self.state.value)
        self.state = Stage.ERRORED
