"""Дешёвая проверка входного файла до декодирования.

Принципы:
- SRP: только метаданные (наличие, тип, размер в байтах); размеры в пикселях здесь неизвестны.
"""
from __future__ import annotations

import logging
from typing import Optional

from bgremove.errors import EmptyInputError, FileTooLargeError, InvalidTypeError
from bgremove.models.image_model import ImageCandidate
from bgremove.models.options import DEFAULT_OPTIONS, ProcessingOptions

logger = logging.getLogger(__name__)


class ValidationService:
    def validate(self, candidate: Optional[ImageCandidate], options: ProcessingOptions = DEFAULT_OPTIONS) -> None:
        """Проверяет кандидата на соответствие ограничениям.

        Raises:
            EmptyInputError: кандидат отсутствует или пуст.
            InvalidTypeError: заявленный тип не входит в `options.allowed_media_types`.
            FileTooLargeError: размер превышает `options.max_file_size_bytes`.
        """
        if candidate is None or candidate.size_bytes == 0:
            raise EmptyInputError()

        media_type = (candidate.media_type or "").strip().lower()
        if media_type not in options.allowed_media_types:
            raise InvalidTypeError(candidate.media_type, tuple(sorted(options.allowed_media_types)))

        if candidate.size_bytes > options.max_file_size_bytes:
            raise FileTooLargeError(candidate.size_bytes, options.max_file_size_bytes)

        logger.debug("Файл %s прошёл проверку (%s, %d байт)", candidate.name or "<bytes>", media_type, candidate.size_bytes)
