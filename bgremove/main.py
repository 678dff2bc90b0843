"""Точка входа: удаление фона, предобработка и карта границ из командной строки."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from bgremove.controllers.removal_controller import RemovalController
from bgremove.errors import ImageProcessingError
from bgremove.logging_utils import get_logger, setup_logging
from bgremove.models.image_model import ImageCandidate
from bgremove.models.options import DEFAULT_OPTIONS, PREPROCESS_OPTIONS

OUTPUT_TYPES = {".png": "image/png", ".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".webp": "image/webp"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bgremove", description="Удаление однородного фона с изображения.")
    parser.add_argument("-v", "--verbose", action="store_true", help="подробный лог")
    sub = parser.add_subparsers(dest="command", required=True)

    remove = sub.add_parser("remove", help="удалить фон")
    remove.add_argument("input", type=Path)
    remove.add_argument("output", type=Path)
    remove.add_argument("--tolerance", type=float, default=None, help="порог расстояния цвета (по умолчанию 45)")
    remove.add_argument("--max-side", type=int, default=None, help="уменьшить до этой стороны перед обработкой")
    remove.add_argument("--quality", type=float, default=None, help="качество JPEG/WebP в [0, 1]")

    prep = sub.add_parser("preprocess", help="проверить, уменьшить и перекодировать")
    prep.add_argument("input", type=Path)
    prep.add_argument("output", type=Path)
    prep.add_argument("--max-side", type=int, default=None)
    prep.add_argument("--quality", type=float, default=None)

    edges = sub.add_parser("edges", help="карта границ Собеля")
    edges.add_argument("input", type=Path)
    edges.add_argument("output", type=Path)
    return parser


def _print_progress(percent: int) -> None:
    print(f"\r{percent:3d}%", end="" if percent < 100 else "\n", file=sys.stderr, flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Разбирает аргументы и запускает выбранную команду. Возвращает код выхода."""
    args = _build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose)
    logger = get_logger("main")

    output_type = OUTPUT_TYPES.get(args.output.suffix.lower())
    if output_type is None:
        print(
            f"Ошибка: неподдерживаемое расширение вывода \"{args.output.suffix}\". "
            f"Допустимы: {', '.join(sorted(OUTPUT_TYPES))}.",
            file=sys.stderr,
        )
        return 1

    try:
        candidate = ImageCandidate.from_path(args.input)
        if args.command == "remove":
            options = DEFAULT_OPTIONS.with_overrides(
                color_tolerance=args.tolerance,
                resize_max_side=args.max_side,
                output_quality=args.quality,
                output_media_type=output_type,
            )
            result = RemovalController(options=options).remove_background(candidate, on_progress=_print_progress)
            data = result.data
        elif args.command == "preprocess":
            options = PREPROCESS_OPTIONS.with_overrides(
                resize_max_side=args.max_side,
                output_quality=args.quality,
                output_media_type=output_type,
            )
            prepared = RemovalController().ensure_processable(candidate, on_progress=_print_progress, options=options)
            data = prepared.data
        else:
            controller = RemovalController(options=DEFAULT_OPTIONS.with_overrides(output_media_type=output_type))
            data = controller.encode(controller.detect_edges(candidate))
    except (ImageProcessingError, FileNotFoundError, ValueError) as exc:
        print(f"Ошибка: {exc}", file=sys.stderr)
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(data)
    logger.info("Результат сохранён: %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
