import numpy as np
import pytest

from bgremove.errors import ContextUnavailableError
from bgremove.models.image_model import PixelBuffer
from bgremove.services.resize_service import ResizeService

from conftest import FakeSurface


@pytest.fixture
def service():
    return ResizeService()


def test_noop_when_within_bounds(service):
    buf = PixelBuffer.filled(100, 50)
    result = service.resize(buf, 100)
    assert result.was_resized is False
    assert result.buffer is buf
    assert (result.original_width, result.original_height) == (100, 50)


def test_landscape_downscale(service):
    buf = PixelBuffer.filled(300, 100, (10, 20, 30, 255))
    result = service.resize(buf, 100)
    assert result.was_resized
    assert (result.buffer.width, result.buffer.height) == (100, 33)
    assert (result.original_width, result.original_height) == (300, 100)
    # однородный цвет сохраняется при любом ядре
    assert np.all(result.buffer.pixels()[..., :3] == (10, 20, 30))


def test_portrait_downscale(service):
    result = service.resize(PixelBuffer.filled(50, 200), 100)
    assert (result.buffer.width, result.buffer.height) == (25, 100)


@pytest.mark.parametrize("width, height, target", [
    (8000, 4000, 4000),
    (4001, 3999, 4000),
    (1234, 5678, 1000),
    (999, 1000, 500),
    (1001, 1001, 1000),
    (7, 3, 2),
])
def test_target_size_keeps_aspect(service, width, height, target):
    new_w, new_h = service.target_size(width, height, target)
    assert max(new_w, new_h) == target
    if width >= height:
        assert abs(new_h - height * new_w / width) <= 1
    else:
        assert abs(new_w - width * new_h / height) <= 1


def test_target_size_minimum_one_pixel(service):
    assert service.target_size(1000, 1, 10) == (10, 1)
    assert service.target_size(1, 1000, 10) == (1, 10)


def test_target_size_rounds_half_up(service):
    # 3 * 4 / 8 = 1.5
    assert service.target_size(8, 3, 4) == (4, 2)


def test_high_quality_kernel_for_large_ratio():
    surface = FakeSurface()
    ResizeService(surface).resize(PixelBuffer.filled(1000, 10), 100)
    assert surface.resample_calls == [(100, 1, True)]


def test_medium_kernel_for_small_ratio():
    surface = FakeSurface()
    ResizeService(surface).resize(PixelBuffer.filled(150, 150), 100)
    assert surface.resample_calls == [(100, 100, False)]


def test_invalid_target(service):
    with pytest.raises(ValueError):
        service.resize(PixelBuffer.filled(1, 1), 0)


def test_memory_error_maps_to_context_unavailable():
    surface = FakeSurface(resample_error=MemoryError())
    with pytest.raises(ContextUnavailableError) as exc_info:
        ResizeService(surface).resize(PixelBuffer.filled(300, 100), 100)
    assert exc_info.value.retryable
