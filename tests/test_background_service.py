import numpy as np
import pytest

from bgremove.errors import ProcessingTimeoutError
from bgremove.models.image_model import Color, PixelBuffer
from bgremove.services.background_service import BackgroundService, default_sample_points, rgb_distance


@pytest.fixture
def service():
    return BackgroundService()


def test_default_sample_points():
    assert default_sample_points(5, 4) == [
        (0, 0), (4, 0), (0, 3), (4, 3),
        (2, 0), (2, 3), (0, 2), (4, 2),
    ]


def test_rgb_distance():
    assert rgb_distance(Color(0, 0, 0), Color(3, 4, 0, 17)) == 5.0


def test_estimate_uniform(service):
    buf = PixelBuffer.filled(6, 5, (12, 34, 56, 0))
    assert service.estimate(buf)[:3] == (12, 34, 56)


@pytest.mark.parametrize("x, y", [(0, 0), (5, 0), (0, 3), (5, 3)])
def test_estimate_single_corner_returns_pixel(service, rng, x, y):
    px = rng.integers(0, 256, size=(4, 6, 4), dtype=np.uint8)
    buf = PixelBuffer.from_array(px)
    color = service.estimate(buf, [(x, y)])
    assert color[:3] == tuple(float(v) for v in px[y, x, :3])


def test_estimate_clamps_out_of_bounds(service):
    px = np.zeros((2, 2, 4), dtype=np.uint8)
    px[1, 1] = (100, 150, 200, 255)
    buf = PixelBuffer.from_array(px)
    color = service.estimate(buf, [(50, 50)])
    assert color[:3] == (100, 150, 200)
    color = service.estimate(buf, [(-3, -3)])
    assert color[:3] == (0, 0, 0)


def test_estimate_ignores_alpha(service):
    buf = PixelBuffer.filled(3, 3, (90, 90, 90, 0))
    color = service.estimate(buf)
    assert color[:3] == (90, 90, 90)
    assert color.a == 255


def test_estimate_without_samples_uses_first_pixel(service):
    px = np.zeros((2, 2, 4), dtype=np.uint8)
    px[0, 0] = (7, 8, 9, 255)
    assert service.estimate(PixelBuffer.from_array(px), [])[:3] == (7, 8, 9)


def test_estimate_empty_buffer(service):
    assert service.estimate(PixelBuffer.filled(0, 0))[:3] == (0, 0, 0)


def test_estimate_in_channel_range(service, rng):
    px = rng.integers(0, 256, size=(9, 11, 4), dtype=np.uint8)
    color = service.estimate(PixelBuffer.from_array(px))
    assert all(0 <= c <= 255 for c in color[:3])


def test_estimate_counts_every_listed_point(service):
    # 10000x1: середины совпадают с углами, повторы учитываются
    buf = PixelBuffer.filled(10000, 1, (0, 0, 0, 255))
    px = buf.pixels()
    px[0, 0, :3] = (10, 20, 30)
    px[0, 9999, :3] = (200, 100, 50)
    px[0, 5000, :3] = (90, 90, 90)

    color = service.estimate(buf)

    # (0,0) x3, (9999,0) x3, (5000,0) x2
    assert color.r == pytest.approx((3 * 10 + 3 * 200 + 2 * 90) / 8)
    assert color.g == pytest.approx((3 * 20 + 3 * 100 + 2 * 90) / 8)
    assert color.b == pytest.approx((3 * 30 + 3 * 50 + 2 * 90) / 8)


def test_uniform_gray_fully_cleared(service):
    buf = PixelBuffer.filled(4, 4, (128, 128, 128, 255))
    target = service.estimate(buf)
    assert target[:3] == (128, 128, 128)

    cleared = service.match_and_clear(buf, target, 45)

    assert cleared == 16
    assert np.all(buf.pixels()[..., 3] == 0)


def test_boundary_is_not_cleared(service):
    px = np.zeros((1, 3, 4), dtype=np.uint8)
    px[..., 3] = 255
    px[0, 0, :3] = (45, 0, 0)    # ровно на пороге
    px[0, 1, :3] = (27, 36, 0)   # тоже 45
    px[0, 2, :3] = (44, 0, 0)    # внутри
    buf = PixelBuffer.from_array(px)

    service.match_and_clear(buf, Color(0, 0, 0), 45)

    assert list(buf.pixels()[0, :, 3]) == [255, 255, 0]


def test_alpha_iff_distance_below_tolerance(service, rng):
    px = rng.integers(0, 256, size=(20, 30, 4), dtype=np.uint8)
    buf = PixelBuffer.from_array(px)
    target = Color(120.5, 60.25, 200.0)
    tolerance = 80.0

    service.match_and_clear(buf, target, tolerance)

    out = buf.pixels()
    dist = np.sqrt(((px[..., :3].astype(float) - [120.5, 60.25, 200.0]) ** 2).sum(axis=2))
    expected_alpha = np.where(dist < tolerance, 0, px[..., 3])
    assert np.array_equal(out[..., 3], expected_alpha)
    assert np.array_equal(out[..., :3], px[..., :3])


def test_progress_monotonic_and_complete(service):
    buf = PixelBuffer.filled(37, 29, (1, 2, 3, 255))
    seen = []
    service.match_and_clear(buf, Color(0, 0, 0), 10, on_progress=seen.append)
    assert seen
    assert seen == sorted(seen)
    assert len(set(seen)) == len(seen)
    assert seen[-1] == 100
    assert all(0 <= p <= 100 for p in seen)


def test_progress_on_empty_buffer(service):
    seen = []
    assert service.match_and_clear(PixelBuffer.filled(0, 0), Color(0, 0, 0), 45, on_progress=seen.append) == 0
    assert seen == [100]


def test_safety_ceiling(service):
    buf = PixelBuffer.filled(4, 4, (0, 0, 0, 255))
    with pytest.raises(ProcessingTimeoutError) as exc_info:
        service.match_and_clear(buf, Color(0, 0, 0), 45, max_total_pixels=10)
    assert exc_info.value.ceiling == 15
    # буфер не тронут
    assert np.all(buf.pixels()[..., 3] == 255)


def test_safety_ceiling_allows_up_to_multiple(service):
    buf = PixelBuffer.filled(5, 3, (0, 0, 0, 255))
    assert service.match_and_clear(buf, Color(0, 0, 0), 45, max_total_pixels=10) == 15
