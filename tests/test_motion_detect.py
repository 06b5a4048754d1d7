import pytest

from camstages.motion_detect import MotionDetectConfig, MotionDetector

WIDTH, HEIGHT = 16, 12


def _frame(value, width=WIDTH, height=HEIGHT):
    return bytes([value]) * (width * height)


def _detector(**overrides):
    settings = {"frame_period": 0, "region_threshold": 0.1}
    settings.update(overrides)
    return MotionDetector(MotionDetectConfig(**settings), WIDTH, HEIGHT, WIDTH)


def test_from_params_defaults_match_dataclass():
    assert MotionDetectConfig.from_params({}) == MotionDetectConfig()


def test_from_params_reads_values():
    config = MotionDetectConfig.from_params({"hskip": 2, "verbose": 1, "region_name": "door", "roi_x": 0.25})
    assert config.hskip == 2
    assert config.verbose is True
    assert config.region_name == "door"
    assert config.roi_x == pytest.approx(0.25)


def test_first_frame_reports_no_motion():
    d = _detector()
    assert d.process(_frame(0)) is False


def test_identical_frames_no_motion():
    d = _detector()
    d.process(_frame(50))
    assert d.process(_frame(50)) is False


def test_large_change_detected_then_settles():
    d = _detector()
    d.process(_frame(0))
    assert d.process(_frame(200)) is True
    assert d.process(_frame(200)) is False


def test_frame_period_skips_frames():
    d = _detector(frame_period=5)
    assert d.process(_frame(0), sequence=1) is None
    assert d.process(_frame(0), sequence=5) is False


def test_roi_clamped_inside_image():
    d = _detector(roi_x=0.75, roi_width=0.5)
    assert d.roi_x + d.roi_width == WIDTH
    assert d.region_threshold <= d.roi_width * d.roi_height


def test_zero_skip_treated_as_one():
    d = _detector(hskip=0, vskip=0)
    assert d.hskip == 1
    assert d.vskip == 1
    assert d.roi_width == WIDTH
    assert d.roi_height == HEIGHT


def test_change_outside_roi_ignored():
    d = _detector(roi_width=0.5)
    before = bytearray(_frame(0))
    d.process(bytes(before))
    after = bytearray(before)
    for y in range(HEIGHT):
        for x in range(WIDTH // 2, WIDTH):
            after[y * WIDTH + x] = 255
    assert d.process(bytes(after)) is False


def test_hskip_ignores_skipped_columns():
    d = _detector(hskip=2)
    base = bytearray(_frame(0))
    d.process(bytes(base))
    changed = bytearray(base)
    for y in range(HEIGHT):
        for x in range(1, WIDTH, 2):
            changed[y * WIDTH + x] = 255
    assert d.process(bytes(changed)) is False


def test_image_too_small_raises():
    d = _detector()
    with pytest.raises(IndexError):
        d.process(b"\x00" * 10)