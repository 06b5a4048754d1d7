import io

import pytest

from camstages.imx500 import (
    FULL_SENSOR_RESOLUTION,
    InputTensorSaver,
    auto_inference_roi,
    conv_reg_signed,
    convert_inference_coordinates,
    encode_input_tensor,
    format_progress,
    parse_firmware_progress,
)
from camstages.rectangle import Rectangle, Size


class _Stream(io.BytesIO):
    def close(self):
        self.saved = self.getvalue()
        super().close()


def test_conv_reg_signed_positive_unchanged():
    assert [conv_reg_signed(v) for v in range(256)] == list(range(256))


def test_conv_reg_signed_nine_bit_round_trip():
    for v in range(-256, 256):
        assert conv_reg_signed(v & 0x1FF) == v


def test_encode_defaults_is_identity():
    data = bytes(range(256))
    assert encode_input_tensor(data) == data


def test_encode_shift_then_divide_is_identity():
    data = bytes(range(0, 256, 3))
    out = encode_input_tensor(data, div_val=[2, 2, 2, 2], div_shift=1)
    assert out == data


def test_encode_zero_divisor_raises():
    with pytest.raises(ZeroDivisionError):
        encode_input_tensor(b"\x01", div_val=[0, 1, 1, 1])


def test_convert_full_frame():
    full = FULL_SENSOR_RESOLUTION
    r = convert_inference_coordinates([0, 0, 1, 1], full, full.size(), full.size())
    assert r == Rectangle(0, 0, full.width - 1, full.height - 1)


def test_convert_wrong_length_gives_empty():
    full = FULL_SENSOR_RESOLUTION
    assert convert_inference_coordinates([0, 0, 1], full, full.size(), full.size()) == Rectangle()


def test_convert_stays_inside_output():
    full = FULL_SENSOR_RESOLUTION
    isp = Size(640, 480)
    crop = Rectangle(500, 300, 2000, 1500)
    r = convert_inference_coordinates([0.1, 0.2, 0.9, 0.9], crop, isp, Size(2028, 1520))
    assert r.bounded_to(Rectangle(0, 0, isp.width, isp.height)) == r


def test_auto_roi_same_aspect_is_full():
    full = FULL_SENSOR_RESOLUTION
    assert auto_inference_roi(full.width, full.height) == full


def test_auto_roi_square_is_centred():
    full = FULL_SENSOR_RESOLUTION
    r = auto_inference_roi(1, 1)
    assert r.width == r.height == full.height
    assert r.center() == full.center()
    assert r.bounded_to(full) == r


def test_parse_progress_uploading():
    assert parse_firmware_progress("2 100 200", "0") == (100, 200, False)


def test_parse_progress_finished():
    assert parse_firmware_progress("2 200 200\n", "") == (200, 200, True)


@pytest.mark.parametrize("fw_text", ["1 10 20", "2 10", "", "2 x 20"])
def test_parse_progress_not_uploading(fw_text):
    assert parse_firmware_progress(fw_text, "5") is None


def test_format_progress():
    assert format_progress(1024, 2048) == "Network Firmware Upload: 50% (1/2 KB)"


def test_saver_closes_after_count():
    stream = _Stream()
    saver = InputTensorSaver(stream, 2)
    saver.write(b"\x01\x02\x03")
    assert saver.is_open()
    saver.write(b"\x04")
    assert not saver.is_open()
    assert stream.saved == b"\x01\x02\x03\x04"
    saver.write(b"\x05")
    assert stream.saved == b"\x01\x02\x03\x04"


def test_saver_from_params_defaults():
    stream = _Stream()
    saver = InputTensorSaver.from_params({"filename": "unused.bin"}, stream)
    saver.write(b"\x10\x20")
    assert not saver.is_open()
    assert stream.saved == b"\x10\x20"


def test_saver_from_params_writes_file(tmp_path):
    path = tmp_path / "tensor.bin"
    saver = InputTensorSaver.from_params({"filename": str(path), "num_tensors": 1})
    saver.write(b"\x07\x08")
    assert path.read_bytes() == b"\x07\x08"


def test_saver_from_params_requires_filename():
    with pytest.raises(KeyError):
        InputTensorSaver.from_params({}, _Stream())