import io

import pytest

from caminfo.ini import dump_ini, load_ini, parse_ini, read_ini, save_ini, write_ini
from caminfo.models import PLUMB_BOB, RATIONAL_POLYNOMIAL, CalibrationError, CameraInfo


def make_info():
    k = [1168.68, 0.0, 295.015, 0.0, 1169.01, 252.247, 0.0, 0.0, 1.0]
    return CameraInfo(
        width=640,
        height=480,
        distortion_model=PLUMB_BOB,
        d=[-1.04482, 1.59252, -0.01963, 0.02879, 0.0],
        k=k,
        r=[1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0],
        p=k[0:3] + [0.0] + k[3:6] + [0.0] + k[6:9] + [0.0],
    )


SAMPLE = """# Camera intrinsics

[image]

width
640

height
480

[externals]

translation
0.0 0.0 0.0

rotation
0.0 0.0 0.0

[left_cam]

camera matrix
1.0 0.0 2.0
0.0 3.0 4.0
0.0 0.0 1.0

distortion
0.1 0.2 0.3 0.4 0.5 0.6 0.7 0.8

rectification
1 0 0
0 1 0
0 0 1

projection
1.0 0.0 2.0 0.0
0.0 3.0 4.0 0.0
0.0 0.0 1.0 0.0
"""


def test_dump_header_layout():
    text = dump_ini("cam", make_info())
    assert text.startswith(
        "# Camera intrinsics\n\n[image]\n\nwidth\n640\n\nheight\n480\n\n[cam]\n\n"
    )
    assert "camera matrix\n" in text
    assert "\ndistortion\n" in text
    assert "\n\nrectification\n" in text
    assert "\nprojection\n" in text


def test_dump_uses_five_decimals():
    text = dump_ini("cam", make_info())
    assert "1168.68000 0.00000 295.01500 \n" in text


def test_round_trip():
    info = make_info()
    name, parsed = parse_ini(dump_ini("my_camera", info))
    assert name == "my_camera"
    assert parsed == info


def test_write_rounds_to_five_decimals():
    info = make_info()
    info.d[2] = -0.0196308
    _, parsed = parse_ini(dump_ini("cam", info))
    assert parsed.d[2] == pytest.approx(-0.0196308, abs=5e-6)


def test_write_stream_matches_dump():
    buffer = io.StringIO()
    write_ini(buffer, "cam", make_info())
    assert buffer.getvalue() == dump_ini("cam", make_info())


def test_write_rejects_other_models():
    info = make_info()
    info.distortion_model = RATIONAL_POLYNOMIAL
    with pytest.raises(CalibrationError):
        dump_ini("cam", info)


def test_write_rejects_wrong_coefficient_count():
    info = make_info()
    info.d = info.d[:4]
    with pytest.raises(CalibrationError):
        dump_ini("cam", info)


def test_parse_with_externals_and_eight_coefficients():
    name, info = parse_ini(SAMPLE)
    assert name == "left_cam"
    assert info.width == 640
    assert info.height == 480
    assert info.distortion_model == RATIONAL_POLYNOMIAL
    assert info.d == [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8]
    assert info.k == [1.0, 0.0, 2.0, 0.0, 3.0, 4.0, 0.0, 0.0, 1.0]
    assert info.r == [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0]
    assert info.p[10] == 1.0


def test_parse_other_coefficient_count_leaves_model_empty():
    text = SAMPLE.replace("0.1 0.2 0.3 0.4 0.5 0.6 0.7 0.8", "0.1 0.2 0.3 0.4")
    _, info = parse_ini(text)
    assert info.d == [0.1, 0.2, 0.3, 0.4]
    assert info.distortion_model == ""


def test_parse_skips_comments_and_trailing_text():
    text = SAMPLE.replace("width\n", "width # pixels\n") + "\n# end\ntrailing"
    name, info = parse_ini(text)
    assert name == "left_cam"
    assert info.width == 640


def test_parse_read_stream():
    name, info = read_ini(io.StringIO(SAMPLE))
    assert name == "left_cam"
    assert info == parse_ini(SAMPLE)[1]


@pytest.mark.parametrize(
    "broken",
    [
        "",
        SAMPLE.replace("[image]", "[picture]"),
        SAMPLE.replace("640", "-640"),
        SAMPLE.replace("0.0 0.0 1.0\n\ndistortion", "0.0 0.0\n\ndistortion"),
        SAMPLE.replace("projection", "proj"),
        SAMPLE.replace("[left_cam]", "[left_cam"),
    ],
)
def test_parse_errors(broken):
    with pytest.raises(CalibrationError):
        parse_ini(broken)


def test_save_and_load_creates_directories(tmp_path):
    target = tmp_path / "nested" / "dir" / "calib.ini"
    info = make_info()
    save_ini(target, "saved", info)
    assert target.exists()
    name, loaded = load_ini(target)
    assert name == "saved"
    assert loaded == info


def test_load_missing_file(tmp_path):
    with pytest.raises(CalibrationError):
        load_ini(tmp_path / "absent.ini")


def test_save_invalid_model_raises(tmp_path):
    info = make_info()
    info.distortion_model = "equidistant"
    with pytest.raises(CalibrationError):
        save_ini(tmp_path / "x.ini", "cam", info)