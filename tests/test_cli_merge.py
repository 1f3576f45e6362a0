"""Tests for hdrstack.cli.merge -- offline burst merge."""

import json
import pytest
from hdrstack.cli.merge import build_parser, discover_files, main
from hdrstack.kernel.system.config import DEFAULT_HDR_CONFIG
from frame_factory import make_frame, ramp


@pytest.fixture
def burst(tmp_path):
    frames_dir = tmp_path / "burst"
    frames_dir.mkdir()
    frame = make_frame(ramp(24, 32), u=140, v=120)
    for i in range(3):
        frame.data.tofile(frames_dir / f"frame_{i}.yuv")
    (frames_dir / "notes.txt").write_text("ignored")
    return frames_dir


class TestBuildParser:
    def test_minimal_args(self):
        args = build_parser().parse_args(["--width", "32", "--height", "24", "a.yuv"])
        assert args.inputs == ["a.yuv"]
        assert args.stride is None
        assert args.output == "."
        assert args.name == "hdr"
        assert args.quality == 93
        assert args.config is None
        assert args.init_config is None
        assert args.verbose is False


def test_discover_files_filters_directories(burst):
    files = discover_files([str(burst)])
    assert [f.rsplit("/", 1)[-1] for f in files] == ["frame_0.yuv", "frame_1.yuv", "frame_2.yuv"]


def test_main_writes_jpeg(burst, tmp_path):
    out_dir = tmp_path / "out"
    rc = main(["--width", "32", "--height", "24", "--output", str(out_dir), str(burst)])

    assert rc == 0
    data = (out_dir / "hdr.jpg").read_bytes()
    assert data[:2] == b"\xff\xd8"


def test_main_requires_geometry(burst):
    assert main([str(burst)]) == 1


def test_main_rejects_odd_geometry(burst):
    assert main(["--width", "31", "--height", "24", str(burst)]) == 1


def test_main_rejects_short_files(burst, tmp_path):
    assert main(["--width", "64", "--height", "48", "--output", str(tmp_path), str(burst)]) == 1


def test_main_rejects_bad_config(burst, tmp_path):
    config = tmp_path / "bad.json"
    config.write_text(json.dumps({"strength": -1}))
    assert main(["--width", "32", "--height", "24", "--config", str(config), str(burst)]) == 1


def test_init_config(tmp_path):
    path = tmp_path / "tuning.json"
    assert main(["--init-config", str(path)]) == 0
    assert json.loads(path.read_text()) == json.loads(json.dumps(DEFAULT_HDR_CONFIG.to_dict()))

