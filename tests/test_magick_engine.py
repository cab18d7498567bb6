import subprocess

import numpy as np
import pytest

from pixelforge.models import magick_engine
from pixelforge.models.color import WHITE
from pixelforge.models.errors import DecodeFailure, EncodeFailure, EngineUnavailable, ResizeFailure
from pixelforge.models.magick_engine import MagickEngine, parse_pam
from pixelforge.models.raster import Raster
from pixelforge.models.specs import FitMode, FitSpec, KeySpec


def _pam(width, height, depth, body, maxval=255, tupltype="RGB_ALPHA"):
    header = (f"P7\nWIDTH {width}\nHEIGHT {height}\nDEPTH {depth}\n"
              f"MAXVAL {maxval}\nTUPLTYPE {tupltype}\nENDHDR\n")
    return header.encode("ascii") + body


class FakeRunner:
    """Records ImageMagick invocations and answers with canned output."""

    def __init__(self, stdout=b"", returncode=0, stderr=b""):
        self.calls = []
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr

    def __call__(self, cmd, input=None, capture_output=False):
        self.calls.append((cmd, input))
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr=self.stderr)

    @property
    def args(self):
        return self.calls[-1][0]


def _engine_for(width, height):
    runner = FakeRunner(stdout=bytes(width * height * 4))
    return MagickEngine(command="magick", runner=runner), runner


def _contains(args, *seq):
    n = len(seq)
    return any(tuple(args[i:i + n]) == seq for i in range(len(args) - n + 1))


@pytest.fixture
def source():
    return Raster(np.full((10, 20, 4), 255, dtype=np.uint8))


# ─── command construction ───────────────────────────────────────────
def test_contain_command(source):
    engine, runner = _engine_for(8, 8)
    out = engine.fit(source, FitSpec(8, 8, FitMode.CONTAIN), WHITE)

    assert out.size == (8, 8)
    assert runner.args[:6] == ["magick", "-size", "20x10", "-depth", "8", "rgba:-"]
    assert _contains(runner.args, "-filter", "Lanczos")
    assert _contains(runner.args, "-resize", "8x8", "-gravity", "center",
                     "-background", "rgb(255,255,255)", "-extent", "8x8")
    assert runner.args[-2:] == ["+repage", "rgba:-"]
    assert runner.calls[-1][1] == source.to_bytes()


def test_fill_geometry(source):
    engine, runner = _engine_for(8, 4)
    engine.fit(source, FitSpec(8, 4, FitMode.FILL), WHITE)
    assert _contains(runner.args, "-resize", "8x4!")


def test_cover_crops_to_aspect_before_resizing(source):
    engine, runner = _engine_for(4, 8)
    engine.fit(source, FitSpec(4, 8, FitMode.COVER), WHITE)
    assert _contains(runner.args, "-gravity", "center", "-crop", "5x10+0+0", "+repage", "-resize", "4x8!")
    assert not any(arg.endswith("^") for arg in runner.args)


def test_cover_extreme_aspect_resizes_only_the_crop():
    engine, runner = _engine_for(1, 4096)
    engine.fit(Raster(np.zeros((10, 2000, 4), dtype=np.uint8)), FitSpec(1, 4096, FitMode.COVER), WHITE)
    assert _contains(runner.args, "-crop", "1x10+0+0", "+repage", "-resize", "1x4096!")


def test_zoom_runs_before_fit(source):
    engine, runner = _engine_for(8, 4)
    engine.fit(source, FitSpec(8, 4, FitMode.FILL, zoom=1.5), WHITE)
    assert _contains(runner.args, "-resize", "150%", "-gravity", "center",
                     "-background", "none", "-extent", "20x10")
    assert runner.args.index("150%") < runner.args.index("8x4!")


def test_key_out_matches_rgb_distance_only():
    runner = FakeRunner()
    engine = MagickEngine(command="magick", runner=runner)
    arr = np.array([[(250, 250, 250, 255), (250, 250, 250, 90), (0, 0, 0, 90)]], dtype=np.uint8)

    out = engine.key_out(Raster(arr), KeySpec("#ffffff", 12))

    assert list(out.alpha[0]) == [0, 0, 90]
    assert runner.calls == []


def test_colorize_command(source):
    engine, runner = _engine_for(20, 10)
    engine.colorize(source, WHITE, 0.4)
    assert _contains(runner.args, "-fill", "rgb(255,255,255)", "-colorize", "40%")


def test_png_encode_defines(source, tmp_path):
    runner = FakeRunner()
    engine = MagickEngine(command="magick", runner=runner)

    engine.encode(source, tmp_path / "a.png", "png", quality=90)
    assert _contains(runner.args, "-define", "png:color-type=6")
    assert _contains(runner.args, "-define", "png:compression-level=9")
    assert _contains(runner.args, "-define", "png:format=png32")
    assert runner.args[-1] == f"PNG:{tmp_path / 'a.png'}"

    engine.encode(source, tmp_path / "b.png", "png", quality=95)
    assert "png:compression-level=9" not in runner.args


def test_ico_and_jpeg_encode(source, tmp_path):
    runner = FakeRunner()
    engine = MagickEngine(command="magick", runner=runner)

    engine.encode(source, tmp_path / "f.ico", "ico")
    assert _contains(runner.args, "-define", "icon:auto-resize=256,128,64,48,32,16")

    engine.encode(source, tmp_path / "p.jpg", "jpeg", quality=80)
    assert _contains(runner.args, "-background", "white", "-flatten")
    assert _contains(runner.args, "-quality", "80")


def test_unsupported_format(source, tmp_path):
    engine = MagickEngine(command="magick", runner=FakeRunner())
    with pytest.raises(EncodeFailure):
        engine.encode(source, tmp_path / "a.svg", "svg")


# ─── failures ───────────────────────────────────────────────────────
def test_nonzero_exit_carries_stderr(source):
    runner = FakeRunner(returncode=1, stderr=b"convert: invalid geometry")
    engine = MagickEngine(command="magick", runner=runner)
    with pytest.raises(ResizeFailure, match="invalid geometry") as info:
        engine.resample(source, 5, 5)
    assert info.value.target == "5x5"


def test_unexpected_output_length(source):
    engine = MagickEngine(command="magick", runner=FakeRunner(stdout=b"\x00" * 7))
    with pytest.raises(ResizeFailure):
        engine.resample(source, 5, 5)


def test_missing_binary_at_run_time(source):
    def runner(cmd, input=None, capture_output=False):
        raise FileNotFoundError(cmd[0])

    engine = MagickEngine(command="/nowhere/magick", runner=runner)
    with pytest.raises(EngineUnavailable):
        engine.resample(source, 5, 5)


def test_decode_missing_file_skips_process(tmp_path):
    runner = FakeRunner()
    engine = MagickEngine(command="magick", runner=runner)
    with pytest.raises(DecodeFailure):
        engine.decode(tmp_path / "missing.png")
    assert runner.calls == []


def test_decode_bytes_reads_pam():
    body = bytes([1, 2, 3, 4] * 6)
    engine = MagickEngine(command="magick", runner=FakeRunner(stdout=_pam(3, 2, 4, body)))
    raster = engine.decode(b"fake-encoded-bytes")
    assert raster.size == (3, 2)
    assert tuple(raster.pixels[1, 2]) == (1, 2, 3, 4)
    assert "-[0]" in engine.runner.args


# ─── PAM parsing ────────────────────────────────────────────────────
def test_parse_pam_rgb_gets_opaque_alpha():
    arr = parse_pam(_pam(2, 1, 3, bytes([10, 20, 30, 40, 50, 60]), tupltype="RGB"))
    assert arr.shape == (1, 2, 4)
    assert tuple(arr[0, 1]) == (40, 50, 60, 255)


def test_parse_pam_gray_alpha():
    arr = parse_pam(_pam(1, 1, 2, bytes([90, 7]), tupltype="GRAYSCALE_ALPHA"))
    assert tuple(arr[0, 0]) == (90, 90, 90, 7)


def test_parse_pam_sixteen_bit():
    body = np.array([65535, 0, 32896, 65535], dtype=">u2").tobytes()
    arr = parse_pam(_pam(1, 1, 4, body, maxval=65535))
    assert tuple(arr[0, 0]) == (255, 0, 128, 255)


@pytest.mark.parametrize("data", [b"", b"P6\n1 1\n255\n", _pam(4, 4, 4, b"\x00" * 3)])
def test_parse_pam_malformed(data):
    with pytest.raises(DecodeFailure):
        parse_pam(data)


# ─── discovery ──────────────────────────────────────────────────────
def test_candidate_order(monkeypatch):
    monkeypatch.setenv("MAGICK_PATH", "/opt/im/magick")
    monkeypatch.setenv("MAGICK_DEFAULT_DIR", "/bundle")
    assert MagickEngine.candidates() == ["/opt/im/magick", "magick", "convert", "/bundle/bin/magick"]


def test_locate_prefers_explicit_path(monkeypatch):
    monkeypatch.setenv("MAGICK_PATH", "/opt/im/magick")
    monkeypatch.setattr(magick_engine.shutil, "which", lambda name: name)
    version_checks = []

    def fake_run(cmd, **kwargs):
        version_checks.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=b"Version: ImageMagick 7", stderr=b"")

    monkeypatch.setattr(magick_engine.subprocess, "run", fake_run)
    assert MagickEngine.locate() == "/opt/im/magick"
    assert version_checks == [["/opt/im/magick", "-version"]]


def test_locate_skips_broken_binaries(monkeypatch):
    monkeypatch.delenv("MAGICK_PATH", raising=False)
    monkeypatch.setattr(magick_engine.shutil, "which", lambda name: f"/usr/bin/{name}")

    def fake_run(cmd, **kwargs):
        if cmd[0].endswith("/magick"):
            raise subprocess.CalledProcessError(1, cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=b"", stderr=b"")

    monkeypatch.setattr(magick_engine.subprocess, "run", fake_run)
    assert MagickEngine.locate() == "/usr/bin/convert"


def test_locate_reports_missing_binary(monkeypatch):
    monkeypatch.delenv("MAGICK_PATH", raising=False)
    monkeypatch.setattr(magick_engine.shutil, "which", lambda name: None)
    with pytest.raises(EngineUnavailable, match="not installed"):
        MagickEngine.locate()
    assert MagickEngine.is_available() is False


# ─── real binary ────────────────────────────────────────────────────
@pytest.mark.skipif(not MagickEngine.is_available(), reason="ImageMagick not installed")
@pytest.mark.parametrize("mode", list(FitMode))
def test_real_binary_exact_dimensions(mode, logo, tmp_path):
    engine = MagickEngine()
    out = engine.fit(logo, FitSpec(30, 17, mode), WHITE)
    assert out.size == (30, 17)

    path = engine.encode(out, tmp_path / "out.png", "png")
    assert engine.decode(path).size == (30, 17)
