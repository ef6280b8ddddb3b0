"""Tests for the icetray command line interface."""

from pathlib import Path

import numpy as np
import yaml  # type: ignore[import-untyped]
from typer.testing import CliRunner

from icetray import __version__
from icetray.cli.main import app
from icetray.core.file import FrameFile
from icetray.core.frame import Frame

runner = CliRunner()


def _frames() -> list[Frame]:
    frames = []
    for i in range(3):
        frame = Frame()
        frame.set("index", i)
        frame.set("label", f"event-{i}")
        if i == 2:
            frame.set("charges", np.linspace(0.0, 1.0, 50))
        frames.append(frame)
    return frames


def test_info_counts_frames_and_keys(frame_path: Path, write_frames) -> None:
    write_frames(frame_path, _frames())
    result = runner.invoke(app, ["info", str(frame_path)])
    assert result.exit_code == 0, result.output
    assert "3 frames" in result.output
    assert "index  [i64]" in result.output
    assert "charges  [numpy.ndarray]" in result.output


def test_info_reports_truncated_file(frame_path: Path, write_frames) -> None:
    write_frames(frame_path, _frames())
    frame_path.write_bytes(frame_path.read_bytes()[:-5])
    result = runner.invoke(app, ["info", str(frame_path)])
    assert result.exit_code == 1
    assert "Truncated" in result.output


def test_info_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["info", str(tmp_path / "missing.i3")])
    assert result.exit_code == 1
    assert "Cannot open file" in result.output


def test_dump_prints_entries(frame_path: Path, write_frames) -> None:
    write_frames(frame_path, _frames())
    result = runner.invoke(app, ["dump", str(frame_path), "--limit", "2"])
    assert result.exit_code == 0, result.output
    assert "Frame 0:" in result.output
    assert "Frame 1:" in result.output
    assert "Frame 2:" not in result.output
    assert "label [str] = 'event-1'" in result.output


def test_dump_shortens_long_values(frame_path: Path, write_frames) -> None:
    write_frames(frame_path, _frames())
    result = runner.invoke(app, ["dump", str(frame_path)])
    assert result.exit_code == 0, result.output
    charges_line = next(line for line in result.output.splitlines() if "charges" in line)
    assert charges_line.endswith("...")


def test_dump_empty_file(frame_path: Path, write_frames) -> None:
    write_frames(frame_path, [])
    result = runner.invoke(app, ["dump", str(frame_path)])
    assert result.exit_code == 0
    assert "No frames" in result.output


def test_run_from_config(tmp_path: Path) -> None:
    sink = tmp_path / "out.i3"
    config = tmp_path / "tray.yaml"
    config.write_text(yaml.safe_dump({"sink": str(sink), "max_frames": 6}))

    result = runner.invoke(app, ["run", "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert "Processed 6 frames" in result.output
    with FrameFile(sink) as frames:
        assert len(list(frames)) == 6


def test_run_with_missing_source_fails(tmp_path: Path) -> None:
    config = tmp_path / "tray.yaml"
    config.write_text(yaml.safe_dump({"source": str(tmp_path / "missing.i3")}))
    result = runner.invoke(app, ["run", "--config", str(config)])
    assert result.exit_code == 1
    assert "Cannot open file" in result.output


def test_validate_accepts_and_rejects(tmp_path: Path) -> None:
    good = tmp_path / "good.yaml"
    good.write_text(yaml.safe_dump({"max_frames": 1}))
    bad = tmp_path / "bad.yaml"
    bad.write_text(yaml.safe_dump({"append": True}))

    ok = runner.invoke(app, ["validate", "--config", str(good)])
    assert ok.exit_code == 0
    assert "Valid tray configuration" in ok.output

    failed = runner.invoke(app, ["validate", "--config", str(bad)])
    assert failed.exit_code == 1
    assert "Invalid configuration" in failed.output


def test_validate_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate", "--config", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_list_value_types() -> None:
    result = runner.invoke(app, ["list-value-types"])
    assert result.exit_code == 0
    assert "u8" in result.output
    assert "polars.DataFrame" in result.output


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def _failing_read(self: FrameFile) -> None:
    raise OSError("Input/output error")


def test_info_reports_read_failure(frame_path: Path, write_frames, monkeypatch) -> None:
    write_frames(frame_path, _frames())
    monkeypatch.setattr(FrameFile, "read_frame", _failing_read)
    result = runner.invoke(app, ["info", str(frame_path)])
    assert result.exit_code == 1
    assert "Error: frame 0: Input/output error" in result.output


def test_dump_reports_read_failure(frame_path: Path, write_frames, monkeypatch) -> None:
    write_frames(frame_path, _frames())
    monkeypatch.setattr(FrameFile, "read_frame", _failing_read)
    result = runner.invoke(app, ["dump", str(frame_path)])
    assert result.exit_code == 1
    assert "Input/output error" in result.output


def test_run_rejects_sink_equal_to_source(frame_path: Path, write_frames) -> None:
    write_frames(frame_path, _frames())
    config = frame_path.with_suffix(".yaml")
    config.write_text(yaml.safe_dump({"source": str(frame_path), "sink": str(frame_path)}))
    result = runner.invoke(app, ["run", "--config", str(config)])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    with FrameFile(frame_path) as frames:
        assert len(list(frames)) == 3
