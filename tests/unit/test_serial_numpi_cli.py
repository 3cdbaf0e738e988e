from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

from numpi_bench.serial_numpi.__main__ import main


def _load_module(module_name: str, path: Path):
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Failed to load module spec for {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_estimate_prints_two_lines(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["estimate", "1000", "--seed", "1"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 2
    assert out[0] == "[serial version] required memory 0.011 MB"
    assert out[1].startswith("[serial version] pi is ")
    assert out[1].endswith(" from 1000 samples")


@pytest.mark.parametrize("bad", ["abc", "0"])
def test_estimate_rejects_invalid_samples(bad: str) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["estimate", bad])
    assert exc.value.code == 2


def test_profile_missing_results_returns_2(tmp_path: Path) -> None:
    assert main(["profile", "--out-dir", str(tmp_path)]) == 2


def test_lesson_script_prints_summary(capsys: pytest.CaptureFixture[str]) -> None:
    mod = _load_module("serial_numpi", Path(__file__).resolve().parents[2] / "scripts" / "serial_numpi.py")
    assert mod.main(["2000", "--seed", "3"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "[serial version] required memory 0.023 MB"
    assert out[1].endswith(" from 2000 samples")


def test_lesson_script_default_samples(capsys: pytest.CaptureFixture[str]) -> None:
    mod = _load_module("serial_numpi", Path(__file__).resolve().parents[2] / "scripts" / "serial_numpi.py")
    assert mod.main([]) == 0
    assert capsys.readouterr().out.splitlines()[1].endswith(" from 10000 samples")


@pytest.mark.parametrize("bad", ["0", "-1", "abc"])
def test_timing_rejects_non_positive_tolerance(tmp_path: Path, bad: str) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["timing", "--out-dir", str(tmp_path), "--tolerance-sigma", bad])
    assert exc.value.code == 2
    assert not (tmp_path / "results.json").exists()


def test_sweep_rejects_non_positive_tolerance(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["sweep", "--out-dir", str(tmp_path), "--tolerance-sigma", "0"])
    assert exc.value.code == 2


@pytest.mark.parametrize(
    "argv",
    [
        ["estimate", "1000", "--seed", "-1"],
        ["timing", "--out-dir", "unused", "--seed", "-1"],
        ["sweep", "--out-dir", "unused", "--seeds", "1", "-2"],
    ],
)
def test_negative_seed_is_usage_error(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    assert exc.value.code == 2


def test_estimate_uses_env_seed(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("NUMPI_BENCH_SEED", "5")
    outputs = set()
    for _ in range(3):
        assert main(["estimate", "1000"]) == 0
        outputs.add(capsys.readouterr().out)
    assert len(outputs) == 1

    assert main(["estimate", "1000", "--seed", "5"]) == 0
    assert capsys.readouterr().out in outputs


def test_estimate_bad_env_seed_returns_2(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NUMPI_BENCH_SEED", "-1")
    assert main(["estimate", "1000"]) == 2


def test_lesson_script_uses_env_seed(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    mod = _load_module("serial_numpi", Path(__file__).resolve().parents[2] / "scripts" / "serial_numpi.py")
    monkeypatch.setenv("NUMPI_BENCH_SEED", "5")
    assert mod.main(["1000"]) == 0
    first = capsys.readouterr().out
    assert mod.main(["1000"]) == 0
    assert capsys.readouterr().out == first


def test_lesson_script_rejects_negative_seed() -> None:
    mod = _load_module("serial_numpi", Path(__file__).resolve().parents[2] / "scripts" / "serial_numpi.py")
    with pytest.raises(SystemExit) as exc:
        mod.main(["1000", "--seed", "-1"])
    assert exc.value.code == 2
