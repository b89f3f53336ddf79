from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "hfuzz_runner" / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

import cargo_hfuzz
import hfuzz_runner as hr
from build_modes import VERSION
from hfuzz_errors import ManifestNotFoundError


@pytest.fixture
def crate(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "crate"
    (root / "src" / "bin").mkdir(parents=True)
    (root / "Cargo.toml").write_text('[package]\nname = "crate"\n', encoding="utf-8")
    monkeypatch.chdir(root / "src" / "bin")
    for name in ("CARGO", "CARGO_TARGET_DIR", "HFUZZ_WORKSPACE", "HFUZZ_INPUT", "HFUZZ_ENV_FILE", "HFUZZ_BUILD_ARGS", "HFUZZ_RUN_ARGS"):
        monkeypatch.delenv(name, raising=False)
    return root


@pytest.fixture
def fake_children(monkeypatch: pytest.MonkeyPatch):
    state = SimpleNamespace(runs=[], execs=[], returncodes=[])

    def _fake_run(cmd, *args, **kwargs):
        state.runs.append(list(cmd))
        return SimpleNamespace(returncode=state.returncodes.pop(0) if state.returncodes else 0)

    def _fake_exec(file, argv, env):
        state.execs.append(list(argv))
        raise OSError("exec disabled in tests")

    monkeypatch.setattr(hr.subprocess, "run", _fake_run)
    monkeypatch.setattr(hr.os, "execvpe", _fake_exec)
    monkeypatch.setattr(hr, "target_triple", lambda rustc="rustc": "x86_64-unknown-linux-gnu")
    return state


def test_rejects_launch_outside_cargo_without_side_effects(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys):
    monkeypatch.chdir(tmp_path)

    def _must_not_run():
        raise AssertionError("crate root lookup must not happen")

    monkeypatch.setattr(cargo_hfuzz, "cd_to_crate_root", _must_not_run)

    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main(["build", "foo"])

    assert exc.value.code == 1
    assert 'cargo hfuzz ...' in capsys.readouterr().err
    assert Path(os.getcwd()) == tmp_path.resolve()
    assert list(tmp_path.iterdir()) == []


def test_rejects_empty_argv(capsys):
    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main([])
    assert exc.value.code == 1


def test_version_prints_from_crate_root(crate: Path, capsys):
    cargo_hfuzz.main(["hfuzz", "version"])

    assert capsys.readouterr().out.strip() == f"cargo-hfuzz {VERSION}"
    assert Path(os.getcwd()) == crate.resolve()


@pytest.mark.parametrize("argv", [["hfuzz"], ["hfuzz", "fuzz"], ["hfuzz", "RUN"]])
def test_unknown_verb_lists_commands(crate: Path, capsys, argv):
    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main(argv)

    assert exc.value.code == 1
    assert "possible commands are: run, run-no-inst, run-debug" in capsys.readouterr().err


def test_missing_manifest_exits_one(monkeypatch: pytest.MonkeyPatch, capsys):
    def _no_manifest():
        raise ManifestNotFoundError()

    monkeypatch.setattr(cargo_hfuzz, "cd_to_crate_root", _no_manifest)

    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main(["hfuzz", "build"])

    assert exc.value.code == 1
    assert "could not find `Cargo.toml`" in capsys.readouterr().err


def test_run_with_failing_build_never_starts_fuzzer(crate: Path, fake_children):
    fake_children.returncodes.append(1)

    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main(["hfuzz", "run", "foo"])

    assert exc.value.code == 1
    assert fake_children.runs[0][:2] == ["cargo", "build"]
    assert fake_children.execs == []


def test_build_failure_code_is_propagated_verbatim(crate: Path, fake_children):
    fake_children.returncodes.append(101)

    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main(["hfuzz", "build-no-inst"])

    assert exc.value.code == 101


def test_build_debug_success_returns_normally(crate: Path, fake_children):
    cargo_hfuzz.main(["hfuzz", "build-debug", "--bin", "foo"])

    cmd = fake_children.runs[0]
    assert cmd[4:] == ["--bin", "foo"]
    assert "--release" not in cmd


def test_run_exec_failure_reports_engine_path(crate: Path, fake_children, capsys):
    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main(["hfuzz", "run-no-inst", "foo"])

    assert exc.value.code == 1
    assert fake_children.execs[0][0] == "hfuzz_target/honggfuzz"
    assert "cannot execute hfuzz_target/honggfuzz" in capsys.readouterr().err
    assert (crate / "hfuzz_workspace" / "foo" / "input").is_dir()


def test_run_debug_without_crash_file_is_usage_error(crate: Path, fake_children, capsys):
    with pytest.raises(SystemExit) as exc:
        cargo_hfuzz.main(["hfuzz", "run-debug", "foo"])

    assert exc.value.code == 1
    assert "CRASH_FILENAME" in capsys.readouterr().err


def test_clean_forwards_args(crate: Path, fake_children):
    cargo_hfuzz.main(["hfuzz", "clean", "--release"])

    assert fake_children.runs == [["cargo", "clean", "--release"]]


def test_env_file_in_crate_root_configures_run(crate: Path, fake_children, monkeypatch: pytest.MonkeyPatch):
    (crate / ".hfuzz.env").write_text("HFUZZ_WORKSPACE=corpora\n", encoding="utf-8")
    # registers HFUZZ_WORKSPACE for restoration once the dotenv load sets it
    monkeypatch.setenv("HFUZZ_WORKSPACE", "placeholder")
    monkeypatch.delenv("HFUZZ_WORKSPACE")

    with pytest.raises(SystemExit):
        cargo_hfuzz.main(["hfuzz", "run", "foo"])

    argv = fake_children.execs[0]
    assert argv[argv.index("-W") + 1] == "corpora/foo"


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    saved = root.level
    yield root
    root.setLevel(saved)


def test_verbose_flag_from_env_file_enables_debug_logging(
    crate: Path, fake_children, monkeypatch: pytest.MonkeyPatch, restore_root_logging, caplog
):
    (crate / ".hfuzz.env").write_text("HFUZZ_VERBOSE=1\n", encoding="utf-8")
    monkeypatch.setenv("HFUZZ_VERBOSE", "placeholder")
    monkeypatch.delenv("HFUZZ_VERBOSE")

    cargo_hfuzz.main(["hfuzz", "build"])

    assert restore_root_logging.level == logging.DEBUG
    assert "loaded environment from" in caplog.text
    assert ".hfuzz.env" in caplog.text
    assert "[*] ➜  cargo build" in caplog.text


def test_logging_stays_at_info_without_verbose_flag(
    crate: Path, fake_children, monkeypatch: pytest.MonkeyPatch, restore_root_logging
):
    monkeypatch.delenv("HFUZZ_VERBOSE", raising=False)

    cargo_hfuzz.main(["hfuzz", "build"])

    assert restore_root_logging.level == logging.INFO
