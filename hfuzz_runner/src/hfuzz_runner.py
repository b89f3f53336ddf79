#────────────
#
# Copyright 2025 Artificial Intelligence Cyber Challenge
#
# Permission is hereby granted, free of charge, to any person obtaining a copy of 
# this software and associated documentation files (the “Software”), to deal in the 
# Software without restriction, including without limitation the rights to use, 
# copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the 
# Software, and to permit persons to whom the Software is furnished to do so, 
# subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all 
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, 
# INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A 
# PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT 
# HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION 
# OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE 
# SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.
#
# ────────────

"""
hfuzz_runner.py
───────────────

Build, run and clean flows behind the ``cargo hfuzz`` verbs:

  • build  – ``cargo build`` with fuzzing RUSTFLAGS into a separate target dir,
  • run    – build, then replace this process with honggfuzz,
  • debug  – build, then run the target under a debugger on a crash file,
  • clean  – ``cargo clean`` on the fuzzing target dir only.

Child failures are raised as :class:`hfuzz_errors.ChildFailedError` carrying
the child's exit code; nothing here retries.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from build_modes import BuildMode, assemble_flags, weakened_checks
from hfuzz_config import HfuzzSettings, split_args
from hfuzz_errors import ChildFailedError, ExecFailedError, UsageError
from toolchain import WorkspacePaths, target_triple

LOGGER = logging.getLogger(__name__)

CRASH_FILENAME_ENV = "CARGO_HONGGFUZZ_CRASH_FILENAME"
PANIC_BREAKPOINT = "b rust_panic"

# Prepended so user-supplied values for the same keys, coming later, win.
ASAN_DEFAULTS = "detect_odr_violation=0"
TSAN_DEFAULTS = "report_signal_unsafe=0"

RUN_USAGE = 'please specify the name of the target like this "cargo hfuzz run[-debug] TARGET [ ARGS ... ]"'
DEBUG_USAGE = 'please specify the crash filename like this "cargo hfuzz run-debug TARGET CRASH_FILENAME [ ARGS ... ]"'


def _child_env(overrides: Dict[str, str]) -> Dict[str, str]:
    env = os.environ.copy()
    env.update(overrides)
    return env


def _run_checked(cmd: Sequence[str], env: Dict[str, str]) -> None:
    """Run *cmd* with inherited stdio and block until it exits."""
    LOGGER.debug("[*] ➜  %s", " ".join(cmd))
    try:
        proc = subprocess.run(list(cmd), env=env, check=False)
    except OSError as e:
        raise ExecFailedError(cmd[0], f"cannot execute {cmd[0]}: {e}") from e
    if proc.returncode != 0:
        raise ChildFailedError(cmd, proc.returncode)


# ────────────────────────────────────────────────────────────────────────────
# Build
# ────────────────────────────────────────────────────────────────────────────

def build_command(
    mode: BuildMode,
    args: Sequence[str],
    settings: HfuzzSettings,
    triple: str,
    *,
    platform: Optional[str] = None,
) -> Tuple[List[str], Dict[str, str]]:
    bundle = assemble_flags(mode, settings, platform=platform)
    # --target keeps build scripts from being compiled with our RUSTFLAGS
    cmd = [settings.cargo, "build", "--target", triple]
    cmd.extend(args)
    cmd.extend(split_args(settings.build_args))
    cmd.extend(bundle.cargo_args)
    return cmd, dict(bundle.env)


def hfuzz_build(args: Sequence[str], mode: BuildMode, settings: HfuzzSettings) -> None:
    for check in weakened_checks(settings.rustflags):
        LOGGER.warning("RUSTFLAGS disables %s; fuzz targets may miss logic errors", check)

    cmd, overrides = build_command(mode, args, settings, target_triple(settings.rustc))
    _run_checked(cmd, _child_env(overrides))


# ────────────────────────────────────────────────────────────────────────────
# Run
# ────────────────────────────────────────────────────────────────────────────

def fuzzer_command(
    paths: WorkspacePaths,
    rest: Sequence[str],
    settings: HfuzzSettings,
) -> Tuple[List[str], Dict[str, str]]:
    cmd = [paths.honggfuzz, "-W", paths.workspace, "-f", paths.input_dir, "-P"]
    cmd.extend(split_args(settings.run_args))
    cmd.extend(["--", paths.artifact])
    cmd.extend(rest)
    env = {
        "ASAN_OPTIONS": f"{ASAN_DEFAULTS}:{settings.asan_options}",
        "TSAN_OPTIONS": f"{TSAN_DEFAULTS}:{settings.tsan_options}",
    }
    return cmd, env


def is_lldb(debugger: str) -> bool:
    return "lldb" in Path(debugger).name


def debugger_command(
    paths: WorkspacePaths,
    rest: Sequence[str],
    crash_filename: str,
    settings: HfuzzSettings,
) -> Tuple[List[str], Dict[str, str]]:
    """Debugger argv + env for reproducing *crash_filename*.

    The crash file is handed to the target through the environment only, so
    the target's own argument handling is untouched.
    """
    dbg = settings.debugger
    if is_lldb(dbg):
        cmd = [dbg, "-o", PANIC_BREAKPOINT, "-o", "r", "-o", "bt", "-f", paths.artifact, "--"]
    else:
        cmd = [dbg, "-ex", PANIC_BREAKPOINT, "-ex", "r", "-ex", "bt", "--args", paths.artifact]
    cmd.extend(rest)
    env = {
        CRASH_FILENAME_ENV: crash_filename,
        "RUST_BACKTRACE": settings.rust_backtrace if settings.rust_backtrace is not None else "1",
    }
    return cmd, env


def _ensure_seed_dir(path: str) -> None:
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        # honggfuzz creates it itself if needed
        LOGGER.warning('failed to create "%s": %s', path, e)


def _exec_fuzzer(cmd: List[str], env: Dict[str, str]) -> None:
    LOGGER.debug("[*] ➜  %s", " ".join(cmd))
    sys.stdout.flush()
    sys.stderr.flush()
    try:
        os.execvpe(cmd[0], cmd, env)
    except OSError as e:
        raise ExecFailedError(
            cmd[0],
            f'cannot execute {cmd[0]}, try to execute "cargo hfuzz build" from fuzzed project directory',
        ) from e


def hfuzz_run(args: Sequence[str], mode: BuildMode, settings: HfuzzSettings) -> None:
    """Build TARGET, then fuzz it (release modes) or debug a crash (debug mode).

    In release modes this only returns by raising: a successful exec
    replaces the process.
    """
    if not args:
        raise UsageError(RUN_USAGE)
    target, rest = args[0], list(args[1:])

    hfuzz_build(["--bin", target], mode, settings)

    paths = WorkspacePaths.for_target(target, mode, settings, target_triple(settings.rustc))

    if mode.is_debug:
        if not rest:
            raise UsageError(DEBUG_USAGE)
        crash_filename, rest = rest[0], rest[1:]
        cmd, overrides = debugger_command(paths, rest, crash_filename, settings)
        _run_checked(cmd, _child_env(overrides))
        return

    _ensure_seed_dir(paths.seed_dir)
    cmd, overrides = fuzzer_command(paths, rest, settings)
    _exec_fuzzer(cmd, _child_env(overrides))


# ────────────────────────────────────────────────────────────────────────────
# Clean
# ────────────────────────────────────────────────────────────────────────────

def clean_command(args: Sequence[str], settings: HfuzzSettings) -> Tuple[List[str], Dict[str, str]]:
    return [settings.cargo, "clean", *args], {"CARGO_TARGET_DIR": settings.target_dir}


def hfuzz_clean(args: Sequence[str], settings: HfuzzSettings) -> None:
    cmd, overrides = clean_command(args, settings)
    _run_checked(cmd, _child_env(overrides))
