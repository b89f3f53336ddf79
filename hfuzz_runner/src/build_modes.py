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
build_modes.py
──────────────

Maps a build mode to the RUSTFLAGS string and environment overrides passed
to ``cargo build``. Pure data construction: no I/O, no failure paths.

Every mode compiles with ``--cfg fuzzing``, debug assertions and overflow
checks so fuzz targets fail loudly on logic errors. On top of that:

  • DEBUG                    – unwinding panics, no optimisation, full debuginfo
  • RELEASE_NOT_INSTRUMENTED – aborting panics, opt-level 3, no debuginfo
  • RELEASE_INSTRUMENTED     – as above plus sanitizer-coverage instrumentation
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from hfuzz_config import HfuzzSettings

VERSION = "0.5.55"

COMMON_FLAGS: Tuple[str, ...] = (
    "--cfg fuzzing",
    "-C debug-assertions",
    "-C overflow_checks",
)

DEBUG_FLAGS: Tuple[str, ...] = (
    "--cfg fuzzing_debug",
    "-C panic=unwind",
    "-C opt-level=0",
    "-C debuginfo=2",
)

RELEASE_FLAGS: Tuple[str, ...] = (
    "-C panic=abort",
    "-C opt-level=3",
    "-C debuginfo=0",
)

COVERAGE_FLAGS: Tuple[str, ...] = (
    "-C passes=sancov",
    "-C llvm-args=-sanitizer-coverage-level=4",
    "-C llvm-args=-sanitizer-coverage-trace-pc-guard",
    "-C llvm-args=-sanitizer-coverage-prune-blocks=0",
)

# trace-compares needs a sanitizer runtime on macOS
TRACE_COMPARES_FLAG = "-C llvm-args=-sanitizer-coverage-trace-compares"


class BuildMode(Enum):
    RELEASE_INSTRUMENTED = auto()
    RELEASE_NOT_INSTRUMENTED = auto()
    DEBUG = auto()

    @property
    def is_debug(self) -> bool:
        return self is BuildMode.DEBUG

    @property
    def profile_dir(self) -> str:
        return "debug" if self.is_debug else "release"


@dataclass(frozen=True)
class FlagBundle:
    rustflags: str
    env: Dict[str, str] = field(default_factory=dict)
    cargo_args: Tuple[str, ...] = ()
    is_debug: bool = False


def supports_trace_compares(platform: str) -> bool:
    return not platform.startswith("darwin")


def compute_flags(mode: BuildMode, *, platform: Optional[str] = None) -> List[str]:
    """Return the orchestrator's own flags for *mode*, without user RUSTFLAGS."""
    flags = list(COMMON_FLAGS)
    if mode.is_debug:
        flags.extend(DEBUG_FLAGS)
        return flags

    flags.extend(RELEASE_FLAGS)
    if mode is BuildMode.RELEASE_INSTRUMENTED:
        flags.extend(COVERAGE_FLAGS)
        if supports_trace_compares(platform or sys.platform):
            flags.append(TRACE_COMPARES_FLAG)
    return flags


def assemble_flags(
    mode: BuildMode,
    settings: HfuzzSettings,
    *,
    platform: Optional[str] = None,
) -> FlagBundle:
    """Build the RUSTFLAGS / env / cargo-args bundle for one cargo invocation.

    User RUSTFLAGS go last so rustc's last-wins handling of ``-C`` options
    lets them override any computed setting.
    """
    rustflags = " ".join(compute_flags(mode, platform=platform))
    user_flags = settings.rustflags.strip()
    if user_flags:
        rustflags = f"{rustflags} {user_flags}"

    env = {
        "RUSTFLAGS": rustflags,
        "CARGO_TARGET_DIR": settings.target_dir,
    }
    cargo_args: Tuple[str, ...] = ()
    if not mode.is_debug:
        # read by the crate's build.rs to check versions are in sync and
        # to place the honggfuzz binary at a known location
        env["CARGO_HONGGFUZZ_BUILD_VERSION"] = VERSION
        env["CARGO_HONGGFUZZ_TARGET_DIR"] = settings.target_dir
        cargo_args = ("--release",)

    return FlagBundle(rustflags=rustflags, env=env, cargo_args=cargo_args, is_debug=mode.is_debug)


_FALSY_VALUES = {"n", "no", "off", "false"}
_CHECK_OPTION_RE = re.compile(
    r"(?:-C\s*|--codegen[=\s]+)(debug[-_]assertions|overflow[-_]checks)(?:=(\S+))?(?!\S)"
)


def weakened_checks(user_flags: str) -> List[str]:
    """Return the mandatory checks that *user_flags* leave switched off.

    rustc keeps the last value of each ``-C`` option, and a bare option
    means on, so ``-C overflow-checks=off -C overflow-checks`` is not
    reported. e.g. ``-C overflow-checks=off`` → ``["overflow-checks"]``.
    """
    last: Dict[str, bool] = {}
    for m in _CHECK_OPTION_RE.finditer(user_flags or ""):
        name = m.group(1).replace("_", "-")
        # re-insert so the order follows the final occurrence
        last.pop(name, None)
        last[name] = (m.group(2) or "on").lower() not in _FALSY_VALUES
    return [name for name, enabled in last.items() if not enabled]
