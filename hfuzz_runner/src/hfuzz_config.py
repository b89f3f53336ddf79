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

"""Environment-driven settings for cargo-hfuzz.

Everything the orchestrator can be told comes from environment variables
(cargo subcommands get no config file of their own). An optional dotenv file
in the crate root is loaded first without overriding real variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


HONGGFUZZ_TARGET = "hfuzz_target"
HONGGFUZZ_WORKSPACE = "hfuzz_workspace"
DEFAULT_DEBUGGER = "rust-lldb"
DEFAULT_ENV_FILE = ".hfuzz.env"


class HfuzzSettings(BaseModel):
    # Build output, redirected so fuzzing builds never clobber normal ones.
    target_dir: str = Field(default=HONGGFUZZ_TARGET, description="CARGO_TARGET_DIR")
    workspace: str = Field(default=HONGGFUZZ_WORKSPACE, description="HFUZZ_WORKSPACE")
    input_dir: Optional[str] = Field(default=None, description="HFUZZ_INPUT")

    # User extensions, always placed after the computed values.
    rustflags: str = Field(default="", description="RUSTFLAGS")
    build_args: str = Field(default="", description="HFUZZ_BUILD_ARGS")
    run_args: str = Field(default="", description="HFUZZ_RUN_ARGS")

    debugger: str = Field(default=DEFAULT_DEBUGGER, description="HFUZZ_DEBUGGER")
    cargo: str = Field(default="cargo", description="CARGO")
    rustc: str = Field(default="rustc", description="RUSTC")

    rust_backtrace: Optional[str] = Field(default=None, description="RUST_BACKTRACE")
    asan_options: str = Field(default="", description="ASAN_OPTIONS")
    tsan_options: str = Field(default="", description="TSAN_OPTIONS")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HfuzzSettings":
        env = os.environ if environ is None else environ

        def _path(name: str, default: str) -> str:
            # An empty path would resolve to the crate root itself.
            return (env.get(name) or "").strip() or default

        return cls(
            target_dir=_path("CARGO_TARGET_DIR", HONGGFUZZ_TARGET),
            workspace=_path("HFUZZ_WORKSPACE", HONGGFUZZ_WORKSPACE),
            input_dir=(env.get("HFUZZ_INPUT") or "").strip() or None,
            rustflags=env.get("RUSTFLAGS", ""),
            build_args=env.get("HFUZZ_BUILD_ARGS", ""),
            run_args=env.get("HFUZZ_RUN_ARGS", ""),
            debugger=_path("HFUZZ_DEBUGGER", DEFAULT_DEBUGGER),
            cargo=_path("CARGO", "cargo"),
            rustc=_path("RUSTC", "rustc"),
            rust_backtrace=env.get("RUST_BACKTRACE"),
            asan_options=env.get("ASAN_OPTIONS", ""),
            tsan_options=env.get("TSAN_OPTIONS", ""),
        )


def split_args(raw: str) -> list[str]:
    """Split HFUZZ_BUILD_ARGS / HFUZZ_RUN_ARGS on whitespace.

    Quoting and escaping are NOT honoured: ``--foo "a b"`` yields three
    tokens. Arguments containing spaces cannot be passed this way.
    """
    return raw.split()


def _is_truthy_env(name: str, default: bool = False) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def verbose_logging() -> bool:
    return _is_truthy_env("HFUZZ_VERBOSE")


def load_env_file(root: Path) -> Optional[Path]:
    """Load ``HFUZZ_ENV_FILE`` (default ``.hfuzz.env``) relative to *root*.

    Variables already present in the environment are left untouched.
    Returns the loaded path, or None if there was no such file.
    """
    name = (os.environ.get("HFUZZ_ENV_FILE") or "").strip() or DEFAULT_ENV_FILE
    path = Path(name).expanduser()
    if not path.is_absolute():
        path = root / path
    if not path.is_file():
        return None
    load_dotenv(path, override=False)
    return path
