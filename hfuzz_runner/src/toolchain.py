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

"""Crate root discovery, host triple lookup and workspace path derivation."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from build_modes import BuildMode
from hfuzz_config import HfuzzSettings
from hfuzz_errors import ManifestNotFoundError, TargetTripleError


MANIFEST_NAME = "Cargo.toml"
HOST_MARKER = "host: "


def find_crate_root(start: Optional[Path] = None) -> Path:
    path = Path.cwd() if start is None else Path(start)
    while not (path / MANIFEST_NAME).is_file():
        if path.parent == path:
            raise ManifestNotFoundError()
        path = path.parent
    return path


def cd_to_crate_root() -> Path:
    """chdir to the crate root so relative paths behave as in cargo build/run.

    The cwd is only changed once the manifest has been found.
    """
    root = find_crate_root()
    os.chdir(root)
    return root


def target_triple(rustc: str = "rustc") -> str:
    """Return the host triple reported by ``rustc -v -V``.

    Not cached. There is no fallback: artifact paths depend on the exact
    triple.
    """
    cmd = [rustc, "-v", "-V"]
    try:
        proc = subprocess.run(
            cmd,
            check=False,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise TargetTripleError(f"failed to run {' '.join(cmd)}: {e}") from e

    if proc.returncode != 0:
        raise TargetTripleError(
            f"{' '.join(cmd)} exited with status {proc.returncode}: {(proc.stderr or '').strip()}"
        )

    for line in (proc.stdout or "").splitlines():
        if line.startswith(HOST_MARKER):
            triple = line[len(HOST_MARKER):].strip()
            if triple:
                return triple
            break
    raise TargetTripleError(f"could not find the host triple in the output of {' '.join(cmd)}")


@dataclass(frozen=True)
class WorkspacePaths:
    target: str
    artifact: str
    workspace: str
    input_dir: str
    seed_dir: str
    honggfuzz: str

    @classmethod
    def for_target(
        cls,
        target: str,
        mode: BuildMode,
        settings: HfuzzSettings,
        triple: str,
    ) -> "WorkspacePaths":
        workspace = f"{settings.workspace}/{target}"
        seed_dir = f"{workspace}/input"
        return cls(
            target=target,
            artifact=f"{settings.target_dir}/{triple}/{mode.profile_dir}/{target}",
            workspace=workspace,
            input_dir=settings.input_dir or seed_dir,
            seed_dir=seed_dir,
            honggfuzz=f"{settings.target_dir}/honggfuzz",
        )
