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

"""Exceptions raised by the cargo-hfuzz orchestrator.

Each error carries the process exit code the dispatcher should terminate
with. Errors are raised where the failure is detected and only turned into
a message + ``sys.exit`` in :func:`cargo_hfuzz.main`.
"""

from __future__ import annotations

from typing import Sequence


class HfuzzError(RuntimeError):
    exit_code: int = 1


class UsageError(HfuzzError):
    pass


class ManifestNotFoundError(HfuzzError):
    def __init__(self) -> None:
        super().__init__(
            "could not find `Cargo.toml` in current directory or any parent directory"
        )


class TargetTripleError(HfuzzError):
    pass


class ChildFailedError(HfuzzError):
    """A child process (cargo, debugger) exited unsuccessfully.

    The orchestrator exits with the child's own code. Negative return codes
    (killed by a signal) have no exit code of their own and map to 1.
    """

    def __init__(self, command: Sequence[str], returncode: int) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.exit_code = returncode if returncode > 0 else 1
        super().__init__(f"{self.command[0]} exited with status {returncode}")


class ExecFailedError(HfuzzError):
    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message)
