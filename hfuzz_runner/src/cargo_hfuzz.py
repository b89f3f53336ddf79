#!/usr/bin/env python3

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
cargo_hfuzz.py
──────────────

Entry point of the ``cargo hfuzz`` subcommand. Cargo runs it as
``cargo-hfuzz hfuzz VERB [ARGS ...]``.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Dict, List, Optional, Sequence

from build_modes import VERSION, BuildMode
from hfuzz_config import HfuzzSettings, load_env_file, verbose_logging
from hfuzz_errors import ChildFailedError, HfuzzError
from hfuzz_runner import hfuzz_build, hfuzz_clean, hfuzz_run
from toolchain import cd_to_crate_root

LOGGER = logging.getLogger(__name__)

SUBCOMMAND = "hfuzz"
COMMANDS_HELP = "possible commands are: run, run-no-inst, run-debug, build, build-no-inst, build-debug, clean, version"


def hfuzz_version() -> None:
    print(f"cargo-hfuzz {VERSION}")


def _verbs() -> Dict[str, Callable[[List[str], HfuzzSettings], None]]:
    return {
        "build": lambda a, s: hfuzz_build(a, BuildMode.RELEASE_INSTRUMENTED, s),
        "build-no-inst": lambda a, s: hfuzz_build(a, BuildMode.RELEASE_NOT_INSTRUMENTED, s),
        "build-debug": lambda a, s: hfuzz_build(a, BuildMode.DEBUG, s),
        "run": lambda a, s: hfuzz_run(a, BuildMode.RELEASE_INSTRUMENTED, s),
        "run-no-inst": lambda a, s: hfuzz_run(a, BuildMode.RELEASE_NOT_INSTRUMENTED, s),
        "run-debug": lambda a, s: hfuzz_run(a, BuildMode.DEBUG, s),
        "clean": lambda a, s: hfuzz_clean(a, s),
        "version": lambda a, s: hfuzz_version(),
    }


def _configure_logging() -> None:
    level = logging.DEBUG if verbose_logging() else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(level)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = list(sys.argv[1:] if argv is None else argv)

    if not args or args[0] != SUBCOMMAND:
        print('please launch as a cargo subcommand: "cargo hfuzz ..."', file=sys.stderr)
        sys.exit(1)

    try:
        # same behaviour as cargo build/run: work from the crate root
        root = cd_to_crate_root()
        env_file = load_env_file(root)

        # after the env file, which may set HFUZZ_VERBOSE
        _configure_logging()
        LOGGER.debug("crate root: %s", root)
        if env_file is not None:
            LOGGER.debug("loaded environment from %s", env_file)

        settings = HfuzzSettings.from_env()

        verb = args[1] if len(args) > 1 else None
        handler = _verbs().get(verb) if verb else None
        if handler is None:
            print(COMMANDS_HELP, file=sys.stderr)
            sys.exit(1)
        handler(args[2:], settings)
    except ChildFailedError as e:
        # the child already reported its own failure
        LOGGER.debug("%s", e)
        sys.exit(e.exit_code)
    except HfuzzError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
