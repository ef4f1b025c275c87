#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""Build script for bullet-sys.

Fetches Bullet, builds it, prints link directives on stdout and writes
ctypes bindings into the output directory.

Variables (command line KEY=value or environment):
    TARGET    - Target triple (default: host)
    OUT_DIR   - Output directory (default: target/out)
    NUM_JOBS  - Parallel build jobs
"""

import logging
import sys
from pathlib import Path

from bullet_sys import BulletSysError, BuildEnvironment, PipelineConfig, run_pipeline
from bullet_sys.cli import parse_variables
from bullet_sys.configure.environment import set_cli_vars

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

variables, _ = parse_variables(sys.argv[1:])
set_cli_vars(variables)

root = Path(__file__).resolve().parent
try:
    run_pipeline(
        PipelineConfig(),
        BuildEnvironment.from_vars(root),
        script=Path(__file__).resolve(),
    )
except BulletSysError as e:
    logging.error("%s", e)
    sys.exit(1)
