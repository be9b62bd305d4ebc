#!/usr/bin/env python3
"""
run_digger.py — Doodle Digger entry point.

Usage:
    python run_digger.py setup     # one-time Google sign-in
    python run_digger.py run       # extract every preset into images/

Optional env vars (in .env):
    DOODLE_OUTPUT_DIR=images
    DOODLE_PROFILE_DIR=persistent_context
    DOODLE_HEADLESS=true
"""

from __future__ import annotations

import sys

from doodle_digger.main import main

if __name__ == "__main__":
    sys.exit(main())
