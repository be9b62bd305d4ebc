"""
config.py — Run settings, loaded from the environment / .env.

Every field can be overridden with a DOODLE_* variable; CLI flags win over
both. The output root lives here (not in a module constant) so tests can
point a run at a temp directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Tuple

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

PERSONAL_INFO_URL = "https://myaccount.google.com/personal-info"

_ENV_VARS: Dict[str, str] = {
    "output_dir":       "DOODLE_OUTPUT_DIR",
    "profile_dir":      "DOODLE_PROFILE_DIR",
    "headless":         "DOODLE_HEADLESS",
    "start_url":        "DOODLE_START_URL",
    "max_resolution":   "DOODLE_MAX_RESOLUTION",
    "step_timeout":     "DOODLE_STEP_TIMEOUT",
    "preview_timeout":  "DOODLE_PREVIEW_TIMEOUT",
    "settle_delay":     "DOODLE_SETTLE_DELAY",
    "download_timeout": "DOODLE_DOWNLOAD_TIMEOUT",
}


class Settings(BaseModel):
    output_dir: Path = Field(default=Path("images"), description="Root of the images/<collection>/... tree")
    profile_dir: Path = Field(default=Path("persistent_context"), description="Chrome user-data-dir holding the signed-in session")
    headless: bool = False
    start_url: str = PERSONAL_INFO_URL
    viewport: Tuple[int, int] = (1280, 720)

    max_resolution: int = Field(default=4096, gt=0, description="Replaces the =s<N> size token of layer URLs")

    # Seconds. Each wait is bounded on its own; there is no whole-run budget.
    step_timeout: float = Field(default=5.0, gt=0)
    preview_timeout: float = Field(default=10.0, gt=0)
    picker_timeout: float = Field(default=10.0, gt=0)
    settle_delay: float = Field(default=1.0, ge=0)
    preview_settle: float = Field(default=0.25, ge=0)
    cancel_settle: float = Field(default=0.5, ge=0)
    download_timeout: float = Field(default=30.0, gt=0)
    script_timeout: float = Field(default=30.0, gt=0)

    @classmethod
    def from_env(cls, env_file=None, **overrides) -> "Settings":
        """Build settings from DOODLE_* variables (.env searched from the cwd), then apply non-None overrides."""
        load_dotenv(env_file or find_dotenv(usecwd=True))
        values: dict = {}
        for field_name, var in _ENV_VARS.items():
            raw = os.environ.get(var)
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
