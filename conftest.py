"""Loads the mail service's test settings into the environment before ``mail_service.config`` is imported."""
from __future__ import annotations

import os
from pathlib import Path

MAIL_ENV_FILE = Path(__file__).resolve().parent / ".env.test"


def _read_env_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.removeprefix("export ").partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = value
    return values


if MAIL_ENV_FILE.exists():
    for key, value in _read_env_file(MAIL_ENV_FILE).items():
        # Variables already exported by the shell or CI win.
        os.environ.setdefault(key, value)
