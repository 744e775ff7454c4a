from __future__ import annotations

import os
from pathlib import Path


def load_env_file_if_present(path: str | Path = ".env", override: bool = False) -> dict[str, str]:
    """Load KEY=VALUE pairs from a .env file into ``os.environ`` if it exists.

    Blank lines, ``#`` comments and lines without ``=`` are skipped, an
    ``export`` prefix is accepted, and surrounding quotes are removed. Existing
    environment variables win unless ``override`` is set.

    Returns the parsed pairs, whether or not they were applied.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return {}

    loaded: dict[str, str] = {}
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :]

        key, value = (part.strip() for part in line.split("=", 1))
        value = value.strip('"').strip("'")
        if override or key not in os.environ:
            os.environ[key] = value
        loaded[key] = value
    return loaded
