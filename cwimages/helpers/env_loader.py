"""Env-file loading for local runs (`cwimages --env-file .env`).

Only plain `KEY=VALUE` lines are understood, optionally prefixed with
`export`. Values may be single- or double-quoted; unquoted values lose a
trailing ` # comment`. Every `CWIMAGES_*` key taken from the file is checked
with its getter in `cwimages.config`, so a bad value fails here, naming the
file, instead of halfway through a batch.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from cwimages import config
from cwimages.errors import EnvFileError

logger = logging.getLogger(__name__)

_LINE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")
_QUOTES = ("'", '"')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return re.split(r"\s+#", value, maxsplit=1)[0].rstrip()


def parse_env_text(text: str, *, path: str | Path = "<env>") -> dict[str, str]:
    """Parse env-file text into a dict; later duplicates win."""
    data: dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        match = _LINE.match(line)
        if match is None:
            logger.warning(f"{path}:{lineno}: ignoring line that is not KEY=VALUE")
            continue
        key, value = match.groups()
        data[key] = _unquote(value.strip())
    return data


def check_settings(keys, *, path: str | Path = "<env>") -> None:
    """Run the config getter for each known `CWIMAGES_*` key in `keys`.

    Unknown `CWIMAGES_*` keys are usually typos, so they are logged.
    """
    for key in keys:
        if not key.startswith(config.ENV_PREFIX):
            continue
        getter = config.SETTINGS.get(key)
        if getter is None:
            logger.warning(f"{path}: unknown setting {key}")
            continue
        try:
            getter()
        except RuntimeError as e:
            raise EnvFileError(path, str(e)) from e


def load_env_file(path: str | Path, *, required: bool = True, override: bool = False) -> dict[str, str]:
    """Export KEY=VALUE pairs from `path` into os.environ and return what was applied."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if required:
            raise EnvFileError(path, "file not found") from None
        return {}
    except (OSError, UnicodeDecodeError) as e:
        raise EnvFileError(path, str(e)) from e

    applied: dict[str, str] = {}
    previous: dict[str, str | None] = {}
    for key, value in parse_env_text(text, path=path).items():
        if override or key not in os.environ:
            previous[key] = os.environ.get(key)
            os.environ[key] = value
            applied[key] = value
    try:
        check_settings(applied, path=path)
    except EnvFileError:
        for key, old in previous.items():
            if old is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = old
        raise
    logger.info(f"Loaded {len(applied)} variables from {path}")
    return applied
