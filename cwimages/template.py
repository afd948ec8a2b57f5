"""Widget template loading and placeholder substitution."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from cwimages.errors import TemplateError

NAMESPACE = "{{NAMESPACE}}"
REGION = "{{REGION}}"
PERIOD_START = "{{PERIOD_START}}"  # e.g. 4320H
PERIOD_END = "{{PERIOD_END}}"
PERIOD = "{{PERIOD}}"

PLACEHOLDERS = (NAMESPACE, REGION, PERIOD_START, PERIOD_END, PERIOD)


@dataclass(frozen=True)
class WidgetRequestParams:
    title: str
    region: str
    namespace: str
    start: str
    end: str
    period: str


def build_placeholder_map(params: WidgetRequestParams) -> dict[str, str]:
    return {
        NAMESPACE: params.namespace,
        REGION: params.region,
        PERIOD_START: params.start,
        PERIOD_END: params.end,
        PERIOD: params.period,
    }


def render_template(template_text: str, placeholders: dict[str, str]) -> str:
    """Replace every occurrence of each placeholder token with its value.

    Tokens missing from the template are ignored and unknown `{{...}}` tokens
    are left as they are. Values are inserted verbatim in one pass, so a value
    that itself looks like a token is never substituted again. The result is
    not validated as JSON.
    """
    if not placeholders:
        return template_text
    # longest first, so a token that is a prefix of another never wins
    tokens = sorted(placeholders, key=len, reverse=True)
    pattern = re.compile("|".join(map(re.escape, tokens)))
    return pattern.sub(lambda m: placeholders[m.group(0)], template_text)


def load_template(path: str | Path) -> str:
    """Read the widget template once, before any account is processed."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(f"Unable to read widget template {path}: {e}") from e
