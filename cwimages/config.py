"""Runtime configuration helpers shared by the CLI and the batch pipeline."""

from __future__ import annotations

import os

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_SHOW_REGION = "us-west-2"
DEFAULT_ROLE_NAME = "OrganizationAccountAccessRole"
CREDENTIAL_STRATEGIES = ("default", "profile", "assume-role")


def _required_env(name: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _positive_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise RuntimeError(f"Environment variable {name} must be >= 1, got {value}")
    return value


def get_output_dir() -> str:
    """Get the directory saved widget images are written to."""
    return os.environ.get("CWIMAGES_OUTPUT_DIR", "").strip() or "."


def get_request_timeout() -> int:
    """Get the per-request CloudWatch connect/read timeout in seconds."""
    return _positive_int_env("CWIMAGES_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS)


def get_max_workers() -> int:
    """Get how many accounts may be processed concurrently."""
    return _positive_int_env("CWIMAGES_MAX_WORKERS", 1)


def get_credential_strategy() -> str:
    """Get the credential strategy name (default, profile, assume-role)."""
    strategy = os.environ.get("CWIMAGES_CREDENTIALS", "").strip() or "default"
    if strategy not in CREDENTIAL_STRATEGIES:
        raise RuntimeError(
            f"CWIMAGES_CREDENTIALS must be one of {', '.join(CREDENTIAL_STRATEGIES)}, got {strategy!r}"
        )
    return strategy


def get_profile_template() -> str:
    """Get the named-profile template, formatted with the account fields."""
    return os.environ.get("CWIMAGES_PROFILE_TEMPLATE", "").strip() or "{account_id}"


def get_role_name() -> str:
    """Get the IAM role assumed in each target account."""
    return os.environ.get("CWIMAGES_ROLE_NAME", "").strip() or DEFAULT_ROLE_NAME


def get_role_session_name() -> str:
    return os.environ.get("CWIMAGES_ROLE_SESSION_NAME", "").strip() or "cwimages"


def get_show_region() -> str:
    """Get the region the `show` command lists metrics for."""
    return os.environ.get("CWIMAGES_SHOW_REGION", "").strip() or DEFAULT_SHOW_REGION


def get_default_region() -> str:
    """Get the region used when neither the account nor a flag names one."""
    return (
        os.environ.get("AWS_DEFAULT_REGION", "").strip()
        or os.environ.get("AWS_REGION", "").strip()
        or _required_env("CWIMAGES_DEFAULT_REGION")
    )


ENV_PREFIX = "CWIMAGES_"

# Every CWIMAGES_* variable and the getter that validates it.
SETTINGS = {
    "CWIMAGES_OUTPUT_DIR": get_output_dir,
    "CWIMAGES_REQUEST_TIMEOUT": get_request_timeout,
    "CWIMAGES_MAX_WORKERS": get_max_workers,
    "CWIMAGES_CREDENTIALS": get_credential_strategy,
    "CWIMAGES_PROFILE_TEMPLATE": get_profile_template,
    "CWIMAGES_ROLE_NAME": get_role_name,
    "CWIMAGES_ROLE_SESSION_NAME": get_role_session_name,
    "CWIMAGES_SHOW_REGION": get_show_region,
    "CWIMAGES_DEFAULT_REGION": get_default_region,
}
