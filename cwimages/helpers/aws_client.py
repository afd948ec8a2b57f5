"""Boto3 session/client factory for AWS and LocalStack."""

from __future__ import annotations

import os
from urllib.parse import urlparse

import boto3
from botocore.config import Config

from cwimages.config import get_default_region, get_request_timeout


def _service_endpoint(service: str) -> str | None:
    specific_key = f"AWS_ENDPOINT_URL_{service.replace('-', '_').upper()}"
    return os.environ.get(specific_key) or os.environ.get("AWS_ENDPOINT_URL")


def _is_local_endpoint(endpoint: str | None) -> bool:
    if not endpoint:
        return False
    try:
        host = (urlparse(endpoint).hostname or "").lower()
    except ValueError:
        return False
    if not host:
        return False
    return host in {"localhost", "127.0.0.1", "::1", "localstack"} or "localstack" in host


def _local_auth_kwargs(endpoint: str | None) -> dict[str, str]:
    # LocalStack accepts any key pair; only fill in what the environment lacks.
    if not _is_local_endpoint(endpoint):
        return {}
    kwargs = {
        "aws_access_key_id": os.environ.get("AWS_ACCESS_KEY_ID", "").strip() or "test",
        "aws_secret_access_key": os.environ.get("AWS_SECRET_ACCESS_KEY", "").strip() or "test",
    }
    session_token = os.environ.get("AWS_SESSION_TOKEN", "").strip()
    if session_token:
        kwargs["aws_session_token"] = session_token
    return kwargs


def _client_config(timeout: int | None) -> Config:
    seconds = timeout if timeout is not None else get_request_timeout()
    return Config(
        connect_timeout=seconds,
        read_timeout=seconds,
        retries={"max_attempts": 3, "mode": "standard"},
    )


def get_session(profile_name: str | None = None, **credentials: str) -> boto3.session.Session:
    """Create a boto3 session, optionally bound to a named profile or explicit keys."""
    kwargs: dict[str, str] = dict(credentials)
    if profile_name:
        kwargs["profile_name"] = profile_name
    return boto3.session.Session(**kwargs)


def get_client(
    service: str,
    *,
    region: str | None = None,
    session: boto3.session.Session | None = None,
    timeout: int | None = None,
):
    """Create a boto3 client for the given service.

    When `session` is given the client inherits its credentials; otherwise the
    default boto3 credential chain is used. The region falls back to the
    environment when not passed explicitly.
    """
    endpoint = _service_endpoint(service)
    kwargs = {
        "region_name": region or get_default_region(),
        "endpoint_url": endpoint,
        "config": _client_config(timeout),
    }
    if session is None:
        kwargs.update(_local_auth_kwargs(endpoint))
        return boto3.client(service, **kwargs)
    return session.client(service, **kwargs)
