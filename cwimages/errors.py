"""Error taxonomy for the widget image pipeline.

Configuration and template errors abort the whole run. Credential, remote
and image-write errors are scoped to a single account: the batch records
them and moves on.
"""

from __future__ import annotations


class CwImagesError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(CwImagesError):
    """The accounts configuration could not be loaded."""


class ConfigNotFoundError(ConfigError):
    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Unable to read accounts config {path}: {reason}")


class ConfigParseError(ConfigError):
    def __init__(self, path, reason: str, *, index: int | None = None):
        self.path = path
        self.index = index
        where = f" (account entry {index})" if index is not None else ""
        super().__init__(f"Unable to parse accounts config {path}{where}: {reason}")


class EnvFileError(ConfigError):
    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Unable to load env file {path}: {reason}")


class TemplateError(CwImagesError):
    """The widget template file is missing or unreadable."""


class CredentialError(CwImagesError):
    """Credentials for one account could not be resolved."""


class RemoteError(CwImagesError):
    """CloudWatch rejected or failed a request (validation, throttling, network, timeout)."""


class ImageWriteError(CwImagesError):
    """A rendered image could not be written to disk."""
