"""Accounts configuration: TOML loading and namespace filtering.

The accounts file is a list of `[[account]]` tables:

    [[account]]
    namespace = "SomeDataProcessingProgram"
    account_id = "111111111111"
    region = "us-east-1"

Every field is required. A malformed document aborts the run; nothing is
defaulted.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from cwimages.errors import ConfigNotFoundError, ConfigParseError

REQUIRED_FIELDS = ("namespace", "account_id", "region")


@dataclass(frozen=True)
class AccountRecord:
    namespace: str
    account_id: str
    region: str

    def label(self) -> str:
        return f"{self.namespace}/{self.account_id}/{self.region}"


def _parse_entry(entry, *, path, index: int) -> AccountRecord:
    if not isinstance(entry, dict):
        raise ConfigParseError(path, "expected a table", index=index)

    values: dict[str, str] = {}
    for field in REQUIRED_FIELDS:
        if field not in entry:
            raise ConfigParseError(path, f"missing field `{field}`", index=index)
        value = entry[field]
        if not isinstance(value, str):
            raise ConfigParseError(
                path, f"field `{field}` must be a string, got {type(value).__name__}", index=index
            )
        if not value.strip():
            raise ConfigParseError(path, f"field `{field}` must not be empty", index=index)
        values[field] = value
    return AccountRecord(**values)


def parse_accounts(text: str, *, path="<string>") -> list[AccountRecord]:
    """Parse accounts TOML text into records, in document order."""
    try:
        doc = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(path, str(e)) from e

    if "account" not in doc:
        raise ConfigParseError(path, "missing `account` array of tables")
    entries = doc["account"]
    if not isinstance(entries, list):
        raise ConfigParseError(path, "`account` must be an array of tables")

    return [_parse_entry(entry, path=path, index=i) for i, entry in enumerate(entries)]


def load_accounts(path: str | Path, *, verbose: bool = False) -> list[AccountRecord]:
    """Load the accounts file at `path`."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigNotFoundError(path, str(e)) from e

    accounts = parse_accounts(text, path=path)
    if verbose:
        for acc in accounts:
            print(acc)
    return accounts


def filter_accounts(
    pattern: str | None,
    accounts: list[AccountRecord],
    *,
    verbose: bool = False,
) -> list[AccountRecord]:
    """Keep accounts whose namespace contains `pattern` (plain, case-sensitive)."""
    if pattern is None:
        return list(accounts)

    filtered = [acc for acc in accounts if pattern in acc.namespace]
    if verbose:
        print("Filtered accounts:")
        for acc in filtered:
            print(acc)
    return filtered
