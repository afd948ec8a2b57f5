"""Per-account credential resolution.

A resolver turns an account record into a boto3 session scoped to that
account. Three strategies are available:

  - default:      the standard boto3 credential chain (env vars, shared
                  config files, instance role)
  - profile:      a named profile per account, looked up from a template
                  such as "{account_id}" or "{namespace}-readonly"
  - assume-role:  STS AssumeRole into arn:aws:iam::<account_id>:role/<role>

Any failure is raised as CredentialError so the batch can skip the account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from cwimages.accounts import AccountRecord
from cwimages.config import DEFAULT_ROLE_NAME
from cwimages.errors import CredentialError
from cwimages.helpers.aws_client import get_client, get_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialContext:
    account: AccountRecord
    region: str
    session: boto3.session.Session


class CredentialResolver(Protocol):
    def resolve(self, account: AccountRecord, *, region: str | None = None) -> CredentialContext:
        ...


class DefaultChainResolver:
    """Use whatever credentials the default boto3 chain provides."""

    def resolve(self, account: AccountRecord, *, region: str | None = None) -> CredentialContext:
        try:
            session = get_session()
            found = session.get_credentials()
        except BotoCoreError as e:
            raise CredentialError(f"{account.label()}: {e}") from e
        if found is None:
            raise CredentialError(f"{account.label()}: no credentials found in the default chain")
        return CredentialContext(account=account, region=region or account.region, session=session)


class ProfileResolver:
    def __init__(self, template: str = "{account_id}"):
        self.template = template

    def profile_name(self, account: AccountRecord) -> str:
        try:
            return self.template.format(
                namespace=account.namespace,
                account_id=account.account_id,
                region=account.region,
            )
        except (KeyError, IndexError) as e:
            raise CredentialError(f"Bad profile template {self.template!r}: unknown field {e}") from e
        except (ValueError, AttributeError) as e:
            raise CredentialError(f"Bad profile template {self.template!r}: {e}") from e

    def resolve(self, account: AccountRecord, *, region: str | None = None) -> CredentialContext:
        name = self.profile_name(account)
        try:
            session = get_session(profile_name=name)
            found = session.get_credentials()
        except BotoCoreError as e:
            raise CredentialError(f"{account.label()}: profile {name!r} unavailable: {e}") from e
        if found is None:
            raise CredentialError(f"{account.label()}: profile {name!r} has no credentials")
        logger.debug(f"Using profile {name} for {account.label()}")
        return CredentialContext(account=account, region=region or account.region, session=session)


class AssumeRoleResolver:
    def __init__(
        self,
        role_name: str = DEFAULT_ROLE_NAME,
        *,
        session_name: str = "cwimages",
        base_session: boto3.session.Session | None = None,
    ):
        self.role_name = role_name
        self.session_name = session_name
        self.base_session = base_session

    def role_arn(self, account: AccountRecord) -> str:
        return f"arn:aws:iam::{account.account_id}:role/{self.role_name}"

    def resolve(self, account: AccountRecord, *, region: str | None = None) -> CredentialContext:
        target_region = region or account.region
        arn = self.role_arn(account)
        try:
            sts = get_client("sts", region=target_region, session=self.base_session)
            resp = sts.assume_role(RoleArn=arn, RoleSessionName=self.session_name)
        except (ClientError, BotoCoreError) as e:
            raise CredentialError(f"{account.label()}: unable to assume {arn}: {e}") from e

        creds = resp.get("Credentials") or {}
        try:
            session = get_session(
                aws_access_key_id=creds["AccessKeyId"],
                aws_secret_access_key=creds["SecretAccessKey"],
                aws_session_token=creds["SessionToken"],
            )
        except KeyError as e:
            raise CredentialError(f"{account.label()}: AssumeRole response missing {e}") from e
        logger.debug(f"Assumed {arn} for {account.label()}")
        return CredentialContext(account=account, region=target_region, session=session)


def build_resolver(
    strategy: str,
    *,
    profile_template: str = "{account_id}",
    role_name: str = DEFAULT_ROLE_NAME,
    role_session_name: str = "cwimages",
) -> CredentialResolver:
    if strategy == "default":
        return DefaultChainResolver()
    if strategy == "profile":
        return ProfileResolver(profile_template)
    if strategy == "assume-role":
        return AssumeRoleResolver(role_name, session_name=role_session_name)
    raise ValueError(f"Unknown credential strategy: {strategy}")
