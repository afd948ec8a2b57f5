"""Tests for per-account credential resolution."""

from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import ClientError

from cwimages import credentials
from cwimages.accounts import AccountRecord
from cwimages.credentials import (
    AssumeRoleResolver,
    DefaultChainResolver,
    ProfileResolver,
    build_resolver,
)
from cwimages.errors import CredentialError


@pytest.fixture
def account():
    return AccountRecord(namespace="Foo", account_id="111111111111", region="eu-west-1")


@pytest.fixture
def aws_config_file(tmp_path, monkeypatch):
    path = tmp_path / "config"
    path.write_text(
        "[profile 111111111111]\n"
        "region = eu-west-1\n"
        "aws_access_key_id = profilekey\n"
        "aws_secret_access_key = profilesecret\n"
    )
    monkeypatch.setenv("AWS_CONFIG_FILE", str(path))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))
    return path


class StubSTS:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def assume_role(self, *, RoleArn, RoleSessionName):
        self.calls.append((RoleArn, RoleSessionName))
        if self.error is not None:
            raise self.error
        return {
            "Credentials": {
                "AccessKeyId": "ASIAEXAMPLE",
                "SecretAccessKey": "secret",
                "SessionToken": "token",
            }
        }


class TestDefaultChainResolver:
    def test_resolves_account_region(self, account):
        ctx = DefaultChainResolver().resolve(account)

        assert ctx.account == account
        assert ctx.region == "eu-west-1"
        assert isinstance(ctx.session, boto3.session.Session)

    def test_region_override(self, account):
        assert DefaultChainResolver().resolve(account, region="us-west-2").region == "us-west-2"

    def test_no_credentials(self, account, tmp_path, monkeypatch):
        for key in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SECURITY_TOKEN", "AWS_SESSION_TOKEN"):
            monkeypatch.delenv(key, raising=False)
        monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
        monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))
        monkeypatch.setenv("AWS_EC2_METADATA_DISABLED", "true")

        with pytest.raises(CredentialError, match="no credentials"):
            DefaultChainResolver().resolve(account)


class TestProfileResolver:
    def test_profile_name_template(self, account):
        assert ProfileResolver("{namespace}-{region}").profile_name(account) == "Foo-eu-west-1"

    def test_bad_template_field(self, account):
        with pytest.raises(CredentialError, match="unknown field"):
            ProfileResolver("{team}").profile_name(account)

    @pytest.mark.parametrize("template", ["{account_id!x}", "{namespace", "{account_id.nope}", "{region:q}"])
    def test_malformed_template(self, account, template):
        with pytest.raises(CredentialError, match="Bad profile template"):
            ProfileResolver(template).profile_name(account)

    def test_resolves_existing_profile(self, account, aws_config_file):
        ctx = ProfileResolver().resolve(account)

        assert ctx.session.profile_name == "111111111111"
        assert ctx.session.get_credentials().access_key == "profilekey"

    def test_missing_profile(self, account, aws_config_file):
        other = AccountRecord(namespace="Bar", account_id="999999999999", region="us-east-1")
        with pytest.raises(CredentialError, match="999999999999"):
            ProfileResolver().resolve(other)


class TestAssumeRoleResolver:
    def test_role_arn(self, account):
        resolver = AssumeRoleResolver("ReadOnly")
        assert resolver.role_arn(account) == "arn:aws:iam::111111111111:role/ReadOnly"

    def test_assume_role_builds_session_from_credentials(self, account):
        sts = StubSTS()
        with patch.object(credentials, "get_client", return_value=sts) as mock_get_client:
            ctx = AssumeRoleResolver("ReadOnly", session_name="test-run").resolve(account)

        assert mock_get_client.call_args.args == ("sts",)
        assert mock_get_client.call_args.kwargs["region"] == "eu-west-1"
        assert sts.calls == [("arn:aws:iam::111111111111:role/ReadOnly", "test-run")]
        creds = ctx.session.get_credentials()
        assert creds.access_key == "ASIAEXAMPLE"
        assert creds.token == "token"
        assert ctx.region == "eu-west-1"

    def test_assume_role_failure_is_credential_error(self, account):
        error = ClientError({"Error": {"Code": "AccessDenied", "Message": "nope"}}, "AssumeRole")
        with patch.object(credentials, "get_client", return_value=StubSTS(error=error)):
            with pytest.raises(CredentialError, match="AccessDenied") as exc:
                AssumeRoleResolver().resolve(account)
        assert exc.value.__cause__ is error

    def test_assume_role_against_moto(self, account, mock_aws_all):
        ctx = AssumeRoleResolver("ReadOnly").resolve(account, region="us-east-1")

        creds = ctx.session.get_credentials()
        assert creds.access_key
        assert creds.token
        assert ctx.region == "us-east-1"


class TestBuildResolver:
    def test_strategies(self):
        assert isinstance(build_resolver("default"), DefaultChainResolver)
        assert build_resolver("profile", profile_template="{namespace}").template == "{namespace}"
        resolver = build_resolver("assume-role", role_name="ReadOnly", role_session_name="s")
        assert isinstance(resolver, AssumeRoleResolver)
        assert resolver.role_name == "ReadOnly"
        assert resolver.session_name == "s"

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            build_resolver("sso")
