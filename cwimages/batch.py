"""Per-account widget image batch.

Each account walks a linear state machine:

    START -> CREDENTIALS_RESOLVED -> CLIENT_CONFIGURED -> TEMPLATE_RENDERED
          -> IMAGE_REQUESTED -> IMAGE_SAVED | FAILED

Credential, remote and write failures end that account in FAILED and the
batch moves on. Accounts share nothing but the read-only template text, so
they can be run on a bounded thread pool.
"""

from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from cwimages.accounts import AccountRecord
from cwimages.credentials import CredentialContext, CredentialResolver
from cwimages.errors import CredentialError, ImageWriteError, RemoteError
from cwimages.images import save_image
from cwimages.template import WidgetRequestParams, build_placeholder_map, render_template
from cwimages.widget_client import WidgetImageClient

logger = logging.getLogger(__name__)

ACCOUNT_ERRORS = (CredentialError, RemoteError, ImageWriteError)

ClientFactory = Callable[[CredentialContext], WidgetImageClient]


class AccountState(enum.Enum):
    START = "start"
    CREDENTIALS_RESOLVED = "credentials_resolved"
    CLIENT_CONFIGURED = "client_configured"
    TEMPLATE_RENDERED = "template_rendered"
    IMAGE_REQUESTED = "image_requested"
    IMAGE_SAVED = "image_saved"
    FAILED = "failed"


@dataclass(frozen=True)
class BatchOptions:
    title: str = "metric"
    start: str = "4320H"
    end: str = "0H"
    period: str = "3600"
    output_dir: str | Path = "."
    region_override: str | None = None
    verbose: bool = False


@dataclass
class AccountOutcome:
    account: AccountRecord
    state: AccountState = AccountState.START
    # Last state reached before a failure.
    failed_at: AccountState | None = None
    image_path: Path | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.state is AccountState.IMAGE_SAVED


@dataclass
class BatchResult:
    outcomes: list[AccountOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[AccountOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[AccountOutcome]:
        return [o for o in self.outcomes if o.state is AccountState.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return f"{len(self.succeeded)} succeeded, {len(self.failed)} failed, {len(self.outcomes)} total"


def build_request_params(account: AccountRecord, options: BatchOptions) -> WidgetRequestParams:
    return WidgetRequestParams(
        title=options.title,
        region=options.region_override or account.region,
        namespace=account.namespace,
        start=options.start,
        end=options.end,
        period=options.period,
    )


def process_account(
    account: AccountRecord,
    *,
    template_text: str,
    options: BatchOptions,
    resolver: CredentialResolver,
    client_factory: ClientFactory = WidgetImageClient.from_context,
) -> AccountOutcome:
    """Run one account through the pipeline; never raises for per-account errors."""
    outcome = AccountOutcome(account=account)
    params = build_request_params(account, options)

    try:
        context = resolver.resolve(account, region=params.region)
        outcome.state = AccountState.CREDENTIALS_RESOLVED

        client = client_factory(context)
        outcome.state = AccountState.CLIENT_CONFIGURED

        rendered = render_template(template_text, build_placeholder_map(params))
        outcome.state = AccountState.TEMPLATE_RENDERED
        if options.verbose:
            print(f"templated:\n{rendered}")

        logger.info(f"Requesting metric image for {account.label()}")
        image = client.request_widget_image(rendered)
        outcome.state = AccountState.IMAGE_REQUESTED

        outcome.image_path = save_image(
            image,
            namespace=params.namespace,
            title=params.title,
            region=params.region,
            start=params.start,
            output_dir=options.output_dir,
        )
        outcome.state = AccountState.IMAGE_SAVED
        logger.info(f"Saved metric image for {account.label()}: {outcome.image_path}")
    except ACCOUNT_ERRORS as e:
        outcome.failed_at = outcome.state
        outcome.state = AccountState.FAILED
        outcome.error = e
        logger.error(
            f"Account {account.namespace} ({account.account_id}, {params.region}) failed "
            f"after {outcome.failed_at.value}: {e}"
        )
    return outcome


def run_batch(
    accounts: list[AccountRecord],
    *,
    template_text: str,
    options: BatchOptions,
    resolver: CredentialResolver,
    client_factory: ClientFactory = WidgetImageClient.from_context,
    max_workers: int = 1,
) -> BatchResult:
    """Process every account; outcomes come back in config order."""

    def run(account: AccountRecord) -> AccountOutcome:
        return process_account(
            account,
            template_text=template_text,
            options=options,
            resolver=resolver,
            client_factory=client_factory,
        )

    if not accounts:
        logger.info("No accounts to process")
        return BatchResult()

    if max_workers <= 1 or len(accounts) == 1:
        return BatchResult(outcomes=[run(acc) for acc in accounts])

    with ThreadPoolExecutor(max_workers=min(max_workers, len(accounts))) as ex:
        outcomes = list(ex.map(run, accounts))
    return BatchResult(outcomes=outcomes)
