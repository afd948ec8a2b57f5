"""Dev CLI for repetitive AWS account tasks.

Commands:
  images   render a metric widget per account and save the PNGs
  config   validate and print the accounts file
  show     list CloudWatch metrics for one region

Usage:
  cwimages images --period 3600 --pattern ItemDPP -s 4320H resources/traffic.json accounts.toml
  cwimages config accounts.toml --pattern ItemDPP
  cwimages show --region us-west-2
"""

from __future__ import annotations

import argparse
import functools
import logging
import sys

from cwimages.accounts import filter_accounts, load_accounts
from cwimages.batch import BatchOptions, run_batch
from cwimages.config import (
    CREDENTIAL_STRATEGIES,
    get_credential_strategy,
    get_max_workers,
    get_output_dir,
    get_profile_template,
    get_request_timeout,
    get_role_name,
    get_role_session_name,
    get_show_region,
)
from cwimages.credentials import build_resolver
from cwimages.errors import ConfigError, RemoteError, TemplateError
from cwimages.helpers.env_loader import load_env_file
from cwimages.template import load_template
from cwimages.widget_client import WidgetImageClient, format_metrics

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ACCOUNT_FAILURES = 1
EXIT_FATAL = 2


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"expected an integer >= 1, got {n}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cwimages", description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging, loaded accounts and templated output")
    parser.add_argument("--env-file", default=None, help="Load KEY=VALUE pairs before running")
    sub = parser.add_subparsers(dest="command", required=True)

    images = sub.add_parser("images", help="download metric widget images from CloudWatch")
    images.add_argument("template_path", help="widget JSON template with {{...}} placeholders")
    images.add_argument("config_path", help="the path to the TOML config file with accounts")
    images.add_argument("-r", "--region", default=None, help="AWS region (e.g. us-east-1), overrides each account's")
    images.add_argument("-s", "--start-time", "--start", dest="start", default="4320H")
    images.add_argument("-e", "--end-time", "--end", dest="end", default="0H")
    images.add_argument("-p", "--period", default="3600")
    images.add_argument("--title", default="metric", help="title to identify the image downloaded")
    images.add_argument("-f", "--pattern", default=None, help="only accounts whose namespace contains this")
    images.add_argument("-o", "--output-path", default=None, help="directory to write images to")
    images.add_argument("--credentials", choices=CREDENTIAL_STRATEGIES, default=None)
    images.add_argument("--workers", type=_positive_int, default=None, help="accounts processed concurrently")

    config = sub.add_parser("config", help="validate and display the config file for your accounts")
    config.add_argument("config_path")
    config.add_argument("-f", "--pattern", default=None)

    show = sub.add_parser("show", help="show metrics for an account")
    show.add_argument("-r", "--region", default=None)
    show.add_argument("--namespace", default=None, help="only metrics in this CloudWatch namespace")

    return parser


def cmd_images(args: argparse.Namespace) -> int:
    accounts = load_accounts(args.config_path, verbose=args.verbose)
    accounts = filter_accounts(args.pattern, accounts, verbose=args.verbose)
    template_text = load_template(args.template_path)

    strategy = args.credentials or get_credential_strategy()
    resolver = build_resolver(
        strategy,
        profile_template=get_profile_template(),
        role_name=get_role_name(),
        role_session_name=get_role_session_name(),
    )
    options = BatchOptions(
        title=args.title,
        start=args.start,
        end=args.end,
        period=args.period,
        output_dir=args.output_path or get_output_dir(),
        region_override=args.region,
        verbose=args.verbose,
    )
    client_factory = functools.partial(WidgetImageClient.from_context, timeout=get_request_timeout())

    result = run_batch(
        accounts,
        template_text=template_text,
        options=options,
        resolver=resolver,
        client_factory=client_factory,
        max_workers=args.workers or get_max_workers(),
    )

    for outcome in result.succeeded:
        print(f"saved {outcome.image_path}")
    print(result.summary())
    for outcome in result.failed:
        print(f"FAILED {outcome.account.label()}: {outcome.error}")
    return EXIT_OK if result.ok else EXIT_ACCOUNT_FAILURES


def cmd_config(args: argparse.Namespace) -> int:
    accounts = load_accounts(args.config_path, verbose=args.verbose)
    selected = filter_accounts(args.pattern, accounts, verbose=args.verbose)
    for acc in selected:
        print(acc.label())
    print(f"{len(selected)} of {len(accounts)} accounts selected")
    return EXIT_OK


def cmd_show(args: argparse.Namespace) -> int:
    region = args.region or get_show_region()
    try:
        client = WidgetImageClient.for_region(region, timeout=get_request_timeout())
        metrics = client.list_metrics(namespace=args.namespace)
    except RemoteError as e:
        print(f"encountered error getting metrics: {e}")
        return EXIT_ACCOUNT_FAILURES
    print(format_metrics(metrics))
    return EXIT_OK


COMMANDS = {
    "images": cmd_images,
    "config": cmd_config,
    "show": cmd_show,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.env_file:
            load_env_file(args.env_file)
        return COMMANDS[args.command](args)
    except (ConfigError, TemplateError, RuntimeError) as e:
        logger.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
