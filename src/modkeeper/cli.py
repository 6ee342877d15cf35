"""Command-line entry point: one moderation run against the active item.

Usage:
    modkeeper
    modkeeper --dry-run
    modkeeper --env-file deploy/.env --policy policy.json --trace
    python -m modkeeper --log-level DEBUG

Exit codes: 0 for every outcome except a failed flagging call, 1 for a failed
flagging call or an unexpected error, 2 for configuration problems.
"""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import ConfigError, KeeperSettings
from .ledger import LedgerError
from .loaders import PolicyError
from .redaction import SecretRedactingFilter, redact_text

logger = logging.getLogger("modkeeper")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SecretRedactingFilter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
    # transport libraries log full request URLs, which carry API keys
    for noisy in ("httpx", "httpcore", "urllib3", "web3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="modkeeper", description="Moderate the active item and flag it on-chain")
    parser.add_argument("--env-file", default=None, help="Path to a .env file (default: ./.env)")
    parser.add_argument("--policy", default=None, help="JSON policy file (overrides POLICY_FILE)")
    parser.add_argument("--dry-run", action="store_true", help="Evaluate but never send the flagging transaction")
    parser.add_argument("--skip-preflight", action="store_true", help="Skip contract code / signer checks")
    parser.add_argument("--trace", action="store_true", help="Print a JSON trace of the run on stdout")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    env_file = Path(args.env_file) if args.env_file else Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    elif args.env_file:
        logger.error("env file not found: %s", env_file)
        return EXIT_CONFIG

    try:
        settings = KeeperSettings.from_env(os.environ)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG
    if args.policy:
        settings = dataclasses.replace(settings, policy_file=args.policy)
    if args.dry_run:
        settings = dataclasses.replace(settings, dry_run=True)
    logger.debug("settings: %s", settings.summary())

    # Import here so a broken install still reports configuration errors first
    from .readiness import run_preflight
    from .runtime import build_keeper
    from .trace import build_run_trace

    try:
        keeper, assets = build_keeper(settings)
    except PolicyError as e:
        logger.error("invalid policy: %s", e)
        return EXIT_CONFIG
    except ValueError as e:
        # malformed address or private key
        logger.error("cannot build ledger client: %s", redact_text(str(e)))
        return EXIT_CONFIG

    logger.info(
        "providers: %s (with credentials: %s)%s",
        ",".join(p.value for p in assets.provider_ids) or "none",
        ",".join(p.value for p in assets.configured_provider_ids) or "none",
        " [dry-run]" if assets.dry_run else "",
    )

    try:
        if not args.skip_preflight:
            report = run_preflight(keeper.ledger, assets)
            for gate in report.gates:
                level = logging.INFO if gate.passed else (logging.ERROR if gate.required else logging.WARNING)
                logger.log(level, "preflight %s: %s", gate.gate, gate.details)
            if not report.passed:
                return EXIT_CONFIG

        outcome = keeper.run()
    except LedgerError as e:
        logger.error("keeper error: %s", e)
        return EXIT_FAILURE
    except Exception:  # noqa: BLE001
        logger.exception("keeper error")
        return EXIT_FAILURE

    if args.trace:
        print(redact_text(json.dumps(build_run_trace(outcome), indent=2, ensure_ascii=False)))
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
