"""MeetCute backend configuration and database bootstrap CLI.

Usage:
    python -m meetcute env                 # Edit .env interactively
    python -m meetcute check               # Validate .env (exit 1 if incomplete)
    python -m meetcute init-db             # Probe, create database, migrate, optionally seed
    python -m meetcute init-db --seed      # Same, seed without asking
    python -m meetcute setup               # First-run wizard: .env + full bootstrap

Exit codes: 0 on success, 1 on any fatal failure.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from meetcute import env_store
from meetcute.bootstrap.orchestrator import INIT_DB, SETUP_WIZARD, BootstrapPolicy, build_orchestrator
from meetcute.config import Settings
from meetcute.console import ConsoleSession
from meetcute.db.connection import resolve_connection
from meetcute.errors import BootstrapError, MissingConfigError
from meetcute.menu import InteractiveMenu
from meetcute.validation import validate
from meetcute.wizard import check_tools, configure_env

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"
DEFAULT_TEMPLATE_FILE = ".env.example"


def configure_logging(verbose: bool = False, production: bool = False, level: str = "info") -> None:
    level_no = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    if production:
        logging.basicConfig(
            level=level_no,
            format='{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","message":"%(message)s"}',
        )
    else:
        logging.basicConfig(
            level=level_no,
            format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        )


def load_dotenv(env_path: Path) -> None:
    """Export .env entries to the process environment without overriding existing ones.

    Child processes (migrations, seeding) read their configuration from here.
    """
    for key, value in env_store.load(env_path).items():
        os.environ.setdefault(key, value)


def load_settings(env_path: Path, session: ConsoleSession) -> Optional[Settings]:
    try:
        return Settings(_env_file=str(env_path))
    except ValidationError as e:
        # Field names and messages only: input values may be secrets.
        for err in e.errors():
            field = ".".join(str(part) for part in err.get("loc", ())) or "settings"
            session.error(f"[config] {field}: {err.get('msg')}")
        return None


def run_env_menu(args: argparse.Namespace, session: ConsoleSession) -> int:
    session.info("MeetCute Environment Variables Manager")
    env_path = Path(args.env_file)
    if not env_path.exists():
        session.warn(f"{env_path} does not exist. Creating a new one...")
    menu = InteractiveMenu(env_store.load(env_path), session, env_path, Path(args.template))
    ok = menu.run()
    session.info("Goodbye!")
    return 0 if ok else 1


def run_check(args: argparse.Namespace, session: ConsoleSession) -> int:
    result = validate(env_store.load(args.env_file))
    if result.valid:
        session.success("Configuration is valid!")
        return 0
    session.error(f"[validate] {MissingConfigError(result.missing)}")
    return 1


def _bootstrap(args: argparse.Namespace, session: ConsoleSession, policy: BootstrapPolicy) -> int:
    env_path = Path(args.env_file)
    load_dotenv(env_path)
    settings = load_settings(env_path, session)
    if settings is None:
        return 1

    try:
        descriptor = resolve_connection(settings)
    except BootstrapError as e:
        session.error(f"[{e.stage}] {e}")
        return 1

    orchestrator = build_orchestrator(settings, policy, session, seed=getattr(args, "seed", None))
    report = asyncio.run(orchestrator.run(descriptor))
    return report.exit_code


def run_init_db(args: argparse.Namespace, session: ConsoleSession) -> int:
    session.print("\nMeetCute Database Initialization")
    session.print("=" * 60 + "\n")
    return _bootstrap(args, session, INIT_DB)


def run_setup(args: argparse.Namespace, session: ConsoleSession) -> int:
    session.info("Setting up MeetCute Backend")
    session.print("=" * 60)

    missing_tools = check_tools(session)
    if missing_tools:
        session.error(f"Missing required tools: {', '.join(missing_tools)}")
        return 1

    env_path = Path(args.env_file)
    configure_env(env_path, session)

    result = validate(env_store.load(env_path))
    if not result.valid:
        session.error(f"[validate] {MissingConfigError(result.missing)}")
        return 1

    code = _bootstrap(args, session, SETUP_WIZARD)
    if code == 0:
        session.print("\n" + "=" * 60)
        session.success("Setup completed successfully!")
    return code


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="meetcute",
        description="MeetCute backend configuration and database bootstrap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help=f"Env file to read and write (default: {DEFAULT_ENV_FILE})",
    )
    parser.add_argument(
        "--template",
        default=DEFAULT_TEMPLATE_FILE,
        help=f"Template used by the import action (default: {DEFAULT_TEMPLATE_FILE})",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("env", help="Edit environment variables interactively")
    subparsers.add_parser("check", help="Validate required environment variables")

    init_db = subparsers.add_parser("init-db", help="Create, migrate and optionally seed the database")
    seed_group = init_db.add_mutually_exclusive_group()
    seed_group.add_argument("--seed", action="store_true", default=None, help="Seed without asking")
    seed_group.add_argument("--no-seed", action="store_false", dest="seed", default=None, help="Skip seeding without asking")

    subparsers.add_parser("setup", help="Run the first-run setup wizard")
    return parser


COMMANDS = {
    "env": run_env_menu,
    "check": run_check,
    "init-db": run_init_db,
    "setup": run_setup,
}


def main(argv: Optional[list[str]] = None, session: Optional[ConsoleSession] = None) -> int:
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=args.verbose,
        production=os.getenv("NODE_ENV", "").lower() == "production",
        level=os.getenv("LOG_LEVEL", "info"),
    )
    if session is None:
        session = ConsoleSession(color_enabled=not args.no_color and sys.stdout.isatty())

    try:
        return COMMANDS[args.command](args, session)
    except KeyboardInterrupt:
        session.error("Interrupted; re-run the command to resume from a clean state")
        return 1
    except OSError as e:
        session.error(f"[{args.command}] {e}")
        return 1
    except UnicodeDecodeError as e:
        session.error(f"[{args.command}] {args.env_file} is not valid UTF-8: {e.reason} at byte {e.start}")
        return 1
