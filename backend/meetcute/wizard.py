"""First-run setup wizard: tool check and interactive ``.env`` generation."""

import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional

from meetcute import env_store
from meetcute.config import VARIABLE_SPECS, VariableSpec
from meetcute.console import ConsoleSession
from meetcute.env_store import ConfigMap

logger = logging.getLogger(__name__)

# (tool, required)
TOOLS: list[tuple[str, bool]] = [
    ("alembic", True),
    ("psql", False),
]


def check_tools(session: ConsoleSession, tools: list[tuple[str, bool]] = TOOLS) -> list[str]:
    """Report each tool's presence on PATH. Returns the missing required tools."""
    session.info("Checking for required tools...")
    missing = []
    for tool, required in tools:
        path = shutil.which(tool)
        if path:
            session.success(f"{tool}: {path}")
        elif required:
            missing.append(tool)
            session.warn(f"{tool}: Not found")
        else:
            session.warn(f"{tool}: Not found (optional)")
    return missing


def prompt_variables(
    session: ConsoleSession,
    specs: tuple[VariableSpec, ...] = VARIABLE_SPECS,
    environ: Optional[Mapping[str, str]] = None,
) -> ConfigMap:
    """Ask for every recognized variable.

    A blank answer keeps the value already in the process environment,
    falling back to the variable's default.
    """
    environ = os.environ if environ is None else environ
    env: ConfigMap = {}
    for spec in specs:
        default = spec.default_value()
        marker = " *" if spec.required else ""
        answer = session.ask(f"  {spec.name}{marker} [{default}]")
        env[spec.name] = answer or environ.get(spec.name, "") or default
    return env


def configure_env(
    env_path: Path,
    session: ConsoleSession,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[ConfigMap]:
    """Write ``env_path`` from operator answers. Returns None if the operator kept the existing file."""
    env_path = Path(env_path)
    if env_path.exists():
        session.success(f"{env_path} exists")
        if not session.confirm(f"  {env_path} already exists. Overwrite?"):
            session.warn(f"Skipping {env_path} configuration")
            return None

    session.info("Configuring environment variables...")
    env = prompt_variables(session, environ=environ)
    header = [
        "Environment Configuration",
        f"Generated on {datetime.now(timezone.utc).isoformat()}",
    ]
    env_store.save(env_path, env, header=header, atomic=True)
    logger.info("Wrote %d variables to %s", len(env), env_path)
    session.success(f"Environment configuration saved to {env_path}")
    return env
