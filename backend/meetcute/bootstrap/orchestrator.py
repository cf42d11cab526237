"""Database bootstrap state machine.

Stages run strictly in sequence, each awaited to completion:

    START -> PROBE_CONNECTION -> (ENSURE_DATABASE) -> RUN_MIGRATIONS -> (RUN_SEED) -> DONE

Any stage may end in FAILED. The next stage is a pure function of the
current stage, its outcome and the policy (``next_stage``), so both entry
points share one machine and differ only in their ``BootstrapPolicy``:

* ``INIT_DB``: the operator confirms seeding; a seed failure is fatal.
* ``SETUP_WIZARD``: seeding runs automatically; a seed failure is a warning.

Connections are scoped to the stage that needs them and released on every
path, so nothing is held once the machine reaches DONE or FAILED.
Interrupting a run during migrations or seeding leaves the database in an
indeterminate stage; re-running the whole orchestrator is the recovery path.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from meetcute.bootstrap.commands import CommandResult, MigrationRunner, Runnable, Seeder
from meetcute.config import Settings
from meetcute.console import ConsoleSession
from meetcute.db.connection import ConnectionDescriptor
from meetcute.db.engine import open_connection, scrub
from meetcute.db.probe import DbConnectionProbe
from meetcute.db.provisioner import DbProvisioner, ProvisionOutcome
from meetcute.errors import (
    BootstrapError,
    DatabaseMissingError,
    ProcessExecutionError,
)

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    START = "start"
    PROBE_CONNECTION = "probe"
    ENSURE_DATABASE = "provision"
    RUN_MIGRATIONS = "migrate"
    RUN_SEED = "seed"
    DONE = "done"
    FAILED = "failed"


class StageOutcome(str, Enum):
    OK = "ok"
    MISSING = "missing"  # probe only: server reachable, database absent, creation allowed
    SKIPPED = "skipped"
    FAILED = "failed"


class DatabaseState(int, Enum):
    """How far the target database has progressed. Only ever moves forward."""

    UNKNOWN = 0
    REACHABLE = 1
    EXISTS = 2
    MIGRATED = 3
    SEEDED = 4


class SeedMode(str, Enum):
    CONFIRM = "confirm"
    AUTO = "auto"
    SKIP = "skip"


@dataclass(frozen=True)
class BootstrapPolicy:
    name: str
    seed_mode: SeedMode
    seed_failure_fatal: bool


INIT_DB = BootstrapPolicy("init-db", seed_mode=SeedMode.CONFIRM, seed_failure_fatal=True)
SETUP_WIZARD = BootstrapPolicy("setup-wizard", seed_mode=SeedMode.AUTO, seed_failure_fatal=False)


def next_stage(stage: Stage, outcome: Optional[StageOutcome], policy: BootstrapPolicy) -> Stage:
    """Transition function of the bootstrap state machine."""
    if stage is Stage.START:
        return Stage.PROBE_CONNECTION
    if outcome is StageOutcome.FAILED:
        if stage is Stage.RUN_SEED and not policy.seed_failure_fatal:
            return Stage.DONE
        return Stage.FAILED
    if stage is Stage.PROBE_CONNECTION:
        return Stage.ENSURE_DATABASE if outcome is StageOutcome.MISSING else Stage.RUN_MIGRATIONS
    if stage is Stage.ENSURE_DATABASE:
        return Stage.RUN_MIGRATIONS
    if stage is Stage.RUN_MIGRATIONS:
        return Stage.DONE if policy.seed_mode is SeedMode.SKIP else Stage.RUN_SEED
    if stage is Stage.RUN_SEED:
        return Stage.DONE
    raise ValueError(f"No transition out of terminal stage {stage.value}")


@dataclass
class BootstrapReport:
    policy: str
    stage: Stage = Stage.START
    database_state: DatabaseState = DatabaseState.UNKNOWN
    history: list[tuple[Stage, StageOutcome]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[BootstrapError] = None
    provision_outcome: Optional[ProvisionOutcome] = None

    @property
    def succeeded(self) -> bool:
        return self.stage is Stage.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def advance(self, state: DatabaseState) -> None:
        if state > self.database_state:
            self.database_state = state


class BootstrapOrchestrator:
    """Drives probe, provisioning, migrations and seeding for one descriptor."""

    def __init__(
        self,
        policy: BootstrapPolicy,
        session: ConsoleSession,
        probe: DbConnectionProbe,
        provisioner: DbProvisioner,
        migrations: Runnable,
        seeder: Runnable,
        admin_database: str = "postgres",
        connect_timeout: int = 10,
        seed: Optional[bool] = None,
    ):
        self.policy = policy
        self.session = session
        self.probe = probe
        self.provisioner = provisioner
        self.migrations = migrations
        self.seeder = seeder
        self.admin_database = admin_database
        self.connect_timeout = connect_timeout
        self.seed = seed  # pre-answered seed confirmation (None = ask)

    async def run(self, descriptor: ConnectionDescriptor) -> BootstrapReport:
        report = BootstrapReport(policy=self.policy.name)
        handlers = {
            Stage.PROBE_CONNECTION: self._probe,
            Stage.ENSURE_DATABASE: self._ensure_database,
            Stage.RUN_MIGRATIONS: self._run_migrations,
            Stage.RUN_SEED: self._run_seed,
        }

        stage = next_stage(Stage.START, None, self.policy)
        while stage not in (Stage.DONE, Stage.FAILED):
            report.stage = stage
            logger.debug("Entering stage %s", stage.value)
            try:
                outcome = await handlers[stage](descriptor, report)
            except BootstrapError as e:
                e.stage = stage.value
                e.args = (scrub(str(e), descriptor),)
                report.error = e
                outcome = StageOutcome.FAILED
            except Exception as e:
                logger.error(f"Unexpected error in stage {stage.value}: {type(e).__name__}")
                report.error = BootstrapError(scrub(str(e) or type(e).__name__, descriptor), stage=stage.value)
                outcome = StageOutcome.FAILED
            report.history.append((stage, outcome))

            if outcome is StageOutcome.FAILED and report.error is not None:
                if stage is Stage.RUN_SEED and not self.policy.seed_failure_fatal:
                    warning = f"[{stage.value}] {report.error}"
                    report.warnings.append(warning)
                    report.error = None
                    self.session.warn(warning)
                else:
                    self.session.error(f"[{stage.value}] {report.error}")
            stage = next_stage(stage, outcome, self.policy)

        report.stage = stage
        if report.succeeded:
            self.session.success("Database setup completed successfully!")
        else:
            self.session.error("Database initialization failed")
        logger.info("Bootstrap (%s) finished in %s at %s", self.policy.name, stage.value, report.database_state.name)
        return report

    async def _probe(self, descriptor: ConnectionDescriptor, report: BootstrapReport) -> StageOutcome:
        self.session.info(f"Testing database connection to {descriptor.redacted(self.admin_database)}...")
        result = await self.probe.probe(descriptor)
        if not result.reachable:
            raise result.error or BootstrapError("Database server unreachable")

        report.advance(DatabaseState.REACHABLE)
        self.session.success("Connected to PostgreSQL server")
        if result.database_exists:
            report.advance(DatabaseState.EXISTS)
            return StageOutcome.OK
        if not descriptor.allows_create:
            raise DatabaseMissingError(
                f"Database '{descriptor.database}' does not exist. "
                "Create it first when using DATABASE_URL"
            )
        return StageOutcome.MISSING

    async def _ensure_database(self, descriptor: ConnectionDescriptor, report: BootstrapReport) -> StageOutcome:
        self.session.info(f"Checking if database '{descriptor.database}' exists...")
        async with open_connection(
            descriptor, self.admin_database, timeout=self.connect_timeout, autocommit=True
        ) as conn:
            outcome = await self.provisioner.provision(conn, descriptor.database)
        report.provision_outcome = outcome
        report.advance(DatabaseState.EXISTS)
        if outcome is ProvisionOutcome.CREATED:
            self.session.success(f"Database '{descriptor.database}' created")
        else:
            self.session.success(f"Database '{descriptor.database}' already exists")
        return StageOutcome.OK

    async def _run_migrations(self, descriptor: ConnectionDescriptor, report: BootstrapReport) -> StageOutcome:
        self.session.info("Running database migrations...")
        result = await asyncio.to_thread(self.migrations.run)
        self._raise_for_result(Stage.RUN_MIGRATIONS, result, descriptor)
        report.advance(DatabaseState.MIGRATED)
        self.session.success("Database migrations completed")
        return StageOutcome.OK

    async def _run_seed(self, descriptor: ConnectionDescriptor, report: BootstrapReport) -> StageOutcome:
        if self.policy.seed_mode is SeedMode.CONFIRM:
            wanted = self.seed
            if wanted is None:
                wanted = self.session.confirm("Would you like to seed the database with initial data?")
            if not wanted:
                self.session.info("Skipping database seeding")
                return StageOutcome.SKIPPED

        self.session.info("Seeding database with initial data...")
        result = await asyncio.to_thread(self.seeder.run)
        self._raise_for_result(Stage.RUN_SEED, result, descriptor)
        report.advance(DatabaseState.SEEDED)
        self.session.success("Database seeded successfully")
        return StageOutcome.OK

    def _raise_for_result(self, stage: Stage, result: CommandResult, descriptor: ConnectionDescriptor) -> None:
        if not result.success:
            logger.error("%s failed: %s", stage.value, scrub(result.output, descriptor))
            raise ProcessExecutionError(stage.value, result)


def build_orchestrator(
    settings: Settings,
    policy: BootstrapPolicy,
    session: ConsoleSession,
    seed: Optional[bool] = None,
) -> BootstrapOrchestrator:
    """Wire the default probe, provisioner and command runners from settings."""
    return BootstrapOrchestrator(
        policy=policy,
        session=session,
        probe=DbConnectionProbe(
            admin_database=settings.db_admin_database,
            timeout=settings.db_connect_timeout,
            attempts=settings.db_connect_attempts,
        ),
        provisioner=DbProvisioner(),
        migrations=MigrationRunner(settings.migrate_command, timeout=settings.command_timeout),
        seeder=Seeder(settings.seed_command, timeout=settings.command_timeout),
        admin_database=settings.db_admin_database,
        connect_timeout=settings.db_connect_timeout,
        seed=seed,
    )
