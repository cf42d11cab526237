"""Bootstrap and configuration exceptions for MeetCute."""


class BootstrapError(Exception):
    """Base exception for configuration and database bootstrap failures."""

    stage = "bootstrap"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class MissingConfigError(BootstrapError):
    """Raised when required configuration keys are absent or empty."""

    stage = "validate"

    def __init__(self, missing: list[str]):
        super().__init__(f"Missing required configuration: {', '.join(missing)}")
        self.missing = list(missing)


class MalformedConnectionStringError(BootstrapError):
    """Raised when DATABASE_URL cannot be parsed as a database URL."""

    stage = "resolve"


class DatabaseConnectionError(BootstrapError):
    """Raised when the database server cannot be reached or rejects the login."""

    stage = "probe"


class DatabaseMissingError(BootstrapError):
    """Raised when the target database does not exist and cannot be created."""

    stage = "probe"


class InvalidDatabaseNameError(BootstrapError):
    """Raised when a database name fails the identifier allow-list."""

    stage = "provision"


class ProvisioningRaceError(BootstrapError):
    """Raised when a concurrent provisioner created the database first."""

    stage = "provision"


class ProcessExecutionError(BootstrapError):
    """Raised when a migration or seed subprocess exits non-zero."""

    def __init__(self, stage: str, result):
        detail = (result.stderr or result.stdout or "").strip() or f"exit code {result.returncode}"
        super().__init__(f"{stage} command failed: {detail}", stage=stage)
        self.result = result
