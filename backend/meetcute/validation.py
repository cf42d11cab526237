"""Required-key validation for a configuration map."""

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from meetcute.config import REQUIRED_KEYS
from meetcute.errors import MissingConfigError


@dataclass
class ValidationResult:
    valid: bool
    missing: list[str] = field(default_factory=list)

    def raise_for_missing(self) -> None:
        if not self.valid:
            raise MissingConfigError(self.missing)


def validate(env: Mapping[str, str], required_keys: Iterable[str] = REQUIRED_KEYS) -> ValidationResult:
    """Check every required key is present with a non-empty value.

    The full list of missing keys is always returned, in required-key order.
    """
    missing = [key for key in required_keys if not env.get(key)]
    return ValidationResult(valid=not missing, missing=missing)
