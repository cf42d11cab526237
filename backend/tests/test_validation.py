"""Tests for required-key validation."""

import itertools

import pytest

from meetcute.config import REQUIRED_KEYS
from meetcute.errors import MissingConfigError
from meetcute.validation import validate


def _full_config():
    return {key: "value" for key in REQUIRED_KEYS}


def test_required_keys_are_fixed():
    assert REQUIRED_KEYS == (
        "NODE_ENV",
        "PORT",
        "JWT_SECRET",
        "FRONTEND_URL",
        "DB_HOST",
        "DB_PORT",
        "DB_NAME",
        "DB_USER",
        "DB_PASSWORD",
    )


def test_complete_config_is_valid():
    result = validate(_full_config())
    assert result.valid is True
    assert result.missing == []


def test_empty_value_counts_as_missing():
    env = _full_config()
    env["JWT_SECRET"] = ""
    result = validate(env)
    assert result.valid is False
    assert result.missing == ["JWT_SECRET"]


def test_every_subset_reports_exact_complement():
    for size in range(len(REQUIRED_KEYS) + 1):
        for present in itertools.combinations(REQUIRED_KEYS, size):
            result = validate({key: "x" for key in present})
            expected = [key for key in REQUIRED_KEYS if key not in present]
            assert result.missing == expected
            assert result.valid is (not expected)


def test_optional_keys_do_not_affect_result():
    env = _full_config()
    env["EMAIL_HOST"] = ""
    assert validate(env).valid is True


def test_custom_required_keys():
    assert validate({"A": "1"}, required_keys=["A", "B"]).missing == ["B"]


def test_raise_for_missing():
    result = validate({})
    with pytest.raises(MissingConfigError) as exc_info:
        result.raise_for_missing()
    assert exc_info.value.missing == list(REQUIRED_KEYS)
    assert exc_info.value.stage == "validate"
