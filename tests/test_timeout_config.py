"""Tests for timeout configuration."""

from gpsc_infra.timeout_config import Timeouts, _timeout_from_env


def test_default_when_unset(monkeypatch):
    monkeypatch.delenv("GPSC_TIMEOUT_TEST", raising=False)
    assert _timeout_from_env("GPSC_TIMEOUT_TEST", 42) == 42


def test_environment_override(monkeypatch):
    monkeypatch.setenv("GPSC_TIMEOUT_TEST", "7")
    assert _timeout_from_env("GPSC_TIMEOUT_TEST", 42) == 7


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("GPSC_TIMEOUT_TEST", "-5")
    assert _timeout_from_env("GPSC_TIMEOUT_TEST", 42) == 42
    monkeypatch.setenv("GPSC_TIMEOUT_TEST", "soon")
    assert _timeout_from_env("GPSC_TIMEOUT_TEST", 42) == 42


def test_deploy_timeout_exceeds_query_timeout():
    assert Timeouts.BICEP_DEPLOY > Timeouts.BICEP_VALIDATE > Timeouts.AZ_CLI_QUERY
