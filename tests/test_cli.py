"""Tests for the command-line interface."""

import pytest

from image_runner import cli
from image_runner.core.types import RegistryConfig
from image_runner.exceptions import AuthError, ConfigError


@pytest.fixture
def captured_run(monkeypatch):
    calls = []

    def fake_run_container(spec, config):
        calls.append((spec, config))
        return 3

    monkeypatch.setattr(cli, "run_container", fake_run_container)
    monkeypatch.delenv("IMAGE_RUNNER_REGISTRY_URL", raising=False)
    return calls


def test_run_passes_command_and_arguments(captured_run):
    code = cli.main(["run", "alpine:3.18", "/bin/sh", "-c", "echo hi"])

    assert code == 3
    [(spec, config)] = captured_run
    assert (spec.image.name, spec.image.tag) == ("alpine", "3.18")
    assert spec.executable == "/bin/sh"
    assert spec.args == ("-c", "echo hi")
    assert config.registry_url == "https://registry.hub.docker.com"


def test_registry_options_override_environment(captured_run, monkeypatch):
    monkeypatch.setenv("IMAGE_RUNNER_REGISTRY_URL", "http://env-registry")

    cli.main(["run", "--registry-url", "http://cli-registry/", "--timeout", "9", "alpine", "/bin/true"])

    [(_, config)] = captured_run
    assert config.registry_url == "http://cli-registry"
    assert config.timeout == 9


def test_environment_configures_registry(captured_run, monkeypatch):
    monkeypatch.setenv("IMAGE_RUNNER_REGISTRY_URL", "http://env-registry")

    cli.main(["run", "alpine", "/bin/true"])

    [(_, config)] = captured_run
    assert config.registry_url == "http://env-registry"


def test_invalid_reference_reports_error(captured_run, capsys):
    assert cli.main(["run", "a:b:c", "/bin/true"]) == 1

    assert captured_run == []
    assert "image-runner: error:" in capsys.readouterr().err


def test_pipeline_error_reports_error(monkeypatch, capsys):
    def fail(spec, config):
        raise AuthError("token endpoint unreachable")

    monkeypatch.setattr(cli, "run_container", fail)

    assert cli.main(["run", "alpine", "/bin/true"]) == 1
    assert "token endpoint unreachable" in capsys.readouterr().err


def test_missing_arguments_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["run", "alpine"])
    assert excinfo.value.code == 2


def test_invalid_timeout_in_environment_reports_error(captured_run, monkeypatch, capsys):
    monkeypatch.setenv("IMAGE_RUNNER_TIMEOUT", "soon")

    assert cli.main(["run", "alpine", "/bin/true"]) == 1

    assert captured_run == []
    err = capsys.readouterr().err
    assert "image-runner: error:" in err
    assert "IMAGE_RUNNER_TIMEOUT" in err


def test_timeout_option_wins_over_invalid_environment(captured_run, monkeypatch):
    monkeypatch.setenv("IMAGE_RUNNER_TIMEOUT", "soon")

    assert cli.main(["run", "--timeout", "12", "alpine", "/bin/true"]) == 3

    [(_, config)] = captured_run
    assert config.timeout == 12


def test_config_from_env_rejects_non_integer_timeout(monkeypatch):
    monkeypatch.setenv("IMAGE_RUNNER_TIMEOUT", "5m")

    with pytest.raises(ConfigError):
        RegistryConfig.from_env()


def test_config_from_env_reads_timeout(monkeypatch):
    monkeypatch.setenv("IMAGE_RUNNER_TIMEOUT", "45")

    assert RegistryConfig.from_env().timeout == 45
