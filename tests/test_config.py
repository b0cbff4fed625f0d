"""Tests for configuration providers and options."""

import os

import pytest
from pydantic import ValidationError

from tfverify.config import (
    ChainConfigProvider,
    DotEnvConfigProvider,
    EnvConfigProvider,
    VerificationOptions,
    YamlConfigProvider,
    check_required_variables,
    create_config_manager,
)
from tfverify.utils.errors import ConfigurationError


def write_private(path, text):
    path.write_text(text)
    os.chmod(path, 0o600)
    return path


class DictProvider(DotEnvConfigProvider):
    def __init__(self, values):
        super().__init__()
        self.values = dict(values)


class TestDotEnvProvider:
    def test_parses_lines(self, tmp_path):
        path = write_private(tmp_path / ".env.terraform", "\n".join([
            "# comment",
            "",
            "AWS_REGION=ap-northeast-1",
            "TF_ENV = \"production\"",
            "SERVICE_SUFFIX='-new'",
            "NOT A PAIR",
            "URL=http://x?a=b",
        ]))
        provider = DotEnvConfigProvider()
        provider.load(path)

        assert provider.get("AWS_REGION") == ("ap-northeast-1", True)
        assert provider.get("TF_ENV") == ("production", True)
        assert provider.get("SERVICE_SUFFIX") == ("-new", True)
        assert provider.get("URL") == ("http://x?a=b", True)
        assert provider.get("NOT A PAIR") == ("", False)

    def test_missing_file_ignored(self, tmp_path):
        provider = DotEnvConfigProvider()
        provider.load(tmp_path / "absent")
        assert provider.values == {}

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_world_readable_file_refused(self, tmp_path):
        path = tmp_path / ".env.terraform"
        path.write_text("AWS_REGION=us-east-1\n")
        os.chmod(path, 0o644)

        with pytest.raises(ConfigurationError):
            DotEnvConfigProvider().load(path)

    def test_later_load_overrides(self, tmp_path):
        first = write_private(tmp_path / "a", "TF_ENV=development\n")
        second = write_private(tmp_path / "b", "TF_ENV=production\n")
        provider = DotEnvConfigProvider()
        provider.load(first)
        provider.load(second)
        assert provider.get_with_default("TF_ENV", "x") == "production"


class TestYamlProvider:
    def test_loads_settings(self, tmp_path):
        path = tmp_path / "tfverify.yaml"
        path.write_text("environment: staging\ntimeout: 90\nservice_suffix: -new\n")
        provider = YamlConfigProvider()
        provider.load(path)

        assert provider.get("TF_ENV") == ("staging", True)
        assert provider.get("VERIFY_TIMEOUT") == ("90.0", True)
        assert provider.get("SERVICE_SUFFIX") == ("-new", True)

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "tfverify.yaml"
        path.write_text("enviroment: staging\n")
        with pytest.raises(ConfigurationError):
            YamlConfigProvider().load(path)

    def test_invalid_yaml_rejected(self, tmp_path):
        path = tmp_path / "tfverify.yaml"
        path.write_text("environment: [unclosed\n")
        with pytest.raises(ConfigurationError):
            YamlConfigProvider().load(path)


class TestChain:
    def test_first_provider_wins(self):
        chain = ChainConfigProvider([DictProvider({"A": "1"}), DictProvider({"A": "2", "B": "3"})])
        assert chain.get("A") == ("1", True)
        assert chain.get("B") == ("3", True)
        assert chain.get("C") == ("", False)
        assert chain.get_with_default("C", "d") == "d"

    def test_get_required(self):
        chain = ChainConfigProvider([DictProvider({"A": "1"})])
        assert chain.get_required("A") == "1"
        with pytest.raises(ConfigurationError) as exc_info:
            chain.get_required("MISSING")
        assert "MISSING" in str(exc_info.value)

    def test_empty_value_counts_as_found(self):
        chain = ChainConfigProvider([DictProvider({"A": ""}), DictProvider({"A": "x"})])
        assert chain.get("A") == ("", True)


def test_env_provider(monkeypatch):
    monkeypatch.setenv("TFVERIFY_TEST_KEY", "value")
    monkeypatch.delenv("TFVERIFY_ABSENT_KEY", raising=False)
    provider = EnvConfigProvider()
    assert provider.get("TFVERIFY_TEST_KEY") == ("value", True)
    assert provider.get("TFVERIFY_ABSENT_KEY") == ("", False)


def test_create_config_manager_priority(tmp_path, monkeypatch):
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    write_private(home / ".env.terraform", "TF_ENV=from-home\nSERVICE_SUFFIX=-home\nAWS_REGION=home-region\n")
    write_private(work / ".env.terraform", "SERVICE_SUFFIX=-local\n")
    (work / "tfverify.yaml").write_text("environment: from-yaml\nterraform_dir: infra/envs\n")
    monkeypatch.chdir(work)
    monkeypatch.setenv("AWS_REGION", "env-region")
    for key in ("TF_ENV", "SERVICE_SUFFIX", "TERRAFORM_ENV_DIR"):
        monkeypatch.delenv(key, raising=False)

    config = create_config_manager(home_dir=home)

    assert config.get("AWS_REGION") == ("env-region", True)
    assert config.get("TF_ENV") == ("from-home", True)
    assert config.get("SERVICE_SUFFIX") == ("-local", True)
    assert config.get("TERRAFORM_ENV_DIR") == ("infra/envs", True)


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_create_config_manager_survives_unsafe_file(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    unsafe = home / ".env.terraform"
    unsafe.write_text("TF_ENV=leaked\n")
    os.chmod(unsafe, 0o644)
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TF_ENV", raising=False)

    config = create_config_manager(home_dir=home)
    assert config.get("TF_ENV") == ("", False)


def test_check_required_variables_lists_missing():
    provider = DictProvider({"AWS_REGION": "us-east-1"})
    with pytest.raises(ConfigurationError) as exc_info:
        check_required_variables(provider)

    message = str(exc_info.value)
    assert "AWS_ACCESS_KEY_ID" in message
    assert "AWS_SECRET_ACCESS_KEY" in message
    assert "AWS_REGION" not in message
    assert exc_info.value.suggestions


def test_check_required_variables_passes():
    provider = DictProvider({
        "AWS_ACCESS_KEY_ID": "a",
        "AWS_SECRET_ACCESS_KEY": "b",
        "AWS_REGION": "c",
    })
    check_required_variables(provider)


class TestVerificationOptions:
    def test_defaults(self):
        options = VerificationOptions()
        assert options.environment == "development"
        assert options.timeout == 60
        assert options.service_suffix == ""
        assert not options.skip_plan

    def test_frozen(self):
        options = VerificationOptions()
        with pytest.raises(ValidationError):
            options.environment = "production"

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_must_be_positive(self, timeout):
        with pytest.raises(ValidationError):
            VerificationOptions(timeout=timeout)

    def test_environment_without_separators(self):
        with pytest.raises(ValidationError):
            VerificationOptions(environment="../prod")

    def test_from_config_with_overrides(self):
        provider = DictProvider({
            "TF_ENV": "staging",
            "SERVICE_SUFFIX": "-new",
            "VERIFY_TIMEOUT": "120",
            "TERRAFORM_ENV_DIR": "infra",
        })
        options = VerificationOptions.from_config(provider, environment=None, timeout=30.0, skip_plan=True)

        assert options.environment == "staging"
        assert options.service_suffix == "-new"
        assert options.timeout == 30.0
        assert options.terraform_dir == "infra"
        assert options.skip_plan
