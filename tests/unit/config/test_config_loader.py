"""Tests for orchestrator configuration loading."""

from pathlib import Path

import pytest

from tierstack.config.config_loader import load_config
from tierstack.config.config_utils import substitute_env_vars


def _write_config(root: Path, body: str) -> Path:
    path = root / "config.yaml"
    path.write_text(body)
    return path


class TestLoadConfig:
    """Tests for reading config.yaml into settings."""

    def test_defaults_without_config_file(self, tmp_path: Path) -> None:
        """A project without config.yaml runs on built-in defaults."""
        settings = load_config(tmp_path)

        assert settings.install.retries == 0
        assert settings.install.max_workers == 4
        assert settings.paths.tools_dir == tmp_path / "tools"
        assert settings.paths.terraform_dir == tmp_path / "infrastructure" / "terraform"

    def test_explicit_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path, tmp_path / "missing.yaml")

    def test_reads_overrides(self, tmp_path: Path) -> None:
        _write_config(
            tmp_path,
            "config:\n"
            "  install:\n"
            "    retries: 2\n"
            "    max_workers: 1\n"
            "  demo:\n"
            "    namespaces: [only-app]\n",
        )

        settings = load_config(tmp_path)

        assert settings.install.retries == 2
        assert settings.install.max_workers == 1
        assert settings.demo.namespaces == ["only-app"]

    def test_absolute_paths_are_kept(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "config:\n  paths:\n    tools_dir: /opt/tools\n")

        settings = load_config(tmp_path)

        assert settings.paths.tools_dir == Path("/opt/tools")
        assert settings.paths.policies_dir.is_relative_to(tmp_path)

    def test_missing_config_key_raises(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "install:\n  retries: 1\n")

        with pytest.raises(ValueError, match="missing 'config' key"):
            load_config(tmp_path)

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "config: [unclosed\n")

        with pytest.raises(ValueError, match="Error parsing YAML"):
            load_config(tmp_path)

    def test_out_of_range_value_raises(self, tmp_path: Path) -> None:
        _write_config(tmp_path, "config:\n  install:\n    max_workers: 0\n")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(tmp_path)

    def test_malformed_duration_raises(self, tmp_path: Path) -> None:
        """Durations are checked at load time, not when kubectl first needs them."""
        _write_config(tmp_path, "config:\n  demo:\n    reset_timeout: two minutes\n")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(tmp_path)

    def test_empty_cluster_placeholders_become_none(self, tmp_path: Path) -> None:
        _write_config(
            tmp_path,
            "config:\n"
            "  cluster:\n"
            "    name: ${AKS_CLUSTER_NAME:-}\n"
            "    resource_group: ${AKS_RESOURCE_GROUP:-}\n",
        )

        settings = load_config(tmp_path)

        assert settings.cluster.name is None
        assert settings.cluster.resource_group is None

    def test_dotenv_values_are_substituted(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("AKS_CLUSTER_NAME=aks-from-dotenv\n")
        _write_config(tmp_path, "config:\n  cluster:\n    name: ${AKS_CLUSTER_NAME:-}\n")

        settings = load_config(tmp_path)

        assert settings.cluster.name == "aks-from-dotenv"


class TestSubstituteEnvVars:
    """Tests for ${VAR} expansion in raw config text."""

    def test_default_used_when_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TIERSTACK_RETRIES", raising=False)
        assert substitute_env_vars("retries: ${TIERSTACK_RETRIES:-0}") == "retries: 0"

    def test_environment_wins_over_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TIERSTACK_RETRIES", "3")
        assert substitute_env_vars("retries: ${TIERSTACK_RETRIES:-0}") == "retries: 3"

    def test_required_variable_missing_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TIERSTACK_REQUIRED", raising=False)
        with pytest.raises(ValueError, match="TIERSTACK_REQUIRED"):
            substitute_env_vars("${TIERSTACK_REQUIRED}")

    def test_custom_error_message(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TIERSTACK_REQUIRED", raising=False)
        with pytest.raises(ValueError, match="set it first"):
            substitute_env_vars("${TIERSTACK_REQUIRED:?set it first}")
