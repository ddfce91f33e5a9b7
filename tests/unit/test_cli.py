"""Tests for cosmosvnet.cli module.

The credential factory, resource client and orchestrator are patched so no
Azure call is made; these tests cover option handling and exit codes.
"""

from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from cosmosvnet.cli import main
from cosmosvnet.config_manager import ConfigManager, SampleConfig
from cosmosvnet.credential_factory import CredentialFactoryError
from cosmosvnet.orchestrator import CleanupOutcome, ProvisioningError, RunReport, Step
from tests.conftest import SUBSCRIPTION_ID


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def patched_run(sp_env, isolated_config):
    """Patch everything `run` talks to; yields the mocks by name."""
    with (
        patch("cosmosvnet.cli.CredentialFactory") as factory,
        patch("cosmosvnet.cli.AzureResourceClient") as client_cls,
        patch("cosmosvnet.cli.VNetRuleOrchestrator") as orchestrator_cls,
    ):
        factory.create_credential.return_value = MagicMock(name="credential")
        orchestrator_cls.return_value.run.return_value = RunReport(
            completed_steps=[Step.RESOLVE_SUBSCRIPTION, Step.CREATE_SCOPE],
            cleanup=CleanupOutcome.DELETED,
        )
        yield {"factory": factory, "client": client_cls, "orchestrator": orchestrator_cls}


class TestRunCommand:
    """Tests for `cosmosvnet run`."""

    def test_successful_run_exits_zero(self, runner, patched_run):
        result = runner.invoke(main, ["run"])

        assert result.exit_code == 0, result.output
        patched_run["orchestrator"].return_value.run.assert_called_once()

    def test_client_uses_subscription_from_environment(self, runner, patched_run):
        runner.invoke(main, ["run"])

        args, _ = patched_run["client"].call_args
        assert args[1] == SUBSCRIPTION_ID

    def test_subscription_option_overrides_environment(self, runner, patched_run):
        other = "99999999-8888-7777-6666-555555555555"

        runner.invoke(main, ["run", "--subscription-id", other])

        args, _ = patched_run["client"].call_args
        assert args[1] == other

    def test_overrides_reach_orchestrator_config(self, runner, patched_run):
        result = runner.invoke(
            main,
            [
                "run",
                "--region",
                "westeurope",
                "--database-region",
                "northeurope",
                "--staleness-prefix",
                "500",
                "--staleness-interval",
                "60",
                "--keep-database",
            ],
        )

        assert result.exit_code == 0, result.output
        config = patched_run["orchestrator"].call_args[0][1]
        assert config.region == "westeurope"
        assert config.database_region == "northeurope"
        assert config.max_staleness_prefix == 500
        assert config.max_interval_in_seconds == 60
        assert config.delete_database is False

    def test_write_region_option(self, runner, patched_run):
        result = runner.invoke(main, ["run", "--write-region", "centralus"])

        assert result.exit_code == 0, result.output
        config = patched_run["orchestrator"].call_args[0][1]
        assert config.write_replication_region == "centralus"

    def test_clear_rules_and_delete_network_flags(self, runner, patched_run):
        result = runner.invoke(main, ["run", "--clear-rules", "--delete-network"])

        assert result.exit_code == 0, result.output
        config = patched_run["orchestrator"].call_args[0][1]
        assert config.clear_rules_before_delete is True
        assert config.delete_network is True

    def test_delete_network_without_clear_rules_fails(self, runner, patched_run):
        result = runner.invoke(main, ["run", "--delete-network"])

        assert result.exit_code == 1
        patched_run["orchestrator"].assert_not_called()

    def test_invalid_staleness_fails_before_provisioning(self, runner, patched_run):
        result = runner.invoke(main, ["run", "--staleness-interval", "1"])

        assert result.exit_code == 1
        patched_run["client"].assert_not_called()

    def test_provisioning_error_exits_one(self, runner, patched_run):
        report = RunReport(
            completed_steps=[Step.RESOLVE_SUBSCRIPTION, Step.CREATE_SCOPE],
            failed_step=Step.CREATE_NETWORK,
            cleanup=CleanupOutcome.DELETED,
        )
        patched_run["orchestrator"].return_value.run.side_effect = ProvisioningError(
            Step.CREATE_NETWORK, "quota exceeded", report
        )

        result = runner.invoke(main, ["run"])

        assert result.exit_code == 1
        assert "cleanup" in result.output
        assert "deleted" in result.output

    def test_failed_cleanup_exits_one(self, runner, patched_run):
        patched_run["orchestrator"].return_value.run.return_value = RunReport(
            completed_steps=list(Step)[:7],
            cleanup=CleanupOutcome.FAILED,
        )

        result = runner.invoke(main, ["run"])

        assert result.exit_code == 1

    def test_keyboard_interrupt_exits_one(self, runner, patched_run):
        patched_run["orchestrator"].return_value.run.side_effect = KeyboardInterrupt

        result = runner.invoke(main, ["run"])

        assert result.exit_code == 1

    def test_credential_error_exits_one(self, runner, patched_run):
        patched_run["factory"].create_credential.side_effect = CredentialFactoryError(
            "Client secret not found in environment"
        )

        result = runner.invoke(main, ["run"])

        assert result.exit_code == 1
        patched_run["orchestrator"].assert_not_called()

    def test_missing_credentials_exits_one(self, runner, clean_env, isolated_config):
        with patch("cosmosvnet.cli.VNetRuleOrchestrator") as orchestrator_cls:
            result = runner.invoke(main, ["run"])

        assert result.exit_code == 1
        orchestrator_cls.assert_not_called()

    def test_missing_config_file_exits_one(self, runner, patched_run, tmp_path):
        result = runner.invoke(main, ["run", "--config", str(tmp_path / "missing.toml")])

        assert result.exit_code == 1
        patched_run["orchestrator"].assert_not_called()

    def test_config_file_is_used(self, runner, patched_run, tmp_path):
        path = ConfigManager.save_config(
            SampleConfig(region="uksouth"), str(tmp_path / "sample.toml")
        )

        result = runner.invoke(main, ["run", "--config", str(path)])

        assert result.exit_code == 0, result.output
        config = patched_run["orchestrator"].call_args[0][1]
        assert config.region == "uksouth"

    def test_unknown_auth_method_rejected(self, runner, patched_run):
        result = runner.invoke(main, ["run", "--auth", "managed_identity"])

        assert result.exit_code == 2


class TestConfigCommands:
    """Tests for `cosmosvnet config init` and `cosmosvnet config show`."""

    def test_init_writes_default_file(self, runner, isolated_config):
        result = runner.invoke(main, ["config", "init"])

        assert result.exit_code == 0, result.output
        assert isolated_config.exists()
        assert "Wrote configuration to" in result.output
        assert ConfigManager.load_config() == SampleConfig()

    def test_init_refuses_to_overwrite(self, runner, isolated_config):
        runner.invoke(main, ["config", "init"])

        result = runner.invoke(main, ["config", "init"])

        assert result.exit_code == 1

    def test_init_force_overwrites(self, runner, isolated_config):
        runner.invoke(main, ["config", "init"])

        result = runner.invoke(main, ["config", "init", "--force"])

        assert result.exit_code == 0, result.output

    def test_init_custom_path(self, runner, isolated_config, tmp_path):
        target = tmp_path / "custom" / "cosmosvnet.toml"

        result = runner.invoke(main, ["config", "init", "--path", str(target)])

        assert result.exit_code == 0, result.output
        assert target.exists()
        assert not isolated_config.exists()

    def test_show_renders_defaults(self, runner, isolated_config):
        result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "eastus" in result.output
        assert "subnet1=192.168.1.0/24" in result.output

    def test_show_missing_custom_file_fails(self, runner, isolated_config, tmp_path):
        result = runner.invoke(main, ["config", "show", "--config", str(tmp_path / "nope.toml")])

        assert result.exit_code == 1

    def test_show_malformed_file_fails(self, runner, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("subnets = 5\n")

        result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


class TestMainGroup:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "cosmosvnet" in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "run" in result.output
        assert "config" in result.output
