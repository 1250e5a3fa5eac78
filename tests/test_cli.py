"""
Tests for keyplan.cli module.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from keyplan.action.runner import ExecutionReport
from keyplan.actions import AccountInGroup, ConnectGroupAuthorization, GroupOwnerOfGroupOnSystem
from keyplan.cli import cli
from keyplan.config.models import Config
from keyplan.core.exceptions import AuthenticationError, PlanAbortedError
from keyplan.core.types import AuthorizingGroupType, GroupRights


@pytest.fixture(autouse=True)
def quiet_logger():
    with patch("keyplan.utils.logger.setup_logger"):
        yield


@pytest.fixture
def run_goal():
    """Patched runner entry point; the goal is the second positional argument."""
    with patch("keyplan.config.loader.load_config", return_value=Config()), \
            patch("keyplan.action.runner.run", new=AsyncMock(return_value=ExecutionReport())) as run:
        yield run


def goal_of(run: AsyncMock):
    return run.await_args.args[1]


class TestCommands:
    """Tests for goal commands."""

    def test_ensure_in_group(self, run_goal: AsyncMock) -> None:
        """Rights are passed as group rights."""
        result = CliRunner().invoke(cli, ["ensure-in-group", "uuid-a", "uuid-g", "--rights", "normal"])
        assert result.exit_code == 0, result.output
        assert goal_of(run_goal) == AccountInGroup("uuid-a", "uuid-g", GroupRights.NORMAL)
        assert goal_of(run_goal).intent.rights == GroupRights.NORMAL

    def test_ensure_in_group_any_rights(self, run_goal: AsyncMock) -> None:
        """Without --rights any membership will do."""
        result = CliRunner().invoke(cli, ["ensure-in-group", "uuid-a", "uuid-g"])
        assert result.exit_code == 0, result.output
        assert goal_of(run_goal).intent.rights is None

    def test_connect_authorization(self, run_goal: AsyncMock) -> None:
        """The type option is case insensitive."""
        result = CliRunner().invoke(
            cli, ["connect-authorization", "uuid-s", "uuid-a", "--type", "auditing"]
        )
        assert result.exit_code == 0, result.output
        assert goal_of(run_goal) == ConnectGroupAuthorization(
            "uuid-s", "uuid-a", AuthorizingGroupType.AUDITING
        )

    def test_transfer_ownership(self, run_goal: AsyncMock) -> None:
        """System, name and group are positional."""
        result = CliRunner().invoke(cli, ["transfer-ownership", "uuid-sys", "cn=ops", "uuid-g"])
        assert result.exit_code == 0, result.output
        assert goal_of(run_goal) == GroupOwnerOfGroupOnSystem("uuid-sys", "cn=ops", "uuid-g")

    def test_missing_type(self, run_goal: AsyncMock) -> None:
        """Authorization commands need a type."""
        result = CliRunner().invoke(cli, ["disconnect-authorization", "uuid-s"])
        assert result.exit_code == 2
        run_goal.assert_not_awaited()


class TestExitCodes:
    """Tests for mapping outcomes to exit codes."""

    def test_abort_exits_one(self, run_goal: AsyncMock) -> None:
        """Declining or aborting is a failure."""
        run_goal.side_effect = PlanAbortedError("Aborting automation")
        result = CliRunner().invoke(cli, ["ensure-not-in-group", "uuid-a", "uuid-g"])
        assert result.exit_code == 1

    def test_fatal_error_exits_one(self, run_goal: AsyncMock) -> None:
        """Fatal errors are reported."""
        run_goal.side_effect = AuthenticationError("login expired")
        result = CliRunner().invoke(cli, ["ensure-in-ou", "uuid-a", "uuid-ou"])
        assert result.exit_code == 1

    def test_interrupt_exits_130(self, run_goal: AsyncMock) -> None:
        """Ctrl-C is reported with the conventional code."""
        run_goal.side_effect = KeyboardInterrupt()
        result = CliRunner().invoke(cli, ["ensure-in-ou", "uuid-a", "uuid-ou"])
        assert result.exit_code == 130

    def test_skipped_steps_exit_one(self, run_goal: AsyncMock) -> None:
        """A run with skipped steps did not reach the goal."""
        run_goal.return_value = ExecutionReport(skipped=[MagicMock()])
        result = CliRunner().invoke(cli, ["ensure-in-ou", "uuid-a", "uuid-ou"])
        assert result.exit_code == 1


class TestSetSecret:
    """Tests for storing the client secret."""

    def test_stores_in_keyring(self) -> None:
        """The secret goes to the keyring."""
        with patch("keyplan.secrets.store.SecretStore") as store_cls:
            store_cls.return_value.is_secure = True
            result = CliRunner().invoke(cli, ["set-secret"], input="s3cret\ns3cret\n")
        assert result.exit_code == 0, result.output
        store_cls.return_value.set.assert_called_once_with("client_secret", "s3cret")

    def test_refuses_without_keyring(self) -> None:
        """Secrets are not kept in memory only."""
        with patch("keyplan.secrets.store.SecretStore") as store_cls:
            store_cls.return_value.is_secure = False
            result = CliRunner().invoke(cli, ["set-secret", "--secret", "s3cret"])
        assert result.exit_code == 1
        store_cls.return_value.set.assert_not_called()
