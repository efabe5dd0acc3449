"""CLI command tests."""

from goldbook.services.rate_service import resolve_rate
from goldbook.time_utils import today


class TestRatesCommands:
    def test_set_and_show(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["rates", "set", "gold", "6000.50", "--staff-id", "3"])
        assert result.exit_code == 0, result.output
        assert "6000.50" in result.output
        assert resolve_rate("gold", today()).rate_paise == 600_050

        result = runner.invoke(args=["rates", "show"])
        assert result.exit_code == 0
        assert "TODAY" in result.output
        assert "UNRESOLVED" in result.output

    def test_set_rejects_zero(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["rates", "set", "gold", "0"])
        assert result.exit_code != 0

    def test_set_rejects_unknown_metal(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["rates", "set", "platinum", "100"])
        assert result.exit_code != 0
