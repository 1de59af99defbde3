from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from formai.analysis.models import AnalysisOutcome, AnalysisRecord, ApiResult
from formai.config.options import AnalysisOptions
from formai.config.settings import Settings
from formai.database.models import AuditLogPage, AuditLogRecord
from formai.main import build_parser, main, run_command
from formai.security.vault import Vault
from tests.fakes import InMemoryOptionStore


def _services() -> MagicMock:
    services = MagicMock()
    services.options.delete_on_uninstall = False
    return services


def _run(argv: list[str], services: MagicMock) -> int:
    return run_command(build_parser().parse_args(argv), services)


def _record(log_id: int = 7, **overrides: object) -> AuditLogRecord:
    values: dict = {
        "id": log_id,
        "form_id": 1,
        "entry_id": 42,
        "status": "error",
        "request": '{"model": "claude"}',
        "response": "",
        "error_message": "HTTP 500",
        "created_at": datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return AuditLogRecord(**values)


class TestParser:
    def test_requires_a_command(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_entry_id_must_be_int(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["analyze", "abc"])

    def test_logs_list_defaults(self) -> None:
        args = build_parser().parse_args(["logs", "list"])
        assert (args.page, args.per_page) == (1, 20)


class TestAnalyzeCommand:
    def test_success_prints_text(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.analyzer.analyze_entry_by_id.return_value = AnalysisOutcome(ok=True, text="Lead")

        assert _run(["analyze", "42"], services) == 0
        services.analyzer.analyze_entry_by_id.assert_called_once_with(42)
        assert capsys.readouterr().out.strip() == "Lead"

    def test_failure_exits_nonzero(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.analyzer.analyze_entry_by_id.return_value = AnalysisOutcome(
            ok=False, error="Invalid entry or form"
        )

        assert _run(["analyze", "42"], services) == 1
        assert "Invalid entry or form" in capsys.readouterr().err

    def test_delete_analysis(self) -> None:
        services = _services()
        assert _run(["delete-analysis", "42"], services) == 0
        services.analyzer.delete_analysis.assert_called_once_with(42)


class TestCredentialCommands:
    def test_test_connection_success(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.api_client.test_connection.return_value = ApiResult.success("ok")

        assert _run(["test-connection"], services) == 0
        assert "successful" in capsys.readouterr().out

    def test_test_connection_failure(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.api_client.test_connection.return_value = ApiResult.failure(
            "API key not configured."
        )

        assert _run(["test-connection"], services) == 1
        assert "API key not configured." in capsys.readouterr().err

    def test_set_api_key_strips_whitespace(self) -> None:
        services = _services()
        services.vault.save_credential.return_value = True

        assert _run(["set-api-key", "  sk-ant-123  "], services) == 0
        services.vault.save_credential.assert_called_once_with("sk-ant-123")

    def test_set_api_key_failure(self) -> None:
        services = _services()
        services.vault.save_credential.return_value = False

        assert _run(["set-api-key", "sk-ant-123"], services) == 1

    def test_set_api_key_with_undecodable_bytes_fails_cleanly(
        self, settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        services = _services()
        store = InMemoryOptionStore()
        services.vault = Vault(settings, store)

        assert _run(["set-api-key", "sk-\udcff"], services) == 1
        assert "encrypted_api_key" not in store.data
        assert "Failed to update API key." in capsys.readouterr().err

    def test_delete_api_key(self) -> None:
        services = _services()
        assert _run(["delete-api-key"], services) == 0
        services.vault.delete_credential.assert_called_once_with()


class TestMaintenanceCommands:
    def test_install_defaults(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.options.install_defaults.return_value = ["model", "enabled"]

        assert _run(["install-defaults"], services) == 0
        assert "Installed 2" in capsys.readouterr().out

    @patch("formai.main.remove_all_data", return_value=False)
    def test_uninstall(self, mock_remove: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()

        assert _run(["uninstall"], services) == 0
        mock_remove.assert_called_once_with(
            services.options, services.annotations, services.audit_logs
        )
        assert "Data kept" in capsys.readouterr().out


class TestLogsCommands:
    def test_list(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.audit_logs.find_page.return_value = AuditLogPage(
            records=[_record()], total=21, page=2, per_page=20
        )

        assert _run(["logs", "list", "--page", "2"], services) == 0
        services.audit_logs.find_page.assert_called_once_with(2, 20)
        out = capsys.readouterr().out
        assert "Page 2/2 (21 rows)" in out
        assert "#7 2025-06-01 12:00:00 form=1 entry=42 error HTTP 500" in out

    def test_show(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.audit_logs.find_by_id.return_value = _record(
            status="success", error_message=None, response='{"content": []}'
        )

        assert _run(["logs", "show", "7"], services) == 0
        out = capsys.readouterr().out
        assert "Status: Success" in out
        assert "Error:" not in out
        assert '{"content": []}' in out

    def test_show_missing(self) -> None:
        services = _services()
        services.audit_logs.find_by_id.return_value = None

        assert _run(["logs", "show", "99"], services) == 1

    def test_clear(self) -> None:
        services = _services()
        assert _run(["logs", "clear"], services) == 0
        services.audit_logs.truncate.assert_called_once_with()


class TestMain:
    @patch("formai.main.close_pool")
    @patch("formai.main.init_pool")
    @patch("formai.main.build_services")
    def test_wires_and_tears_down(
        self,
        mock_build: MagicMock,
        mock_init_pool: MagicMock,
        mock_close_pool: MagicMock,
    ) -> None:
        services = _services()
        mock_build.return_value = services

        assert main(["delete-api-key"]) == 0

        mock_init_pool.assert_called_once()
        services.vault.delete_credential.assert_called_once_with()
        services.api_client.close.assert_called_once_with()
        mock_close_pool.assert_called_once_with()

    @patch("formai.main.close_pool")
    @patch("formai.main.init_pool")
    @patch("formai.main.build_services")
    def test_pool_closed_on_error(
        self,
        mock_build: MagicMock,
        mock_init_pool: MagicMock,
        mock_close_pool: MagicMock,
    ) -> None:
        services = _services()
        services.analyzer.analyze_entry_by_id.side_effect = RuntimeError("boom")
        mock_build.return_value = services

        with pytest.raises(RuntimeError):
            main(["analyze", "1"])

        services.api_client.close.assert_called_once_with()
        mock_close_pool.assert_called_once_with()


class TestShowAnalysisCommand:
    def test_prints_analysis(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.analyzer.get_analysis.return_value = AnalysisRecord(
            analysis_text="Strong lead", analysis_date="2025-03-15 10:00:00"
        )

        assert _run(["show-analysis", "42"], services) == 0
        services.analyzer.get_analysis.assert_called_once_with(42)
        out = capsys.readouterr().out
        assert "Analyzed: 2025-03-15 10:00:00" in out
        assert "Strong lead" in out
        assert "Last error" not in out

    def test_reports_missing_analysis_and_key(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.analyzer.get_analysis.return_value = AnalysisRecord(
            error_text="API key not configured.", error_date="2025-03-15 10:00:00"
        )
        services.vault.has_credential.return_value = False

        assert _run(["show-analysis", "42"], services) == 0
        out = capsys.readouterr().out
        assert "No AI analysis available." in out
        assert "No API key configured." in out
        assert "Last error (2025-03-15 10:00:00): API key not configured." in out


class TestOptionsCommands:
    def test_show_lists_effective_values(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        services.options = AnalysisOptions(InMemoryOptionStore({"model": "claude-custom"}))
        services.vault.has_credential.return_value = True

        assert _run(["options", "show"], services) == 0
        out = capsys.readouterr().out
        assert "enabled = False" in out
        assert "model = claude-custom" in out
        assert "log_retention_days = 30" in out
        assert "API key is configured" in out

    def test_set_turns_analysis_on(self) -> None:
        services = _services()
        store = InMemoryOptionStore({"enabled": False})
        services.options = AnalysisOptions(store)

        assert _run(["options", "set", "enabled", "true"], services) == 0
        assert store.data["enabled"] is True

    def test_set_coerces_numbers(self) -> None:
        services = _services()
        store = InMemoryOptionStore()
        services.options = AnalysisOptions(store)

        assert _run(["options", "set", "temperature", "0.2"], services) == 0
        assert _run(["options", "set", "max_tokens", "1500"], services) == 0
        assert store.data == {"temperature": 0.2, "max_tokens": 1500}

    def test_set_rejects_out_of_range(self, capsys: pytest.CaptureFixture[str]) -> None:
        services = _services()
        store = InMemoryOptionStore()
        services.options = AnalysisOptions(store)

        assert _run(["options", "set", "max_tokens", "5000"], services) == 1
        assert store.data == {}
        assert "between 100 and 4000" in capsys.readouterr().err

    def test_set_unknown_key_is_a_usage_error(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["options", "set", "api_key", "x"])


class TestFormSettingsCommand:
    def test_saves_overrides(self) -> None:
        services = _services()
        store = InMemoryOptionStore()
        services.options = AnalysisOptions(store)

        argv = ["form-settings", "3", "--disable", "--fields", "1,4", "--prompt", " Custom "]
        assert _run(argv, services) == 0

        assert store.data == {
            "enabled_override_3": False,
            "field_mapping_3": [1, 4],
            "prompt_override_3": "Custom",
        }

    def test_without_flags_falls_back_to_global(self) -> None:
        services = _services()
        store = InMemoryOptionStore(
            {"enabled_override_3": True, "field_mapping_3": [1], "prompt_override_3": "x"}
        )
        services.options = AnalysisOptions(store)

        assert _run(["form-settings", "3"], services) == 0
        assert store.data == {}

    def test_inherit_flag(self) -> None:
        args = build_parser().parse_args(["form-settings", "3", "--inherit"])
        assert args.enabled is None

    @pytest.mark.parametrize(
        "argv",
        [
            ["form-settings", "3", "--fields", "1,x"],
            ["form-settings", "3", "--enable", "--disable"],
        ],
    )
    def test_invalid_arguments(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(argv)
