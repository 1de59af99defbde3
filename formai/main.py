"""Command-line entry point.

USAGE:
  formai analyze 42
  formai delete-analysis 42
  formai test-connection
  formai set-api-key sk-ant-...
  formai logs list --page 2
  formai logs show 17
  formai options set enabled true
  formai form-settings 3 --enable --fields 1,4
  formai show-analysis 42
"""

import argparse
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from formai.analysis.analyzer import EntryAnalyzer
from formai.analysis.api_client import AnalysisApiClient
from formai.analysis.hooks import AnalysisHooks
from formai.analysis.rate_limiter import RateLimiter
from formai.config.options import AnalysisOptions
from formai.config.settings import Settings
from formai.database.connection import close_pool, init_pool
from formai.database.repositories.audit_log_repository import AuditLogRepository
from formai.database.repositories.entry_meta_repository import EntryMetaRepository
from formai.database.repositories.entry_repository import EntryRepository
from formai.database.repositories.options_repository import OptionsRepository
from formai.logging.logger import Log
from formai.maintenance import remove_all_data
from formai.security.vault import Vault


@dataclass
class Services:
    """Process-wide collaborators, built once and shared by reference."""

    options: AnalysisOptions
    vault: Vault
    audit_logs: AuditLogRepository
    annotations: EntryMetaRepository
    api_client: AnalysisApiClient
    analyzer: EntryAnalyzer


def build_services(settings: Settings, hooks: AnalysisHooks | None = None) -> Services:
    """Wire repositories, vault, rate limiter, API client and analyzer."""
    options = AnalysisOptions(OptionsRepository())
    vault = Vault(settings, options.store)
    audit_logs = AuditLogRepository()
    annotations = EntryMetaRepository()
    api_client = AnalysisApiClient(
        settings=settings,
        options=options,
        vault=vault,
        rate_limiter=RateLimiter(),
        audit_logs=audit_logs,
    )
    analyzer = EntryAnalyzer(
        options=options,
        api_client=api_client,
        annotations=annotations,
        hooks=hooks,
        entries=EntryRepository(),
    )
    return Services(options, vault, audit_logs, annotations, api_client, analyzer)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="formai",
        description="AI analysis of form submissions",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze (or re-analyze) one entry")
    analyze.add_argument("entry_id", type=int)

    show = sub.add_parser("show-analysis", help="Print the stored analysis of one entry")
    show.add_argument("entry_id", type=int)

    delete = sub.add_parser("delete-analysis", help="Remove stored analysis from an entry")
    delete.add_argument("entry_id", type=int)

    sub.add_parser("test-connection", help="Send a test request to the API")

    set_key = sub.add_parser("set-api-key", help="Encrypt and store the API key")
    set_key.add_argument("api_key")

    sub.add_parser("delete-api-key", help="Remove the stored API key")

    options = sub.add_parser("options", help="Show or change global options")
    options_sub = options.add_subparsers(dest="options_command", required=True)
    options_sub.add_parser("show")
    options_set = options_sub.add_parser("set")
    options_set.add_argument("key", choices=list(AnalysisOptions.DEFAULTS))
    options_set.add_argument("value")

    form = sub.add_parser(
        "form-settings",
        help="Replace the per-form overrides; omitted flags fall back to global settings",
    )
    form.add_argument("form_id", type=int)
    state = form.add_mutually_exclusive_group()
    state.add_argument("--enable", dest="enabled", action="store_const", const=True)
    state.add_argument("--disable", dest="enabled", action="store_const", const=False)
    state.add_argument("--inherit", dest="enabled", action="store_const", const=None)
    form.add_argument("--fields", type=_field_ids, default=[], help="Comma-separated field ids")
    form.add_argument("--prompt", default="")

    sub.add_parser("install-defaults", help="Write default options that are missing")
    sub.add_parser("uninstall", help="Remove all stored data if delete_on_uninstall is set")

    logs = sub.add_parser("logs", help="Inspect the API audit log")
    logs_sub = logs.add_subparsers(dest="logs_command", required=True)
    logs_list = logs_sub.add_parser("list")
    logs_list.add_argument("--page", type=int, default=1)
    logs_list.add_argument("--per-page", type=int, default=20)
    logs_show = logs_sub.add_parser("show")
    logs_show.add_argument("log_id", type=int)
    logs_sub.add_parser("clear")

    return parser


def run_command(args: argparse.Namespace, services: Services) -> int:
    """Execute a parsed command. Returns the process exit code."""
    if args.command == "analyze":
        outcome = services.analyzer.analyze_entry_by_id(args.entry_id)
        if not outcome.ok:
            print(f"Analysis failed: {outcome.error}", file=sys.stderr)
            return 1
        print(outcome.text)
        return 0

    if args.command == "show-analysis":
        record = services.analyzer.get_analysis(args.entry_id)
        if record.analysis_text:
            print(f"Analyzed: {record.analysis_date or 'unknown'}")
            print(record.analysis_text)
        else:
            print("No AI analysis available.")
            if not services.vault.has_credential():
                print("No API key configured.")
        if record.error_text:
            print(f"Last error ({record.error_date or 'unknown'}): {record.error_text}")
        return 0

    if args.command == "delete-analysis":
        services.analyzer.delete_analysis(args.entry_id)
        print(f"Analysis deleted for entry {args.entry_id}")
        return 0

    if args.command == "test-connection":
        result = services.api_client.test_connection()
        if not result.ok:
            print(f"Connection failed: {result.error}", file=sys.stderr)
            return 1
        print("API connection successful!")
        return 0

    if args.command == "set-api-key":
        if not services.vault.save_credential(args.api_key.strip()):
            print("Failed to update API key.", file=sys.stderr)
            return 1
        print("API key updated successfully.")
        return 0

    if args.command == "delete-api-key":
        services.vault.delete_credential()
        print("API key removed.")
        return 0

    if args.command == "options":
        return _run_options_command(args, services)

    if args.command == "form-settings":
        services.options.save_form_settings(
            args.form_id,
            enabled=args.enabled,
            field_ids=args.fields,
            prompt=args.prompt,
        )
        print(f"Settings saved for form {args.form_id}")
        return 0

    if args.command == "install-defaults":
        written = services.options.install_defaults()
        print(f"Installed {len(written)} default option(s)")
        return 0

    if args.command == "uninstall":
        removed = remove_all_data(services.options, services.annotations, services.audit_logs)
        print("All data removed." if removed else "Data kept (delete_on_uninstall is off).")
        return 0

    if args.command == "logs":
        return _run_logs_command(args, services.audit_logs)

    return 2


def _field_ids(raw: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid field id list: {raw!r}") from exc


def _run_options_command(args: argparse.Namespace, services: Services) -> int:
    if args.options_command == "show":
        for key, value in services.options.values().items():
            print(f"{key} = {value}")
        if services.vault.has_credential():
            print("API key is configured")
        else:
            print("No API key configured")
        return 0

    try:
        value = services.options.set_value(args.key, args.value)
    except ValueError as exc:
        print(f"Invalid value: {exc}", file=sys.stderr)
        return 1
    print(f"{args.key} = {value}")
    return 0


def _run_logs_command(args: argparse.Namespace, audit_logs: AuditLogRepository) -> int:
    if args.logs_command == "list":
        page = audit_logs.find_page(args.page, args.per_page)
        print(f"Page {page.page}/{page.total_pages} ({page.total} rows)")
        for record in page.records:
            print(
                f"#{record.id} {record.created_at:%Y-%m-%d %H:%M:%S} "
                f"form={record.form_id} entry={record.entry_id} {record.status} "
                f"{record.error_message or ''}".rstrip()
            )
        return 0

    if args.logs_command == "show":
        record = audit_logs.find_by_id(args.log_id)
        if record is None:
            print("Log entry not found", file=sys.stderr)
            return 1
        print(f"Date: {record.created_at:%Y-%m-%d %H:%M:%S}")
        print(f"Form ID: {record.form_id}")
        print(f"Entry ID: {record.entry_id}")
        print(f"Status: {record.status.capitalize()}")
        if record.error_message:
            print(f"Error: {record.error_message}")
        print(f"Request:\n{record.request}")
        if record.response:
            print(f"Response:\n{record.response}")
        return 0

    audit_logs.truncate()
    print("Logs cleared successfully.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse args -> initialize pool -> build services -> run."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        services = build_services(settings)
        try:
            return run_command(args, services)
        finally:
            services.api_client.close()
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
