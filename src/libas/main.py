from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from libas.application.container import AppContainer, build_container
from libas.config import get_app_paths
from libas.domain.errors import AppError
from libas.logging_config import setup_logging

log = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="libas", description="Libas Inventory data store tools.")
    ap.add_argument("--db", default=None, help="Dataset database path (default: per-user app data dir)")
    ap.add_argument("--password", default=None, help="Log in with this password before running the command")
    ap.add_argument("--user", default=None, help="Username to match together with --password")

    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("stats", help="Print dataset statistics as JSON")

    for name, help_text in (("export-csv", "Write stock entries as CSV"), ("export-json", "Write stock entries as JSON")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--out", default=".", help="Output directory (default: current directory)")
        p.add_argument("--start", default=None, help="First date to include, YYYY-MM-DD")
        p.add_argument("--end", default=None, help="Last date to include, YYYY-MM-DD")

    p = sub.add_parser("export-excel", help="Write the stock report workbook")
    p.add_argument("--out", default="libas_stock_report.xlsx", help="Workbook path")

    p = sub.add_parser("backup", help="Write a JSON backup of the dataset")
    p.add_argument("--out", default=None, help="Backup directory (default: app backups dir)")

    p = sub.add_parser("restore", help="Replace the dataset with a JSON backup (admin only)")
    p.add_argument("file", nargs="?", default=None, help="Backup file (default: latest backup)")

    p = sub.add_parser("clear", help="Delete ALL data (admin only)")
    p.add_argument("--yes", action="store_true", help="Skip the interactive confirmation")

    sub.add_parser("health", help="Print a storage health report as JSON")
    return ap


def _confirm_prompt(message: str) -> bool:
    answer = input(f"{message} [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def _date_range(args: argparse.Namespace):
    if args.start is None and args.end is None:
        return None
    return (args.start, args.end)


def run(container: AppContainer, args: argparse.Namespace) -> int:
    if args.password:
        container.auth.login(args.password, username=args.user)
    actor = container.auth.current_user()

    if args.command == "stats":
        print(json.dumps(container.records.get_stats().to_dict(), indent=2))
    elif args.command == "export-csv":
        container.auth.require_action(actor, "export_report")
        print(container.exports.write_csv(args.out, _date_range(args)))
    elif args.command == "export-json":
        container.auth.require_action(actor, "export_report")
        print(container.exports.write_json(args.out, _date_range(args)))
    elif args.command == "export-excel":
        container.auth.require_action(actor, "export_report")
        print(container.reporting.export_stock_report_excel(args.out))
    elif args.command == "backup":
        container.auth.require_action(actor, "backup_data")
        if args.out:
            container.backup.backup_dir = Path(args.out)
        print(container.backup.create_backup())
    elif args.command == "restore":
        container.auth.require_action(actor, "restore_backup")
        if args.file:
            container.backup.restore_backup(Path(args.file))
        else:
            container.backup.restore_latest_backup()
        print("Backup restored.")
    elif args.command == "clear":
        confirm = (lambda _msg: True) if args.yes else _confirm_prompt
        if not container.records.clear_all_data(confirm, actor=actor):
            print("Nothing cleared.")
            return 1
        print("All data cleared.")
    elif args.command == "health":
        print(json.dumps(container.operations.run_health_check().__dict__, indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    db_path = Path(args.db) if args.db else paths.db_path
    container = build_container(db_path, backup_dir=paths.backups_dir, logs_dir=paths.logs_dir)
    try:
        code = run(container, args)
    except (AppError, FileNotFoundError) as exc:
        log.error("command_failed command=%s error=%s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        code = 2
    finally:
        container.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
