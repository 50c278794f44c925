"""Command-line entry point for backup, restore and storage tasks.

Usage:
    python -m linguacrm users add "Ana Ruiz" ana@example.com
    python -m linguacrm users use <user-id>
    python -m linguacrm export --upload
    python -m linguacrm import backups/crm-backup-2024-05-01.json
    python -m linguacrm backup set --enable --interval daily
    python -m linguacrm backup run
"""

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from pathlib import Path

from linguacrm.config import settings
from linguacrm.core.errors import NotAuthenticatedError
from linguacrm.database import (
    check_database_connection,
    close_database,
    create_tables,
    get_session_maker,
)
from linguacrm.logging_config import correlation_scope, setup_logging
from linguacrm.models.user import UserRole
from linguacrm.schemas.backup_settings import BackupInterval, BackupSettingsUpdate
from linguacrm.services.attribution import AttributionProvider
from linguacrm.services.backup_scheduler import (
    get_backup_settings,
    init_auto_backup,
    perform_auto_backup,
    set_backup_settings,
    should_backup_now,
)
from linguacrm.services.data_export import (
    download_json,
    export_all_data,
    upload_to_server,
)
from linguacrm.services.data_import import import_data, restore_from_server
from linguacrm.services.preferences import DatabasePreferenceStore
from linguacrm.services.record_store import SqlRecordStore
from linguacrm.services.storage_info import format_bytes, get_storage_info


@dataclass
class AppContext:
    store: SqlRecordStore
    preferences: DatabasePreferenceStore
    attribution: AttributionProvider


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linguacrm",
        description="Backup, restore and storage tools for the CRM data.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    users = commands.add_parser("users", help="Manage the signed-in user")
    users_cmd = users.add_subparsers(dest="users_command", required=True)
    users_add = users_cmd.add_parser("add", help="Create a user")
    users_add.add_argument("username")
    users_add.add_argument("email")
    users_add.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.USER.value,
    )
    users_use = users_cmd.add_parser("use", help="Sign in as an existing user")
    users_use.add_argument("user_id")
    users_cmd.add_parser("whoami", help="Show the signed-in user")
    users_cmd.add_parser("logout", help="Sign out")

    export = commands.add_parser("export", help="Export all data to a JSON file")
    export.add_argument("--output", type=Path, help="File to write")
    export.add_argument(
        "--upload",
        action="store_true",
        help="Also POST the export to the backup server",
    )

    import_ = commands.add_parser("import", help="Import a JSON export file")
    import_.add_argument("file", type=Path)

    commands.add_parser("restore", help="Import the latest backup from the server")

    backup = commands.add_parser("backup", help="Automatic backup settings")
    backup_cmd = backup.add_subparsers(dest="backup_command", required=True)
    backup_cmd.add_parser("status", help="Show backup settings")
    backup_set = backup_cmd.add_parser("set", help="Change backup settings")
    enabled = backup_set.add_mutually_exclusive_group()
    enabled.add_argument(
        "--enable", dest="enabled", action="store_true", default=None
    )
    enabled.add_argument("--disable", dest="enabled", action="store_false")
    backup_set.add_argument("--interval", choices=[i.value for i in BackupInterval])
    backup_set.set_defaults(enabled=None)
    backup_cmd.add_parser("now", help="Run a backup immediately")
    backup_cmd.add_parser("run", help="Run the automatic backup scheduler")

    commands.add_parser("storage", help="Show storage usage")

    return parser


async def _build_context() -> AppContext:
    await create_tables()
    session_maker = get_session_maker()
    store = SqlRecordStore(session_maker)
    preferences = DatabasePreferenceStore(session_maker)
    await preferences.load()
    return AppContext(
        store=store,
        preferences=preferences,
        attribution=AttributionProvider(preferences, store),
    )


async def _users(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.users_command == "add":
        user = await ctx.store.add_user(
            args.username, args.email, UserRole(args.role)
        )
        _print_json(user.model_dump())
    elif args.users_command == "use":
        user = await ctx.attribution.sign_in(args.user_id)
        _print_json(user.model_dump())
    elif args.users_command == "whoami":
        user = await ctx.attribution.current_user_info()
        _print_json(user.model_dump())
    else:
        await ctx.attribution.sign_out()
    return 0


async def _export(ctx: AppContext, args: argparse.Namespace) -> int:
    document = await export_all_data(ctx.store, ctx.attribution)
    if args.output:
        path = download_json(
            document, filename=args.output.name, directory=args.output.parent
        )
    else:
        path = download_json(document)
    print(path)

    if args.upload:
        if not settings.backup_server_url:
            print("BACKUP_SERVER_URL is not configured", file=sys.stderr)
            return 1
        if not await upload_to_server(document, settings.backup_server_url):
            print("Upload to backup server failed", file=sys.stderr)
            return 1
    return 0


async def _import(ctx: AppContext, args: argparse.Namespace) -> int:
    result = await import_data(args.file, ctx.store)
    _print_json(result.model_dump())
    return 0 if result.success else 1


async def _restore(ctx: AppContext, args: argparse.Namespace) -> int:
    if not settings.backup_server_url:
        print("BACKUP_SERVER_URL is not configured", file=sys.stderr)
        return 1
    result = await restore_from_server(settings.backup_server_url, ctx.store)
    if result is None:
        print("No valid backup available on the server", file=sys.stderr)
        return 1
    _print_json(result.model_dump())
    return 0 if result.success else 1


async def _backup(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.backup_command == "status":
        backup_settings = get_backup_settings(ctx.preferences)
        _print_json(
            {
                **backup_settings.model_dump(mode="json", by_alias=True),
                "due": should_backup_now(ctx.preferences, ctx.attribution.clock),
            }
        )
    elif args.backup_command == "set":
        backup_settings = await set_backup_settings(
            ctx.preferences,
            BackupSettingsUpdate(enabled=args.enabled, interval=args.interval),
        )
        _print_json(backup_settings.model_dump(mode="json", by_alias=True))
    elif args.backup_command == "now":
        ok = await perform_auto_backup(ctx.store, ctx.attribution, ctx.preferences)
        return 0 if ok else 1
    else:
        auto_backup = await init_auto_backup(
            ctx.store, ctx.attribution, ctx.preferences
        )
        try:
            await asyncio.Event().wait()
        finally:
            auto_backup.stop()
    return 0


async def _storage(ctx: AppContext, args: argparse.Namespace) -> int:
    info = await get_storage_info(get_session_maker())
    connected = await check_database_connection()
    _print_json(
        {
            "database": "connected" if connected else "unreachable",
            "used": format_bytes(info.used),
            "quota": format_bytes(info.quota),
            "percentage": round(info.percentage, 1),
            "breakdown": {
                kind: format_bytes(size)
                for kind, size in info.breakdown.model_dump().items()
            },
        }
    )
    return 0


_HANDLERS = {
    "users": _users,
    "export": _export,
    "import": _import,
    "restore": _restore,
    "backup": _backup,
    "storage": _storage,
}


async def run(args: argparse.Namespace) -> int:
    with correlation_scope():
        try:
            ctx = await _build_context()
            return await _HANDLERS[args.command](ctx, args)
        except NotAuthenticatedError as e:
            print(
                f"{e}. Sign in with: linguacrm users use <user-id>", file=sys.stderr
            )
            return 1
        finally:
            await close_database()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        log_format=settings.log_format,
        log_level=settings.log_level,
        service_name=settings.service_name,
        stream=sys.stderr,
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
