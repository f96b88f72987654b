"""Command-line entry point for mcpswitch."""

from __future__ import annotations

import argparse
import json
import sys
import time
from collections import deque
from pathlib import Path
from textwrap import dedent
from typing import Any, Callable, Dict, List, Sequence

import yaml

from mcpswitch import __version__
from mcpswitch.app.config_service import CheckReport, ConfigService, Diagnostic, diagnose
from mcpswitch.domain.config import (
    ConfigError,
    Configuration,
    ParseError,
    Repaired,
    ServerState,
    recommended_names,
    sorted_names,
)
from mcpswitch.domain.config.repair import DEFAULT_WINDOW_RADIUS
from mcpswitch.ports.snapshot_store import LATEST_ID, PRE_RESTORE_ID
from mcpswitch.settings import RuntimeSettings, load_settings
from mcpswitch.utils.telemetry import clear as telemetry_clear
from mcpswitch.utils.telemetry import iter_events as telemetry_iter
from mcpswitch.utils.telemetry import record_structured_event, summarize as telemetry_summarize

Handler = Callable[[argparse.Namespace, RuntimeSettings], int]

HELP_OVERVIEW = dedent(
    """
    Everyday use:
      - mcpswitch status                 - list enabled and disabled servers
      - mcpswitch toggle NAME            - flip one server between the buckets
      - mcpswitch select 1,3 | all | r   - enable exactly the chosen servers

    Safety net:
      - every write refreshes the 'latest' backup first
      - mcpswitch backup restore latest  - undo the last write
      - mcpswitch check --repair         - fix trailing commas, bare keys, single quotes
    """
)


def _build_service(settings: RuntimeSettings) -> ConfigService:
    return ConfigService.from_settings(settings)


def _emit_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _print_diagnostic(diagnostic: Diagnostic) -> None:
    print(f"  {diagnostic.message}", file=sys.stderr)
    if diagnostic.lineno is not None:
        print(f"  at line {diagnostic.lineno}, column {diagnostic.colno} (offset {diagnostic.offset})", file=sys.stderr)
    if diagnostic.window:
        caret = min(diagnostic.offset or 0, DEFAULT_WINDOW_RADIUS)
        snippet = diagnostic.window.replace("\n", " ")
        print(f"  | {snippet}", file=sys.stderr)
        print(f"  | {' ' * caret}^", file=sys.stderr)


def _instrumented(
    settings: RuntimeSettings,
    component: str,
    command: str,
    body: Callable[[], int],
    *,
    context: Dict[str, Any] | None = None,
) -> int:
    """Run ``body`` between start/success/error telemetry events."""

    event = f"{component}.{command}"
    event_context = dict(context or {})
    record_structured_event(settings, event, status="start", component=component, payload=event_context)
    start = time.perf_counter()
    try:
        exit_code = body()
    except ParseError as exc:
        duration = (time.perf_counter() - start) * 1000
        record_structured_event(
            settings,
            event,
            status="error",
            level="error",
            component=component,
            duration_ms=duration,
            payload=event_context | {"error": str(exc), "offset": exc.offset},
        )
        print(f"{component} {command} failed: {exc.source or 'config'} is not valid JSON", file=sys.stderr)
        _print_parse_failure(settings, exc)
        return 1
    except (ConfigError, ValueError) as exc:
        duration = (time.perf_counter() - start) * 1000
        record_structured_event(
            settings,
            event,
            status="error",
            level="error",
            component=component,
            duration_ms=duration,
            payload=event_context | {"error": str(exc)},
        )
        print(f"{component} {command} failed: {exc}", file=sys.stderr)
        return 1

    duration = (time.perf_counter() - start) * 1000
    record_structured_event(
        settings,
        event,
        status="success",
        component=component,
        duration_ms=duration,
        payload=event_context | {"exit_code": exit_code},
    )
    return exit_code


def _print_parse_failure(settings: RuntimeSettings, error: ParseError) -> None:
    text = error.text
    if text is None and error.source is None:
        try:
            text = settings.config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            text = ""
    _print_diagnostic(diagnose(text or "", error))
    if error.source is None:
        print("Try `mcpswitch check --repair` or `mcpswitch backup restore latest`.", file=sys.stderr)
    else:
        print(f"Fix or re-save {error.source}; the live config was not changed.", file=sys.stderr)


def _print_buckets(config: Configuration) -> None:
    index = 1
    print("ENABLED SERVERS:")
    enabled = config.enabled
    if not enabled:
        print("  (none)")
    for name in enabled:
        print(f"  {index}. [ENABLED] {name}")
        index += 1
    print("DISABLED SERVERS:")
    disabled = config.disabled
    if not disabled:
        print("  (none)")
    for name in disabled:
        print(f"  {index}. [DISABLED] {name}")
        index += 1


def _status_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    service = _build_service(settings)

    def body() -> int:
        config = service.load()
        if args.json:
            _emit_json(
                {
                    "config_path": str(service.config_path),
                    "enabled": list(config.enabled),
                    "disabled": list(config.disabled),
                }
            )
        else:
            print(f"config: {service.config_path}")
            _print_buckets(config)
        return 0

    return _instrumented(settings, "config", "status", body)


def _toggle_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    service = _build_service(settings)

    def body() -> int:
        outcome = service.toggle(args.name)
        if args.json:
            _emit_json({"status": "ok", "name": outcome.name, "state": outcome.state.value})
        else:
            verb = "Enabled" if outcome.state is ServerState.ENABLED else "Disabled"
            print(f"{verb}: {outcome.name}")
        return 0

    return _instrumented(settings, "config", "toggle", body, context={"name": args.name})


def _enable_all_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    service = _build_service(settings)

    def body() -> int:
        config = service.enable_all()
        print(f"All MCPs enabled ({len(config.enabled)} total)")
        return 0

    return _instrumented(settings, "config", "enable-all", body)


def resolve_selection(tokens: Sequence[str], names: Sequence[str], recommended: Sequence[str]) -> List[str]:
    """Turn ``all``, ``r``, 1-based indices and literal names into server names.

    Indices refer to ``names`` (the alphabetical list shown to the user). Digits
    outside that range are kept as literal names so they surface as ignored.
    """

    if len(tokens) == 1:
        keyword = tokens[0].strip().lower()
        if keyword == "all":
            return list(names)
        if keyword == "r":
            return list(recommended)
    selected: List[str] = []
    for token in tokens:
        for part in token.split(","):
            part = part.strip()
            if not part:
                continue
            if part.isdigit() and 0 < int(part) <= len(names):
                selected.append(names[int(part) - 1])
            else:
                selected.append(part)
    return selected


def _select_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    service = _build_service(settings)

    def body() -> int:
        current = service.load()
        names = sorted_names(current)
        recommended = recommended_names(current, settings.recommended)
        selected = resolve_selection(args.tokens, names, recommended)
        result = service.select(selected)
        config = result.config
        for name in result.ignored:
            print(f"warning: unknown MCP server '{name}' ignored", file=sys.stderr)
        if args.json:
            _emit_json(
                {
                    "enabled": list(config.enabled),
                    "disabled": list(config.disabled),
                    "ignored": list(result.ignored),
                }
            )
        else:
            print(f"Enabled {len(config.enabled)} MCPs, disabled {len(config.disabled)} MCPs")
        return 0

    return _instrumented(settings, "config", "select", body, context={"tokens": list(args.tokens)})


def _preset_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    service = _build_service(settings)
    command = args.preset_command

    def body() -> int:
        if command == "save":
            service.save_preset(args.name)
            print(f"Preset saved: {args.name.strip()}")
            return 0
        if command == "load":
            result = service.load_preset(args.name, smart=args.smart)
            config = result.config
            if args.smart:
                print(
                    f"Smart-loaded preset with {len(config.enabled)} enabled "
                    f"and {len(config.disabled)} disabled MCPs"
                )
                if result.discovered:
                    print("New MCPs found (not in preset) - disabled by default:")
                    for name in result.discovered:
                        print(f"  - {name}")
            else:
                print(f"Loaded preset: {args.name.strip()}")
            return 0
        if command == "list":
            presets = service.list_presets()
            if args.json:
                _emit_json({"presets": presets})
            elif not presets:
                print("No presets found")
            else:
                for index, name in enumerate(presets, start=1):
                    print(f"  {index}. {name}")
            return 0
        if command == "delete":
            service.delete_preset(args.name)
            print(f"Preset deleted: {args.name.strip()}")
            return 0
        print("Unsupported preset command", file=sys.stderr)
        return 2

    return _instrumented(settings, "preset", command, body, context={"name": getattr(args, "name", None)})


def _backup_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    service = _build_service(settings)
    command = args.backup_command

    def body() -> int:
        if command == "create":
            backup_id = service.create_backup()
            print(f"Backup created: {backup_id}")
            return 0
        if command == "list":
            backups = service.list_backups()
            if args.json:
                _emit_json({"backups": backups})
            elif not backups:
                print("No backups found")
            else:
                print(f"  0. {LATEST_ID} (automatic)")
                for index, backup_id in enumerate(backups, start=1):
                    print(f"  {index}. {backup_id}")
            return 0
        if command == "restore":
            backup_id = _resolve_backup_id(args.backup_id, service.list_backups())
            service.restore_backup(backup_id)
            print(f"Current config backed up to: {PRE_RESTORE_ID}")
            print(f"Restored from: {backup_id}")
            return 0
        if command == "delete":
            backup_id = _resolve_backup_id(args.backup_id, service.list_backups())
            service.delete_backup(backup_id)
            print(f"Backup deleted: {backup_id}")
            return 0
        if command == "purge":
            if not args.yes:
                print("Refusing to delete all backups without --yes", file=sys.stderr)
                return 1
            removed = service.purge_backups()
            print(f"Deleted {removed} backups")
            return 0
        print("Unsupported backup command", file=sys.stderr)
        return 2

    return _instrumented(settings, "backup", command, body, context={"id": getattr(args, "backup_id", None)})


def _resolve_backup_id(value: str, backups: Sequence[str]) -> str:
    """Accept a list index (``0`` is the latest slot) or a literal identifier."""

    if value == "0":
        return LATEST_ID
    if value.isdigit() and 0 < int(value) <= len(backups):
        return backups[int(value) - 1]
    return value


def _print_check_report(report: CheckReport) -> None:
    if not report.valid_json:
        print("JSON syntax error", file=sys.stderr)
        if report.diagnostic is not None:
            _print_diagnostic(report.diagnostic)
        return
    print("JSON syntax is valid")
    if report.issues:
        print("Structure issues found:")
        for issue in report.issues:
            print(f"  - {issue.message}")
    else:
        print("Config structure is valid")


def _check_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    service = _build_service(settings)

    def body() -> int:
        report = service.check()
        payload: Dict[str, Any] = {"report": report.to_dict()}
        if not args.json:
            _print_check_report(report)
        exit_code = 0 if report.ok else 1
        if not report.valid_json and args.repair:
            result = service.repair()
            if isinstance(result, Repaired):
                payload["repair"] = {"status": "repaired"}
                if not args.json:
                    print("Fixed JSON syntax")
                report = service.check()
                payload["report"] = report.to_dict()
                exit_code = 0 if report.ok else 1
            else:
                payload["repair"] = {
                    "status": "unrepairable",
                    "error": result.error,
                    "offset": result.offset,
                    "window": result.window,
                }
                if not args.json:
                    print("Could not fix automatically", file=sys.stderr)
                    _print_diagnostic(
                        Diagnostic(
                            message=result.error,
                            offset=result.offset,
                            lineno=result.lineno,
                            colno=result.colno,
                            window=result.window,
                        )
                    )
        if report.valid_json and report.issues and args.fix:
            service.fix_structure()
            payload["fixed"] = True
            if not args.json:
                print("Config fixed")
            exit_code = 0
        if args.json:
            _emit_json(payload)
        return exit_code

    return _instrumented(settings, "config", "check", body)


def _telemetry_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    command = args.telemetry_command
    if command == "report":
        events = list(telemetry_iter(settings))
        if args.recent > 0:
            events = events[-args.recent :]
        _emit_json(telemetry_summarize(events))
        return 0
    if command == "tail":
        for event in deque(telemetry_iter(settings), maxlen=max(args.limit, 0)):
            print(json.dumps(event, ensure_ascii=False))
        return 0
    if command == "clear":
        removed = telemetry_clear(settings)
        print("telemetry log cleared" if removed else "telemetry log already empty")
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def _help_cmd(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    print(HELP_OVERVIEW.strip())
    print()
    print(f"config:  {settings.config_path}")
    print(f"backups: {settings.backup_dir}")
    print(f"presets: {settings.preset_dir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mcpswitch", description="Toggle and snapshot MCP servers in a desktop config")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, help="Path to the JSON config file")
    parser.add_argument("--backup-dir", type=Path, help="Directory holding backups")
    parser.add_argument("--preset-dir", type=Path, help="Directory holding presets")
    sub = parser.add_subparsers(dest="command", required=True)

    help_cmd = sub.add_parser("help", help="Show usage overview and resolved paths")
    help_cmd.set_defaults(func=_help_cmd)

    status_cmd = sub.add_parser("status", help="List enabled and disabled MCP servers")
    status_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    status_cmd.set_defaults(func=_status_cmd)

    toggle_cmd = sub.add_parser("toggle", help="Move one server between the enabled and disabled buckets")
    toggle_cmd.add_argument("name")
    toggle_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    toggle_cmd.set_defaults(func=_toggle_cmd)

    enable_all_cmd = sub.add_parser("enable-all", help="Enable every disabled server")
    enable_all_cmd.set_defaults(func=_enable_all_cmd)

    select_cmd = sub.add_parser("select", help="Enable exactly the selected servers, disable the rest")
    select_cmd.add_argument(
        "tokens",
        nargs="+",
        help="'all', 'r' (recommended), 1-based indices such as 1,3,5, or server names",
    )
    select_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    select_cmd.set_defaults(func=_select_cmd)

    preset_cmd = sub.add_parser("preset", help="Save and load named configurations")
    preset_sub = preset_cmd.add_subparsers(dest="preset_command", required=True)

    preset_save = preset_sub.add_parser("save", help="Save the current config as a preset")
    preset_save.add_argument("name")
    preset_save.set_defaults(func=_preset_cmd)

    preset_load = preset_sub.add_parser("load", help="Apply a preset to the live config")
    preset_load.add_argument("name")
    preset_load.add_argument(
        "--smart",
        action="store_true",
        help="Only reposition existing servers; servers unknown to the preset are disabled",
    )
    preset_load.set_defaults(func=_preset_cmd)

    preset_list = preset_sub.add_parser("list", help="List saved presets")
    preset_list.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    preset_list.set_defaults(func=_preset_cmd)

    preset_delete = preset_sub.add_parser("delete", help="Delete a preset")
    preset_delete.add_argument("name")
    preset_delete.set_defaults(func=_preset_cmd)

    backup_cmd = sub.add_parser("backup", help="Create, restore and prune backups")
    backup_sub = backup_cmd.add_subparsers(dest="backup_command", required=True)

    backup_create = backup_sub.add_parser("create", help="Create a timestamped backup")
    backup_create.set_defaults(func=_backup_cmd)

    backup_list = backup_sub.add_parser("list", help="List timestamped backups, newest first")
    backup_list.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    backup_list.set_defaults(func=_backup_cmd)

    backup_restore = backup_sub.add_parser("restore", help="Restore a backup over the live config")
    backup_restore.add_argument("backup_id", help="Backup id, list index, 'latest' or 'pre-restore'")
    backup_restore.set_defaults(func=_backup_cmd)

    backup_delete = backup_sub.add_parser("delete", help="Delete one timestamped backup")
    backup_delete.add_argument("backup_id", help="Backup id or list index")
    backup_delete.set_defaults(func=_backup_cmd)

    backup_purge = backup_sub.add_parser("purge", help="Delete every timestamped backup")
    backup_purge.add_argument("--yes", action="store_true", help="Confirm deletion")
    backup_purge.set_defaults(func=_backup_cmd)

    check_cmd = sub.add_parser("check", help="Validate the config file")
    check_cmd.add_argument("--fix", action="store_true", help="Create missing or mistyped buckets")
    check_cmd.add_argument("--repair", action="store_true", help="Attempt to repair JSON syntax errors")
    check_cmd.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    check_cmd.set_defaults(func=_check_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local telemetry logs")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)

    telemetry_report = telemetry_sub.add_parser("report", help="Print aggregated telemetry stats")
    telemetry_report.add_argument(
        "--recent",
        type=int,
        default=0,
        help="Limit aggregation to the last N telemetry events",
    )
    telemetry_report.set_defaults(func=_telemetry_cmd)

    telemetry_clear_cmd = telemetry_sub.add_parser("clear", help="Remove telemetry log file")
    telemetry_clear_cmd.set_defaults(func=_telemetry_cmd)

    telemetry_tail = telemetry_sub.add_parser("tail", help="Print last N telemetry events")
    telemetry_tail.add_argument("--limit", type=int, default=20)
    telemetry_tail.set_defaults(func=_telemetry_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    try:
        settings = load_settings()
    except (ValueError, yaml.YAMLError) as exc:
        message = " ".join(str(exc).split())
        print(f"mcpswitch: invalid settings: {message}", file=sys.stderr)
        return 1
    settings = settings.override(
        config_path=args.config,
        backup_dir=args.backup_dir,
        preset_dir=args.preset_dir,
    )
    handler: Handler = args.func
    return handler(args, settings)


if __name__ == "__main__":
    sys.exit(main())
