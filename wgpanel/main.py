from __future__ import annotations

import argparse
import sys
from pathlib import Path

from wgpanel.domain.models import Environment
from wgpanel.services.action_log import ActionLogService, format_entry
from wgpanel.services.backend import WireGuardBackend
from wgpanel.services.config_merger import ConfigMergeError
from wgpanel.services.config_viewer import ConfigViewError
from wgpanel.services.session_controller import SessionControlError
from wgpanel.services.settings import AppSettings, SettingsService
from wgpanel.services.setup_service import SetupError
from wgpanel.services.template_catalog import TemplateCatalogError
from wgpanel.ui.app_state import describe_session


def _resolve_settings(args: argparse.Namespace) -> AppSettings:
    return SettingsService().resolve(
        cli={
            "config_dir": Path(args.config_dir).expanduser() if args.config_dir else None,
            "command_timeout_seconds": args.timeout,
            "use_sudo": True if args.sudo else None,
        }
    )


def _backend(args: argparse.Namespace) -> WireGuardBackend:
    return WireGuardBackend.from_settings(_resolve_settings(args), action_log=ActionLogService())


def _environment(raw: str) -> Environment:
    try:
        return Environment.from_text(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def cmd_tui(args: argparse.Namespace) -> int:
    from wgpanel.services.task_scheduler import TaskScheduler
    from wgpanel.ui.panel_app import WgPanelApp

    settings = _resolve_settings(args)
    log = ActionLogService()
    backend = WireGuardBackend.from_settings(settings, action_log=log)
    app = WgPanelApp(
        TaskScheduler(backend, action_log=log),
        poll_interval_ms=settings.poll_interval_ms,
        setup_status=backend.setup.check_status(),
    )
    app.run()
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    session = _backend(args).probe()
    print("\n".join(describe_session(session)))
    return 0


def cmd_up(args: argparse.Namespace) -> int:
    backend = _backend(args)
    env: Environment = args.environment
    current = backend.probe()
    verb = "Switching to" if current.connected else "Starting"
    print(f"{verb} {env.label} VPN...")
    try:
        backend.start(env)
    except SessionControlError as exc:
        print(f"Failed to start {env.label} VPN: {exc}", file=sys.stderr)
        if exc.output:
            print(exc.output, file=sys.stderr)
        return 1
    print(f"{env.label} VPN started successfully!")
    return 0


def cmd_down(args: argparse.Namespace) -> int:
    try:
        _backend(args).stop()
    except SessionControlError as exc:
        print(f"Failed to stop VPN: {exc}", file=sys.stderr)
        if exc.output:
            print(exc.output, file=sys.stderr)
        return 1
    print("VPN stopped successfully!")
    return 0


def cmd_update_config(args: argparse.Namespace) -> int:
    try:
        env = _backend(args).merge_config(args.file)
    except ConfigMergeError as exc:
        print(f"Configuration update failed: {exc}", file=sys.stderr)
        return 1
    print(f"Configuration updated successfully! ({env.label})")
    return 0


def cmd_setup(args: argparse.Namespace) -> int:
    backend = _backend(args)
    try:
        merged = backend.setup.run_setup(args.prod, args.nonprod)
    except SetupError as exc:
        print(f"Setup failed: {exc}", file=sys.stderr)
        return 1
    print(f"Templates installed in {backend.setup.store.config_dir}")
    for env in merged:
        print(f"{env.label} configuration installed.")
    status = backend.setup.check_status()
    if status.needs_setup:
        print("Still missing: " + ", ".join(status.missing_files))
    return 0


def cmd_show_config(args: argparse.Namespace) -> int:
    env: Environment = args.environment
    try:
        content = _backend(args).read_config(env)
    except ConfigViewError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"=== {env.label} Configuration ===")
    print(content)
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    log = ActionLogService()
    entries = log.recent(args.limit, action=args.action)
    if not entries:
        print(f"No recorded actions in {log.log_path}")
        return 0
    for entry in entries:
        print(format_entry(entry))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wgpanel",
        description="Switch between the production and non-production WireGuard sessions.",
    )
    parser.add_argument(
        "--config-dir",
        default=None,
        help="WireGuard config directory (default: /etc/wireguard).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each wg/wg-quick call.",
    )
    parser.add_argument(
        "--sudo",
        action="store_true",
        help="Prefix wg/wg-quick calls with sudo.",
    )
    parser.set_defaults(func=cmd_tui)
    subparsers = parser.add_subparsers(dest="command")

    status_parser = subparsers.add_parser("status", help="Show the active session.")
    status_parser.set_defaults(func=cmd_status)

    up_parser = subparsers.add_parser("up", help="Bring up one environment, replacing the other.")
    up_parser.add_argument("environment", type=_environment, help="prod or nonprod.")
    up_parser.set_defaults(func=cmd_up)

    down_parser = subparsers.add_parser("down", help="Bring down the active session.")
    down_parser.set_defaults(func=cmd_down)

    update_parser = subparsers.add_parser(
        "update-config",
        help="Merge an operator-supplied .conf into the matching template.",
    )
    update_parser.add_argument("file", help="Path to the user .conf file.")
    update_parser.set_defaults(func=cmd_update_config)

    setup_parser = subparsers.add_parser(
        "setup",
        help="Install templates and merge the initial user configs.",
    )
    setup_parser.add_argument("--prod", default=None, help="Production user .conf file.")
    setup_parser.add_argument("--nonprod", default=None, help="Non-production user .conf file.")
    setup_parser.set_defaults(func=cmd_setup)

    show_parser = subparsers.add_parser(
        "show-config",
        help="Print a merged config with key material hidden.",
    )
    show_parser.add_argument("environment", type=_environment, help="prod or nonprod.")
    show_parser.set_defaults(func=cmd_show_config)

    history_parser = subparsers.add_parser("history", help="Print recent tunnel actions from the action log.")
    history_parser.add_argument("--limit", type=int, default=20, help="Number of entries to show (default: 20).")
    history_parser.add_argument("--action", default=None, help="Only show one action, e.g. start or merge.")
    history_parser.set_defaults(func=cmd_history)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except TemplateCatalogError as exc:
        print(f"Template catalog error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
