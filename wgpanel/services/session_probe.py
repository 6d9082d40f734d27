from __future__ import annotations

from datetime import datetime
from typing import Callable

from wgpanel.domain.models import INTERFACE_PREFIX, TunnelSession
from wgpanel.services.action_log import ActionLogService
from wgpanel.services.wg_status import parse_interface_detail, parse_interface_names
from wgpanel.services.wireguard_cli import CommandError, WireGuardCLI


class SessionProbe:
    """Reads the live tunnel state and reconciles duplicate managed interfaces.

    `probe()` never raises. Any failure to run or parse the status query is
    reported as a disconnected session.
    """

    def __init__(
        self,
        cli: WireGuardCLI,
        *,
        action_log: ActionLogService | None = None,
        prefix: str = INTERFACE_PREFIX,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.cli = cli
        self.action_log = action_log or ActionLogService()
        self.prefix = prefix
        self.clock = clock

    def probe(self) -> TunnelSession:
        try:
            listing = self.cli.show_all()
        except CommandError:
            return TunnelSession.disconnected()
        if not listing.ok:
            return TunnelSession.disconnected()

        names = parse_interface_names(listing.output, self.prefix)
        if not names:
            return TunnelSession.disconnected()

        active = names[0]
        if len(names) > 1:
            self._reconcile(active, names[1:])
        return self._describe(active)

    def _reconcile(self, kept: str, extras: list[str]) -> None:
        results: dict[str, str] = {}
        for name in extras:
            try:
                outcome = self.cli.down(name)
            except CommandError as exc:
                results[name] = f"error: {exc}"
                continue
            results[name] = "down" if outcome.ok else f"exit {outcome.returncode}"
        self.action_log.log_event(
            "probe",
            phase="reconcile",
            kept=kept,
            brought_down=list(extras),
            results=results,
        )

    def _describe(self, interface_name: str) -> TunnelSession:
        try:
            detail = self.cli.show(interface_name)
        except CommandError:
            return TunnelSession.disconnected()
        if not detail.ok:
            return TunnelSession.disconnected()
        now = self.clock() if self.clock is not None else None
        try:
            return parse_interface_detail(interface_name, detail.output, now=now)
        except ValueError:
            return TunnelSession.disconnected()
