from __future__ import annotations

from wgpanel.domain.models import Environment
from wgpanel.services.action_log import ActionLogService
from wgpanel.services.session_probe import SessionProbe
from wgpanel.services.wireguard_cli import CommandError, CommandResult, WireGuardCLI


class SessionControlError(Exception):
    """Raised when bringing a tunnel up or down fails."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class StartError(SessionControlError):
    def __init__(
        self,
        message: str,
        output: str = "",
        *,
        caused_by_stop_failure: bool = False,
    ) -> None:
        super().__init__(message, output)
        self.caused_by_stop_failure = caused_by_stop_failure


class StopError(SessionControlError):
    def __init__(
        self,
        message: str,
        output: str = "",
        *,
        no_active_interface_found: bool = False,
    ) -> None:
        super().__init__(message, output)
        self.no_active_interface_found = no_active_interface_found


class SessionController:
    """Start/stop transitions keeping at most one managed tunnel up.

    Switching environments always goes through a full stop first since
    `wg-quick` cannot replace an interface in place.
    """

    def __init__(
        self,
        cli: WireGuardCLI,
        probe: SessionProbe,
        *,
        action_log: ActionLogService | None = None,
    ) -> None:
        self.cli = cli
        self.session_probe = probe
        self.action_log = action_log or ActionLogService()

    def start(self, env: Environment) -> None:
        current = self.session_probe.probe()
        if current.connected:
            try:
                self.stop()
            except StopError as exc:
                self.action_log.log_event(
                    "start",
                    phase="stop_previous_failed",
                    environment=env.value,
                    previous=current.interface_name,
                )
                raise StartError(
                    f"Failed to stop current VPN ({current.interface_name}): {exc}",
                    exc.output,
                    caused_by_stop_failure=True,
                ) from exc

        interface = env.interface_name
        try:
            result = self.cli.up(interface)
        except CommandError as exc:
            self.action_log.log_event("start", phase="failed", interface=interface, error=str(exc))
            raise StartError(f"wg-quick up {interface} failed: {exc}") from exc
        if not result.ok:
            self.action_log.log_event(
                "start",
                phase="failed",
                interface=interface,
                returncode=result.returncode,
                output=result.output,
            )
            raise StartError(
                f"wg-quick up {interface} failed (exit code {result.returncode})",
                result.output,
            )
        self.action_log.log_event("start", phase="done", interface=interface)

    def stop(self) -> None:
        current = self.session_probe.probe()
        if not current.connected:
            return

        interface = current.interface_name
        if not interface:
            self._stop_any_known()
            return

        result = self._down(interface)
        if not result.ok:
            self.action_log.log_event(
                "stop",
                phase="failed",
                interface=interface,
                returncode=result.returncode,
                output=result.output,
            )
            raise StopError(
                f"wg-quick down {interface} failed (exit code {result.returncode})",
                result.output,
            )
        self.action_log.log_event("stop", phase="done", interface=interface)

    def _down(self, interface: str) -> CommandResult:
        try:
            return self.cli.down(interface)
        except CommandError as exc:
            self.action_log.log_event("stop", phase="failed", interface=interface, error=str(exc))
            raise StopError(f"wg-quick down {interface} failed: {exc}") from exc

    def _stop_any_known(self) -> None:
        for env in Environment:
            try:
                result = self.cli.down(env.interface_name)
            except CommandError:
                continue
            if result.ok:
                self.action_log.log_event("stop", phase="done", interface=env.interface_name)
                return
        raise StopError("No active VPN interfaces found to stop.", no_active_interface_found=True)
