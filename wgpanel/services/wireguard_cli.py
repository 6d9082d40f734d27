from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Callable, Sequence


@dataclass(frozen=True)
class CommandResult:
    command: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(Exception):
    """Raised when a tunnel tool cannot be invoked at all."""


Runner = Callable[[Sequence[str], float], CommandResult]


def run_command(command: Sequence[str], timeout: float) -> CommandResult:
    """Run a command, capturing stdout and stderr together."""
    argv = tuple(str(part) for part in command)
    try:
        completed = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise CommandError(f"Command not found: {argv[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(
            f"Command timed out after {timeout:g}s: {' '.join(argv)}"
        ) from exc
    except OSError as exc:
        raise CommandError(f"Failed to run {' '.join(argv)}: {exc}") from exc
    return CommandResult(command=argv, returncode=completed.returncode, output=completed.stdout or "")


class WireGuardCLI:
    """Thin wrapper over the `wg` and `wg-quick` binaries."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        use_sudo: bool = False,
        runner: Runner | None = None,
        wg_binary: str = "wg",
        wg_quick_binary: str = "wg-quick",
    ) -> None:
        self.timeout = timeout
        self.use_sudo = use_sudo
        self.runner = runner or run_command
        self.wg_binary = wg_binary
        self.wg_quick_binary = wg_quick_binary

    def _build(self, *parts: str) -> list[str]:
        command = list(parts)
        return ["sudo", *command] if self.use_sudo else command

    def _run(self, *parts: str) -> CommandResult:
        return self.runner(self._build(*parts), self.timeout)

    def show_all(self) -> CommandResult:
        return self._run(self.wg_binary, "show")

    def show(self, interface: str) -> CommandResult:
        return self._run(self.wg_binary, "show", interface)

    def up(self, interface: str) -> CommandResult:
        return self._run(self.wg_quick_binary, "up", interface)

    def down(self, interface: str) -> CommandResult:
        return self._run(self.wg_quick_binary, "down", interface)
