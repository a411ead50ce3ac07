"""A "service" command tree for managing a program installed as a systemd service."""

from __future__ import annotations

import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from opskit.cancel import Context, background
from opskit.systemdinstaller import ServiceDefinition, enable_and_start_command_hints, install

RunFunc = Callable[[Context, list[str]], Any]

_POLL = 0.1
_LSB_STATUS_NOT_RUNNING = 3


@dataclass
class Command:
    """A command with optional subcommands; commands take no positional arguments."""

    use: str
    short: str = ""
    aliases: list[str] = field(default_factory=list)
    run: Optional[RunFunc] = None
    commands: list["Command"] = field(default_factory=list)

    def add_command(self, command: "Command") -> None:
        self.commands.append(command)

    def find(self, name: str) -> Optional["Command"]:
        """The subcommand called ``name`` (or aliased so), if any."""
        return next((c for c in self.commands if c.use == name or name in c.aliases), None)

    def help_text(self) -> str:
        lines = [self.short] if self.short else []
        if self.commands:
            width = max(len(c.use) for c in self.commands)
            lines.append("")
            lines.append("Available Commands:")
            lines.extend(f"  {c.use.ljust(width)}  {c.short}" for c in self.commands)
        return "\n".join(lines)

    def execute(self, argv: Optional[list[str]] = None) -> int:
        """Run the command selected by ``argv``; return the process exit status."""
        arguments = list(sys.argv[1:] if argv is None else argv)
        return self._execute(arguments, [self.use])

    def _execute(self, arguments: list[str], path: list[str]) -> int:
        if arguments and arguments[0] in ("-h", "--help"):
            print(self.help_text())
            return 0

        if arguments:
            sub = self.find(arguments[0])
            if sub is None:
                print(
                    f'Error: unknown command "{arguments[0]}" for "{" ".join(path)}"',
                    file=sys.stderr,
                )
                return 1
            return sub._execute(arguments[1:], [*path, sub.use])

        if self.run is None:
            print(self.help_text())
            return 0

        ctx = background()
        try:
            self.run(ctx, [])
        except Exception as err:
            print(f"ERROR: {err}", file=sys.stderr)
            return 1
        finally:
            ctx.cancel()
        return 0


def _run_process(ctx: Context, cmd: list[str]) -> None:
    """Run ``cmd`` with inherited stdio; kill it if ``ctx`` is canceled."""
    proc = subprocess.Popen(cmd)
    while proc.poll() is None:
        if ctx.wait(_POLL):
            proc.kill()
            proc.wait()
            break
    if proc.returncode != 0:
        raise subprocess.CalledProcessError(proc.returncode, cmd)


def entrypoint(
    service_name: str,
    make_additional_commands: Optional[Callable[[str], list[Command]]] = None,
) -> Command:
    """The "service" command with start, stop, restart, status and logs subcommands."""
    cmd = Command(use="service", short="Background service management", aliases=["svc"])

    if make_additional_commands is not None:
        for additional in make_additional_commands(service_name):
            cmd.add_command(additional)

    def systemctl(verb: str) -> RunFunc:
        def run(ctx: Context, _args: list[str]) -> None:
            _run_process(ctx, ["systemctl", verb, service_name])

        return run

    def status(ctx: Context, _args: list[str]) -> None:
        try:
            _run_process(ctx, ["systemctl", "status", service_name])
        except subprocess.CalledProcessError as err:
            # LSB: a successful status report of a stopped service exits with 3
            if err.returncode != _LSB_STATUS_NOT_RUNNING:
                raise

    def logs(ctx: Context, _args: list[str]) -> None:
        _run_process(ctx, ["journalctl", "--unit=" + service_name])

    cmd.add_command(Command(use="start", short="Start the service", run=systemctl("start")))
    cmd.add_command(Command(use="stop", short="Stop the service", run=systemctl("stop")))
    cmd.add_command(Command(use="restart", short="Restart the service", run=systemctl("restart")))
    cmd.add_command(Command(use="status", short="Show status of the service", run=status))
    cmd.add_command(Command(use="logs", short="Get logs for the service", run=logs))

    return cmd


def with_install_and_uninstall_commands(
    make_svc: Callable[[str], ServiceDefinition],
) -> Callable[[str], list[Command]]:
    """Additional commands for :func:`entrypoint`: an "install" command."""

    def make(service_name: str) -> list[Command]:
        def run_install(_ctx: Context, _args: list[str]) -> None:
            svc = make_svc(service_name)
            install(svc)
            print(enable_and_start_command_hints(svc))

        return [Command(use="install", short="Installs the background service", run=run_install)]

    return make