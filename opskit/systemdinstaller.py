"""Writes systemd unit files so that a program can be started as a service."""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class ServiceDefinition:
    """Everything needed to write one systemd unit file."""

    service_name: str
    description: str
    args: list[str] = field(default_factory=list)
    docs: list[str] = field(default_factory=list)
    envs: list[str] = field(default_factory=list)
    wants: list[str] = field(default_factory=list)
    after: list[str] = field(default_factory=list)
    binds_to: list[str] = field(default_factory=list)
    user_service: bool = False
    self_absolute_path: str = ""
    err: BaseException | None = None  # set if the executable's path could not be found


Option = Callable[[ServiceDefinition], None]


def _current_executable_no_follow_symlink() -> str:
    """Absolute path of the running program, without resolving symlinks."""
    argv0 = sys.argv[0] if sys.argv else ""
    if not argv0:
        raise FileNotFoundError("exec: no program name in argument list")

    if os.sep in argv0:
        if not (os.path.isfile(argv0) and os.access(argv0, os.X_OK)):
            raise FileNotFoundError(f'exec: "{argv0}": not an executable file')
        resolved = argv0
    else:
        found = shutil.which(argv0)
        if found is None:
            raise FileNotFoundError(f'exec: "{argv0}": executable file not found in $PATH')
        resolved = found

    # the lookup may still give a relative path
    return os.path.abspath(resolved)


def _new_service(
    service_name: str,
    description: str,
    options: tuple[Option, ...],
    user_service: bool,
) -> ServiceDefinition:
    try:
        self_path = _current_executable_no_follow_symlink()
        err: BaseException | None = None
    except OSError as exc:
        self_path = ""
        err = exc

    sf = ServiceDefinition(
        service_name=service_name,
        description=description,
        user_service=user_service,
        self_absolute_path=self_path,
        err=err,
    )
    for option in options:
        option(sf)
    return sf


def service(service_name: str, description: str, *args: Option) -> ServiceDefinition:
    """A system-level service definition."""
    return _new_service(service_name, description, args, False)


def user_service(service_name: str, description: str, *args: Option) -> ServiceDefinition:
    """A user-level service definition."""
    return _new_service(service_name, description, args, True)


def _user_config_dir() -> str:
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        if not os.path.isabs(xdg):
            raise OSError("path in $XDG_CONFIG_HOME is relative")
        return xdg
    home = os.environ.get("HOME", "")
    if not home:
        raise OSError("neither $XDG_CONFIG_HOME nor $HOME are defined")
    return os.path.join(home, ".config")


def unitfile_path(sf: ServiceDefinition) -> str:
    """Where the unit file of ``sf`` is to be written."""
    unit_filename = sf.service_name + ".service"
    if sf.user_service:
        return os.path.join(_user_config_dir(), "systemd", "user", unit_filename)
    return "/etc/systemd/system/" + unit_filename


def install(sf: ServiceDefinition) -> None:
    """Write the unit file; refuses to overwrite an existing one."""
    if sf.err is not None:
        raise sf.err

    try:
        file_path = unitfile_path(sf)
    except OSError as err:
        raise OSError(f"unitfile_path: {err}") from err

    # a user's service directory does not always exist
    if sf.user_service:
        os.makedirs(os.path.dirname(file_path), mode=0o775, exist_ok=True)

    try:
        os.stat(file_path)
    except FileNotFoundError:
        pass
    else:
        raise FileExistsError(f"systemd service file {file_path} already exists")

    try:
        fd = os.open(file_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
        with os.fdopen(fd, "w", encoding="utf-8") as file:
            file.write(serialize(sf))
    except PermissionError as err:
        raise PermissionError(f"{err}\nHint: try prefix with '$ sudo ...'") from err


def enable_and_start_command_hints(sf: ServiceDefinition) -> str:
    """Instructions for enabling, starting and checking the installed service."""
    maybe_user_arg = " --user" if sf.user_service else ""

    try:
        file_path = unitfile_path(sf)
    except OSError as err:
        return f"ERROR: {err}"

    return "\n".join(
        [
            "Wrote unit file to " + file_path,
            "Run to enable on boot & to start (--)now:",
            "\t$ systemctl" + maybe_user_arg + " enable --now " + sf.service_name,
            "Verify successful start:",
            "\t$ systemctl" + maybe_user_arg + " status " + sf.service_name,
        ]
    )


def serialize(sf: ServiceDefinition) -> str:
    """The unit file's content."""
    lines = ["[Unit]", "Description=" + sf.description]

    if sf.docs:
        lines.append("Documentation=" + " ".join(sf.docs))
    lines.extend("Wants=" + target for target in sf.wants)
    lines.extend("After=" + target for target in sf.after)
    lines.extend("BindsTo=" + target for target in sf.binds_to)

    wanted_by = "default.target" if sf.user_service else "multi-user.target"
    working_directory = os.path.dirname(sf.self_absolute_path) or "."

    lines += [
        "",
        "[Install]",
        "WantedBy=" + wanted_by,
        "",
        "[Service]",
        "ExecStart=" + " ".join([sf.self_absolute_path, *sf.args]),
        "WorkingDirectory=" + working_directory,
        "Restart=always",
        "RestartSec=10s",
    ]
    lines.extend("Environment=" + item for item in sf.envs)

    return "\n".join(lines) + "\n"


def args(*args: str) -> Option:
    """Command line arguments for the service. They are not shell-escaped."""

    def apply(sf: ServiceDefinition) -> None:
        sf.args = list(args)

    return apply


def docs(*args: str) -> Option:
    """Documentation URLs for the unit."""

    def apply(sf: ServiceDefinition) -> None:
        sf.docs = list(args)

    return apply


def env(key: str, value: str) -> Option:
    """An environment variable for the service."""

    def apply(sf: ServiceDefinition) -> None:
        sf.envs.append(key + "=" + value)

    return apply


def wants(target: str) -> Option:
    """Add a ``Wants=`` dependency."""

    def apply(sf: ServiceDefinition) -> None:
        sf.wants.append(target)

    return apply


def after(target: str) -> Option:
    """Add an ``After=`` ordering dependency."""

    def apply(sf: ServiceDefinition) -> None:
        sf.after.append(target)

    return apply


def binds_to(target: str) -> Option:
    """Add a ``BindsTo=`` dependency."""

    def apply(sf: ServiceDefinition) -> None:
        sf.binds_to.append(target)

    return apply


def require_network_online(sf: ServiceDefinition) -> None:
    """Option: start only once the network is online."""
    wants("network-online.target")(sf)
    after("network-online.target")(sf)


def wait_network_interface(interface_name: str) -> Option:
    """Start after, and stop along with, the given network interface's device unit."""
    device_unit = f"sys-subsystem-net-devices-{interface_name}.device"

    def apply(sf: ServiceDefinition) -> None:
        binds_to(device_unit)(sf)
        after(device_unit)(sf)

    return apply