import dataclasses

import pytest

from opskit.systemdinstaller import (
    ServiceDefinition,
    args,
    docs,
    enable_and_start_command_hints,
    env,
    install,
    require_network_online,
    serialize,
    service,
    unitfile_path,
    user_service,
    wait_network_interface,
)


def fix_for_test(sf: ServiceDefinition) -> ServiceDefinition:
    return dataclasses.replace(sf, self_absolute_path="/home/dummy/testservice_amd64", err=None)


def test_basic():
    sf = fix_for_test(service("testservice", "My cool service", args("start")))

    assert serialize(sf) == (
        "[Unit]\n"
        "Description=My cool service\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
        "\n"
        "[Service]\n"
        "ExecStart=/home/dummy/testservice_amd64 start\n"
        "WorkingDirectory=/home/dummy\n"
        "Restart=always\n"
        "RestartSec=10s\n"
    )

    assert enable_and_start_command_hints(sf) == (
        "Wrote unit file to /etc/systemd/system/testservice.service\n"
        "Run to enable on boot & to start (--)now:\n"
        "\t$ systemctl enable --now testservice\n"
        "Verify successful start:\n"
        "\t$ systemctl status testservice"
    )


def test_user_service(monkeypatch):
    monkeypatch.setenv("HOME", "/home/foobar")
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

    sf = fix_for_test(user_service("testservice", "My cool service", args("start")))

    assert serialize(sf) == (
        "[Unit]\n"
        "Description=My cool service\n"
        "\n"
        "[Install]\n"
        "WantedBy=default.target\n"
        "\n"
        "[Service]\n"
        "ExecStart=/home/dummy/testservice_amd64 start\n"
        "WorkingDirectory=/home/dummy\n"
        "Restart=always\n"
        "RestartSec=10s\n"
    )

    assert enable_and_start_command_hints(sf) == (
        "Wrote unit file to /home/foobar/.config/systemd/user/testservice.service\n"
        "Run to enable on boot & to start (--)now:\n"
        "\t$ systemctl --user enable --now testservice\n"
        "Verify successful start:\n"
        "\t$ systemctl --user status testservice"
    )


def test_require_network_online():
    sf = fix_for_test(service("testservice", "My cool service", args("start"), require_network_online))

    assert serialize(sf) == (
        "[Unit]\n"
        "Description=My cool service\n"
        "Wants=network-online.target\n"
        "After=network-online.target\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
        "\n"
        "[Service]\n"
        "ExecStart=/home/dummy/testservice_amd64 start\n"
        "WorkingDirectory=/home/dummy\n"
        "Restart=always\n"
        "RestartSec=10s\n"
    )


def test_docs():
    sf = fix_for_test(
        service("testservice", "My cool service", docs("https://example.com/", "https://example.com/docs"))
    )

    assert serialize(sf) == (
        "[Unit]\n"
        "Description=My cool service\n"
        "Documentation=https://example.com/ https://example.com/docs\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
        "\n"
        "[Service]\n"
        "ExecStart=/home/dummy/testservice_amd64\n"
        "WorkingDirectory=/home/dummy\n"
        "Restart=always\n"
        "RestartSec=10s\n"
    )


def test_env():
    sf = fix_for_test(service("testservice", "My cool service", env("HOME", "/root")))

    assert serialize(sf) == (
        "[Unit]\n"
        "Description=My cool service\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
        "\n"
        "[Service]\n"
        "ExecStart=/home/dummy/testservice_amd64\n"
        "WorkingDirectory=/home/dummy\n"
        "Restart=always\n"
        "RestartSec=10s\n"
        "Environment=HOME=/root\n"
    )


def test_wait_network_interface():
    sf = fix_for_test(service("testservice", "My cool service", wait_network_interface("tailscale0")))

    assert serialize(sf) == (
        "[Unit]\n"
        "Description=My cool service\n"
        "After=sys-subsystem-net-devices-tailscale0.device\n"
        "BindsTo=sys-subsystem-net-devices-tailscale0.device\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
        "\n"
        "[Service]\n"
        "ExecStart=/home/dummy/testservice_amd64\n"
        "WorkingDirectory=/home/dummy\n"
        "Restart=always\n"
        "RestartSec=10s\n"
    )


def test_system_unitfile_path():
    sf = fix_for_test(service("example", "Example"))
    assert unitfile_path(sf) == "/etc/systemd/system/example.service"


def test_user_unitfile_path_prefers_xdg(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    sf = fix_for_test(user_service("example", "Example"))
    assert unitfile_path(sf) == str(tmp_path / "systemd" / "user" / "example.service")


def test_install_user_service_writes_file_and_refuses_overwrite(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    sf = fix_for_test(user_service("testservice", "My cool service", args("start")))

    install(sf)

    written = tmp_path / "systemd" / "user" / "testservice.service"
    assert written.read_text() == serialize(sf)
    assert written.stat().st_mode & 0o777 == 0o644 & ~_umask()

    with pytest.raises(FileExistsError, match="already exists"):
        install(sf)


def test_install_raises_stored_lookup_error():
    sf = dataclasses.replace(service("x", "y"), err=FileNotFoundError("executable missing"))
    with pytest.raises(FileNotFoundError, match="executable missing"):
        install(sf)


def test_hints_report_error_when_config_dir_unknown(monkeypatch):
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("HOME", raising=False)
    sf = fix_for_test(user_service("testservice", "My cool service"))
    assert enable_and_start_command_hints(sf).startswith("ERROR: ")


def _umask() -> int:
    import os

    current = os.umask(0)
    os.umask(current)
    return current