"""Unit tests for serial_actions.cli argument parsing."""

import os
import pathlib
import subprocess
import sys

import pytest

import serial_actions as sa
from serial_actions import cli


def test_actions_keep_command_line_order():
    actions, args = cli.parse_actions(
        "-b 115200 -p /dev/ttyUSB0 -d 2000 -s hello -d 100 -r".split()
    )
    assert actions == [
        sa.SetBaud(baud=115200),
        sa.OpenPort(port="/dev/ttyUSB0"),
        sa.Delay(delay_ms=2000),
        sa.SendString(data=b"hello"),
        sa.Delay(delay_ms=100),
        sa.ReceiveLine(),
    ]
    assert not args.quiet


def test_all_options():
    actions, args = cli.parse_actions(
        [
            "-q",
            "--port=/dev/a",
            "--sendline=hi there",
            "-i",
            "-n",
            "300",
            "-f",
            "in.bin",
            "--output",
            "out.bin",
            "-F",
            "-e",
            ";",
            "-t",
            "250",
            "-y",
            "--receive",
            "-p",
            "/dev/b",
        ]
    )
    assert args.quiet
    assert actions == [
        sa.OpenPort(port="/dev/a"),
        sa.SendLine(data=b"hi there"),
        sa.SendStdin(),
        sa.SendNumber(value=300),
        sa.SendFile(path=pathlib.Path("in.bin")),
        sa.SaveToFile(path=pathlib.Path("out.bin")),
        sa.Flush(),
        sa.SetEol(eol=ord(";")),
        sa.SetTimeout(timeout_ms=250),
        sa.ReceiveByte(),
        sa.ReceiveLine(),
        sa.OpenPort(port="/dev/b"),
    ]


def test_no_actions():
    actions, args = cli.parse_actions(["-q"])
    assert actions == []


@pytest.mark.parametrize(
    "text, expected",
    [("\\n", 10), ("\\r", 13), ("x", ord("x")), ("xyz", ord("x")), ("\\0", 0)],
)
def test_eol_char(text, expected):
    assert cli.eol_char(text) == expected


@pytest.mark.parametrize(
    "argv",
    [
        ["-n", "twelve"],
        ["-d", "-5"],
        ["-t", "soon"],
        ["-e", ""],
        ["-b"],
        ["--bogus"],
    ],
)
def test_bad_arguments(argv, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_actions(argv)
    assert exc_info.value.code == 2


def test_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_actions(["--help"])
    assert exc_info.value.code == 0
    out = capsys.readouterr().out
    assert "Order is important" in out
    assert "checked before any action runs" in out


def test_main_without_arguments_prints_help(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["serial-actions"])
    cli.main()
    assert "--sendline" in capsys.readouterr().out


#
# Fatal errors end the run with a one-line message
#


def run_cli(*argv: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "serial_actions", *argv],
        capture_output=True,
        encoding="utf-8",
        env={
            **{k: v for k, v in os.environ.items() if "OK_LOGGING" not in k},
            "PYTHONIOENCODING": "utf-8",
        },
        timeout=30,
    )


def test_send_without_port_exits_nonzero():
    proc = run_cli("-s", "x")
    assert proc.returncode != 0
    assert "Traceback" not in proc.stderr
    lines = [ln for ln in proc.stderr.splitlines() if "SerialPortNotOpen" in ln]
    assert len(lines) == 1
    assert "Serial port not opened" in lines[0]
    assert proc.stdout == ""


def test_unsupported_baud_exits_nonzero(pty_serial):
    proc = run_cli("-b", "1234", "-p", pty_serial.path, "-s", "never")
    assert proc.returncode != 0
    assert "Traceback" not in proc.stderr
    lines = [
        ln for ln in proc.stderr.splitlines() if "SerialBaudUnsupported" in ln
    ]
    assert len(lines) == 1
    assert "Unsupported baud rate 1234" in lines[0]


def test_import_has_no_deprecated_hints():
    warning = "beartype.roar.BeartypeDecorHintPep585DeprecationWarning"
    proc = subprocess.run(
        [
            sys.executable,
            "-W",
            f"error::{warning}",
            "-c",
            "import serial_actions._sequencer, serial_actions.cli",
        ],
        capture_output=True,
        encoding="utf-8",
        timeout=30,
    )
    assert proc.returncode == 0, proc.stderr
