#!/usr/bin/env python3

"""CLI tool to run an ordered script of serial port actions"""

import argparse
import os
import sys

import ok_logging_setup
import serial_actions

EPILOG = """\
Order is important: set '-b' baudrate before opening port '-p'.
Used to make series of actions: '-d 2000 -s hello -d 100 -r'
means 'wait 2secs, send 'hello', wait 100msec, get reply'.
All options are checked before any action runs, so a bad value or
'-h' anywhere on the line stops the whole script up front.
"""


class _AppendStep(argparse.Action):
    """Appends one step to the shared 'actions' list, keeping argv order"""

    def __init__(self, option_strings, dest, make, **kwargs):
        self.make = make
        super().__init__(option_strings, dest="actions", **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            step = self.make(values)
        except ValueError as ex:
            parser.error(f"argument {option_string}: {ex}")
        namespace.actions = [*(getattr(namespace, "actions", None) or []), step]


def eol_char(text: str) -> int:
    """First byte of 'text', after backslash escapes like '\\r' or '\\x00'"""

    data = os.fsencode(text).decode("unicode_escape").encode("latin-1")
    if not data:
        raise ValueError("empty end-of-line character")
    return data[0]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="serial-actions",
        description="Talk to a microcontroller over a serial port.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    def step(*flags, **kwargs):
        parser.add_argument(*flags, action=_AppendStep, **kwargs)

    sa = serial_actions
    step(
        "--baud",
        "-b",
        type=int,
        metavar="BPS",
        make=lambda v: sa.SetBaud(baud=v),
        help=f"baud for ports opened later (default {sa.SerialOptions().baud})",
    )
    step(
        "--port",
        "-p",
        metavar="PATH",
        make=lambda v: sa.OpenPort(port=v),
        help="open serial port (closing any already open)",
    )
    step(
        "--send",
        "-s",
        metavar="STRING",
        make=lambda v: sa.SendString(data=os.fsencode(v)),
        help="send string",
    )
    step(
        "--sendline",
        "-S",
        metavar="STRING",
        make=lambda v: sa.SendLine(data=os.fsencode(v)),
        help="send string with newline",
    )
    step(
        "--stdinput",
        "-i",
        nargs=0,
        make=lambda _: sa.SendStdin(),
        help="send each line of standard input",
    )
    step(
        "--num",
        "-n",
        type=int,
        make=lambda v: sa.SendNumber(value=v),
        help="send a number as a single byte",
    )
    step(
        "--ifile",
        "--input",
        "-f",
        metavar="FILE",
        make=lambda v: sa.SendFile(path=v),
        help="send file contents byte by byte",
    )
    step(
        "--ofile",
        "--output",
        "-v",
        metavar="FILE",
        make=lambda v: sa.SaveToFile(path=v),
        help="save received bytes to file (5s idle ends the transfer)",
    )
    step(
        "--flush",
        "-F",
        nargs=0,
        make=lambda _: sa.Flush(),
        help="discard buffered input and output for fresh reading",
    )
    step(
        "--delay",
        "-d",
        type=int,
        metavar="MILLIS",
        make=lambda v: sa.Delay(delay_ms=v),
        help="sleep for this many milliseconds",
    )
    step(
        "--eolchar",
        "-e",
        type=eol_char,
        metavar="CHAR",
        make=lambda v: sa.SetEol(eol=v),
        help="end-of-line character for --receive (default '\\n')",
    )
    step(
        "--timeout",
        "-t",
        type=int,
        metavar="MILLIS",
        make=lambda v: sa.SetTimeout(timeout_ms=v),
        help="timeout for --byte and --receive (default 5000)",
    )
    step(
        "--byte",
        "-y",
        nargs=0,
        make=lambda _: sa.ReceiveByte(),
        help="receive one byte and print it in hex",
    )
    step(
        "--receive",
        "-r",
        nargs=0,
        make=lambda _: sa.ReceiveLine(),
        help="receive a line and print it",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="don't print as much info",
    )
    return parser


def parse_actions(
    argv: list[str],
) -> tuple[list[serial_actions.Action], argparse.Namespace]:
    args = build_parser().parse_args(argv)
    return list(getattr(args, "actions", None) or []), args


def main():
    if len(sys.argv) <= 1:
        build_parser().print_help()
        return

    actions, args = parse_actions(sys.argv[1:])
    level = "warning" if args.quiet else "info"
    ok_logging_setup.install({"OK_LOGGING_LEVEL": level})

    state = serial_actions.SequencerState(quiet=args.quiet)
    try:
        serial_actions.run_actions(actions, state)
    except serial_actions.SerialException as exc:
        ok_logging_setup.exit("💥 %s: %s", type(exc).__name__, exc)


if __name__ == "__main__":
    main()
