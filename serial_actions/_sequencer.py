import collections.abc
import dataclasses
import io
import logging
import sys
import time
import typing

from serial_actions import _actions
from serial_actions import _config
from serial_actions import _connection
from serial_actions import _exceptions
from serial_actions import _reads
from serial_actions._connection import ByteStatus

log = logging.getLogger("serial_actions.sequencer")

DEFAULT_TIMEOUT_MS = _reads.DEFAULT_TIMEOUT_MS
DEFAULT_EOL = ord("\n")

# Byte-at-a-time copies drain the port and flush the console this often
DRAIN_INTERVAL = 60

SAVE_IDLE_TIMEOUT_MS = 5000
SOURCE_TIMEOUT_MS = 10000


@dataclasses.dataclass
class SequencerState:
    port: _connection.SerialConnection | None = None
    baud: int = _config.DEFAULT_BAUD
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    eol: int = DEFAULT_EOL
    quiet: bool = False
    stdin: io.IOBase | None = None  # default sys.stdin.buffer
    console: io.IOBase | None = None  # default sys.stdout.buffer

    def input_stream(self) -> typing.Any:
        return sys.stdin.buffer if self.stdin is None else self.stdin

    def console_stream(self) -> typing.Any:
        return sys.stdout.buffer if self.console is None else self.console

    def require_port(self) -> _connection.SerialConnection:
        if self.port is None:
            raise _exceptions.SerialPortNotOpen("Serial port not opened")
        return self.port

    def close_port(self) -> None:
        if self.port is not None:
            port, self.port = self.port, None
            port.close()
            log.info("🔌 Closed %s", port.port_name)


@dataclasses.dataclass
class TransferCounters:
    count: int = 0
    start: float = dataclasses.field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start


def run_actions(
    actions: collections.abc.Iterable[_actions.Action],
    state: SequencerState,
) -> SequencerState:
    """Runs 'actions' in order; fatal errors close the port and propagate"""

    try:
        for action in actions:
            run_action(action, state)
    finally:
        state.close_port()
    return state


def run_action(action: _actions.Action, state: SequencerState) -> None:
    log.debug("Running %s", action.describe())
    if action.needs_port:
        state.require_port()
    _HANDLERS[type(action)](action, state)


def _set_baud(action: _actions.SetBaud, state: SequencerState) -> None:
    state.baud = action.baud
    log.debug("Baud set to %d", action.baud)


def _set_timeout(action: _actions.SetTimeout, state: SequencerState) -> None:
    state.timeout_ms = action.timeout_ms
    log.info("⏱️ Timeout set to %d millisecs", action.timeout_ms)


def _set_eol(action: _actions.SetEol, state: SequencerState) -> None:
    state.eol = action.eol
    log.info("↩️ End-of-line set to %r", bytes([action.eol]))


def _delay(action: _actions.Delay, state: SequencerState) -> None:
    log.info("💤 Sleep %d millisecs", action.delay_ms)
    time.sleep(action.delay_ms / 1000)


def _open_port(action: _actions.OpenPort, state: SequencerState) -> None:
    state.close_port()
    opts = _config.SerialOptions(baud=state.baud)
    state.port = _connection.SerialConnection(action.port, opts)
    log.info("🔌 Opened %s (%d baud)", action.port, state.baud)


def _send_string(action: _actions.SendString, state: SequencerState) -> None:
    log.info("📤 Send string: %r", action.data)
    state.require_port().write(action.data)


def _send_line(action: _actions.SendLine, state: SequencerState) -> None:
    log.info("📤 Send line: %r", action.data)
    state.require_port().write(action.data + b"\n")


def _send_stdin(action: _actions.SendStdin, state: SequencerState) -> None:
    port = state.require_port()
    lines = 0
    for line in state.input_stream():
        log.info("📤 Send string: %r", line)
        port.write(line)
        lines += 1
    log.info("📤 Sent %d line%s from stdin", lines, "" if lines == 1 else "s")


def _send_number(action: _actions.SendNumber, state: SequencerState) -> None:
    value = action.value & 0xFF
    log.info("📤 Send byte: 0x%02x", value)
    state.require_port().write_byte(value)


def _send_file(action: _actions.SendFile, state: SequencerState) -> None:
    port = state.require_port()
    console = state.console_stream()
    counters = TransferCounters()
    try:
        # Pipes and devices are read unbuffered so idle waits can use select
        buffering = -1 if action.path.is_file() else 0
        source = open(action.path, "rb", buffering=buffering)
    except OSError as ex:
        log.error("❌ Can't open input file %s: %s", action.path, ex)
        return

    with source:
        log.info("📂 Opened input file %s", action.path)
        port.flush()
        while True:
            result = _reads.read_byte_from_source(source, SOURCE_TIMEOUT_MS)
            if result.status is ByteStatus.END_OF_SOURCE:
                log.debug("End of %s", action.path)
                port.drain()
                break
            if result.status is not ByteStatus.OK:
                break

            port.write_byte(result.value)
            console.write(bytes([result.value]))
            counters.count += 1
            if counters.count % DRAIN_INTERVAL == 0:
                port.drain()
                console.flush()

    _finish_echo(console, counters)
    if result.status is not ByteStatus.END_OF_SOURCE:
        log.error(
            "❌ Input from %s broke off (%d bytes sent in %.2fs)",
            action.path,
            counters.count,
            counters.elapsed,
        )
        return

    log.info(
        "✅ Sent %s (%d bytes in %.2fs)",
        action.path,
        counters.count,
        counters.elapsed,
    )


def _save_to_file(action: _actions.SaveToFile, state: SequencerState) -> None:
    port = state.require_port()
    console = state.console_stream()
    try:
        sink = open(action.path, "wb")
    except OSError as ex:
        log.error("❌ Can't open output file %s: %s", action.path, ex)
        return

    with sink:
        log.info("📂 Opened output file %s", action.path)
        log.info("⏳ %.1fs to start sending", SAVE_IDLE_TIMEOUT_MS / 1000)
        result = port.read_byte(SAVE_IDLE_TIMEOUT_MS)
        if result.status is not ByteStatus.OK:
            log.warning("🚫 No input found for %s", action.path)
            return

        counters = TransferCounters()
        while result.status is ByteStatus.OK:
            sink.write(bytes([result.value]))
            console.write(bytes([result.value]))
            counters.count += 1
            if counters.count % DRAIN_INTERVAL == 0:
                sink.flush()
                console.flush()
            result = port.read_byte(SAVE_IDLE_TIMEOUT_MS)

    _finish_echo(console, counters)
    log.info(
        "✅ Saved %s (%d bytes in %.2fs)",
        action.path,
        counters.count,
        counters.elapsed,
    )


def _finish_echo(console: typing.Any, counters: TransferCounters) -> None:
    if counters.count:
        console.write(b"\n")
    console.flush()


def _receive_byte(action: _actions.ReceiveByte, state: SequencerState) -> None:
    result = state.require_port().read_byte(state.timeout_ms)
    if result.status is not ByteStatus.OK:
        log.warning("⏱️ No byte received in %d millisecs", state.timeout_ms)

    # One output line per request; a timeout reads as 0x00
    value = result.value if result.status is ByteStatus.OK else 0
    console = state.console_stream()
    prefix = b"" if state.quiet else b"read byte:"
    console.write(prefix + b"0x%02x\n" % value)
    console.flush()


def _receive_line(action: _actions.ReceiveLine, state: SequencerState) -> None:
    line = _reads.read_until(
        state.require_port(),
        state.eol,
        max_len=_reads.DEFAULT_MAX_LEN,
        timeout_ms=state.timeout_ms,
    )
    console = state.console_stream()
    prefix = b"" if state.quiet else b"read string:"
    console.write(prefix + line + b"\n")
    console.flush()


def _flush(action: _actions.Flush, state: SequencerState) -> None:
    log.info("🚽 Flushing buffers")
    state.require_port().flush()


_Handler = collections.abc.Callable[[typing.Any, SequencerState], None]

_HANDLERS: dict[type, _Handler] = {
    _actions.SetBaud: _set_baud,
    _actions.SetTimeout: _set_timeout,
    _actions.SetEol: _set_eol,
    _actions.Delay: _delay,
    _actions.OpenPort: _open_port,
    _actions.SendString: _send_string,
    _actions.SendLine: _send_line,
    _actions.SendStdin: _send_stdin,
    _actions.SendNumber: _send_number,
    _actions.SendFile: _send_file,
    _actions.SaveToFile: _save_to_file,
    _actions.ReceiveByte: _receive_byte,
    _actions.ReceiveLine: _receive_line,
    _actions.Flush: _flush,
}
