import contextlib
import io
import ok_logging_setup
import os
import pty
import pytest
import threading
import typing

ok_logging_setup.install(
    {
        "OK_LOGGING_LEVEL": "serial_actions=DEBUG,WARNING",
        "OK_LOGGING_OUTPUT": "stdout",
    }
)


class PseudoTtySerial(typing.NamedTuple):
    path: str
    control: io.FileIO
    simulated: io.FileIO


@pytest.fixture
def pty_serial():
    with contextlib.ExitStack() as cleanup:
        ctrl_fd, sim_fd = pty.openpty()
        path = os.ttyname(sim_fd)
        ctrl = cleanup.enter_context(os.fdopen(ctrl_fd, "r+b", buffering=0))
        sim = cleanup.enter_context(os.fdopen(sim_fd, "r+b", buffering=0))
        yield PseudoTtySerial(path=path, control=ctrl, simulated=sim)


@pytest.fixture
def echo_device(pty_serial):
    """A simulated device that writes back every line it receives"""

    stop = threading.Event()

    def echo():
        line = b""
        while not stop.is_set():
            try:
                data = pty_serial.control.read(256)
            except (OSError, ValueError):
                return
            line += data
            while b"\n" in line:
                out, line = line.split(b"\n", 1)
                pty_serial.control.write(out + b"\n")

    thread = threading.Thread(target=echo, daemon=True)
    thread.start()
    yield pty_serial
    stop.set()


def read_exactly(control: io.FileIO, size: int) -> bytes:
    received = b""
    while len(received) < size:
        chunk = control.read(size - len(received))
        if not chunk:
            break
        received += chunk
    return received
