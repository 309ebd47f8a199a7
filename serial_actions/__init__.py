"""
Scripted serial port actions (PySerial wrapper): open a port, then send,
receive, save, flush and delay in command-line order.
"""

from beartype.claw import beartype_this_package as _beartype_me

# ruff: noqa: E402
_beartype_me()

from serial_actions._actions import (
    Action,
    Delay,
    Flush,
    OpenPort,
    ReceiveByte,
    ReceiveLine,
    SaveToFile,
    SendFile,
    SendLine,
    SendNumber,
    SendStdin,
    SendString,
    SetBaud,
    SetEol,
    SetTimeout,
)

from serial_actions._config import (
    SUPPORTED_BAUD_RATES,
    SerialOptions,
    check_baud,
)

from serial_actions._connection import (
    ByteResult,
    ByteStatus,
    SerialConnection,
)

from serial_actions._exceptions import (
    SerialBaudUnsupported,
    SerialException,
    SerialIoClosed,
    SerialIoException,
    SerialOpenBusy,
    SerialOpenException,
    SerialPortNotOpen,
    SerialWriteException,
)

from serial_actions._reads import read_byte_from_source, read_until
from serial_actions._sequencer import (
    SequencerState,
    TransferCounters,
    run_action,
    run_actions,
)

__all__ = [n for n in dir() if not n.startswith("_")]
