import errno
import logging
import serial

import pydantic

from serial_actions import _exceptions

log = logging.getLogger("serial_actions.config")

# Standard termios speeds; anything else is rejected rather than rounded
SUPPORTED_BAUD_RATES: tuple[int, ...] = tuple(serial.SerialBase.BAUDRATES)

DEFAULT_BAUD = 9600
INTER_BYTE_TIMEOUT = 0.1  # seconds, VTIME has tenth-second resolution


class SerialOptions(pydantic.BaseModel, frozen=True):
    baud: int = DEFAULT_BAUD
    exclusive: bool = True


def check_baud(baud: int, port: str | None = None) -> int:
    if baud not in SUPPORTED_BAUD_RATES:
        message = f"Unsupported baud rate {baud}"
        raise _exceptions.SerialBaudUnsupported(message, port)
    return baud


def open_serial(port: str, opts: SerialOptions) -> serial.Serial:
    """Opens 'port' in raw 8-N-1 mode and discards any stale buffered bytes"""

    baud = check_baud(opts.baud, port)
    log.debug("Opening %s (%s)", port, opts)
    try:
        pyserial = serial.Serial(
            port=port,
            baudrate=baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
            dsrdtr=False,
            inter_byte_timeout=INTER_BYTE_TIMEOUT,
            exclusive=opts.exclusive,
        )
    except OSError as ex:
        if ex.errno in (errno.EBUSY, errno.EAGAIN):
            message = "Serial port busy"
            raise _exceptions.SerialOpenBusy(message, port) from ex
        else:
            message = "Serial port open error"
            raise _exceptions.SerialOpenException(message, port) from ex

    try:
        pyserial.reset_input_buffer()
        pyserial.reset_output_buffer()
    except OSError as ex:
        pyserial.close()
        message = "Serial port flush error"
        raise _exceptions.SerialOpenException(message, port) from ex

    log.debug("Configured %s: %d 8-N-1 raw", port, baud)
    return pyserial
