import contextlib
import enum
import logging
import serial
import typing

import pydantic

from serial_actions import _config
from serial_actions import _exceptions

log = logging.getLogger("serial_actions.connection")
data_log = logging.getLogger(log.name + ".data")

ByteValue = typing.Annotated[int, pydantic.Field(ge=0, le=255)]


class ByteStatus(enum.Enum):
    OK = "ok"
    TIMEOUT = "timeout"
    END_OF_SOURCE = "end of source"
    SOURCE_ERROR = "source error"


class ByteResult(typing.NamedTuple):
    """Outcome of a single-byte read; 'value' is only set for OK"""

    status: ByteStatus
    value: int | None = None


class SerialConnection(contextlib.AbstractContextManager):
    """An open, configured serial device with blocking byte-level I/O"""

    @pydantic.validate_call
    def __init__(
        self,
        port: str,
        opts: _config.SerialOptions | int = _config.SerialOptions(),
    ):
        if isinstance(opts, int):
            opts = _config.SerialOptions(baud=opts)

        self._port = port
        self._opts = opts
        self._pyserial: serial.Serial | None = _config.open_serial(port, opts)

    def __del__(self) -> None:
        if hasattr(self, "_pyserial"):
            self.close()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SerialConnection({self._port!r}, baud={self._opts.baud})"

    @property
    def port_name(self) -> str:
        return self._port

    @property
    def baud(self) -> int:
        return self._opts.baud

    @property
    def is_open(self) -> bool:
        return self._pyserial is not None

    def close(self) -> None:
        if self._pyserial is not None:
            pyserial, self._pyserial = self._pyserial, None
            log.debug("Closing %s", self._port)
            pyserial.close()

    @pydantic.validate_call
    def read_byte(self, timeout_ms: int) -> ByteResult:
        """Waits up to 'timeout_ms' for one byte (0 polls without blocking)"""

        pyserial = self._require_open()
        timeout = max(timeout_ms, 0) / 1000
        try:
            if pyserial.timeout != timeout:
                pyserial.timeout = timeout
            data = pyserial.read(size=1)
        except OSError as ex:
            message = "Serial read error"
            raise _exceptions.SerialIoException(message, self._port) from ex

        if not data:
            data_log.debug("Read timeout (%dms)", timeout_ms)
            return ByteResult(ByteStatus.TIMEOUT)

        data_log.debug("Read 0x%02x", data[0])
        return ByteResult(ByteStatus.OK, data[0])

    @pydantic.validate_call
    def write_byte(self, value: ByteValue) -> int:
        return self.write(bytes([value]))

    @pydantic.validate_call
    def write(self, data: bytes) -> int:
        """Writes all of 'data' (pyserial retries partial writes)"""

        pyserial = self._require_open()
        try:
            written = pyserial.write(data)
        except OSError as ex:
            message = "Serial write error"
            raise _exceptions.SerialWriteException(message, self._port) from ex

        if written != len(data):
            message = f"Short write ({written}/{len(data)}b)"
            raise _exceptions.SerialWriteException(message, self._port)

        data_log.debug("Wrote %db", written)
        return written

    def flush(self) -> None:
        """Discards unread input and unsent output"""

        pyserial = self._require_open()
        try:
            pyserial.reset_input_buffer()
            pyserial.reset_output_buffer()
        except OSError as ex:
            message = "Serial flush error"
            raise _exceptions.SerialIoException(message, self._port) from ex
        data_log.debug("Flushed buffers")

    def drain(self) -> None:
        """Blocks until queued output has been transmitted"""

        pyserial = self._require_open()
        try:
            pyserial.flush()
        except OSError as ex:
            message = "Serial drain error"
            raise _exceptions.SerialIoException(message, self._port) from ex

    def _require_open(self) -> serial.Serial:
        if self._pyserial is None:
            message = "Serial port was closed"
            raise _exceptions.SerialIoClosed(message, self._port)
        return self._pyserial
