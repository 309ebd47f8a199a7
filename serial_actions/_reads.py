"""Reads built on top of the single-byte primitives"""

import io
import logging
import os
import select
import stat
import typing

import pydantic

from serial_actions import _connection
from serial_actions._connection import ByteResult, ByteStatus

log = logging.getLogger("serial_actions.reads")

DEFAULT_MAX_LEN = 256
DEFAULT_TIMEOUT_MS = 5000


@pydantic.validate_call(config={"arbitrary_types_allowed": True})
def read_until(
    conn: _connection.SerialConnection,
    delimiter: _connection.ByteValue,
    max_len: typing.Annotated[int, pydantic.Field(ge=1)] = DEFAULT_MAX_LEN,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> bytes:
    """
    Collects bytes until 'delimiter' (dropped), 'max_len - 1' bytes, or
    a gap longer than 'timeout_ms'. The timeout restarts for every byte,
    so a slow trickle can keep this running well past 'timeout_ms'.
    """

    out = bytearray()
    while len(out) < max_len - 1:
        result = conn.read_byte(timeout_ms)
        if result.status is not ByteStatus.OK:
            log.debug("Line read timeout after %db", len(out))
            break
        if result.value == delimiter:
            break
        out.append(result.value)
    return bytes(out)


def read_byte_from_source(source: io.IOBase, timeout_ms: int) -> ByteResult:
    """
    Reads the next byte of a local input being streamed to the device.

    Unbuffered pipes and devices that stay idle past 'timeout_ms' count as
    SOURCE_ERROR, as does any read failure; regular files never wait.
    """

    try:
        if _waits_for_input(source):
            wait = max(timeout_ms, 0) / 1000
            ready, _, _ = select.select([source], [], [], wait)
            if not ready:
                log.warning("Input idle for %dms", timeout_ms)
                return ByteResult(ByteStatus.SOURCE_ERROR)
        data = source.read(1)
    except (OSError, ValueError) as ex:
        log.warning("Input read error: %s", ex)
        return ByteResult(ByteStatus.SOURCE_ERROR)

    if not data:
        return ByteResult(ByteStatus.END_OF_SOURCE)
    return ByteResult(ByteStatus.OK, data[0])


def _waits_for_input(source: io.IOBase) -> bool:
    # Buffered readers may hold bytes that select() can't see
    if not isinstance(source, io.RawIOBase):
        return False
    try:
        mode = os.fstat(source.fileno()).st_mode
    except (OSError, ValueError):
        return False
    return not stat.S_ISREG(mode)
