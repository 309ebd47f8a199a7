"""Immutable steps of a serial action script, in command-line order"""

import pathlib
import typing

import pydantic

from serial_actions._connection import ByteValue


class Action(pydantic.BaseModel, frozen=True):
    needs_port: typing.ClassVar[bool] = True

    def describe(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self)
        return f"{type(self).__name__}({fields})"


class SetBaud(Action, frozen=True):
    needs_port: typing.ClassVar[bool] = False
    baud: int


class SetTimeout(Action, frozen=True):
    needs_port: typing.ClassVar[bool] = False
    timeout_ms: typing.Annotated[int, pydantic.Field(ge=0)]


class SetEol(Action, frozen=True):
    needs_port: typing.ClassVar[bool] = False
    eol: ByteValue


class Delay(Action, frozen=True):
    needs_port: typing.ClassVar[bool] = False
    delay_ms: typing.Annotated[int, pydantic.Field(ge=0)]


class OpenPort(Action, frozen=True):
    needs_port: typing.ClassVar[bool] = False
    port: str


class SendString(Action, frozen=True):
    data: bytes


class SendLine(Action, frozen=True):
    data: bytes


class SendStdin(Action, frozen=True):
    pass


class SendNumber(Action, frozen=True):
    value: int


class SendFile(Action, frozen=True):
    path: pathlib.Path


class SaveToFile(Action, frozen=True):
    path: pathlib.Path


class ReceiveByte(Action, frozen=True):
    pass


class ReceiveLine(Action, frozen=True):
    pass


class Flush(Action, frozen=True):
    pass
