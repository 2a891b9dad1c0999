"""RTMP user control event messages: reading and writing."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Protocol, Union

RTMP_EVENT_STREAM_BEGIN = 0
RTMP_EVENT_STREAM_EOF = 1
RTMP_EVENT_STREAM_DRY = 2
RTMP_EVENT_SET_BUFFER_LENGTH = 3
RTMP_EVENT_STREAM_IS_RECORDED = 4
RTMP_EVENT_PING = 6
RTMP_EVENT_PONG = 7

USER_CONTROL_EVENT = 4
CONTROL_CHUNK_BASIC_HEADER = 0x02
HEADER_SIZE = 12

_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")


class EventMessagesError(Exception):
    """Raised when a user control event cannot be read or written."""


@dataclass(frozen=True)
class SetBufferLength:
    stream_id: int
    buffer_length: int


@dataclass(frozen=True)
class StreamBegin:
    stream_id: int


@dataclass(frozen=True)
class StreamIsRecorded:
    stream_id: int


EventMessage = Union[SetBufferLength, StreamBegin, StreamIsRecorded]


class EventMessagesReader:
    """Reads user control events from the body of a user control message."""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0

    def _read(self, fmt: struct.Struct) -> int:
        end = self._pos + fmt.size
        if end > len(self._data):
            raise EventMessagesError("bytes read error: not enough bytes")
        (value,) = fmt.unpack_from(self._data, self._pos)
        self._pos = end
        return value

    def parse_event(self) -> EventMessage:
        """Read the event type and the event that follows it."""
        event_type = self._read(_U16)
        if event_type == RTMP_EVENT_SET_BUFFER_LENGTH:
            return self.read_set_buffer_length()
        if event_type == RTMP_EVENT_STREAM_BEGIN:
            return self.read_stream_begin()
        if event_type == RTMP_EVENT_STREAM_IS_RECORDED:
            return self.read_stream_is_recorded()
        raise EventMessagesError("unknow event message type")

    def read_set_buffer_length(self) -> SetBufferLength:
        stream_id = self._read(_U32)
        ms = self._read(_U32)
        return SetBufferLength(stream_id=stream_id, buffer_length=ms)

    def read_stream_begin(self) -> StreamBegin:
        return StreamBegin(stream_id=self._read(_U32))

    def read_stream_is_recorded(self) -> StreamIsRecorded:
        return StreamIsRecorded(stream_id=self._read(_U32))


class _Writable(Protocol):
    def write(self, data: bytes) -> object: ...

    async def drain(self) -> None: ...


def _u32(value: int) -> bytes:
    try:
        return _U32.pack(value)
    except struct.error as err:
        raise EventMessagesError(f"bytes write error: {err}") from err


class EventMessagesWriter:
    """Writes user control events as complete chunks to a stream with ``write`` and ``drain``."""

    def __init__(self, stream: _Writable):
        self.stream = stream

    @staticmethod
    def _header(length: int) -> bytes:
        try:
            length_bytes = length.to_bytes(3, "big")
        except OverflowError as err:
            raise EventMessagesError(f"bytes write error: {err}") from err
        return (
            bytes([CONTROL_CHUNK_BASIC_HEADER])
            + (0).to_bytes(3, "big")
            + length_bytes
            + bytes([USER_CONTROL_EVENT])
            + _u32(0)
        )

    async def _send(self, event_type: int, *values: int) -> None:
        body = _U16.pack(event_type) + b"".join(_u32(v) for v in values)
        self.stream.write(self._header(len(body)) + body)
        await self.stream.drain()

    async def write_stream_begin(self, stream_id: int) -> None:
        await self._send(RTMP_EVENT_STREAM_BEGIN, stream_id)

    async def write_stream_eof(self, stream_id: int) -> None:
        await self._send(RTMP_EVENT_STREAM_EOF, stream_id)

    async def write_stream_dry(self, stream_id: int) -> None:
        await self._send(RTMP_EVENT_STREAM_DRY, stream_id)

    async def write_set_buffer_length(self, stream_id: int, ms: int) -> None:
        await self._send(RTMP_EVENT_SET_BUFFER_LENGTH, stream_id, ms)

    async def write_stream_is_record(self, stream_id: int) -> None:
        await self._send(RTMP_EVENT_STREAM_IS_RECORDED, stream_id)

    async def write_ping_request(self, timestamp: int) -> None:
        await self._send(RTMP_EVENT_PING, timestamp)

    async def write_ping_response(self, timestamp: int) -> None:
        await self._send(RTMP_EVENT_PONG, timestamp)