"""Errors raised by the stream hub."""

from __future__ import annotations

import enum


class StreamHubErrorKind(enum.Enum):
    """What went wrong; the value is the message shown to users."""

    NO_APP_NAME = "no app name"
    NO_STREAM_NAME = "no stream name"
    NO_APP_OR_STREAM_NAME = "no app or stream name"
    EXISTS = "exists"
    SEND_ERROR = "send error"
    SEND_VIDEO_ERROR = "send video error"
    SEND_AUDIO_ERROR = "send audio error"
    BYTES_READ_ERROR = "bytes read error"
    BYTES_WRITE_ERROR = "bytes write error"
    NOT_CORRECT_DATA_SENDER_TYPE = "not correct data sender type"
    RECV_ERROR = "oneshot recv error"
    SERDE_ERROR = "json error"


class StreamHubError(Exception):
    """Raised by hub operations; ``kind`` tells which failure occurred."""

    def __init__(self, kind: StreamHubErrorKind, cause: BaseException | None = None):
        super().__init__(kind.value)
        self.kind = kind
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause