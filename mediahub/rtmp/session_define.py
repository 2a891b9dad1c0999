"""Constants, session kinds and errors of RTMP sessions."""

from __future__ import annotations

import enum

WINDOW_ACKNOWLEDGEMENT_SIZE = 4096
PEER_BANDWIDTH = 4096

PEER_BANDWIDTH_LIMIT_HARD = 0
PEER_BANDWIDTH_LIMIT_SOFT = 1
PEER_BANDWIDTH_LIMIT_DYNAMIC = 2

FMSVER = "FMS/3,0,1,123"
CAPABILITIES = 31.0
LEVEL = "status"

OBJENCODING_AMF0 = 0.0
OBJENCODING_AMF3 = 3.0

STREAM_ID = 1.0

TRANSACTION_ID_CONNECT = 1
TRANSACTION_ID_CREATE_STREAM = 2

RTMP_LEVEL_WARNING = "warning"
RTMP_LEVEL_STATUS = "status"
RTMP_LEVEL_ERROR = "error\n"


class SessionType(enum.Enum):
    """Whether the session is the client or the server end of a connection."""

    CLIENT = "client"
    SERVER = "server"

    def __str__(self) -> str:
        return self.value


class SessionErrorKind(enum.Enum):
    """What went wrong in a session; the value is the message shown to users."""

    AMF0_WRITE_ERROR = "amf0 write error"
    BYTES_WRITE_ERROR = "bytes write error"
    UNPACK_ERROR = "unpack error"
    MESSAGE_ERROR = "message error"
    CONTROL_MESSAGES_ERROR = "control message error"
    NET_CONNECTION_ERROR = "net connection error"
    NET_STREAM_ERROR = "net stream error"
    EVENT_MESSAGES_ERROR = "event messages error"
    BYTES_IO_ERROR = "net io error"
    PACK_ERROR = "pack error"
    HANDSHAKE_ERROR = "handshake error"
    CACHE_ERROR = "cache error name"
    RECV_ERROR = "oneshot receiver err"
    CHANNEL_ERROR = "streamhub channel err"
    AMF0_VALUE_COUNT_NOT_CORRECT = "amf0 count not correct error"
    AMF0_VALUE_TYPE_NOT_CORRECT = "amf0 value type not correct error"
    STREAM_HUB_EVENT_SEND_ERR = "stream hub event send error"
    NONE_FRAME_DATA_SENDER = "none frame data sender error"
    NONE_FRAME_DATA_RECEIVER = "none frame data receiver error"
    SEND_FRAME_DATA_ERR = "send frame data error"
    SUBSCRIBE_COUNT_LIMIT_REACH = "subscribe count limit is reached."
    NO_APP_NAME = "no app name error"
    NO_MEDIA_DATA_RECEIVED = "no media data can be received now."
    FINISH = "session is finished."
    AUTH_ERROR = "Auth err"


class SessionError(Exception):
    """Raised by session operations; ``kind`` tells which failure occurred."""

    def __init__(self, kind: SessionErrorKind, cause: BaseException | None = None):
        message = kind.value if cause is None else f"{kind.value}: {cause}"
        super().__init__(message)
        self.kind = kind
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause