"""Identifiers naming a stream inside the hub."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

_UNKNOWN_TAG = "Unkonwn"


class StreamKind(enum.Enum):
    """The protocol family a stream identifier belongs to."""

    UNKNOWN = _UNKNOWN_TAG
    RTMP = "rtmp"
    RTSP = "rtsp"
    WEBRTC = "webrtc"


@dataclass(frozen=True)
class StreamIdentifier:
    """A hashable name for one stream; the default identifier is unknown."""

    kind: StreamKind = StreamKind.UNKNOWN
    app_name: str = ""
    stream_name: str = ""
    stream_path: str = ""

    def __str__(self) -> str:
        if self.kind is StreamKind.RTMP:
            return f"RTMP - app_name: {self.app_name}, stream_name: {self.stream_name}"
        if self.kind is StreamKind.RTSP:
            return f"RTSP - stream_name: {self.stream_path}"
        if self.kind is StreamKind.WEBRTC:
            return f"WebRTC - app_name: {self.app_name}, stream_name: {self.stream_name}"
        return _UNKNOWN_TAG

    def to_dict(self) -> Any:
        """Return the JSON-ready form: a one-key mapping, or the bare tag when unknown."""
        if self.kind is StreamKind.UNKNOWN:
            return _UNKNOWN_TAG
        if self.kind is StreamKind.RTSP:
            return {self.kind.value: {"stream_path": self.stream_path}}
        return {
            self.kind.value: {
                "app_name": self.app_name,
                "stream_name": self.stream_name,
            }
        }


def rtmp_stream(app_name: str, stream_name: str) -> StreamIdentifier:
    """Identifier of an RTMP stream."""
    return StreamIdentifier(StreamKind.RTMP, app_name=app_name, stream_name=stream_name)


def rtsp_stream(stream_path: str) -> StreamIdentifier:
    """Identifier of an RTSP stream."""
    return StreamIdentifier(StreamKind.RTSP, stream_path=stream_path)


def webrtc_stream(app_name: str, stream_name: str) -> StreamIdentifier:
    """Identifier of a WebRTC stream."""
    return StreamIdentifier(StreamKind.WEBRTC, app_name=app_name, stream_name=stream_name)


def identifier_from_dict(data: Any) -> StreamIdentifier:
    """Rebuild an identifier from the form produced by ``StreamIdentifier.to_dict``."""
    if data == _UNKNOWN_TAG:
        return StreamIdentifier()
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"not a stream identifier: {data!r}")
    (tag, body), = data.items()
    if not isinstance(body, dict):
        raise ValueError(f"stream identifier body must be a mapping: {body!r}")
    try:
        if tag == StreamKind.RTMP.value:
            return rtmp_stream(str(body["app_name"]), str(body["stream_name"]))
        if tag == StreamKind.WEBRTC.value:
            return webrtc_stream(str(body["app_name"]), str(body["stream_name"]))
        if tag == StreamKind.RTSP.value:
            return rtsp_stream(str(body["stream_path"]))
    except KeyError as exc:
        raise ValueError(f"missing field {exc.args[0]!r} in stream identifier") from exc
    raise ValueError(f"unknown stream identifier tag: {tag!r}")