"""Parsing of RTMP URLs into host, port, application and stream parts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

_SCHEME = "rtmp://"


class RtmpUrlParseError(ValueError):
    """Raised when a URL is not of the form rtmp://host[:port]/app/stream[?query]."""

    def __init__(self, message: str = "The url is not valid"):
        super().__init__(message)


def parse_stream_name_with_query(stream_name_with_query: str) -> Tuple[str, Optional[str]]:
    """Split ``name?query`` into the stream name and the query, None when there is none."""
    parts = stream_name_with_query.split("?")
    stream_name = parts[0]
    query = parts[1] if len(parts) > 1 else None
    return stream_name, query


@dataclass
class RtmpUrlParser:
    """Holds a URL and, after ``parse_url``, its parts.

    For ``rtmp://domain.name.cn:1935/app_name/stream_name?auth_key=test_Key``:
    host_with_port ``domain.name.cn:1935``, host ``domain.name.cn``, port ``1935``,
    app_name ``app_name``, stream_name ``stream_name``, query ``auth_key=test_Key``.
    """

    url: str = ""
    host_with_port: str = ""
    host: str = ""
    port: Optional[str] = None
    app_name: str = ""
    stream_name_with_query: str = ""
    stream_name: str = ""
    query: Optional[str] = None

    def parse_url(self) -> None:
        """Fill in every part from ``url``; raise RtmpUrlParseError if it is malformed."""
        idx = self.url.find(_SCHEME)
        if idx < 0:
            raise RtmpUrlParseError()
        parts = self.url[idx + len(_SCHEME):].split("/")
        if len(parts) != 3:
            raise RtmpUrlParseError()

        self.host_with_port, self.app_name, self.stream_name_with_query = parts
        self.parse_host_with_port()
        self.stream_name, self.query = parse_stream_name_with_query(self.stream_name_with_query)

    def parse_host_with_port(self) -> None:
        """Split ``host_with_port`` into host and, when present, port."""
        parts = self.host_with_port.split(":")
        self.host = parts[0]
        if len(parts) > 1:
            self.port = parts[1]

    def append_port(self, port: str) -> None:
        """Add ``port`` to the host unless it already carries one."""
        if ":" not in self.host_with_port:
            self.host_with_port = f"{self.host_with_port}:{port}"
            self.port = port