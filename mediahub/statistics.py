"""Per-stream traffic statistics and their periodic rate calculation."""

from __future__ import annotations

import asyncio
import copy
import enum
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from mediahub.define import SubscribeType
from mediahub.ids import NIL_ID
from mediahub.stream import StreamIdentifier

log = logging.getLogger(__name__)

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.name
    return value


@dataclass
class VideoInfo:
    codec: Any = None
    profile: Any = None
    level: Any = None
    width: int = 0
    height: int = 0
    recv_bytes: int = 0
    bitrate: int = 0
    recv_frame_count: int = 0
    frame_rate: int = 0
    recv_frame_count_for_gop: int = 0
    gop: int = 0

    def to_dict(self) -> dict:
        return {
            "codec": _plain(self.codec),
            "profile": _plain(self.profile),
            "level": _plain(self.level),
            "width": self.width,
            "height": self.height,
            "bitrate(kbits/s)": self.bitrate,
            "frame_rate": self.frame_rate,
            "gop": self.gop,
        }


@dataclass
class AudioInfo:
    sound_format: Any = None
    profile: Any = None
    samplerate: int = 0
    channels: int = 0
    recv_bytes: int = 0
    bitrate: int = 0

    def to_dict(self) -> dict:
        return {
            "sound_format": _plain(self.sound_format),
            "profile": _plain(self.profile),
            "samplerate": self.samplerate,
            "channels": self.channels,
            "bitrate(kbits/s)": self.bitrate,
        }


@dataclass
class StatisticPublisher:
    id: uuid.UUID = NIL_ID
    identifier: StreamIdentifier = field(default_factory=StreamIdentifier)
    start_time: datetime = _EPOCH
    video: VideoInfo = field(default_factory=VideoInfo)
    audio: AudioInfo = field(default_factory=AudioInfo)
    remote_address: str = ""
    recv_bytes: int = 0
    recv_bitrate: int = 0

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "identifier": self.identifier.to_dict(),
            "start_time": self.start_time.isoformat(),
            "video": self.video.to_dict(),
            "audio": self.audio.to_dict(),
            "remote_address": self.remote_address,
            "recv_bitrate(kbits/s)": self.recv_bitrate,
        }


@dataclass
class StatisticSubscriber:
    id: uuid.UUID
    start_time: datetime
    remote_address: str
    sub_type: SubscribeType
    send_bytes: int = 0
    send_bitrate: int = 0
    total_send_bytes: int = 0

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "start_time": self.start_time.isoformat(),
            "remote_address": self.remote_address,
            "sub_type": self.sub_type.value,
            "send_bitrate(kbits/s)": self.send_bitrate,
            "total_send_bytes(kbits/s)": self.total_send_bytes,
        }


@dataclass
class StatisticsStream:
    """Aggregated publisher and subscriber statistics of one stream."""

    publisher: StatisticPublisher = field(default_factory=StatisticPublisher)
    subscribers: Dict[uuid.UUID, StatisticSubscriber] = field(default_factory=dict)
    subscriber_count: int = 0
    total_recv_bytes: int = 0
    total_send_bytes: int = 0

    def to_dict(self) -> dict:
        return {
            "publisher": self.publisher.to_dict(),
            "subscribers": {str(k): v.to_dict() for k, v in self.subscribers.items()},
            "subscriber_count": self.subscriber_count,
            "total_recv_bytes": self.total_recv_bytes,
            "total_send_bytes": self.total_send_bytes,
        }

    def copy(self) -> StatisticsStream:
        """An independent deep copy."""
        return copy.deepcopy(self)

    def query_by_uuid(self, uuid: uuid.UUID) -> StatisticsStream:
        """A copy narrowed to the publisher (no subscribers) or to one subscriber."""
        result = self.copy()
        if uuid == self.publisher.id:
            result.subscribers.clear()
        else:
            result.subscribers = {k: v for k, v in result.subscribers.items() if k == uuid}
        return result


class StatisticsCalculator:
    """Turns accumulated byte and frame counters into rates at a fixed interval."""

    INTERVAL = 10

    def __init__(self, stream: StatisticsStream, exit_event: asyncio.Event, interval: int = INTERVAL):
        self.stream = stream
        self.exit_event = exit_event
        self.interval = interval

    def calculate(self, seconds: int) -> None:
        started = time.perf_counter()
        publisher = self.stream.publisher
        video, audio = publisher.video, publisher.audio

        video.bitrate = video.recv_bytes * 8 // seconds // 1000
        video.recv_bytes = 0
        video.frame_rate = video.recv_frame_count // seconds
        video.recv_frame_count = 0

        audio.bitrate = audio.recv_bytes * 8 // seconds // 1000
        audio.recv_bytes = 0

        publisher.recv_bitrate = publisher.recv_bytes * 8 // seconds // 1000
        publisher.recv_bytes = 0

        for subscriber in self.stream.subscribers.values():
            subscriber.send_bitrate = subscriber.send_bytes * 8 // seconds // 1000
            subscriber.send_bytes = 0
        log.info("calculate statistics cost %.6fs", time.perf_counter() - started)

    async def start(self) -> None:
        """Calculate now and then every interval until the exit event is set."""
        while True:
            self.calculate(self.interval)
            try:
                await asyncio.wait_for(self.exit_event.wait(), self.interval)
            except asyncio.TimeoutError:
                continue
            log.info("statistics calculator shutting down")
            return