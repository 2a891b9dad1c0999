"""Shared types passed between protocol sessions and the stream hub."""

from __future__ import annotations

import asyncio
import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Union

from mediahub.stream import StreamIdentifier


class SubscribeType(enum.Enum):
    """How a subscriber consumes a stream."""

    PLAYER_RTMP = "PlayerRtmp"
    PLAYER_HTTP_FLV = "PlayerHttpFlv"
    PLAYER_HLS = "PlayerHls"
    PLAYER_RTSP = "PlayerRtsp"
    PLAYER_WEBRTC = "PlayerWebrtc"
    PLAYER_RTP = "PlayerRtp"
    GENERATE_HLS = "GenerateHls"
    PUBLISHER_RTMP = "PublisherRtmp"


class PublishType(enum.Enum):
    """How a publisher feeds a stream into the hub."""

    PUSH_RTMP = "PushRtmp"
    RELAY_RTMP = "RelayRtmp"
    PUSH_RTSP = "PushRtsp"
    RELAY_RTSP = "RelayRtsp"
    PUSH_WEBRTC = "PushWebRTC"
    PUSH_RTP = "PushRtp"


class SubDataType(enum.Enum):
    """A subscriber takes exactly one kind of data."""

    FRAME = "Frame"
    PACKET = "Packet"


class PubDataType(enum.Enum):
    """A publisher offers frames, packets or both."""

    FRAME = "Frame"
    PACKET = "Packet"
    BOTH = "Both"


class VideoCodecType(enum.Enum):
    H264 = enum.auto()
    H265 = enum.auto()
    AV1 = enum.auto()


@dataclass
class NotifyInfo:
    request_url: str
    remote_addr: str

    def to_dict(self) -> dict:
        return {"request_url": self.request_url, "remote_addr": self.remote_addr}


@dataclass
class SubscriberInfo:
    id: uuid.UUID
    sub_type: SubscribeType
    notify_info: NotifyInfo
    sub_data_type: SubDataType

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "sub_type": self.sub_type.value,
            "notify_info": self.notify_info.to_dict(),
        }


@dataclass
class PublisherInfo:
    id: uuid.UUID
    pub_type: PublishType
    pub_data_type: PubDataType
    notify_info: NotifyInfo

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "pub_type": self.pub_type.value,
            "notify_info": self.notify_info.to_dict(),
        }


@dataclass(frozen=True)
class MediaInfo:
    audio_clock_rate: int
    video_clock_rate: int
    vcodec: VideoCodecType


@dataclass(frozen=True)
class VideoFrame:
    timestamp: int
    data: bytes


@dataclass(frozen=True)
class AudioFrame:
    timestamp: int
    data: bytes


@dataclass(frozen=True)
class MetaDataFrame:
    timestamp: int
    data: bytes


@dataclass(frozen=True)
class MediaInfoFrame:
    media_info: MediaInfo


FrameData = Union[VideoFrame, AudioFrame, MetaDataFrame, MediaInfoFrame]


@dataclass(frozen=True)
class VideoPacket:
    """Raw RTP video data."""

    timestamp: int
    data: bytes


@dataclass(frozen=True)
class AudioPacket:
    """Raw RTP audio data."""

    timestamp: int
    data: bytes


PacketData = Union[VideoPacket, AudioPacket]


@dataclass(frozen=True)
class SdpInformation:
    data: str


@dataclass
class DataReceiver:
    """Queues a publisher's frames and/or packets arrive on."""

    frame_receiver: Optional[asyncio.Queue] = None
    packet_receiver: Optional[asyncio.Queue] = None


@dataclass
class DataSender:
    """The single queue a subscriber receives its data through."""

    data_type: SubDataType
    queue: asyncio.Queue

    def send(self, item: Any) -> None:
        self.queue.put_nowait(item)


class StreamHandler:
    """Hooks a publishing protocol offers the hub.

    The base handler replays a fixed list of prior items to new subscribers,
    answers information requests with a fixed value and reports fixed
    statistics; protocols override these hooks with their own caches.
    """

    def __init__(
        self,
        prior_data: Iterable[Any] = (),
        information: Any = None,
        statistics: Any = None,
    ) -> None:
        self.prior_data = list(prior_data)
        self.information = information
        self.statistics = statistics

    async def send_prior_data(self, sender: DataSender, sub_type: SubscribeType) -> None:
        """Send cached data (headers, GOPs) to a new subscriber."""
        for item in self.prior_data:
            sender.send(item)

    async def get_statistic_data(self) -> Any:
        """Return protocol-side statistics, if the handler keeps any."""
        return self.statistics

    async def send_information(self, sender: asyncio.Queue) -> None:
        """Send stream information such as SDP to a requester."""
        if self.information is not None:
            sender.put_nowait(self.information)


@dataclass
class SubscribeEvent:
    identifier: StreamIdentifier
    info: SubscriberInfo
    result: asyncio.Future = field(repr=False)


@dataclass
class UnSubscribeEvent:
    identifier: StreamIdentifier
    info: SubscriberInfo


@dataclass
class PublishEvent:
    identifier: StreamIdentifier
    info: PublisherInfo
    result: asyncio.Future = field(repr=False)
    stream_handler: StreamHandler = field(repr=False)


@dataclass
class UnPublishEvent:
    identifier: StreamIdentifier
    info: PublisherInfo


@dataclass
class ApiStatisticEvent:
    top_n: Optional[int]
    identifier: Optional[StreamIdentifier]
    uuid: Optional[uuid.UUID]
    result: asyncio.Future = field(repr=False)


@dataclass
class ApiKickClientEvent:
    id: uuid.UUID


@dataclass
class RequestEvent:
    identifier: StreamIdentifier
    sender: asyncio.Queue = field(repr=False)


HubEvent = Union[
    SubscribeEvent,
    UnSubscribeEvent,
    PublishEvent,
    UnPublishEvent,
    ApiStatisticEvent,
    ApiKickClientEvent,
    RequestEvent,
]

_EVENT_TAGS = {
    SubscribeEvent: "Subscribe",
    UnSubscribeEvent: "UnSubscribe",
    PublishEvent: "Publish",
    UnPublishEvent: "UnPublish",
}


def hub_event_to_dict(event: HubEvent) -> dict:
    """JSON-ready form of a publish/subscribe event; other events raise ValueError."""
    tag = _EVENT_TAGS.get(type(event))
    if tag is None:
        raise ValueError(f"{type(event).__name__} cannot be serialized")
    return {tag: {"identifier": event.identifier.to_dict(), "info": event.info.to_dict()}}


@dataclass
class TransceiverSubscribe:
    sender: DataSender
    info: SubscriberInfo
    result: asyncio.Future = field(repr=False)


@dataclass
class TransceiverUnSubscribe:
    info: SubscriberInfo


@dataclass
class TransceiverUnPublish:
    pass


@dataclass
class TransceiverApi:
    sender: asyncio.Queue = field(repr=False)
    uuid: Optional[uuid.UUID] = None


@dataclass
class TransceiverRequest:
    sender: asyncio.Queue = field(repr=False)


TransceiverEvent = Union[
    TransceiverSubscribe,
    TransceiverUnSubscribe,
    TransceiverUnPublish,
    TransceiverApi,
    TransceiverRequest,
]


class BroadcastKind(enum.Enum):
    PUBLISH = "Publish"
    UNPUBLISH = "UnPublish"
    SUBSCRIBE = "Subscribe"
    UNSUBSCRIBE = "UnSubscribe"


@dataclass(frozen=True)
class BroadcastEvent:
    """Tells relay and remux clients that a stream should be pushed or pulled."""

    kind: BroadcastKind
    identifier: StreamIdentifier


@dataclass
class AudioCodecStat:
    sound_format: Any
    profile: Any
    samplerate: int
    channels: int


@dataclass
class VideoCodecStat:
    codec: Any
    profile: Any
    level: Any
    width: int
    height: int


@dataclass
class AudioStat:
    """Audio traffic; ``uuid`` is set for a subscriber and None for the publisher."""

    uuid: Optional[uuid.UUID]
    data_size: int
    aac_packet_type: int
    duration: int = 0


@dataclass
class VideoStat:
    """Video traffic; ``uuid`` is set for a subscriber and None for the publisher."""

    uuid: Optional[uuid.UUID]
    data_size: int
    frame_count: int
    is_key_frame: Optional[bool] = None
    duration: int = 0


@dataclass
class PublisherStat:
    id: uuid.UUID
    remote_addr: str
    start_time: datetime


@dataclass
class SubscriberStat:
    id: uuid.UUID
    remote_addr: str
    sub_type: SubscribeType
    start_time: datetime


StatisticData = Union[
    AudioCodecStat, VideoCodecStat, AudioStat, VideoStat, PublisherStat, SubscriberStat
]