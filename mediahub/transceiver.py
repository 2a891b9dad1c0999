"""Fan-out of one published stream to its subscribers, plus its statistics."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from mediahub.define import (
    AudioCodecStat,
    AudioFrame,
    AudioPacket,
    AudioStat,
    DataReceiver,
    MediaInfoFrame,
    MetaDataFrame,
    PublisherStat,
    StatisticData,
    StreamHandler,
    SubDataType,
    SubscriberStat,
    SubscribeType,
    TransceiverApi,
    TransceiverRequest,
    TransceiverSubscribe,
    TransceiverUnPublish,
    TransceiverUnSubscribe,
    VideoCodecStat,
    VideoFrame,
    VideoPacket,
    VideoStat,
)
from mediahub.errors import StreamHubError, StreamHubErrorKind
from mediahub.statistics import StatisticsCalculator, StatisticsStream, StatisticSubscriber
from mediahub.stream import StreamIdentifier

log = logging.getLogger(__name__)

AAC_SEQHDR = 0
AAC_RAW = 1

_PACKET_SUB_TYPES = (SubscribeType.PLAYER_RTP, SubscribeType.PLAYER_WEBRTC)


def _deliver(item: Any, senders: Mapping[uuid.UUID, asyncio.Queue], kind: StreamHubErrorKind) -> None:
    for queue in senders.values():
        try:
            queue.put_nowait(item)
        except asyncio.QueueFull:
            log.error("transceiver send error: %s", StreamHubError(kind))


def forward_frame(frame: Any, senders: Mapping[uuid.UUID, asyncio.Queue]) -> None:
    """Hand a frame to every subscriber queue; metadata frames are not forwarded."""
    if isinstance(frame, MetaDataFrame):
        return
    if isinstance(frame, AudioFrame):
        _deliver(frame, senders, StreamHubErrorKind.SEND_AUDIO_ERROR)
    elif isinstance(frame, (VideoFrame, MediaInfoFrame)):
        _deliver(frame, senders, StreamHubErrorKind.SEND_VIDEO_ERROR)


def forward_packet(packet: Any, senders: Mapping[uuid.UUID, asyncio.Queue]) -> None:
    """Hand a raw RTP packet to every packet subscriber queue."""
    if isinstance(packet, AudioPacket):
        _deliver(packet, senders, StreamHubErrorKind.SEND_AUDIO_ERROR)
    elif isinstance(packet, VideoPacket):
        _deliver(packet, senders, StreamHubErrorKind.SEND_VIDEO_ERROR)


def apply_statistic_data(stats: StatisticsStream, data: StatisticData) -> None:
    """Fold one statistics report from a publisher or subscriber into ``stats``."""
    publisher = stats.publisher
    if isinstance(data, AudioStat):
        if data.uuid is not None:
            sub = stats.subscribers.get(data.uuid)
            if sub is not None:
                sub.send_bytes += data.data_size
            stats.total_send_bytes += data.data_size
        else:
            if data.aac_packet_type == AAC_RAW:
                publisher.audio.recv_bytes += data.data_size
            stats.total_recv_bytes += data.data_size
    elif isinstance(data, VideoStat):
        if data.uuid is not None:
            sub = stats.subscribers.get(data.uuid)
            if sub is not None:
                sub.send_bytes += data.data_size
                sub.total_send_bytes += data.data_size
            stats.total_send_bytes += data.data_size
        else:
            video = publisher.video
            stats.total_recv_bytes += data.data_size
            video.recv_bytes += data.data_size
            video.recv_frame_count += data.frame_count
            publisher.recv_bytes += data.data_size
            if data.is_key_frame is True:
                video.gop = video.recv_frame_count_for_gop
                video.recv_frame_count_for_gop = 1
            elif data.is_key_frame is False:
                video.recv_frame_count_for_gop += data.frame_count
    elif isinstance(data, AudioCodecStat):
        audio = publisher.audio
        audio.sound_format = data.sound_format
        audio.profile = data.profile
        audio.samplerate = data.samplerate
        audio.channels = data.channels
    elif isinstance(data, VideoCodecStat):
        video = publisher.video
        video.codec = data.codec
        video.profile = data.profile
        video.level = data.level
        video.width = data.width
        video.height = data.height
    elif isinstance(data, PublisherStat):
        publisher.id = data.id
        publisher.remote_address = data.remote_addr
        publisher.start_time = data.start_time
    elif isinstance(data, SubscriberStat):
        stats.subscribers[data.id] = StatisticSubscriber(
            id=data.id,
            start_time=data.start_time,
            remote_address=data.remote_addr,
            sub_type=data.sub_type,
        )


class StreamDataTransceiver:
    """Moves a publisher's data to its subscribers and gathers the stream's statistics."""

    def __init__(
        self,
        data_receiver: DataReceiver,
        event_receiver: asyncio.Queue,
        identifier: StreamIdentifier,
        handler: StreamHandler,
        statistics_interval: int = StatisticsCalculator.INTERVAL,
    ):
        self.data_receiver = data_receiver
        self.event_receiver = event_receiver
        self.handler = handler
        self.frame_senders: Dict[uuid.UUID, asyncio.Queue] = {}
        self.packet_senders: Dict[uuid.UUID, asyncio.Queue] = {}
        self.statistic_data_sender: asyncio.Queue = asyncio.Queue()
        self.statistics = StatisticsStream()
        self.statistics.publisher.identifier = identifier
        self._statistics_interval = statistics_interval
        self._exit = asyncio.Event()
        self._event_task: Optional[asyncio.Task] = None
        self._worker_tasks: List[asyncio.Task] = []

    async def run(self) -> None:
        """Start the background tasks and return at once."""
        if self._event_task is not None:
            raise RuntimeError("transceiver is already running")
        workers = []
        if self.data_receiver.frame_receiver is not None:
            workers.append(self._consume(self.data_receiver.frame_receiver,
                                         lambda f: forward_frame(f, self.frame_senders)))
        if self.data_receiver.packet_receiver is not None:
            workers.append(self._consume(self.data_receiver.packet_receiver,
                                         lambda p: forward_packet(p, self.packet_senders)))
        workers.append(self._consume(self.statistic_data_sender,
                                     lambda d: apply_statistic_data(self.statistics, d)))
        self._worker_tasks = [asyncio.create_task(w) for w in workers]
        calculator = StatisticsCalculator(self.statistics, self._exit, self._statistics_interval)
        self._worker_tasks.append(asyncio.create_task(calculator.start()))
        self._event_task = asyncio.create_task(self._event_loop())

    async def wait_closed(self) -> None:
        """Wait for the event loop to end and, once unpublished, for every other task."""
        if self._event_task is None:
            return
        await self._event_task
        if self._exit.is_set():
            await asyncio.gather(*self._worker_tasks, return_exceptions=True)

    async def _consume(self, queue: asyncio.Queue, handle: Any) -> None:
        while not self._exit.is_set():
            getter = asyncio.ensure_future(queue.get())
            stopper = asyncio.ensure_future(self._exit.wait())
            done, pending = await asyncio.wait({getter, stopper}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            if getter in done:
                handle(getter.result())

    async def _event_loop(self) -> None:
        while True:
            event = await self.event_receiver.get()
            if isinstance(event, TransceiverSubscribe):
                try:
                    await self.handler.send_prior_data(event.sender, event.info.sub_type)
                except Exception as err:
                    log.error("receive_event_loop send_prior_data err: %s", err)
                    if not event.result.done():
                        event.result.set_exception(
                            StreamHubError(StreamHubErrorKind.RECV_ERROR, cause=err))
                    break
                if event.sender.data_type is SubDataType.FRAME:
                    self.frame_senders[event.info.id] = event.sender.queue
                else:
                    self.packet_senders[event.info.id] = event.sender.queue
                if event.result.done():
                    log.error("receive_event_loop: subscribe result receiver dropped")
                else:
                    event.result.set_result(self.statistic_data_sender)
                self.statistics.subscriber_count += 1
            elif isinstance(event, TransceiverUnSubscribe):
                info = event.info
                if info.sub_type in _PACKET_SUB_TYPES:
                    self.packet_senders.pop(info.id, None)
                else:
                    self.frame_senders.pop(info.id, None)
                self.statistics.subscribers.pop(info.id, None)
                self.statistics.subscriber_count -= 1
            elif isinstance(event, TransceiverUnPublish):
                self._exit.set()
                break
            elif isinstance(event, TransceiverApi):
                log.info("api: stream uuid: %s", event.uuid)
                if event.uuid is not None:
                    result = self.statistics.query_by_uuid(event.uuid)
                else:
                    result = self.statistics.copy()
                try:
                    event.sender.put_nowait(result)
                except asyncio.QueueFull:
                    log.info("transceiver send statistic data err")
            elif isinstance(event, TransceiverRequest):
                await self.handler.send_information(event.sender)