"""The hub that routes publish and subscribe requests between protocol sessions."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
import weakref
from typing import Any, Dict, List, Optional

from mediahub.define import (
    ApiKickClientEvent,
    ApiStatisticEvent,
    BroadcastEvent,
    BroadcastKind,
    DataReceiver,
    DataSender,
    HubEvent,
    PubDataType,
    PublishEvent,
    PublisherInfo,
    RequestEvent,
    StreamHandler,
    SubDataType,
    SubscribeEvent,
    SubscriberInfo,
    TransceiverApi,
    TransceiverRequest,
    TransceiverSubscribe,
    TransceiverUnPublish,
    TransceiverUnSubscribe,
    UnPublishEvent,
    UnSubscribeEvent,
    hub_event_to_dict,
)
from mediahub.errors import StreamHubError, StreamHubErrorKind
from mediahub.statistics import StatisticsCalculator
from mediahub.stream import StreamIdentifier
from mediahub.transceiver import StreamDataTransceiver

log = logging.getLogger(__name__)


class BroadcastChannel:
    """One-to-many channel; each receiver keeps at most ``capacity`` events, oldest dropped first."""

    def __init__(self, capacity: int = 100):
        self.capacity = capacity
        self._receivers: "weakref.WeakSet[asyncio.Queue]" = weakref.WeakSet()

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.capacity)
        self._receivers.add(queue)
        return queue

    def send(self, event: BroadcastEvent) -> int:
        """Deliver to every live receiver; raise when there are none."""
        receivers = list(self._receivers)
        if not receivers:
            raise StreamHubError(StreamHubErrorKind.SEND_ERROR)
        for queue in receivers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(event)
        return len(receivers)


def _settle(future: asyncio.Future, result: Any = None, error: Optional[BaseException] = None) -> None:
    if future.done():
        log.error("event_loop: the result receiver dropped")
    elif error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


class StreamsHub:
    """Keeps one transceiver per published stream and serves hub events."""

    def __init__(
        self,
        notifier: Any = None,
        *,
        rtmp_push_enabled: bool = False,
        rtmp_pull_enabled: bool = False,
        rtmp_remuxer_enabled: bool = False,
        hls_enabled: bool = False,
        statistics_interval: int = StatisticsCalculator.INTERVAL,
    ):
        self.notifier = notifier
        self.rtmp_push_enabled = rtmp_push_enabled
        self.rtmp_pull_enabled = rtmp_pull_enabled
        self.rtmp_remuxer_enabled = rtmp_remuxer_enabled
        self.hls_enabled = hls_enabled
        self.streams: Dict[StreamIdentifier, asyncio.Queue] = {}
        self.un_pub_sub_events: Dict[uuid.UUID, HubEvent] = {}
        self.hub_event_sender: asyncio.Queue = asyncio.Queue()
        self.client_events = BroadcastChannel(100)
        self._statistics_interval = statistics_interval
        self._transceivers: Dict[StreamIdentifier, StreamDataTransceiver] = {}

    async def run(self) -> None:
        await self.event_loop()

    def subscribe_client_events(self) -> asyncio.Queue:
        """A receiver of relay/remux broadcast events."""
        return self.client_events.subscribe()

    async def event_loop(self) -> None:
        while True:
            message = await self.hub_event_sender.get()
            await self._handle(message)

    async def _handle(self, message: HubEvent) -> None:
        try:
            body = json.dumps(hub_event_to_dict(message))
            log.info("event data: %s", body)
        except ValueError:
            body = "empty body"

        if isinstance(message, PublishEvent):
            await self._on_publish(message, body)
        elif isinstance(message, UnPublishEvent):
            try:
                self.unpublish(message.identifier)
            except StreamHubError as err:
                log.error("event_loop Unpublish err: %s with identifier: %s", err, message.identifier)
            if self.notifier is not None:
                await self.notifier.on_unpublish_notify(body)
        elif isinstance(message, SubscribeEvent):
            await self._on_subscribe(message, body)
        elif isinstance(message, UnSubscribeEvent):
            try:
                self.unsubscribe(message.identifier, message.info)
            except StreamHubError:
                return
            if self.notifier is not None:
                await self.notifier.on_stop_notify(body)
        elif isinstance(message, ApiStatisticEvent):
            try:
                result: Any = await self.api_statistic(message.top_n, message.identifier, message.uuid)
            except StreamHubError as err:
                log.error("event_loop api error: %s", err)
                result = str(err)
            _settle(message.result, result)
        elif isinstance(message, ApiKickClientEvent):
            try:
                self.api_kick_off_client(message.id)
            except StreamHubError as err:
                log.error("api_kick_off_client api error: %s", err)
        elif isinstance(message, RequestEvent):
            try:
                self.request(message.identifier, message.sender)
            except StreamHubError as err:
                log.error("event_loop request error: %s", err)

    async def _on_publish(self, message: PublishEvent, body: str) -> None:
        data_type = message.info.pub_data_type
        frame_queue = asyncio.Queue() if data_type in (PubDataType.FRAME, PubDataType.BOTH) else None
        packet_queue = asyncio.Queue() if data_type in (PubDataType.PACKET, PubDataType.BOTH) else None
        receiver = DataReceiver(frame_receiver=frame_queue, packet_receiver=packet_queue)
        try:
            statistic_sender = await self.publish(message.identifier, receiver, message.stream_handler)
        except StreamHubError as err:
            log.error("event_loop Publish err: %s", err)
            _settle(message.result, error=err)
            return
        if self.notifier is not None:
            await self.notifier.on_publish_notify(body)
        self.un_pub_sub_events[message.info.id] = UnPublishEvent(message.identifier, message.info)
        _settle(message.result, (frame_queue, packet_queue, statistic_sender))

    async def _on_subscribe(self, message: SubscribeEvent, body: str) -> None:
        info = message.info
        queue: asyncio.Queue = asyncio.Queue()
        sender = DataSender(info.sub_data_type, queue)
        if info.sub_data_type is SubDataType.FRAME:
            receiver = DataReceiver(frame_receiver=queue)
        else:
            receiver = DataReceiver(packet_receiver=queue)
        try:
            statistic_sender = await self.subscribe(message.identifier, info, sender)
        except StreamHubError as err:
            log.error("event_loop Subscribe error: %s", err)
            _settle(message.result, error=err)
            return
        if self.notifier is not None:
            await self.notifier.on_play_notify(body)
        self.un_pub_sub_events[info.id] = UnSubscribeEvent(message.identifier, info)
        _settle(message.result, (receiver, statistic_sender))

    def request(self, identifier: StreamIdentifier, sender: asyncio.Queue) -> None:
        """Ask a stream's handler to send its information (such as SDP) to ``sender``."""
        producer = self.streams.get(identifier)
        if producer is not None:
            log.info("Request: stream identifier: %s", identifier)
            producer.put_nowait(TransceiverRequest(sender))

    async def api_statistic(
        self,
        top_n: Optional[int],
        identifier: Optional[StreamIdentifier],
        uuid: Optional[uuid.UUID],
    ) -> Any:
        """Statistics of one or all streams as JSON-ready data; ``{}`` when nothing is published."""
        if not self.streams:
            return {}
        results: asyncio.Queue = asyncio.Queue()
        if identifier is not None:
            producer = self.streams.get(identifier)
            if producer is None:
                return []
            producer.put_nowait(TransceiverApi(results, uuid))
            stream_count = 1
        else:
            stream_count = len(self.streams)
            for producer in self.streams.values():
                producer.put_nowait(TransceiverApi(results, uuid))

        data = [await results.get() for _ in range(stream_count)]
        if top_n is not None:
            data.sort(key=lambda stats: stats.subscriber_count, reverse=True)
            data = data[:top_n]
        return [stats.to_dict() for stats in data]

    def api_kick_off_client(self, uid: uuid.UUID) -> None:
        """Queue the unpublish/unsubscribe event recorded for a client."""
        event = self.un_pub_sub_events.get(uid)
        if event is None:
            log.warning("cannot find uid: %s", uid)
            return
        if isinstance(event, UnPublishEvent):
            self.hub_event_sender.put_nowait(UnPublishEvent(event.identifier, event.info))
        elif isinstance(event, UnSubscribeEvent):
            self.hub_event_sender.put_nowait(UnSubscribeEvent(event.identifier, event.info))

    async def subscribe(
        self,
        identifier: StreamIdentifier,
        sub_info: SubscriberInfo,
        sender: DataSender,
    ) -> asyncio.Queue:
        """Attach a subscriber to a published stream; return the statistics queue."""
        producer = self.streams.get(identifier)
        if producer is not None:
            result: asyncio.Future = asyncio.get_running_loop().create_future()
            log.info("subscribe: stream identifier: %s", identifier)
            producer.put_nowait(TransceiverSubscribe(sender, sub_info, result))
            return await result

        if self.rtmp_pull_enabled:
            log.info("subscribe: try to pull stream, identifier: %s", identifier)
            self.client_events.send(BroadcastEvent(BroadcastKind.SUBSCRIBE, identifier))

        raise StreamHubError(StreamHubErrorKind.NO_APP_OR_STREAM_NAME)

    def unsubscribe(self, identifier: StreamIdentifier, sub_info: SubscriberInfo) -> None:
        producer = self.streams.get(identifier)
        if producer is None:
            log.info("unsubscribe None....:%s", identifier)
            raise StreamHubError(StreamHubErrorKind.NO_APP_NAME)
        log.info("unsubscribe....:%s", identifier)
        producer.put_nowait(TransceiverUnSubscribe(sub_info))

    async def publish(
        self,
        identifier: StreamIdentifier,
        receiver: DataReceiver,
        handler: StreamHandler,
    ) -> asyncio.Queue:
        """Start a transceiver for a new stream; return its statistics queue."""
        if identifier in self.streams:
            raise StreamHubError(StreamHubErrorKind.EXISTS)

        event_queue: asyncio.Queue = asyncio.Queue()
        transceiver = StreamDataTransceiver(
            receiver, event_queue, identifier, handler, self._statistics_interval
        )
        statistic_sender = transceiver.statistic_data_sender
        await transceiver.run()
        log.info("transceiver run success, identifier: %s", identifier)

        self.streams[identifier] = event_queue
        self._transceivers[identifier] = transceiver

        if self.rtmp_push_enabled or self.hls_enabled or self.rtmp_remuxer_enabled:
            self.client_events.send(BroadcastEvent(BroadcastKind.PUBLISH, identifier))

        return statistic_sender

    def unpublish(self, identifier: StreamIdentifier) -> None:
        producer = self.streams.pop(identifier, None)
        if producer is None:
            raise StreamHubError(StreamHubErrorKind.NO_APP_NAME)
        self._transceivers.pop(identifier, None)
        producer.put_nowait(TransceiverUnPublish())
        log.info("unpublish remove stream, stream identifier: %s", identifier)