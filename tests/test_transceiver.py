import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from mediahub.define import (
    AudioFrame,
    AudioPacket,
    AudioStat,
    DataReceiver,
    DataSender,
    MetaDataFrame,
    NotifyInfo,
    PublisherStat,
    SdpInformation,
    StreamHandler,
    SubDataType,
    SubscriberInfo,
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
from mediahub.statistics import StatisticsStream
from mediahub.stream import rtmp_stream
from mediahub.transceiver import (
    AAC_RAW,
    AAC_SEQHDR,
    StreamDataTransceiver,
    apply_statistic_data,
    forward_frame,
    forward_packet,
)

T = 2.0


def _sub_info(sub_type=SubscribeType.PLAYER_RTMP, data_type=SubDataType.FRAME):
    return SubscriberInfo(
        id=uuid.uuid4(),
        sub_type=sub_type,
        notify_info=NotifyInfo(request_url="rtmp://localhost/live/a", remote_addr="127.0.0.1:1"),
        sub_data_type=data_type,
    )


class PriorHandler(StreamHandler):
    def __init__(self, fail=False):
        self.fail = fail
        self.requests = []

    async def send_prior_data(self, sender, sub_type):
        if self.fail:
            raise StreamHubError(StreamHubErrorKind.NOT_CORRECT_DATA_SENDER_TYPE)
        sender.send(MetaDataFrame(timestamp=0, data=b"meta"))

    async def send_information(self, sender):
        self.requests.append(sender)
        sender.put_nowait(SdpInformation(data="v=0"))


def test_forward_frame_reaches_every_sender():
    queues = {uuid.uuid4(): asyncio.Queue(), uuid.uuid4(): asyncio.Queue()}
    frame = AudioFrame(timestamp=5, data=b"\xaf\x01")
    forward_frame(frame, queues)
    assert [q.get_nowait() for q in queues.values()] == [frame, frame]


def test_forward_frame_skips_metadata():
    queue = asyncio.Queue()
    forward_frame(MetaDataFrame(timestamp=0, data=b"x"), {uuid.uuid4(): queue})
    assert queue.empty()


def test_forward_frame_full_queue_does_not_stop_others():
    full = asyncio.Queue(maxsize=1)
    full.put_nowait("old")
    other = asyncio.Queue()
    frame = VideoFrame(timestamp=1, data=b"v")
    forward_frame(frame, {uuid.uuid4(): full, uuid.uuid4(): other})
    assert other.get_nowait() == frame
    assert full.qsize() == 1


def test_forward_packet():
    queue = asyncio.Queue()
    packets = [VideoPacket(timestamp=1, data=b"a"), AudioPacket(timestamp=2, data=b"b")]
    for packet in packets:
        forward_packet(packet, {uuid.uuid4(): queue})
    assert [queue.get_nowait(), queue.get_nowait()] == packets


def test_publisher_audio_only_raw_counts_for_audio_bytes():
    stats = StatisticsStream()
    apply_statistic_data(stats, AudioStat(uuid=None, data_size=10, aac_packet_type=AAC_SEQHDR))
    assert stats.publisher.audio.recv_bytes == 0
    apply_statistic_data(stats, AudioStat(uuid=None, data_size=30, aac_packet_type=AAC_RAW))
    assert stats.publisher.audio.recv_bytes == 30
    assert stats.total_recv_bytes == 40


def test_subscriber_traffic_counts():
    stats = StatisticsStream()
    sid = uuid.uuid4()
    apply_statistic_data(stats, SubscriberStat(
        id=sid, remote_addr="127.0.0.1:2", sub_type=SubscribeType.PLAYER_RTMP,
        start_time=datetime.now(timezone.utc)))
    apply_statistic_data(stats, AudioStat(uuid=sid, data_size=7, aac_packet_type=1))
    apply_statistic_data(stats, VideoStat(uuid=sid, data_size=20, frame_count=1))
    sub = stats.subscribers[sid]
    assert sub.send_bytes == 27
    assert sub.total_send_bytes == 20
    assert stats.total_send_bytes == 27
    assert sub.remote_address == "127.0.0.1:2"


def test_unknown_subscriber_still_counts_total():
    stats = StatisticsStream()
    apply_statistic_data(stats, VideoStat(uuid=uuid.uuid4(), data_size=9, frame_count=1))
    assert stats.total_send_bytes == 9
    assert stats.subscribers == {}


def test_publisher_video_gop_tracking():
    stats = StatisticsStream()
    for key in (True, False, False, True):
        apply_statistic_data(stats, VideoStat(uuid=None, data_size=100, frame_count=1, is_key_frame=key))
    video = stats.publisher.video
    assert video.gop == 3
    assert video.recv_frame_count_for_gop == 1
    assert video.recv_frame_count == 4
    assert stats.publisher.recv_bytes == video.recv_bytes == stats.total_recv_bytes


def test_codec_and_publisher_reports():
    stats = StatisticsStream()
    pid = uuid.uuid4()
    start = datetime.now(timezone.utc)
    apply_statistic_data(stats, VideoCodecStat(codec="H264", profile="Main", level="L31", width=1280, height=720))
    apply_statistic_data(stats, PublisherStat(id=pid, remote_addr="10.0.0.1:3", start_time=start))
    assert (stats.publisher.video.width, stats.publisher.video.height) == (1280, 720)
    assert stats.publisher.id == pid
    assert stats.publisher.start_time == start


async def _start(handler=None, frames=True, packets=False):
    receiver = DataReceiver(
        frame_receiver=asyncio.Queue() if frames else None,
        packet_receiver=asyncio.Queue() if packets else None,
    )
    events = asyncio.Queue()
    transceiver = StreamDataTransceiver(receiver, events, rtmp_stream("live", "a"),
                                        handler or PriorHandler(), statistics_interval=1000)
    await transceiver.run()
    return transceiver, receiver, events


@pytest.mark.asyncio
async def test_subscribe_forward_and_unpublish():
    transceiver, receiver, events = await _start()
    info = _sub_info()
    out = asyncio.Queue()
    fut = asyncio.get_running_loop().create_future()
    await events.put(TransceiverSubscribe(sender=DataSender(SubDataType.FRAME, out), info=info, result=fut))
    stat_queue = await asyncio.wait_for(fut, T)
    assert stat_queue is transceiver.statistic_data_sender

    assert (await asyncio.wait_for(out.get(), T)) == MetaDataFrame(timestamp=0, data=b"meta")
    frame = VideoFrame(timestamp=40, data=b"\x17")
    await receiver.frame_receiver.put(frame)
    assert (await asyncio.wait_for(out.get(), T)) == frame

    await stat_queue.put(AudioStat(uuid=None, data_size=50, aac_packet_type=AAC_RAW))
    answers = asyncio.Queue()
    for _ in range(50):
        await events.put(TransceiverApi(sender=answers))
        snapshot = await asyncio.wait_for(answers.get(), T)
        if snapshot.total_recv_bytes:
            break
    assert snapshot.subscriber_count == 1
    assert snapshot.total_recv_bytes == 50
    assert snapshot is not transceiver.statistics

    await events.put(TransceiverUnSubscribe(info=info))
    await events.put(TransceiverUnPublish())
    await asyncio.wait_for(transceiver.wait_closed(), T)
    assert transceiver.frame_senders == {}
    assert transceiver.statistics.subscriber_count == 0


@pytest.mark.asyncio
async def test_api_by_uuid_narrows_to_subscriber():
    transceiver, _, events = await _start()
    keep, drop = uuid.uuid4(), uuid.uuid4()
    now = datetime.now(timezone.utc)
    for sid in (keep, drop):
        apply_statistic_data(transceiver.statistics, SubscriberStat(
            id=sid, remote_addr="r", sub_type=SubscribeType.PLAYER_HLS, start_time=now))
    answers = asyncio.Queue()
    await events.put(TransceiverApi(sender=answers, uuid=keep))
    snapshot = await asyncio.wait_for(answers.get(), T)
    assert list(snapshot.subscribers) == [keep]
    await events.put(TransceiverUnPublish())
    await asyncio.wait_for(transceiver.wait_closed(), T)


@pytest.mark.asyncio
async def test_packet_subscriber_and_unsubscribe():
    transceiver, receiver, events = await _start(frames=False, packets=True)
    info = _sub_info(SubscribeType.PLAYER_RTP, SubDataType.PACKET)
    out = asyncio.Queue()
    fut = asyncio.get_running_loop().create_future()
    await events.put(TransceiverSubscribe(sender=DataSender(SubDataType.PACKET, out), info=info, result=fut))
    await asyncio.wait_for(fut, T)
    assert list(transceiver.packet_senders) == [info.id]
    await out.get()
    packet = AudioPacket(timestamp=3, data=b"rtp")
    await receiver.packet_receiver.put(packet)
    assert (await asyncio.wait_for(out.get(), T)) == packet
    await events.put(TransceiverUnSubscribe(info=info))
    await events.put(TransceiverUnPublish())
    await asyncio.wait_for(transceiver.wait_closed(), T)
    assert transceiver.packet_senders == {}


@pytest.mark.asyncio
async def test_prior_data_failure_fails_subscribe():
    transceiver, _, events = await _start(handler=PriorHandler(fail=True))
    fut = asyncio.get_running_loop().create_future()
    await events.put(TransceiverSubscribe(
        sender=DataSender(SubDataType.FRAME, asyncio.Queue()), info=_sub_info(), result=fut))
    with pytest.raises(StreamHubError) as excinfo:
        await asyncio.wait_for(fut, T)
    assert excinfo.value.kind is StreamHubErrorKind.RECV_ERROR
    assert transceiver.frame_senders == {}


@pytest.mark.asyncio
async def test_request_goes_to_handler():
    handler = PriorHandler()
    transceiver, _, events = await _start(handler=handler)
    answers = asyncio.Queue()
    await events.put(TransceiverRequest(sender=answers))
    assert (await asyncio.wait_for(answers.get(), T)) == SdpInformation(data="v=0")
    assert handler.requests == [answers]
    await events.put(TransceiverUnPublish())
    await asyncio.wait_for(transceiver.wait_closed(), T)


@pytest.mark.asyncio
async def test_run_twice_is_rejected():
    transceiver, _, events = await _start()
    with pytest.raises(RuntimeError):
        await transceiver.run()
    await events.put(TransceiverUnPublish())
    await asyncio.wait_for(transceiver.wait_closed(), T)