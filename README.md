# mediahub

An asyncio stream hub that routes live audio and video from publishers to
subscribers, keeps per-stream traffic statistics, and ships a few RTMP helpers
(URL parsing, user control messages, session constants, hex dumps).

## Installing

```
pip install mediahub
```

The `test` extra pulls in pytest and pytest-asyncio for the test suite:

```
pip install "mediahub[test]"
```

## What is inside

- `mediahub.stream`: stream identifiers. `StreamIdentifier` is hashable and
  built with `rtmp_stream(app, stream)`, `rtsp_stream(path)` or
  `webrtc_stream(app, stream)`; `to_dict()` and `identifier_from_dict()`
  convert to and from a JSON-ready form.
- `mediahub.ids`: session ids. `new_id()` returns a random `uuid.UUID`;
  `parse_id(text)` returns a UUID or `None`.
- `mediahub.errors`: `StreamHubError`, whose `kind` is a `StreamHubErrorKind`.
- `mediahub.define`: the shared types. Subscriber and publisher info
  (`SubscriberInfo`, `PublisherInfo`, `NotifyInfo`), frames (`VideoFrame`,
  `AudioFrame`, `MetaDataFrame`, `MediaInfoFrame`), RTP packets
  (`VideoPacket`, `AudioPacket`), hub events (`PublishEvent`,
  `UnPublishEvent`, `SubscribeEvent`, `UnSubscribeEvent`,
  `ApiStatisticEvent`, `ApiKickClientEvent`, `RequestEvent`), transceiver
  events, statistics reports (`AudioStat`, `VideoStat`, `PublisherStat`,
  `SubscriberStat`, `AudioCodecStat`, `VideoCodecStat`), `BroadcastEvent`,
  and `StreamHandler`, the hooks a publishing protocol gives the hub. The base
  `StreamHandler` replays a fixed list of prior items to each new subscriber;
  subclass it to replay your own cache.
- `mediahub.statistics`: `StatisticsStream` holds one stream's publisher and
  subscriber statistics; `query_by_uuid()` narrows it to the publisher or to
  one subscriber. `StatisticsCalculator` turns byte and frame counters into
  bitrates (kbit/s), frame rate and GOP length every interval (10 s by
  default).
- `mediahub.transceiver`: `StreamDataTransceiver` fans one publisher's frames
  and packets out to that stream's subscribers and folds statistics reports
  into its `StatisticsStream`.
- `mediahub.hub`: `StreamsHub`, the central event loop, which keeps one
  transceiver per published stream. Its `BroadcastChannel` carries publish and
  subscribe notices to relay clients when `rtmp_push_enabled`,
  `rtmp_pull_enabled`, `rtmp_remuxer_enabled` or `hls_enabled` is set.
- `mediahub.notify`: `Notifier` POSTs the JSON event body to the configured
  URLs on publish, unpublish, play and stop; failures are logged, not raised.
- `mediahub.rtmp.url`: `RtmpUrlParser` and `parse_stream_name_with_query`.
- `mediahub.rtmp.user_control`: `EventMessagesReader` parses stream begin,
  stream is recorded and set buffer length events from bytes;
  `EventMessagesWriter` writes those and the EOF, dry and ping events as
  complete chunks to any object with `write()` and `drain()`, such as an
  `asyncio.StreamWriter`.
- `mediahub.rtmp.session_define`: session constants, `SessionType`, and
  `SessionError` with its `SessionErrorKind`.
- `mediahub.rtmp.hexdump`: `format_hex`, `format_decimal`, `print_hex`,
  `print_hex_titled`, `print_decimal`, `print_array`.

## Publishing and subscribing through the hub

Sessions put events on `hub.hub_event_sender`. `PublishEvent` and
`SubscribeEvent` carry a future that the hub resolves with the new queues, or
sets to a `StreamHubError`.

```python
import asyncio

from mediahub.define import (
    NotifyInfo, PubDataType, PublishEvent, PublisherInfo, PublishType,
    StreamHandler, SubDataType, SubscribeEvent, SubscriberInfo,
    SubscribeType, VideoFrame,
)
from mediahub.hub import StreamsHub
from mediahub.ids import new_id
from mediahub.stream import rtmp_stream


async def main():
    hub = StreamsHub()
    loop_task = asyncio.create_task(hub.run())
    stream = rtmp_stream("live", "demo")
    loop = asyncio.get_running_loop()

    published = loop.create_future()
    hub.hub_event_sender.put_nowait(PublishEvent(
        stream,
        PublisherInfo(new_id(), PublishType.PUSH_RTMP, PubDataType.FRAME,
                      NotifyInfo("rtmp://localhost/live/demo", "127.0.0.1:5000")),
        published,
        StreamHandler(),
    ))
    frame_queue, _packet_queue, _stats_queue = await published

    subscribed = loop.create_future()
    hub.hub_event_sender.put_nowait(SubscribeEvent(
        stream,
        SubscriberInfo(new_id(), SubscribeType.PLAYER_RTMP,
                       NotifyInfo("rtmp://localhost/live/demo", "127.0.0.1:5001"),
                       SubDataType.FRAME),
        subscribed,
    ))
    receiver, _stats_queue = await subscribed

    frame_queue.put_nowait(VideoFrame(timestamp=0, data=b"\x17\x01"))
    print(await receiver.frame_receiver.get())

    loop_task.cancel()


asyncio.run(main())
```

To receive HTTP callbacks, pass a notifier:
`StreamsHub(Notifier(on_publish_url="http://localhost:8080/on_publish"))`,
and call `await notifier.close()` (or use it as `async with`) when done.

## Parsing an RTMP URL

```python
from mediahub.rtmp.url import RtmpUrlParser

parser = RtmpUrlParser("rtmp://domain.name.cn:1935/app_name/stream_name?auth_key=test_Key")
parser.parse_url()
parser.host          # "domain.name.cn"
parser.port          # "1935"
parser.app_name      # "app_name"
parser.stream_name   # "stream_name"
parser.query         # "auth_key=test_Key"
```

A URL without the `rtmp://` scheme, or without exactly host, app and stream
parts, raises `RtmpUrlParseError`.

## What this package does not do

It is a library, not a media server. There is no RTMP server or client
session: no handshake, no chunk packing or unpacking, no AMF encoding, and no
GOP cache for late joiners beyond what a `StreamHandler` subclass supplies.
There is no HLS, HTTP-FLV, RTSP or WebRTC support, no listening socket, no
configuration file and no command-line program. Those pieces are expected to
sit on top of the hub and feed it events.