import pytest

from mediahub.rtmp.url import RtmpUrlParseError, RtmpUrlParser, parse_stream_name_with_query


def test_rtmp_url_parser_with_port_and_query():
    parser = RtmpUrlParser("rtmp://domain.name.cn:1935/app_name/stream_name?auth_key=test_Key")
    parser.parse_url()
    assert parser.host_with_port == "domain.name.cn:1935"
    assert parser.port == "1935"
    assert parser.host == "domain.name.cn"
    assert parser.app_name == "app_name"
    assert parser.stream_name_with_query == "stream_name?auth_key=test_Key"
    assert parser.stream_name == "stream_name"
    assert parser.query == "auth_key=test_Key"


def test_rtmp_url_parser_without_port_and_query():
    parser = RtmpUrlParser("rtmp://domain.name.cn/app_name/stream_name")
    parser.parse_url()
    assert parser.host_with_port == "domain.name.cn"
    assert parser.port is None
    assert parser.host == "domain.name.cn"
    assert parser.app_name == "app_name"
    assert parser.stream_name_with_query == "stream_name"
    assert parser.stream_name == "stream_name"
    assert parser.query is None


@pytest.mark.parametrize(
    "url",
    [
        "http://domain.name.cn/app_name/stream_name",
        "rtmp://domain.name.cn/app_name",
        "rtmp://domain.name.cn/app_name/stream_name/extra",
        "",
    ],
)
def test_invalid_urls_raise(url):
    parser = RtmpUrlParser(url)
    with pytest.raises(RtmpUrlParseError, match="The url is not valid"):
        parser.parse_url()


def test_scheme_may_follow_a_prefix():
    parser = RtmpUrlParser("xxrtmp://h:1/a/s")
    parser.parse_url()
    assert (parser.host, parser.port, parser.app_name, parser.stream_name) == ("h", "1", "a", "s")


def test_parse_stream_name_with_query():
    assert parse_stream_name_with_query("stream_name?auth_key=test_Key") == (
        "stream_name",
        "auth_key=test_Key",
    )
    assert parse_stream_name_with_query("stream_name") == ("stream_name", None)
    assert parse_stream_name_with_query("a?b?c") == ("a", "b")


def test_parse_host_with_port_directly():
    parser = RtmpUrlParser(host_with_port="domain.name.cn:1935")
    parser.parse_host_with_port()
    assert parser.host == "domain.name.cn"
    assert parser.port == "1935"


def test_append_port_adds_when_missing():
    parser = RtmpUrlParser("rtmp://domain.name.cn/app_name/stream_name")
    parser.parse_url()
    parser.append_port("1935")
    assert parser.host_with_port == "domain.name.cn:1935"
    assert parser.port == "1935"


def test_append_port_keeps_existing_port():
    parser = RtmpUrlParser("rtmp://domain.name.cn:1935/app_name/stream_name")
    parser.parse_url()
    parser.append_port("8080")
    assert parser.host_with_port == "domain.name.cn:1935"
    assert parser.port == "1935"