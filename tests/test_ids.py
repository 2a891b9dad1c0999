import json

from mediahub.ids import NIL_ID, new_id, parse_id


def test_uuid_round_trip():
    ident = new_id()
    text = str(ident)
    assert json.dumps(text) == f'"{text}"'
    assert parse_id(text) == ident
    assert str(parse_id(text)) == text


def test_new_ids_are_random_v4():
    first, second = new_id(), new_id()
    assert first != second
    assert first.version == 4


def test_parse_rejects_garbage():
    assert parse_id("not-a-uuid") is None
    assert parse_id("") is None


def test_nil_id_parses():
    assert parse_id("00000000-0000-0000-0000-000000000000") == NIL_ID