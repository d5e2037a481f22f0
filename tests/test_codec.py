"""Tests for the JSON payload codec."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from pydantic import BaseModel
from typing_extensions import TypedDict

from json_transport.codec import PayloadCodec, UtcDateConverter, from_json, to_json
from json_transport.errors import CodecSyntaxError
from json_transport.models import REPOSITORIES_TYPE, USERS_TYPE, RepositoryModel, UserModel

CEST = timezone(timedelta(hours=2))
INSTANT = datetime(2011, 6, 15, 10, 30, tzinfo=timezone.utc)


@dataclass
class Event:
    title: str
    when: datetime


class Record(BaseModel):
    title: str
    when: datetime
    seen: Optional[datetime] = None


class Stamp(TypedDict):
    title: str
    when: datetime


def test_dates_are_rendered_in_utc() -> None:
    local = datetime(2011, 6, 15, 12, 30, tzinfo=CEST)

    assert to_json(local) == '"2011-06-15T10:30:00Z"'


def test_encoded_date_matches_pattern() -> None:
    encoded = json.loads(to_json({"when": datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=CEST)}))

    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", encoded["when"])
    assert encoded["when"] == "2024-01-02T01:04:05Z"


def test_decode_known_instant() -> None:
    value = from_json('"2011-06-15T10:30:00Z"', datetime)

    assert value == datetime(2011, 6, 15, 10, 30, tzinfo=timezone.utc)


def test_naive_dates_are_rejected() -> None:
    naive = datetime(2011, 6, 15, 10, 30)

    with pytest.raises(ValueError, match="no time zone"):
        UtcDateConverter().serialize(naive)
    with pytest.raises(ValueError, match="no time zone"):
        to_json({"when": naive})
    with pytest.raises(ValueError):
        to_json(naive)
    with pytest.raises(ValueError):
        RepositoryModel(name="a.git", last_change=naive)


def test_aware_dates_round_trip_in_descriptors() -> None:
    value = {"when": INSTANT, "later": datetime(2011, 6, 15, 14, 30, tzinfo=CEST)}

    assert from_json(to_json(value), Dict[str, datetime]) == value


def test_encode_is_pretty_printed() -> None:
    text = to_json(RepositoryModel(name="ticgit.git", owner="james"))

    assert text.startswith("{\n  ")
    assert '"name": "ticgit.git"' in text


def test_model_round_trip() -> None:
    repository = RepositoryModel(
        name="ticgit.git",
        description="ticket tracker",
        owner="james",
        last_change=datetime(2011, 6, 15, 10, 30, tzinfo=timezone.utc),
        has_commits=True,
    )

    assert from_json(to_json(repository), RepositoryModel) == repository


def test_round_trip_drops_fractional_seconds() -> None:
    repository = RepositoryModel(
        name="a.git", last_change=datetime(2011, 6, 15, 10, 30, 1, 999999, tzinfo=CEST)
    )

    decoded = from_json(to_json(repository), RepositoryModel)

    assert decoded.last_change == datetime(2011, 6, 15, 8, 30, 1, tzinfo=timezone.utc)


def test_decode_generic_descriptors() -> None:
    repositories = {
        "a.git": RepositoryModel(name="a.git"),
        "b.git": RepositoryModel(
            name="b.git", last_change=datetime(2012, 1, 1, tzinfo=timezone.utc)
        ),
    }
    users = [UserModel(username="admin", can_admin=True, repositories=["a.git"])]

    assert from_json(to_json(repositories), REPOSITORIES_TYPE) == repositories
    assert from_json(to_json(users), USERS_TYPE) == users


def test_date_converter_applies_inside_descriptors() -> None:
    text = '{"first": ["2011-06-15T10:30:00Z"], "second": []}'

    decoded = from_json(text, Dict[str, List[datetime]])

    assert decoded["first"] == [datetime(2011, 6, 15, 10, 30, tzinfo=timezone.utc)]
    assert from_json("null", Optional[datetime]) is None


def test_wire_names_are_camel_case() -> None:
    payload = json.loads(to_json(UserModel(username="admin", can_admin=True)))

    assert payload["canAdmin"] is True
    assert "can_admin" not in payload


def test_malformed_date_raises_syntax_error() -> None:
    with pytest.raises(CodecSyntaxError) as excinfo:
        from_json('{"name": "a.git", "lastChange": "15/06/2011"}', RepositoryModel)

    assert excinfo.value.text == "15/06/2011"


def test_malformed_json_raises_syntax_error() -> None:
    text = '{"name": "a.git",'

    with pytest.raises(CodecSyntaxError) as excinfo:
        from_json(text, RepositoryModel)

    assert "Malformed JSON" in str(excinfo.value)
    assert excinfo.value.text == text


def test_custom_converters_can_be_registered() -> None:
    class DayConverter(UtcDateConverter):
        def __init__(self) -> None:
            super().__init__("%Y-%m-%d")

    codec = PayloadCodec(converters={datetime: DayConverter()}, indent=4)

    assert codec.encode([datetime(2011, 6, 15, 23, 0, tzinfo=timezone.utc)]) == '[\n    "2011-06-15"\n]'
    assert codec.decode('"2011-06-15"', datetime) == datetime(2011, 6, 15, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value",
    [
        Event(title="release", when=INSTANT),
        Record(title="release", when=INSTANT),
        Record(title="release", when=INSTANT, seen=datetime(2012, 1, 1, tzinfo=timezone.utc)),
    ],
)
def test_plain_datetime_fields_round_trip(value) -> None:
    text = to_json(value)

    assert '"when": "2011-06-15T10:30:00Z"' in text
    assert from_json(text, type(value)) == value


def test_plain_datetime_typed_dict_round_trip() -> None:
    stamp: Stamp = {"title": "release", "when": INSTANT}

    assert from_json(to_json(stamp), Stamp) == stamp


def test_plain_datetime_fields_decode_fixed_pattern() -> None:
    record = from_json('{"title": "release", "when": "2011-06-15T10:30:00Z"}', Record)

    assert record.when == INSTANT
    assert record.when.utcoffset() == timedelta(0)


@pytest.mark.parametrize("target", [Event, Record, Stamp, List[Record]])
@pytest.mark.parametrize(
    "raw",
    [
        '"2011-06-15"',
        "1308133800",
        '"2011-06-15T10:30:00+05:00"',
        '"2011-06-15T10:30:00.123Z"',
        '"2011-06-15 10:30:00"',
    ],
)
def test_plain_datetime_fields_reject_other_formats(target, raw: str) -> None:
    document = '{"title": "release", "when": %s}' % raw
    if target == List[Record]:
        document = "[%s]" % document

    with pytest.raises(CodecSyntaxError) as excinfo:
        from_json(document, target)

    if raw.startswith('"'):
        assert excinfo.value.text == raw.strip('"')
