"""CloudEventDecoder unit tests."""

import asyncio
import json
from collections.abc import Callable
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from k1s0_cloudevents import (
    CloudEvent,
    CloudEventAttribute,
    CloudEventAttributeType,
    CloudEventDecoder,
    CloudEventFormatter,
    CloudEventsError,
    CloudEventsErrorCodes,
    CloudEventsSpecVersion,
    DecoderConfig,
    DuplicateAttributeHeaderError,
    JsonEventFormatter,
    MissingFormatterError,
    MissingSpecVersionError,
    UnsupportedSpecVersionError,
    encode_header_value,
    get_header_name_for_attribute,
    is_cloud_event,
    is_cloud_event_batch,
    read_cloud_event,
    read_cloud_event_batch,
)
from structlog.testing import capture_logs

BINARY_HEADERS = [
    ("ce-specversion", "1.0"),
    ("ce-type", "com.example.test"),
    ("ce-source", "/test"),
    ("ce-id", "123"),
]


def _mock_formatter() -> MagicMock:
    formatter = MagicMock()
    formatter.decode_structured_mode_message = AsyncMock()
    formatter.decode_binary_mode_event_data = MagicMock(return_value=None)
    return formatter


def _to_binary_headers(event: CloudEvent) -> list[tuple[str, str]]:
    headers = [("ce-specversion", event.spec_version.version_id)]
    for attribute, value in event.get_populated_attributes():
        if attribute.name == "datacontenttype":
            continue
        headers.append(
            (
                get_header_name_for_attribute(attribute.name),
                encode_header_value(attribute.format(value)),
            )
        )
    return headers


async def test_binary_mode_scenario(make_request: Callable[..., object]) -> None:
    request = make_request(BINARY_HEADERS, body=b"hello", content_type="text/plain")
    event = await read_cloud_event(request, JsonEventFormatter())
    assert event.spec_version is CloudEventsSpecVersion.V1_0
    assert event.type == "com.example.test"
    assert event.source == "/test"
    assert event.id == "123"
    assert event.data_content_type == "text/plain"
    assert event.data == "hello"


async def test_structured_mode_delegates_to_formatter(make_request: Callable[..., object]) -> None:
    body = json.dumps(
        {"specversion": "1.0", "id": "1", "source": "/s", "type": "t", "data": {"k": "v"}}
    ).encode()
    request = make_request(
        [("ce-id", "ignored")], body=body, content_type="application/cloudevents+json"
    )
    expected = CloudEvent()
    formatter = _mock_formatter()
    formatter.decode_structured_mode_message.return_value = expected
    ext = CloudEventAttribute.create_extension("tenant")

    result = await read_cloud_event(request, formatter, ext)

    assert result is expected
    formatter.decode_binary_mode_event_data.assert_not_called()
    args = formatter.decode_structured_mode_message.await_args.args
    assert args[1].media_type == "application/cloudevents+json"
    assert tuple(args[2]) == (ext,)


async def test_structured_mode_content_type_is_case_insensitive(
    make_request: Callable[..., object],
) -> None:
    request = make_request(body=b"{}", content_type="Application/CloudEvents+JSON")
    formatter = _mock_formatter()
    formatter.decode_structured_mode_message.return_value = CloudEvent()
    await read_cloud_event(request, formatter)
    formatter.decode_structured_mode_message.assert_awaited_once()


async def test_structured_mode_with_json_formatter(make_request: Callable[..., object]) -> None:
    body = json.dumps(
        {"specversion": "1.0", "id": "1", "source": "/s", "type": "t", "data": {"k": "v"}}
    ).encode()
    request = make_request(body=body, content_type="application/cloudevents+json; charset=utf-8")
    event = await read_cloud_event(request, JsonEventFormatter())
    assert event.id == "1"
    assert event.data == {"k": "v"}


async def test_structured_mode_formatter_failure_propagates(
    make_request: Callable[..., object],
) -> None:
    request = make_request(body=b"{}", content_type="application/cloudevents+json")
    formatter = _mock_formatter()
    failure = ValueError("bad body")
    formatter.decode_structured_mode_message.side_effect = failure
    with pytest.raises(ValueError) as exc_info:
        await read_cloud_event(request, formatter)
    assert exc_info.value is failure


async def test_missing_spec_version(make_request: Callable[..., object]) -> None:
    request = make_request([("ce-id", "1")], body=b"data", content_type="text/plain")
    formatter = _mock_formatter()
    with capture_logs() as logs, pytest.raises(MissingSpecVersionError) as exc_info:
        await read_cloud_event(request, formatter)
    assert exc_info.value.code == CloudEventsErrorCodes.MISSING_SPEC_VERSION
    assert "not a CloudEvent" in str(exc_info.value)
    assert request.stream_calls == 0
    formatter.decode_binary_mode_event_data.assert_not_called()
    assert logs[0]["log_level"] == "warning"


async def test_unsupported_spec_version(make_request: Callable[..., object]) -> None:
    request = make_request([("ce-specversion", "9.9-beta")], content_type="text/plain")
    with pytest.raises(UnsupportedSpecVersionError) as exc_info:
        await read_cloud_event(request, _mock_formatter())
    assert "9.9-beta" in str(exc_info.value)
    assert exc_info.value.version_id == "9.9-beta"


async def test_missing_formatter(make_request: Callable[..., object]) -> None:
    request = make_request(BINARY_HEADERS, body=b"x")
    with pytest.raises(MissingFormatterError):
        await read_cloud_event(request, None)  # type: ignore[arg-type]
    assert request.stream_calls == 0


async def test_missing_formatter_structured(make_request: Callable[..., object]) -> None:
    request = make_request(body=b"{}", content_type="application/cloudevents+json")
    with pytest.raises(MissingFormatterError):
        await read_cloud_event(request, None)  # type: ignore[arg-type]
    assert request.stream_calls == 0


async def test_spec_version_never_stored_and_content_type_copied(
    make_request: Callable[..., object],
) -> None:
    request = make_request(BINARY_HEADERS, body=b"{}", content_type="application/json")
    event = await read_cloud_event(request, JsonEventFormatter())
    assert "specversion" not in event
    assert all(attr.name != "specversion" for attr, _ in event.get_populated_attributes())
    assert event.data_content_type == "application/json"


async def test_absent_content_type_leaves_data_content_type_unset(
    make_request: Callable[..., object],
) -> None:
    request = make_request(BINARY_HEADERS + [("ce-datacontenttype", "text/plain")], body=b"")
    event = await read_cloud_event(request, JsonEventFormatter())
    assert event.data_content_type is None
    assert event.data is None


async def test_non_attribute_headers_ignored(make_request: Callable[..., object]) -> None:
    headers = BINARY_HEADERS + [("Authorization", "Bearer x"), ("X-Request-Id", "r1")]
    event = await read_cloud_event(make_request(headers), JsonEventFormatter())
    names = {attr.name for attr, _ in event.get_populated_attributes()}
    assert names == {"id", "source", "type"}


async def test_header_values_are_decoded(make_request: Callable[..., object]) -> None:
    headers = BINARY_HEADERS + [("ce-subject", "caf%C3%A9%20menu")]
    event = await read_cloud_event(make_request(headers), JsonEventFormatter())
    assert event.subject == "café menu"


async def test_extension_declarations_type_headers(make_request: Callable[..., object]) -> None:
    priority = CloudEventAttribute.create_extension("priority", CloudEventAttributeType.INTEGER)
    headers = BINARY_HEADERS + [("ce-priority", "3"), ("ce-tenant", "acme")]
    event = await read_cloud_event(make_request(headers), JsonEventFormatter(), priority)
    assert event["priority"] == 3
    assert event["tenant"] == "acme"


async def test_invalid_attribute_value_fails(make_request: Callable[..., object]) -> None:
    headers = BINARY_HEADERS + [("ce-time", "not-a-time")]
    with pytest.raises(CloudEventsError) as exc_info:
        await read_cloud_event(make_request(headers), JsonEventFormatter())
    assert exc_info.value.code == CloudEventsErrorCodes.INVALID_ATTRIBUTE


async def test_duplicate_attribute_header_rejected_by_default(
    make_request: Callable[..., object],
) -> None:
    headers = BINARY_HEADERS + [("ce-subject", "a"), ("CE-Subject", "b")]
    with pytest.raises(DuplicateAttributeHeaderError) as exc_info:
        await read_cloud_event(make_request(headers), JsonEventFormatter())
    assert exc_info.value.header_name == "ce-subject"


async def test_duplicate_attribute_header_last_wins(make_request: Callable[..., object]) -> None:
    headers = BINARY_HEADERS + [("ce-subject", "a"), ("ce-subject", "b")]
    decoder = CloudEventDecoder(DecoderConfig(duplicate_header_policy="last_wins"))
    event = await decoder.decode(make_request(headers), JsonEventFormatter())
    assert event.subject == "b"


async def test_body_buffered_and_handed_to_formatter(make_request: Callable[..., object]) -> None:
    request = make_request(BINARY_HEADERS, body=b"0123456789", content_type="application/octet-stream")
    formatter = _mock_formatter()
    event = await read_cloud_event(request, formatter)
    formatter.decode_binary_mode_event_data.assert_called_once_with(b"0123456789", event)
    assert request.stream_calls == 1


async def test_async_binary_data_handler_is_awaited(make_request: Callable[..., object]) -> None:
    formatter = _mock_formatter()

    async def apply(body: bytes, event: CloudEvent) -> None:
        await asyncio.sleep(0)
        event.data = body.upper()

    formatter.decode_binary_mode_event_data = apply
    event = await read_cloud_event(make_request(BINARY_HEADERS, body=b"abc"), formatter)
    assert event.data == b"ABC"


async def test_binary_formatter_failure_propagates(make_request: Callable[..., object]) -> None:
    formatter = _mock_formatter()
    failure = RuntimeError("decode failed")
    formatter.decode_binary_mode_event_data.side_effect = failure
    with pytest.raises(RuntimeError) as exc_info:
        await read_cloud_event(make_request(BINARY_HEADERS, body=b"abc"), formatter)
    assert exc_info.value is failure


async def test_cancellation_propagates(make_request: Callable[..., object]) -> None:
    formatter = _mock_formatter()
    formatter.decode_binary_mode_event_data = AsyncMock(side_effect=asyncio.CancelledError())
    with pytest.raises(asyncio.CancelledError):
        await read_cloud_event(make_request(BINARY_HEADERS, body=b"abc"), formatter)


async def test_max_body_bytes(make_request: Callable[..., object]) -> None:
    decoder = CloudEventDecoder(DecoderConfig(max_body_bytes=8))
    request = make_request(BINARY_HEADERS, body=b"x" * 20, content_type="text/plain")
    with pytest.raises(CloudEventsError) as exc_info:
        await decoder.decode(request, JsonEventFormatter())
    assert exc_info.value.code == CloudEventsErrorCodes.BODY_TOO_LARGE


async def test_max_body_bytes_structured(make_request: Callable[..., object]) -> None:
    decoder = CloudEventDecoder(DecoderConfig(max_body_bytes=8))
    body = json.dumps({"specversion": "1.0", "id": "1", "source": "/s", "type": "t"}).encode()
    request = make_request(body=body, content_type="application/cloudevents+json")
    with pytest.raises(CloudEventsError) as exc_info:
        await decoder.decode(request, JsonEventFormatter())
    assert exc_info.value.code == CloudEventsErrorCodes.BODY_TOO_LARGE


async def test_binary_round_trip(make_request: Callable[..., object]) -> None:
    priority = CloudEventAttribute.create_extension("priority", CloudEventAttributeType.INTEGER)
    original = CloudEvent(CloudEventsSpecVersion.V1_0, [priority])
    original.id = "evt-1"
    original.source = "urn:example:orders"
    original.type = "com.example.order.created"
    original.subject = "order 42 \"rush\""
    original.time = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    original.data_schema = "https://example.com/schema.json"
    original["priority"] = 2
    original.data_content_type = "application/json"

    request = make_request(
        _to_binary_headers(original), body=b'{"n": 42}', content_type="application/json"
    )
    decoded = await read_cloud_event(request, JsonEventFormatter(), priority)

    assert decoded.spec_version is original.spec_version
    assert dict((a.name, v) for a, v in decoded.get_populated_attributes()) == dict(
        (a.name, v) for a, v in original.get_populated_attributes()
    )
    assert decoded.data == {"n": 42}


async def test_decoder_is_reusable(make_request: Callable[..., object]) -> None:
    decoder = CloudEventDecoder()
    first = await decoder.decode(
        make_request(BINARY_HEADERS, body=b"a", content_type="text/plain"), JsonEventFormatter()
    )
    second = await decoder.decode(
        make_request(BINARY_HEADERS[:-1] + [("ce-id", "456")], body=b"b", content_type="text/plain"),
        JsonEventFormatter(),
    )
    assert (first.id, first.data) == ("123", "a")
    assert (second.id, second.data) == ("456", "b")


def test_is_cloud_event(make_request: Callable[..., object]) -> None:
    assert is_cloud_event(make_request(BINARY_HEADERS))
    assert is_cloud_event(make_request(content_type="application/cloudevents+json"))
    assert not is_cloud_event(make_request([("ce-id", "1")], content_type="text/plain"))
    assert is_cloud_event_batch(make_request(content_type="application/cloudevents-batch+json"))


async def test_batch_content_type_goes_to_structured_formatter(
    make_request: Callable[..., object],
) -> None:
    request = make_request(
        BINARY_HEADERS, body=b"[]", content_type="application/cloudevents-batch+json"
    )
    formatter = _mock_formatter()
    formatter.decode_structured_mode_message.return_value = CloudEvent()
    await read_cloud_event(request, formatter)
    formatter.decode_structured_mode_message.assert_awaited_once()
    formatter.decode_binary_mode_event_data.assert_not_called()


async def test_batch_body_rejected_by_single_event_decode(
    make_request: Callable[..., object],
) -> None:
    body = json.dumps([{"specversion": "1.0", "id": "1", "source": "/s", "type": "t"}]).encode()
    request = make_request(
        BINARY_HEADERS, body=body, content_type="application/cloudevents-batch+json"
    )
    with pytest.raises(CloudEventsError) as exc_info:
        await read_cloud_event(request, JsonEventFormatter())
    assert exc_info.value.code == CloudEventsErrorCodes.INVALID_FORMAT


async def test_read_cloud_event_batch(make_request: Callable[..., object]) -> None:
    items = [
        {"specversion": "1.0", "id": str(i), "source": "/s", "type": "t"} for i in range(3)
    ]
    request = make_request(
        body=json.dumps(items).encode(), content_type="application/cloudevents-batch+json"
    )
    events = await read_cloud_event_batch(request, JsonEventFormatter())
    assert [e.id for e in events] == ["0", "1", "2"]


async def test_read_cloud_event_batch_requires_batch_content_type(
    make_request: Callable[..., object],
) -> None:
    request = make_request(BINARY_HEADERS, body=b"[]", content_type="application/json")
    with pytest.raises(CloudEventsError) as exc_info:
        await read_cloud_event_batch(request, JsonEventFormatter())
    assert exc_info.value.code == CloudEventsErrorCodes.NOT_A_BATCH


async def test_batch_unsupported_by_formatter(make_request: Callable[..., object]) -> None:
    class BinaryOnlyFormatter(CloudEventFormatter):
        async def decode_structured_mode_message(self, body, content_type, extension_attributes):
            raise NotImplementedError

        def decode_binary_mode_event_data(self, body, cloud_event):
            cloud_event.data = body

    request = make_request(body=b"[]", content_type="application/cloudevents-batch+json")
    with pytest.raises(CloudEventsError) as exc_info:
        await read_cloud_event_batch(request, BinaryOnlyFormatter())
    assert exc_info.value.code == CloudEventsErrorCodes.UNSUPPORTED_OPERATION


async def test_json_formatter_receives_full_body(
    make_request: Callable[..., object], mocker
) -> None:
    formatter = JsonEventFormatter()
    spy = mocker.spy(formatter, "decode_binary_mode_event_data")
    request = make_request(BINARY_HEADERS, body=b'{"items": [1, 2, 3]}', content_type="application/json")
    event = await read_cloud_event(request, formatter)
    spy.assert_called_once_with(b'{"items": [1, 2, 3]}', event)
    assert event.data == {"items": [1, 2, 3]}
