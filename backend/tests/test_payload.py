import json
from datetime import timezone

import pytest

from blockhunt.core.errors import InvalidPayloadError
from blockhunt.core.payload import build_scan_payload, parse_scan_payload


def _text(**fields):
    body = {"type": "blockhunt_blocks", "qrId": "qr_1", "block": "controls_if"}
    body.update(fields)
    return json.dumps({k: v for k, v in body.items() if v is not None})


def test_parses_single_block_payload():
    payload = parse_scan_payload(_text(name="Logic", timestamp="2026-10-01T09:30:00.000Z"))
    assert payload.qr_id == "qr_1"
    assert payload.block == "controls_if"
    assert payload.name == "Logic"
    assert payload.timestamp.tzinfo is not None
    assert payload.timestamp.astimezone(timezone.utc).hour == 9


def test_accepts_bytes_and_surrounding_whitespace():
    payload = parse_scan_payload(("  " + _text() + "\n").encode("utf-8"))
    assert payload.qr_id == "qr_1"


@pytest.mark.parametrize("text", ["", "   ", None, "not json", "{broken", "[1, 2]", '"qr_1"'])
def test_rejects_malformed_text(text):
    with pytest.raises(InvalidPayloadError):
        parse_scan_payload(text)


def test_rejects_wrong_type_tag():
    with pytest.raises(InvalidPayloadError) as exc:
        parse_scan_payload(_text(type="somebody_elses_qr"))
    assert "type" in exc.value.message


def test_rejects_missing_qr_id():
    body = {"type": "blockhunt_blocks", "block": "controls_if"}
    with pytest.raises(InvalidPayloadError) as exc:
        parse_scan_payload(json.dumps(body))
    assert "qrId" in exc.value.message


def test_rejects_missing_block():
    body = {"type": "blockhunt_blocks", "qrId": "qr_1"}
    with pytest.raises(InvalidPayloadError):
        parse_scan_payload(json.dumps(body))


def test_rejects_legacy_multi_block_payload():
    body = {"type": "blockhunt_blocks", "qrId": "qr_1", "blocks": ["controls_if", "logic_negate"]}
    with pytest.raises(InvalidPayloadError) as exc:
        parse_scan_payload(json.dumps(body))
    assert "Multi-block" in exc.value.message


def test_rejects_non_string_ids():
    with pytest.raises(InvalidPayloadError):
        parse_scan_payload(json.dumps({"type": "blockhunt_blocks", "qrId": 17, "block": "controls_if"}))


def test_unknown_fields_are_ignored():
    payload = parse_scan_payload(_text(color="red"))
    assert payload.block == "controls_if"


def test_built_payload_parses_back():
    text = build_scan_payload("qr_abc", "logic_negate", name="Not block")
    payload = parse_scan_payload(text)
    assert (payload.qr_id, payload.block, payload.name) == ("qr_abc", "logic_negate", "Not block")


def test_deeply_nested_text_is_invalid():
    with pytest.raises(InvalidPayloadError):
        parse_scan_payload("[" * 3000)


@pytest.mark.parametrize("field", ["qrId", "block"])
def test_rejects_blank_identifiers(field):
    with pytest.raises(InvalidPayloadError) as exc:
        parse_scan_payload(_text(**{field: "   "}))
    assert field in exc.value.message
