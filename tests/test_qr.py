"""Tests for QR payload encoding, batching and scanning."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from mycrew_export.errors import QRDecodeFailed, QRPayloadTooLarge
from mycrew_export.model import Contact, Location, UserProfile
from mycrew_export.qr import (
    QR_BUDGET,
    QR_BYTE_CEILING,
    decode_batch_from_qr,
    decode_from_qr,
    encode_batch_for_qr,
    encode_for_qr,
    parse_any,
    parse_qr_batch,
    parse_qr_payload,
    render_qr_png,
)


# ── helpers ────────────────────────────────────────────────────────────────────

def _contact(**kwargs) -> Contact:
    kwargs.setdefault("first_name", "Ana")
    kwargs.setdefault("last_name", "Roux")
    return Contact(**kwargs)


# ── Single entity ──────────────────────────────────────────────────────────────

def test_qr_round_trip():
    c = _contact(
        job_titles=["Cadreur.se", "Mixeur.se"],
        phone="+33 6 12 34 56 78",
        email="ana@example.com",
        notes="Has a\nsteadicam",
        locations=[Location("France", "Bretagne", is_primary=True, has_vehicle=True)],
    )
    payload = encode_for_qr(c)
    assert "\n" not in payload
    parsed = parse_qr_payload(payload)
    assert parsed.full_name == "Ana Roux"
    assert parsed.job_titles == ["Cadreur.se", "Mixeur.se"]
    assert parsed.job == "Cadreur.se"
    assert parsed.phone == c.phone
    assert parsed.email == c.email
    assert parsed.notes == c.notes
    loc = parsed.locations[0]
    assert (loc.country, loc.region, loc.is_primary, loc.has_vehicle) == ("France", "Bretagne", True, True)


def test_qr_absent_fields_left_out():
    data = json.loads(encode_for_qr(_contact()))
    assert "phone" not in data
    assert "notes" not in data


def test_qr_profile_uses_phone_number_key():
    p = UserProfile("Me", "Myself", job_title="Mixeur.se", phone_number="0612345678")
    data = json.loads(encode_for_qr(p))
    assert data["phoneNumber"] == "0612345678"
    assert "phone" not in data
    assert parse_qr_payload(encode_for_qr(p)).phone == "0612345678"


def test_qr_drops_notes_first():
    c = _contact(notes="x" * 3000, email="ana@example.com", locations=[Location("France")])
    payload = encode_for_qr(c, QR_BUDGET)
    assert len(payload) <= QR_BUDGET
    parsed = parse_qr_payload(payload)
    assert parsed.notes is None
    assert parsed.email == "ana@example.com"
    assert parsed.locations[0].country == "France"


def test_qr_drops_secondary_locations_next():
    locations = [Location("France", f"Region {i} " + "r" * 80) for i in range(30)]
    locations[5].is_primary = True
    payload = encode_for_qr(_contact(locations=locations), QR_BUDGET)
    assert len(payload) <= QR_BUDGET
    parsed = parse_qr_payload(payload)
    assert len(parsed.locations) == 1
    assert parsed.locations[0].region == locations[5].region
    assert parsed.locations[0].is_primary is True


def test_qr_sheds_secondary_attributes_before_locations():
    locations = [Location("France", f"Region {i:02d}", has_vehicle=True) for i in range(20)]
    locations[0].is_primary = True
    payload = encode_for_qr(_contact(locations=locations), QR_BUDGET)
    assert len(payload) <= QR_BUDGET
    parsed = parse_qr_payload(payload)
    assert len(parsed.locations) == 20
    assert parsed.locations[0].has_vehicle is True
    assert not any(loc.has_vehicle for loc in parsed.locations[1:])


def test_qr_accented_text_counts_in_bytes(tmp_path: Path):
    zoe = Contact("Zoé", "Blanc", notes="é" * 1800)
    payload = encode_for_qr(zoe, QR_BUDGET)
    assert len(payload.encode("utf-8")) <= QR_BYTE_CEILING
    assert parse_qr_payload(payload).notes is None
    assert render_qr_png(payload, tmp_path / "zoe.png").exists()


def test_qr_accented_notes_kept_when_bytes_fit():
    payload = encode_for_qr(Contact("Zoé", "Blanc", notes="é" * 1300), QR_BUDGET)
    assert parse_qr_payload(payload).notes == "é" * 1300


def test_qr_too_large():
    with pytest.raises(QRPayloadTooLarge):
        encode_for_qr(_contact(first_name="A" * 3000))


# ── Scanning ───────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw", [
    "not json",
    "",
    '{"email": "x@example.com"}',
    '{"firstName": "   ", "lastName": ""}',
    '{"firstName": 3}',
    '{"firstName": "Ana", "jobTitles": "Cadreur.se"}',
    '{"firstName": "Ana", "locations": [{"region": "Bretagne"}]}',
    '{"firstName": "Ana", "locations": [{"country": "France", "hasVehicle": "yes"}]}',
    '{"firstName": "Ana", "locations": [{"country": "France", "isPrimary": true},'
    ' {"country": "Spain", "isPrimary": true}]}',
    '["not", "an object"]',
])
def test_qr_decode_rejects(raw: str):
    with pytest.raises(QRDecodeFailed):
        parse_qr_payload(raw)
    assert decode_from_qr(raw) is None


def test_qr_decode_non_text():
    with pytest.raises(QRDecodeFailed):
        parse_qr_payload(b'{"firstName": "Ana"}')


def test_qr_decode_legacy_job_title():
    parsed = parse_qr_payload('{"firstName": "Ana", "jobTitle": "Cadreur"}')
    assert parsed.job_titles == ["Cadreur.se"]


def test_batch_rejects_bad_shapes():
    for raw in ("[]", '{"firstName": "Ana"}', '[{"firstName": "Ana"}, {"email": "x"}]'):
        with pytest.raises(QRDecodeFailed):
            parse_qr_batch(raw)
        assert decode_batch_from_qr(raw) is None


def test_parse_any_accepts_both_shapes():
    assert [p.first_name for p in parse_any('{"firstName": "Ana"}')] == ["Ana"]
    assert [p.first_name for p in parse_any('[{"firstName": "A"}, {"lastName": "B"}]')] == ["A", ""]


def test_parsed_contact_to_contact_gets_fresh_ids():
    c = _contact(locations=[Location("France")])
    stored = parse_qr_payload(encode_for_qr(c)).to_contact()
    assert stored.full_name == "Ana Roux"
    assert stored.id != c.id
    assert stored.locations[0].id != c.locations[0].id


# ── Batches ────────────────────────────────────────────────────────────────────

def test_batch_splits_and_keeps_order():
    contacts = [
        _contact(first_name=f"Crew{i:02d}", notes="n" * 200, locations=[Location("France")])
        for i in range(50)
    ]
    payloads = encode_batch_for_qr(contacts, QR_BUDGET)
    assert len(payloads) > 1
    assert all(len(p) <= QR_BUDGET for p in payloads)
    names = [p.first_name for payload in payloads for p in parse_qr_batch(payload)]
    assert names == [c.first_name for c in contacts]


def test_batch_splits_on_bytes():
    contacts = [_contact(first_name=f"Crew{i}", last_name="Blanc", notes="é" * 900) for i in range(10)]
    payloads = encode_batch_for_qr(contacts, QR_BUDGET)
    assert len(payloads) == 10
    assert all(len(p.encode("utf-8")) <= QR_BYTE_CEILING for p in payloads)
    assert [p.notes for payload in payloads for p in parse_qr_batch(payload)] == ["é" * 900] * 10


def test_batch_small_fits_one_payload():
    payloads = encode_batch_for_qr([_contact(first_name="A"), _contact(first_name="B")])
    assert len(payloads) == 1
    assert [p.first_name for p in parse_qr_batch(payloads[0])] == ["A", "B"]


def test_batch_empty():
    assert encode_batch_for_qr([]) == []


# ── Rendering ──────────────────────────────────────────────────────────────────

def test_render_too_large_payload(tmp_path: Path):
    with pytest.raises(QRPayloadTooLarge):
        render_qr_png("é" * 3000, tmp_path / "big.png")


def test_render_png(tmp_path: Path):
    out = render_qr_png(encode_for_qr(_contact()), tmp_path / "qr" / "ana.png")
    assert out.exists()
    assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
