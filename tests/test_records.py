# pylint: disable=missing-module-docstring
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import json

import pytest

from messenger import codec
from messenger import records


def test_public_record_json(reference_key):
    record = records.PublicKeyRecord.from_key_bytes(reference_key.public)
    assert json.loads(record.to_json()) == {"email": "", "key": base64.b64encode(reference_key.public).decode()}
    record.add_email("alice@example.com")
    record.add_email("bob@example.com")
    assert record.email == "bob@example.com"
    again = records.PublicKeyRecord.from_json(record.to_json(indent=2))
    assert again == record
    assert again.key_bytes == reference_key.public


def test_private_record_emails(reference_key):
    record = records.PrivateKeyRecord.from_key_bytes(reference_key.private)
    for email in ["alice@example.com", "bob@example.com", "alice@example.com"]:
        record.add_email(email)
    assert record.email == ["alice@example.com", "bob@example.com"]
    payload = json.loads(record.to_json())
    assert payload["email"] == ["alice@example.com", "bob@example.com"]
    assert records.PrivateKeyRecord.from_json(record.to_json()).key_bytes == reference_key.private


def test_private_record_dedups_on_load():
    record = records.PrivateKeyRecord.from_json('{"email": ["a@b", "a@b", "c@d"], "key": ""}')
    assert record.email == ["a@b", "c@d"]


def test_private_records_do_not_share_emails():
    first = records.PrivateKeyRecord("")
    second = records.PrivateKeyRecord("")
    first.add_email("a@b")
    assert second.email == []


def test_message_record():
    record = records.MessageRecord.from_ciphertext(b"\x01\x02\x03", "bob@example.com")
    assert json.loads(record.to_json()) == {"email": "bob@example.com", "content": "AQID"}
    assert records.MessageRecord.from_json(record.to_json()).content_bytes == b"\x01\x02\x03"


def test_message_record_without_content():
    record = records.MessageRecord.from_json('{"email": "bob@example.com", "content": null}')
    assert record.content is None
    with pytest.raises(records.RecordError):
        _ = record.content_bytes


@pytest.mark.parametrize("cls,text", [
    (records.PublicKeyRecord, "not json"),
    (records.PublicKeyRecord, "[]"),
    (records.PublicKeyRecord, '{"email": "a@b"}'),
    (records.PublicKeyRecord, '{"email": ["a@b"], "key": "AA=="}'),
    (records.PrivateKeyRecord, '{"email": "a@b", "key": "AA=="}'),
    (records.PrivateKeyRecord, '{"email": [], "key": 5}'),
    (records.MessageRecord, '{"content": 7}'),
    (records.MessageRecord, "null"),
])
def test_record_rejects(cls, text):
    with pytest.raises(records.RecordError):
        cls.from_json(text)


def test_bad_base64():
    with pytest.raises(records.RecordError):
        _ = records.PublicKeyRecord("!!not base64!!").key_bytes


def test_key_store_pair(tmp_path, reference_key):
    store = records.KeyStore(tmp_path / "keys")
    assert not store.has_public()
    assert not store.has_private()
    store.save_pair((reference_key.public, reference_key.private))
    assert store.public_path == tmp_path / "keys" / "public.key"
    assert store.has_public() and store.has_private()
    assert store.load_public() == records.PublicKeyRecord.from_key_bytes(reference_key.public)
    assert store.load_private().key_bytes == reference_key.private
    assert store.load_private().email == []


def test_key_store_overwrites(tmp_path, reference_key):
    store = records.KeyStore(tmp_path)
    store.save_pair((codec.encode_key(3, 33), codec.encode_key(7, 33)))
    store.save_pair((reference_key.public, reference_key.private))
    assert store.load_public().key_bytes == reference_key.public


def test_key_store_rejects_malformed_pair(tmp_path):
    store = records.KeyStore(tmp_path)
    with pytest.raises(codec.MalformedKeyError):
        store.save_pair((b"\x00", codec.encode_key(7, 33)))
    assert not store.has_public()


def test_key_store_peer(tmp_path):
    store = records.KeyStore(tmp_path)
    raw = '{"email":"bob@example.com","key":"AAAAAQMAAAABIQ=="}'
    assert not store.has_peer("bob@example.com")
    store.save_peer("bob@example.com", raw)
    assert (tmp_path / "bob@example.com.key").read_text(encoding="utf-8") == raw
    peer = store.load_peer("bob@example.com")
    assert peer.email == "bob@example.com"
    assert codec.decode_key(peer.key_bytes) == (3, 33)
