# pylint: disable=missing-module-docstring,redefined-outer-name
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import pytest

from messenger import actions
from messenger import codec
from messenger import keygen
from messenger import rsa
from messenger.client import FetchedKey
from messenger.client import KeyServerClient
from messenger.records import KeyStore
from messenger.records import MessageRecord
from messenger.records import PublicKeyRecord

ALICE = "alice@example.com"
BOB = "bob@example.com"


@pytest.fixture
def store(tmp_path) -> KeyStore:
    return KeyStore(tmp_path)


@pytest.fixture
def server(mocker):
    return mocker.Mock(spec=KeyServerClient)


@pytest.fixture
def keyed_store(store, reference_key) -> KeyStore:
    store.save_pair((reference_key.public, reference_key.private))
    return store


def test_key_gen(mocker, store, reference_key):
    mocker.patch("messenger.keygen.generate_keys",
                 return_value=keygen.KeyBuffers(reference_key.public, reference_key.private))
    actions.key_gen(store, 1024)
    keygen.generate_keys.assert_called_once_with(1024)
    assert store.load_public().key_bytes == reference_key.public
    assert store.load_private().key_bytes == reference_key.private


def test_key_gen_real(store):
    actions.key_gen(store, 256)
    e, n = codec.decode_key(store.load_public().key_bytes)
    d, n2 = codec.decode_key(store.load_private().key_bytes)
    assert e == keygen.PUBLIC_EXPONENT
    assert n == n2
    assert pow(pow(42, e, n), d, n) == 42


def test_send_key_needs_keys(store, server, reference_key):
    with pytest.raises(actions.ActionError, match="No public key found"):
        actions.send_key(store, server, ALICE)
    store.save_public(PublicKeyRecord.from_key_bytes(reference_key.public))
    with pytest.raises(actions.ActionError, match="No private key found"):
        actions.send_key(store, server, ALICE)
    server.put_key.assert_not_called()


def test_send_key(keyed_store, server, reference_key):
    assert actions.send_key(keyed_store, server, ALICE) == "Key saved"
    assert actions.send_key(keyed_store, server, BOB) == "Key saved"
    assert actions.send_key(keyed_store, server, ALICE) == "Key saved"
    assert keyed_store.load_private().email == [ALICE, BOB]
    email, record = server.put_key.call_args.args
    assert email == ALICE
    assert record == PublicKeyRecord.from_key_bytes(reference_key.public, ALICE)


def test_get_key(store, server):
    raw = '{"email": "bob@example.com", "key": "AAAAAQMAAAABIQ=="}'
    server.get_key.return_value = FetchedKey(PublicKeyRecord("AAAAAQMAAAABIQ==", BOB), raw)
    actions.get_key(store, server, BOB)
    server.get_key.assert_called_once_with(BOB)
    assert store.peer_path(BOB).read_text(encoding="utf-8") == raw


def test_get_key_unknown(store, server):
    server.get_key.return_value = None
    with pytest.raises(actions.ActionError, match="bob@example.com public key not found."):
        actions.get_key(store, server, BOB)
    assert not store.has_peer(BOB)


def test_send_msg_needs_key(store, server):
    with pytest.raises(actions.ActionError, match="Key does not exist for bob@example.com"):
        actions.send_msg(store, server, BOB, "HELLO")
    server.put_message.assert_not_called()


def test_send_msg(store, server, reference_key):
    store.save_peer(BOB, PublicKeyRecord.from_key_bytes(reference_key.public, BOB).to_json())
    assert actions.send_msg(store, server, BOB, "HELLO") == "Message written"
    email, message = server.put_message.call_args.args
    assert email == BOB
    assert message.email == BOB
    assert rsa.decrypt(message.content_bytes, reference_key.private) == b"HELLO"


def test_get_msg_needs_registration(keyed_store, server):
    with pytest.raises(actions.ActionError, match="Private key does not exist for alice@example.com"):
        actions.get_msg(keyed_store, server, ALICE)
    server.get_message.assert_not_called()


def test_get_msg_needs_private_key(store, server):
    with pytest.raises(actions.ActionError, match="No private key found"):
        actions.get_msg(store, server, ALICE)


def test_get_msg_empty(keyed_store, server):
    actions.send_key(keyed_store, server, ALICE)
    server.get_message.return_value = None
    with pytest.raises(actions.ActionError, match="No messages were available for alice@example.com"):
        actions.get_msg(keyed_store, server, ALICE)


def test_get_msg(keyed_store, server, reference_key):
    actions.send_key(keyed_store, server, ALICE)
    ciphertext = rsa.encrypt(b"Meet at noon", reference_key.public)
    server.get_message.return_value = MessageRecord.from_ciphertext(ciphertext, ALICE)
    assert actions.get_msg(keyed_store, server, ALICE) == "Meet at noon"
    server.get_message.assert_called_once_with(ALICE)


def test_message_exchange(mocker, tmp_path, reference_key):
    """Bob fetches Alice's key, writes to her, and Alice reads it back."""
    alice, bob = KeyStore(tmp_path / "alice"), KeyStore(tmp_path / "bob")
    alice.save_pair((reference_key.public, reference_key.private))
    keys, mailbox = {}, {}
    server = mocker.Mock(spec=KeyServerClient)
    server.put_key.side_effect = lambda email, record: keys.__setitem__(email, record.to_json())
    server.get_key.side_effect = lambda email: FetchedKey(PublicKeyRecord.from_json(keys[email]), keys[email])
    server.put_message.side_effect = lambda email, record: mailbox.__setitem__(email, record)
    server.get_message.side_effect = mailbox.get

    actions.send_key(alice, server, ALICE)
    actions.get_key(bob, server, ALICE)
    actions.send_msg(bob, server, ALICE, "HELLO")
    assert actions.get_msg(alice, server, ALICE) == "HELLO"
