"""The messaging flows behind each CLI subcommand.

Each action works against a `KeyStore` and, where the server is involved, a `KeyServerClient`. Problems the user can
fix (missing keys, unknown addresses, empty mailboxes) are raised as `ActionError` with the text to show.
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging

from messenger import keygen
from messenger import rsa
from messenger.client import KeyServerClient
from messenger.records import KeyStore
from messenger.records import MessageRecord

logger = logging.getLogger(__name__)


class ActionError(RuntimeError):
    """A user-facing diagnostic for a flow that could not complete."""


def key_gen(store: KeyStore, size: int) -> None:
    """Generates a key pair and stores it as our own, replacing any existing keys."""
    buffers = keygen.generate_keys(size)
    store.save_pair(buffers)
    logger.info("Stored %d-bit key pair in %s", size, store.directory)


def send_key(store: KeyStore, client: KeyServerClient, email: str) -> str:
    """Registers our public key under `email` and records `email` against our private key."""
    if not store.has_public():
        raise ActionError(f"No public key found. Unable to register {email} to server without a public key.")
    if not store.has_private():
        raise ActionError(f"No private key found. Generate one before assigning {email} to it.")
    private = store.load_private()
    private.add_email(email)
    store.save_private(private)
    public = store.load_public()
    public.add_email(email)
    client.put_key(email, public)
    return "Key saved"


def get_key(store: KeyStore, client: KeyServerClient, email: str) -> str:
    """Fetches the public key of `email` and stores it for later messages."""
    fetched = client.get_key(email)
    if fetched is None:
        raise ActionError(f"{email} public key not found.")
    store.save_peer(email, fetched.raw)
    return f"Key for {email} saved"


def send_msg(store: KeyStore, client: KeyServerClient, email: str, text: str) -> str:
    """Encrypts `text` with the stored public key of `email` and delivers it."""
    if not store.has_peer(email):
        raise ActionError(f"Key does not exist for {email}")
    peer = store.load_peer(email)
    ciphertext = rsa.encrypt(text.encode("ascii", errors="replace"), peer.key_bytes)
    client.put_message(email, MessageRecord.from_ciphertext(ciphertext, email))
    return "Message written"


def get_msg(store: KeyStore, client: KeyServerClient, email: str) -> str:
    """Fetches the message waiting for `email` and decrypts it with our private key."""
    if not store.has_private():
        raise ActionError("No private key found. Generate one before decrypting messages.")
    private = store.load_private()
    if email not in private.email:
        raise ActionError(f"Private key does not exist for {email}. Unable to decrypt message.")
    message = client.get_message(email)
    if message is None:
        raise ActionError(f"No messages were available for {email}")
    return rsa.decrypt_text(message.content_bytes, private.key_bytes)
