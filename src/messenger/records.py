"""JSON records for keys and messages, and their local storage.

Key buffers and ciphertexts travel as base64 text inside small JSON objects:

    public key:  {"email": "alice@example.com", "key": "<base64>"}
    private key: {"email": ["alice@example.com"], "key": "<base64>"}
    message:     {"email": "bob@example.com", "content": "<base64>"}

The same JSON is stored on disk by `KeyStore` and sent to the key server by `messenger.client`.
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import binascii
from dataclasses import dataclass
from dataclasses import field
import json
import logging
import pathlib

from messenger import codec

PUBLIC_KEY_FILE = "public.key"
PRIVATE_KEY_FILE = "private.key"

logger = logging.getLogger(__name__)


class RecordError(ValueError):
    """Raised when a stored or received record cannot be used."""


def b64_enc(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64_dec(text: str, what: str = "value") -> bytes:
    """Decodes base64 text, reporting bad input as a `RecordError`."""
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as err:
        raise RecordError(f"Invalid base64 {what}.") from err


def _parse(text: str, required: tuple[str, ...]) -> dict:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as err:
        raise RecordError(f"Record is not valid JSON: {err.msg}") from err
    if not isinstance(payload, dict):
        raise RecordError("Record must be a JSON object.")
    missing = [name for name in required if name not in payload]
    if missing:
        raise RecordError(f"Record is missing {', '.join(missing)}.")
    return payload


@dataclass
class PublicKeyRecord:
    """A public key buffer tied to at most one email address."""
    key: str
    email: str = ""

    def add_email(self, email: str) -> None:
        """Assigns `email`, replacing any previous one."""
        self.email = email

    @property
    def key_bytes(self) -> bytes:
        return b64_dec(self.key, "key")

    @classmethod
    def from_key_bytes(cls, data: bytes, email: str = "") -> "PublicKeyRecord":
        return cls(b64_enc(data), email)

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps({"email": self.email, "key": self.key}, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "PublicKeyRecord":
        payload = _parse(text, ("key",))
        email = payload.get("email") or ""
        if not isinstance(email, str) or not isinstance(payload["key"], str):
            raise RecordError("Public key record holds unexpected types.")
        return cls(payload["key"], email)


@dataclass
class PrivateKeyRecord:
    """A private key buffer tied to every email address it was registered under."""
    key: str
    email: list[str] = field(default_factory=list)

    def add_email(self, email: str) -> None:
        """Registers `email`, ignoring repeats."""
        if email not in self.email:
            self.email.append(email)

    @property
    def key_bytes(self) -> bytes:
        return b64_dec(self.key, "key")

    @classmethod
    def from_key_bytes(cls, data: bytes) -> "PrivateKeyRecord":
        return cls(b64_enc(data))

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps({"email": list(self.email), "key": self.key}, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "PrivateKeyRecord":
        payload = _parse(text, ("key",))
        emails = payload.get("email") or []
        if not isinstance(emails, list) or not all(isinstance(e, str) for e in emails):
            raise RecordError("Private key record emails must be a list of strings.")
        if not isinstance(payload["key"], str):
            raise RecordError("Private key record key must be a string.")
        record = cls(payload["key"])
        for email in emails:
            record.add_email(email)
        return record


@dataclass
class MessageRecord:
    """A ciphertext addressed to one email. `content` is None when the server had nothing to deliver."""
    content: str | None
    email: str = ""

    def add_email(self, email: str) -> None:
        self.email = email

    @property
    def content_bytes(self) -> bytes:
        if self.content is None:
            raise RecordError("Message has no content.")
        return b64_dec(self.content, "content")

    @classmethod
    def from_ciphertext(cls, data: bytes, email: str = "") -> "MessageRecord":
        return cls(b64_enc(data), email)

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps({"email": self.email, "content": self.content}, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "MessageRecord":
        payload = _parse(text, ())
        content = payload.get("content")
        email = payload.get("email") or ""
        if content is not None and not isinstance(content, str):
            raise RecordError("Message content must be a string.")
        if not isinstance(email, str):
            raise RecordError("Message email must be a string.")
        return cls(content, email)


class KeyStore:
    """Key files kept in one directory.

    Holds our own `public.key` and `private.key`, plus `<email>.key` for every peer key fetched from the server.
    Writes overwrite existing files.

    Attributes:
        directory: Where the key files live.
    """

    def __init__(self, directory: pathlib.Path | str = ".") -> None:
        self.directory = pathlib.Path(directory)

    @property
    def public_path(self) -> pathlib.Path:
        return self.directory / PUBLIC_KEY_FILE

    @property
    def private_path(self) -> pathlib.Path:
        return self.directory / PRIVATE_KEY_FILE

    def peer_path(self, email: str) -> pathlib.Path:
        return self.directory / f"{email}.key"

    def _write(self, path: pathlib.Path, text: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        logger.debug("Wrote %s", path)

    @staticmethod
    def _read(path: pathlib.Path) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def has_public(self) -> bool:
        return self.public_path.is_file()

    def has_private(self) -> bool:
        return self.private_path.is_file()

    def has_peer(self, email: str) -> bool:
        return self.peer_path(email).is_file()

    def load_public(self) -> PublicKeyRecord:
        return PublicKeyRecord.from_json(self._read(self.public_path))

    def load_private(self) -> PrivateKeyRecord:
        return PrivateKeyRecord.from_json(self._read(self.private_path))

    def load_peer(self, email: str) -> PublicKeyRecord:
        return PublicKeyRecord.from_json(self._read(self.peer_path(email)))

    def save_public(self, record: PublicKeyRecord) -> None:
        self._write(self.public_path, record.to_json(indent=2))

    def save_private(self, record: PrivateKeyRecord) -> None:
        self._write(self.private_path, record.to_json(indent=2))

    def save_peer(self, email: str, text: str) -> None:
        """Stores a peer key exactly as the server returned it."""
        self._write(self.peer_path(email), text)

    def save_pair(self, buffers: tuple[bytes, bytes]) -> None:
        """Stores a fresh (public, private) buffer pair as our own keys, with no emails attached."""
        public, private = buffers
        codec.decode_key(public)
        codec.decode_key(private)
        self.save_public(PublicKeyRecord.from_key_bytes(public))
        self.save_private(PrivateKeyRecord.from_key_bytes(private))
