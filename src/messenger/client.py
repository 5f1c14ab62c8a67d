"""HTTP client for the key and message server.

The server stores one public key and one pending message per email address:

    PUT /Key/{email}       register a public key record
    GET /Key/{email}       fetch a public key record, empty body if unknown
    PUT /Message/{email}   deliver a message record
    GET /Message/{email}   fetch a message record, null content if none waiting
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import logging
import os
from typing import NamedTuple

import requests

from messenger.records import MessageRecord
from messenger.records import PublicKeyRecord

DEFAULT_SERVER = "http://kayrun.cs.rit.edu:5000"
SERVER_ENV = "MESSENGER_SERVER"

logger = logging.getLogger(__name__)


class FetchedKey(NamedTuple):
    """A public key record along with the JSON text it was parsed from."""
    record: PublicKeyRecord
    raw: str


def server_url(base_url: str | None = None) -> str:
    """Resolves the server address: explicit argument, then `MESSENGER_SERVER`, then `DEFAULT_SERVER`."""
    return (base_url or os.environ.get(SERVER_ENV) or DEFAULT_SERVER).rstrip("/")


class KeyServerClient:
    """Talks to the key and message server.

    Attributes:
        base_url: Server root, without trailing slash.
        session: The `requests.Session` used for every call.
        timeout: Seconds before a request is abandoned.
    """

    def __init__(self,
                 base_url: str | None = None,
                 session: requests.Session | None = None,
                 timeout: float = 10) -> None:
        self.base_url = server_url(base_url)
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, kind: str, email: str) -> str:
        return f"{self.base_url}/{kind}/{email}"

    def _put(self, kind: str, email: str, body: str) -> None:
        url = self._url(kind, email)
        logger.debug("PUT %s", url)
        response = self.session.put(url,
                                    data=body.encode("utf-8"),
                                    headers={"Content-Type": "application/json"},
                                    timeout=self.timeout)
        response.raise_for_status()

    def _get(self, kind: str, email: str) -> str:
        url = self._url(kind, email)
        logger.debug("GET %s", url)
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    def put_key(self, email: str, record: PublicKeyRecord) -> None:
        """Registers `record` as the public key of `email`.

        Raises:
            requests.RequestException: On transport failure or a non-2xx response.
        """
        self._put("Key", email, record.to_json())

    def get_key(self, email: str) -> FetchedKey | None:
        """Fetches the public key of `email`.

        Returns:
            The key, or None if the server does not know `email`.

        Raises:
            requests.RequestException: On transport failure or a non-2xx response.
            RecordError: If the server answered with something that is not a public key record.
        """
        text = self._get("Key", email)
        if not text.strip():
            return None
        return FetchedKey(PublicKeyRecord.from_json(text), text)

    def put_message(self, email: str, record: MessageRecord) -> None:
        """Delivers `record` to `email`.

        Raises:
            requests.RequestException: On transport failure or a non-2xx response.
        """
        self._put("Message", email, record.to_json(indent=2))

    def get_message(self, email: str) -> MessageRecord | None:
        """Fetches the message waiting for `email`, or None if there is none."""
        text = self._get("Message", email)
        if not text.strip() or text.strip() == "null":
            return None
        record = MessageRecord.from_json(text)
        if record.content is None:
            return None
        return record
