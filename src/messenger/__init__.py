"""RSA engine and client for a minimal end-to-end encrypted messenger.

Provides probable-prime generation, RSA key pair derivation, textbook RSA encryption and decryption, and the
length-prefixed binary key layout that peers exchange. Furthermore, provides the JSON records, local key storage and
key server client the `messenger` command is built on.

Typical usage example:

    public, private = generate_keys(1024)
    c = encrypt(b"HELLO", public)
    r = decrypt(c, private)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
from messenger.codec import decode_key
from messenger.codec import encode_key
from messenger.codec import MalformedKeyError
from messenger.keygen import generate_key_pair
from messenger.keygen import generate_keys
from messenger.keygen import generate_prime
from messenger.keygen import is_probably_prime
from messenger.keygen import mod_inverse
from messenger.keygen import PUBLIC_EXPONENT
from messenger.rsa import decrypt
from messenger.rsa import decrypt_text
from messenger.rsa import encrypt
from messenger.rsa import InvalidCiphertextError
from messenger.rsa import InvalidPlaintextError
from messenger.rsa import RSAPrivKey
from messenger.rsa import RSAPubKey

__version__ = "0.0.1"
__all__ = [
    "RSAPrivKey",
    "RSAPubKey",
    "MalformedKeyError",
    "InvalidPlaintextError",
    "InvalidCiphertextError",
    "PUBLIC_EXPONENT",
    "encode_key",
    "decode_key",
    "is_probably_prime",
    "generate_prime",
    "mod_inverse",
    "generate_key_pair",
    "generate_keys",
    "encrypt",
    "decrypt",
    "decrypt_text",
]
