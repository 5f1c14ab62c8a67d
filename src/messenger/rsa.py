"""Provides core RSA functionalities, encryption and decryption over serialized key buffers.

Facilitates "textbook" RSA: the plaintext is exponentiated as-is, with no padding, so that ciphertexts stay
compatible with every peer using the same key layout. Handles the general key handling on top of `codec` buffers.

Typical usage example:

    pk = RSAPrivKey.generate(1024)
    c = pk.pub.encrypt(b"Hi there!")
    r = pk.decrypt(c)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import warnings

from messenger import codec
from messenger import keygen


class InvalidPlaintextError(ValueError):
    """Raised when a plaintext does not map to an integer in [0, N)."""


class InvalidCiphertextError(ValueError):
    """Raised when a ciphertext does not map to an integer in [0, N), e.g. one made for another key."""


class RSAKey:
    """The overall RSA key class implementation.

    Both halves of a key pair are an exponent paired with the modulus, so this carries everything both need.

    Attributes:
        mod: The modulus of the keypair.
        expo: The exponent of the key, whether private or public.
    """

    def __init__(self, mod: int, expo: int) -> None:
        self.mod = mod
        self.expo = expo

    def c_rsa(self, message: int) -> int:
        """Performs core RSA operation. (Encrypt/Decrypt).

        Args:
            message: The int-marshalled message.

        Returns:
            The message raised to the key exponent modulo the modulus.

        Raises:
            ValueError: If the message is out of range for the current key.
        """
        if not 0 <= message < self.mod:
            raise ValueError("Message representative must be in range [0, mod-1]")
        return pow(message, self.expo, self.mod)

    def to_bytes(self) -> bytes:
        """Serializes the key into its (exponent, modulus) buffer."""
        return codec.encode_key(self.expo, self.mod)

    @classmethod
    def from_bytes(cls, data: bytes):
        """Loads a key from its (exponent, modulus) buffer.

        Raises:
            MalformedKeyError: If the buffer is malformed.
        """
        expo, mod = codec.decode_key(data)
        return cls(mod, expo)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RSAKey):
            return NotImplemented
        return type(self) is type(other) and (self.mod, self.expo) == (other.mod, other.expo)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.mod, self.expo))


class RSAPubKey(RSAKey):
    """A rather straightforward subclass of RSAKey, for Public Keys."""

    def encrypt(self, message: bytes) -> bytes:
        """Use the public key to encrypt the message.

        Args:
            message: The message to encrypt, read as a signed big-endian integer.

        Returns:
            The ciphertext as minimal signed big-endian bytes.

        Raises:
            InvalidPlaintextError: If the message integer is negative or not below the modulus.
        """
        plain = codec.bytes_to_integer(message)
        if not 0 <= plain < self.mod:
            raise InvalidPlaintextError("Plaintext representative must be in range [0, mod-1]")
        return codec.integer_to_bytes(self.c_rsa(plain))


class RSAPrivKey(RSAKey):
    """RSA Private Key class implementation.

    The private key buffer only carries (D, N), so the public half is attached only when known, e.g. right after
    generation.

    Attributes:
        mod: The modulus of the keypair.
        expo: The private exponent of the key.
        pub: The public key of the key, if known.
    """

    def __init__(self, mod: int, priv_exp: int, pub_exp: int | None = None) -> None:
        super().__init__(mod, priv_exp)
        self.pub: RSAPubKey | None = RSAPubKey(mod, pub_exp) if pub_exp is not None else None

    def decrypt(self, message: bytes) -> bytes:
        """Decrypts the message using the private key.

        Args:
            message: The ciphertext bytes.

        Returns:
            The plaintext as minimal signed big-endian bytes.

        Raises:
            InvalidCiphertextError: If the ciphertext is out of range for this key.
        """
        cipher = codec.bytes_to_integer(message)
        if not 0 <= cipher < self.mod:
            raise InvalidCiphertextError("Ciphertext representative must be in range [0, mod-1]")
        return codec.integer_to_bytes(self.c_rsa(cipher))

    @classmethod
    def generate(cls, size: int) -> "RSAPrivKey":
        """Generates an RSA Private Key, and it's respective Public Key.

        Args:
            size: The size of the RSA Key.

        Returns:
            A new generated RSA Private Key, with `pub` set.
        """
        warnings.warn("Keys are used for unpadded RSA, which is unsecure! Please use with care.", RuntimeWarning)
        (n, pub), (_, d) = keygen.generate_key_pair(size)
        return cls(n, d, pub)


def encrypt(plaintext: bytes, public_key: bytes) -> bytes:
    """Encrypts `plaintext` with a serialized (E, N) public key."""
    return RSAPubKey.from_bytes(public_key).encrypt(plaintext)


def decrypt(ciphertext: bytes, private_key: bytes) -> bytes:
    """Decrypts `ciphertext` with a serialized (D, N) private key."""
    return RSAPrivKey.from_bytes(private_key).decrypt(ciphertext)


def decrypt_text(ciphertext: bytes, private_key: bytes) -> str:
    """Decrypts `ciphertext` and reads the plaintext as ASCII, replacing bytes outside that range."""
    return decrypt(ciphertext, private_key).decode("ascii", errors="replace")
