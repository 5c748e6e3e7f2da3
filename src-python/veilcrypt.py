# veilcrypt.py
# VeilBoard: hybrid envelope codec (RSA-2048 + AES-256)
#
# Wire format (bit-exact, Base64 on the outside):
#     <LEN4 big-endian><WRAPPED_KEY (LEN bytes)><PAYLOAD...>
#
#   WRAPPED_KEY = RSA PKCS#1 v1.5 (recipient public key) of a fresh 32-byte AES key
#   PAYLOAD     = AES-256 / ECB / PKCS#7 of the UTF-8 plaintext
#
# ECB without IV is kept for compatibility with envelopes produced by the
# Android keyboard. A new AES key is drawn for every message.
#
# NOTE: no authentication. A tampered envelope fails on unwrap/padding at best.

from __future__ import annotations

import base64
import binascii
import logging
import secrets
import struct
from dataclasses import dataclass
from typing import Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

log = logging.getLogger(__name__)

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
AES_KEY_BYTES = 32
AES_BLOCK_BITS = 128
LEN_PREFIX = struct.Struct(">I")


# ============================================================
# Errors
# ============================================================

class VeilCryptError(Exception):
    """Base exception for envelope and transport failures."""


class KeyGenerationError(VeilCryptError):
    """RSA key pair could not be generated."""


class RecipientKeyInvalid(VeilCryptError, ValueError):
    """The recipient public key does not parse as an RSA public key."""


class PrivateKeyInvalid(VeilCryptError, ValueError):
    """The private key does not parse as an RSA private key."""


class EncryptionFailure(VeilCryptError):
    pass


class UnwrapFailure(VeilCryptError):
    """The wrapped AES key could not be recovered with the given private key."""


class DecryptionFailure(VeilCryptError):
    pass


class EnvelopeTruncated(VeilCryptError, ValueError):
    """Envelope shorter than its own length prefix says it is."""


class EncodingError(VeilCryptError, ValueError):
    """Decrypted payload is not valid UTF-8."""


class InputNotBase64(VeilCryptError, ValueError):
    pass


# ============================================================
# Key containers (Base64 DER text, PEM accepted on input)
# ============================================================

@dataclass(frozen=True)
class KeyPair:
    public_key: str
    private_key: str


def _b64_text(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _b64_bytes(text: str) -> bytes:
    # Android Base64.DEFAULT wraps lines at 76 chars; drop all whitespace first.
    compact = "".join(text.split())
    return base64.b64decode(compact.encode("ascii"), validate=True)


def _is_pem(text: str) -> bool:
    return text.lstrip().startswith("-----BEGIN")


def public_key_to_string(public_key: rsa.RSAPublicKey) -> str:
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return _b64_text(der)


def private_key_to_string(private_key: rsa.RSAPrivateKey) -> str:
    der = private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return _b64_text(der)


def string_to_public_key(key_string: str) -> rsa.RSAPublicKey:
    try:
        if _is_pem(key_string):
            key = serialization.load_pem_public_key(key_string.strip().encode("ascii"))
        else:
            key = serialization.load_der_public_key(_b64_bytes(key_string))
    except (ValueError, TypeError, UnicodeEncodeError, binascii.Error, UnsupportedAlgorithm) as e:
        raise RecipientKeyInvalid(f"Cannot parse public key: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise RecipientKeyInvalid(f"Public key is not RSA (got {type(key).__name__}).")
    return key


def string_to_private_key(key_string: str) -> rsa.RSAPrivateKey:
    try:
        if _is_pem(key_string):
            key = serialization.load_pem_private_key(key_string.strip().encode("ascii"), password=None)
        else:
            key = serialization.load_der_private_key(_b64_bytes(key_string), password=None)
    except (ValueError, TypeError, UnicodeEncodeError, binascii.Error, UnsupportedAlgorithm) as e:
        raise PrivateKeyInvalid(f"Cannot parse private key: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise PrivateKeyInvalid(f"Private key is not RSA (got {type(key).__name__}).")
    return key


def generate_keypair(key_size: int = KEY_SIZE) -> KeyPair:
    try:
        private_key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"RSA-{key_size} key generation failed: {e}") from e
    log.debug("generated RSA-%d key pair", key_size)
    return KeyPair(
        public_key=public_key_to_string(private_key.public_key()),
        private_key=private_key_to_string(private_key),
    )


# ============================================================
# Envelope framing: <LEN4><WRAPPED_KEY><PAYLOAD>
# ============================================================

def pack_envelope(wrapped_key: bytes, payload: bytes) -> bytes:
    return LEN_PREFIX.pack(len(wrapped_key)) + wrapped_key + payload


def unpack_envelope(raw: bytes) -> Tuple[bytes, bytes]:
    """Returns (wrapped_key, payload). Raises EnvelopeTruncated on short input."""
    if len(raw) < LEN_PREFIX.size:
        raise EnvelopeTruncated(f"Envelope too short ({len(raw)} bytes, need at least {LEN_PREFIX.size}).")
    (key_len,) = LEN_PREFIX.unpack_from(raw, 0)
    off = LEN_PREFIX.size
    if key_len > len(raw) - off:
        raise EnvelopeTruncated(f"Declared wrapped-key length {key_len} exceeds remaining {len(raw) - off} bytes.")
    return raw[off : off + key_len], raw[off + key_len :]


# ============================================================
# AES-256 / ECB / PKCS#7
# ============================================================

def _aes_encrypt(key: bytes, data: bytes) -> bytes:
    padder = sym_padding.PKCS7(AES_BLOCK_BITS).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def _aes_decrypt(key: bytes, data: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.ECB()).decryptor()
    padded = decryptor.update(data) + decryptor.finalize()
    unpadder = sym_padding.PKCS7(AES_BLOCK_BITS).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


# ============================================================
# Public API
# ============================================================

def encrypt(plaintext: str, recipient_public_key: str) -> str:
    public_key = string_to_public_key(recipient_public_key)

    aes_key = secrets.token_bytes(AES_KEY_BYTES)
    try:
        payload = _aes_encrypt(aes_key, plaintext.encode("utf-8"))
        wrapped_key = public_key.encrypt(aes_key, asym_padding.PKCS1v15())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise EncryptionFailure(f"Encryption failed: {e}") from e

    envelope = pack_envelope(wrapped_key, payload)
    log.debug("sealed envelope: wrapped_key=%d payload=%d total=%d", len(wrapped_key), len(payload), len(envelope))
    return _b64_text(envelope)


def decrypt(envelope_text: str, private_key: str) -> str:
    try:
        raw = _b64_bytes(envelope_text)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise InputNotBase64(f"Envelope is not valid Base64: {e}") from e

    wrapped_key, payload = unpack_envelope(raw)
    key = string_to_private_key(private_key)

    try:
        aes_key = key.decrypt(wrapped_key, asym_padding.PKCS1v15())
    except ValueError as e:
        raise UnwrapFailure(f"Cannot unwrap message key: {e}") from e
    # OpenSSL may answer a bad PKCS#1 v1.5 block with a random (implicit-rejection) key.
    if len(aes_key) != AES_KEY_BYTES:
        raise UnwrapFailure(f"Unwrapped key has {len(aes_key)} bytes, expected {AES_KEY_BYTES}.")

    try:
        data = _aes_decrypt(aes_key, payload)
    except ValueError as e:
        raise DecryptionFailure(f"Cannot decrypt payload: {e}") from e

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EncodingError(f"Decrypted payload is not UTF-8: {e}") from e
