"""ECDSA (secp256k1) recoverable signatures.

Signatures are 65 bytes r || s || v. Both recovery id encodings are
accepted: v in {0, 1} and the Ethereum-style v in {27, 28}. A malformed
signature fails closed: recovery returns None instead of raising.
"""

from __future__ import annotations

from typing import Optional

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

SIGNATURE_LENGTH = 65


def _normalize(signature: bytes) -> Optional[keys.Signature]:
    if len(signature) != SIGNATURE_LENGTH:
        return None
    v = signature[64]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        return None
    try:
        return keys.Signature(signature_bytes=bytes(signature[:64]) + bytes([v]))
    except (BadSignature, ValidationError, ValueError):
        return None


def recover_public_key(message_hash: bytes, signature: bytes) -> Optional[keys.PublicKey]:
    """Recover the signer's public key, or None if the signature is unusable."""
    sig = _normalize(signature)
    if sig is None:
        return None
    try:
        return sig.recover_public_key_from_msg_hash(message_hash)
    except (BadSignature, ValidationError, ValueError):
        return None


def recover_address(message_hash: bytes, signature: bytes) -> Optional[bytes]:
    """Recover the 20-byte address of the signer."""
    public_key = recover_public_key(message_hash, signature)
    if public_key is None:
        return None
    return public_key.to_canonical_address()


def recover_compressed_key(message_hash: bytes, signature: bytes) -> Optional[bytes]:
    """Recover the 33-byte compressed public key of the signer."""
    public_key = recover_public_key(message_hash, signature)
    if public_key is None:
        return None
    return public_key.to_compressed_bytes()


def normalize_public_key(key: bytes) -> bytes:
    """Return the 33-byte compressed form of a secp256k1 public key.

    Accepts compressed (33), raw uncompressed (64) or SEC1-prefixed
    uncompressed (65) keys. Raises ValueError if the key is not a point
    on the curve.
    """
    key = bytes(key)
    try:
        if len(key) == 33:
            return keys.PublicKey.from_compressed_bytes(key).to_compressed_bytes()
        if len(key) == 65 and key[0] == 4:
            key = key[1:]
        if len(key) == 64:
            return keys.PublicKey(key).to_compressed_bytes()
    except (ValidationError, ValueError) as exc:
        raise ValueError(f"Invalid secp256k1 public key: 0x{key.hex()}") from exc
    raise ValueError(f"Unsupported public key length: {len(key)}")


def sign_hash(private_key: bytes, message_hash: bytes, *, eth_v: bool = True) -> bytes:
    """Sign a 32-byte hash. Used by fixtures, tooling and tests."""
    signature = keys.PrivateKey(private_key).sign_msg_hash(message_hash).to_bytes()
    if eth_v:
        return signature[:64] + bytes([signature[64] + 27])
    return signature


def address_of(private_key: bytes) -> bytes:
    return keys.PrivateKey(private_key).public_key.to_canonical_address()


def compressed_key_of(private_key: bytes) -> bytes:
    return keys.PrivateKey(private_key).public_key.to_compressed_bytes()
