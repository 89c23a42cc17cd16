"""AES-256-CBC encryption of serialized log records.

Envelopes are hex strings. By default the IV is the first 16 bytes of the
key, which keeps files written by earlier deployments readable but means
the same record under the same key always produces the same envelope.
With ``random_iv=True`` a fresh IV is generated per record and stored in
front of the ciphertext instead.
"""

import json
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from reqlog.errors import DecryptionError, InvalidKeyError

KEY_SIZE = 32
IV_SIZE = 16
_BLOCK_BITS = 128


def _key_bytes(key) -> bytes:
    if isinstance(key, str):
        key = key.encode("utf-8")
    if not isinstance(key, (bytes, bytearray)):
        raise InvalidKeyError(f"Encryption key must be str or bytes, got {type(key).__name__}")
    if len(key) != KEY_SIZE:
        raise InvalidKeyError(f"Encryption key must be exactly {KEY_SIZE} bytes, got {len(key)}")
    return bytes(key)


def serialize(obj) -> str:
    """Compact JSON form used as the plaintext of an envelope."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


class CipherCodec:
    """Stateless encrypt/decrypt bound to one 32-byte key."""

    def __init__(self, key, random_iv: bool = False):
        self._key = _key_bytes(key)
        self._random_iv = random_iv

    @property
    def random_iv(self) -> bool:
        return self._random_iv

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(iv))

    def encrypt(self, plain_object) -> str:
        iv = os.urandom(IV_SIZE) if self._random_iv else self._key[:IV_SIZE]

        padder = padding.PKCS7(_BLOCK_BITS).padder()
        data = padder.update(serialize(plain_object).encode("utf-8")) + padder.finalize()

        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(data) + encryptor.finalize()

        if self._random_iv:
            ciphertext = iv + ciphertext
        return ciphertext.hex()

    def decrypt(self, envelope: str):
        if not isinstance(envelope, str):
            raise DecryptionError(f"Envelope must be a hex string, got {type(envelope).__name__}")
        try:
            raw = bytes.fromhex(envelope)
        except ValueError as exc:
            raise DecryptionError("Envelope is not valid hex") from exc

        if self._random_iv:
            iv, raw = raw[:IV_SIZE], raw[IV_SIZE:]
            if len(iv) != IV_SIZE:
                raise DecryptionError("Envelope is too short to hold an IV")
        else:
            iv = self._key[:IV_SIZE]

        if not raw or len(raw) % (_BLOCK_BITS // 8):
            raise DecryptionError("Ciphertext is truncated or corrupted")

        decryptor = self._cipher(iv).decryptor()
        data = decryptor.update(raw) + decryptor.finalize()

        try:
            unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
            plaintext = unpadder.update(data) + unpadder.finalize()
            return json.loads(plaintext.decode("utf-8"))
        except ValueError as exc:
            # Bad padding, invalid UTF-8 and invalid JSON all land here
            raise DecryptionError("Envelope could not be decrypted with this key") from exc


def encrypt(plain_object, key, random_iv: bool = False) -> str:
    return CipherCodec(key, random_iv=random_iv).encrypt(plain_object)


def decrypt(envelope: str, key, random_iv: bool = False):
    return CipherCodec(key, random_iv=random_iv).decrypt(envelope)
