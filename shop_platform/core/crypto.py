# shop_platform/core/crypto.py
from __future__ import annotations

import base64
import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from shop_platform.core.errors import ConfigurationError, MalformedCiphertextError

IV_LENGTH = 16
SEPARATOR = ":"


def derive_key(secret: str) -> bytes:
    """
    Ключ AES-256 з секрету будь-якої довжини:
    sha256 -> base64 -> перші 32 символи.
    Саме такий формат у вже збережених токенів, тому не міняти.
    """
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.b64encode(digest)[:32]


class CredentialVault:
    """
    Шифрування токенів ботів at rest (AES-256-CBC, PKCS7).
    Формат: hex(iv) + ":" + hex(ciphertext).
    """

    def __init__(self, secret: str | None) -> None:
        self._secret = secret

    def _key(self) -> bytes:
        if not self._secret:
            raise ConfigurationError("ENCRYPTION_KEY is not defined")
        return derive_key(self._secret)

    def encrypt(self, plaintext: str) -> str:
        key = self._key()
        iv = os.urandom(IV_LENGTH)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        data = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        encrypted = encryptor.update(data) + encryptor.finalize()
        return iv.hex() + SEPARATOR + encrypted.hex()

    def decrypt(self, ciphertext: str) -> str:
        key = self._key()

        if not ciphertext or SEPARATOR not in ciphertext:
            raise MalformedCiphertextError("ciphertext has no IV separator")

        iv_hex, _, body_hex = ciphertext.partition(SEPARATOR)
        try:
            iv = bytes.fromhex(iv_hex)
            encrypted = bytes.fromhex(body_hex)
        except ValueError as e:
            raise MalformedCiphertextError("ciphertext is not valid hex") from e

        if len(iv) != IV_LENGTH or not encrypted or len(encrypted) % IV_LENGTH:
            raise MalformedCiphertextError("ciphertext has invalid length")

        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        data = decryptor.update(encrypted) + decryptor.finalize()

        # неправильний ключ або биті байти -> ламається padding
        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            raw = unpadder.update(data) + unpadder.finalize()
            return raw.decode("utf-8")
        except ValueError as e:
            raise MalformedCiphertextError("ciphertext cannot be decrypted with the configured key") from e
