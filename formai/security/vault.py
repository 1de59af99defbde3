"""AES-256-CBC storage for the inference API credential."""

import base64
import binascii
import hashlib

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from formai.config.settings import Settings
from formai.database.base import OptionStore
from formai.logging.logger import Log
from formai.security.exceptions import VaultConfigurationError

CREDENTIAL_OPTION = "encrypted_api_key"
PLACEHOLDER_SECRET = "put your unique phrase here"

_KEY_LENGTH = 32
_IV_LENGTH = 16


class Vault:
    """Encrypts and stores the API credential in the option store.

    Key and IV are the leading characters of the SHA-256 hex digests of the
    ``auth_key`` and ``auth_salt`` secrets. The IV is static, so every
    encryption of the same plaintext yields the same ciphertext.
    """

    def __init__(self, settings: Settings, options: OptionStore) -> None:
        self._auth_key = settings.auth_key
        self._auth_salt = settings.auth_salt
        self._options = options

    def encrypt(self, plaintext: str | None) -> str | None:
        """Return base64 ciphertext, or None on empty input or failure."""
        if not plaintext:
            return None
        try:
            encryptor = self._cipher().encryptor()
        except VaultConfigurationError as exc:
            Log.error(f"Credential encryption failed: {exc}")
            return None
        try:
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            ciphertext = encryptor.update(padded) + encryptor.finalize()
        except ValueError as exc:
            Log.error(f"Credential encryption failed: {exc}")
            return None
        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt(self, ciphertext: str | None) -> str | None:
        """Return the plaintext, or None on empty input or failure."""
        if not ciphertext:
            return None
        try:
            decryptor = self._cipher().decryptor()
        except VaultConfigurationError as exc:
            Log.error(f"Credential decryption failed: {exc}")
            return None
        try:
            raw = base64.b64decode(ciphertext, validate=True)
            padded = decryptor.update(raw) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (binascii.Error, ValueError) as exc:
            Log.warning(f"Stored credential could not be decrypted: {exc}")
            return None

    def save_credential(self, plaintext: str | None) -> bool:
        if not plaintext:
            return False
        encrypted = self.encrypt(plaintext)
        if encrypted is None:
            return False
        self._options.set(CREDENTIAL_OPTION, encrypted)
        Log.info("API credential saved")
        return True

    def get_credential(self) -> str | None:
        encrypted = self._options.get(CREDENTIAL_OPTION)
        if not encrypted:
            return None
        return self.decrypt(encrypted)

    def has_credential(self) -> bool:
        return bool(self._options.get(CREDENTIAL_OPTION))

    def delete_credential(self) -> bool:
        return self._options.delete(CREDENTIAL_OPTION)

    def _cipher(self) -> Cipher:
        key = _derive(self._auth_key, "AUTH_KEY", _KEY_LENGTH)
        iv = _derive(self._auth_salt, "AUTH_SALT", _IV_LENGTH)
        return Cipher(algorithms.AES(key), modes.CBC(iv))


def _derive(secret: str, name: str, length: int) -> bytes:
    if not secret or secret == PLACEHOLDER_SECRET:
        raise VaultConfigurationError(
            f"{name} is not properly configured. Set a unique value in the environment."
        )
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:length].encode("ascii")
