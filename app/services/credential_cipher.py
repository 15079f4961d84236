"""Symmetric encryption for credential records at rest."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from app.models.credentials import CredentialRecord


class CredentialCipher:
    """Encrypt and decrypt token strings with a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")

    def seal(self, record: CredentialRecord) -> dict[str, str]:
        """Return the storable form of ``record`` with both tokens encrypted."""
        return {
            "access_token_encrypted": self.encrypt(record.access_token),
            "refresh_token_encrypted": self.encrypt(record.refresh_token),
            "expires_at": record.expires_at.isoformat(),
        }

    def open(self, sealed: dict[str, str]) -> CredentialRecord:
        """Inverse of :meth:`seal`."""
        return CredentialRecord(
            access_token=self.decrypt(sealed["access_token_encrypted"]),
            refresh_token=self.decrypt(sealed["refresh_token_encrypted"]),
            expires_at=sealed["expires_at"],
        )


__all__ = ["CredentialCipher"]
