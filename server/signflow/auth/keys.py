from __future__ import annotations

from pathlib import Path
from typing import Protocol

from signflow.core.config import Settings
from signflow.core.errors import KeyUnavailable


class KeyProvider(Protocol):
    async def get_private_key(self, principal: str) -> str:
        """Return the PEM encoded RSA key used to sign assertions for ``principal``."""
        ...


class SettingsKeyProvider:
    """
    Reads the integration's RSA key from settings on every call.

    An inline ``DOCUSIGN_PRIVATE_KEY`` wins over ``DOCUSIGN_PRIVATE_KEY_PATH``.
    The key is never cached here; callers must not cache or log it either.
    """

    def __init__(self, settings: Settings):
        self._inline_key = settings.docusign_private_key
        self._key_path = settings.docusign_private_key_path

    async def get_private_key(self, principal: str) -> str:  # noqa: ARG002 - single key for every principal
        if self._inline_key is not None:
            key = self._inline_key.get_secret_value().strip()
            if key:
                # .env files commonly carry the PEM on one line with literal \n
                return key.replace("\\n", "\n")

        if self._key_path:
            path = Path(self._key_path)
            try:
                key = path.read_text(encoding="utf-8").strip()
            except OSError as exc:
                raise KeyUnavailable(f"DocuSign private key could not be read from {path}: {exc.strerror}") from exc
            if key:
                return key

        raise KeyUnavailable("DocuSign private key is not configured.")
