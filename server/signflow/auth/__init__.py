"""
DocuSign JWT grant: assertion signing, token exchange and credential caching.
"""

from .assertion import SignedAssertionBuilder
from .cache import CredentialCache, InMemoryCredentialCache, RedisCredentialCache
from .exchange import CredentialExchangeClient
from .keys import KeyProvider, SettingsKeyProvider
from .models import Credential
from .service import CredentialService

__all__ = [
    "SignedAssertionBuilder",
    "CredentialCache",
    "InMemoryCredentialCache",
    "RedisCredentialCache",
    "CredentialExchangeClient",
    "KeyProvider",
    "SettingsKeyProvider",
    "Credential",
    "CredentialService",
]
