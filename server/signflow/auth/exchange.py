"""
DocuSign OAuth client for the JWT grant.

Two sequential calls turn a signed assertion into usable credentials:
``/oauth/token`` for the access token, then ``/oauth/userinfo`` to find the
account and REST base path that token operates on.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import aiohttp
from aiohttp import ClientTimeout

from signflow.auth.models import AccountInfo, TokenResponse
from signflow.core.errors import AccountResolutionFailed, ConsentRequired, TokenExchangeFailed

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
CONSENT_ERRORS = frozenset({"consent_required", "invalid_grant"})


def build_consent_url(auth_server: str, integration_key: str, redirect_uri: str, scope: str) -> str:
    query = urlencode({
        "response_type": "code",
        "scope": scope,
        "client_id": integration_key,
        "redirect_uri": redirect_uri,
    })
    return f"{auth_server.rstrip('/')}/oauth/auth?{query}"


def _is_default(flag: Any) -> bool:
    # userinfo reports is_default as a JSON boolean, older accounts as "true"/"false"
    if isinstance(flag, str):
        return flag.strip().lower() == "true"
    return bool(flag)


def select_account(accounts: list) -> Dict[str, Any]:
    """
    Pick the account the impersonated user operates in.

    The account flagged ``is_default`` wins. When none is flagged, the first
    account in the list is used; DocuSign returns accounts in a stable order,
    so the same user always resolves to the same account.
    """
    for account in accounts:
        if _is_default(account.get("is_default")):
            return account
    return accounts[0]


class CredentialExchangeClient:
    """aiohttp client for the DocuSign account server."""

    def __init__(
        self,
        auth_server: str,
        integration_key: str,
        consent_redirect_uri: str,
        scope: str = "signature impersonation",
        timeout_seconds: int = 15,
    ):
        self.auth_server = auth_server.rstrip("/")
        self.integration_key = integration_key
        self.consent_redirect_uri = consent_redirect_uri
        self.scope = scope

        self.token_endpoint = f"{self.auth_server}/oauth/token"
        self.userinfo_endpoint = f"{self.auth_server}/oauth/userinfo"

        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = ClientTimeout(total=timeout_seconds)

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def consent_url(self) -> str:
        return build_consent_url(self.auth_server, self.integration_key, self.consent_redirect_uri, self.scope)

    async def exchange(self, assertion: str) -> TokenResponse:
        """
        Exchange a signed assertion for an access token.

        Raises:
            ConsentRequired: The user has not granted consent to the integration key.
            TokenExchangeFailed: Any other refusal or a transport failure.
        """
        try:
            async with self.session.post(
                self.token_endpoint,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            ) as response:
                token_result = await self._read_json(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"DocuSign token endpoint unreachable: {e}")
            raise TokenExchangeFailed("connection_error", str(e) or type(e).__name__, error_code="docusign_token_api_fail")

        access_token = token_result.get("access_token")
        if not access_token:
            upstream_error = token_result.get("error") or "Unknown Error"
            description = token_result.get("error_description") or "No description provided."

            if upstream_error in CONSENT_ERRORS:
                logger.warning("DocuSign JWT grant refused: consent required")
                raise ConsentRequired(self.consent_url())

            logger.error(f"DocuSign token exchange failed: {upstream_error} | {description}")
            raise TokenExchangeFailed(upstream_error, description)

        expires_in = token_result.get("expires_in")
        if expires_in is not None:
            try:
                expires_in = int(expires_in)
            except (TypeError, ValueError):
                logger.error(f"DocuSign token response has malformed expires_in: {expires_in!r}")
                raise TokenExchangeFailed("malformed_response", f"Unusable expires_in value: {expires_in!r}")

        return TokenResponse(
            access_token=access_token,
            token_type=token_result.get("token_type", "Bearer"),
            expires_in=expires_in,
        )

    async def resolve_account(self, access_token: str) -> AccountInfo:
        """
        Resolve the account id and REST base path for an access token.

        Raises:
            AccountResolutionFailed: The endpoint is unreachable or lists no accounts.
        """
        try:
            async with self.session.get(
                self.userinfo_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
            ) as response:
                userinfo = await self._read_json(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"DocuSign userinfo endpoint unreachable: {e}")
            raise AccountResolutionFailed(
                f"Failed to connect to DocuSign UserInfo endpoint: {e}",
                provider="docusign",
            )

        accounts = userinfo.get("accounts")
        if not isinstance(accounts, list):
            accounts = []
        accounts = [account for account in accounts if isinstance(account, dict)]
        if not accounts:
            raise AccountResolutionFailed("Failed to retrieve Docusign account details.", provider="docusign")

        account = select_account(accounts)
        account_id = account.get("account_id")
        base_uri = account.get("base_uri")
        if not account_id or not isinstance(base_uri, str) or not base_uri:
            logger.error(f"DocuSign userinfo account is incomplete: {sorted(account)}")
            raise AccountResolutionFailed(
                "Docusign account details are incomplete (missing account_id or base_uri).",
                provider="docusign",
                details={"account_id": account_id},
            )

        return AccountInfo(
            account_id=str(account_id),
            base_path=f"{base_uri.rstrip('/')}/restapi",
            account_name=account.get("account_name"),
        )

    async def _read_json(self, response: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError):
            return {}
        return body if isinstance(body, dict) else {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
