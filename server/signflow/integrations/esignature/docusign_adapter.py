"""
DocuSign E-signature Adapter

Provides the envelope, embedded recipient view and envelope status calls
used by the signing workflow, authenticated with a JWT-grant access token.
"""

import asyncio
import base64
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Type

import aiohttp
from aiohttp import ClientTimeout

from signflow.core.errors import EnvelopeSendFailed, EnvelopeStatusFailed, ViewGenerationFailed, WorkflowError

from .base import (
    DocumentInfo,
    EnvelopeStatus,
    EnvelopeStatusInfo,
    EnvelopeSubmission,
    RecipientInfo,
    RecipientType,
    SigningUrlInfo,
)

logger = logging.getLogger(__name__)

NO_ENVELOPE_ID = "N/A"


class DocuSignAdapter:
    """DocuSign eSignature REST v2.1 adapter."""

    def __init__(
        self,
        base_path: str,
        account_id: str,
        access_token: str,
        metadata_timeout_seconds: int = 15,
        envelope_timeout_seconds: int = 190,
    ):
        """
        Initialize DocuSign adapter.

        Args:
            base_path: Account REST root resolved from userinfo (``<base_uri>/restapi``)
            account_id: DocuSign account ID
            access_token: OAuth 2.0 access token
            metadata_timeout_seconds: Timeout for small metadata calls
            envelope_timeout_seconds: Timeout for envelope submission, which carries the document
        """
        self.base_path = base_path.rstrip('/')
        self.account_id = account_id
        self.access_token = access_token

        # API endpoints
        self.api_base = f"{self.base_path}/v2.1"
        self.envelopes_endpoint = f"{self.api_base}/accounts/{self.account_id}/envelopes"

        # Session will be created lazily to avoid event loop issues during initialization
        self._session = None
        self._timeout = ClientTimeout(total=metadata_timeout_seconds)
        self._envelope_timeout = ClientTimeout(total=envelope_timeout_seconds)

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json",
                    "Accept": "application/json"
                }
            )
        return self._session

    async def create_envelope(self, envelope_definition: Dict[str, Any]) -> EnvelopeSubmission:
        """
        Submit an envelope definition with ``status: sent``.

        A response without ``envelopeId`` or with an ``errorCode`` is a failure
        even when the HTTP call itself succeeded.

        Raises:
            EnvelopeSendFailed: If the envelope was not accepted
        """
        try:
            async with self.session.post(
                self.envelopes_endpoint,
                json=envelope_definition,
                timeout=self._envelope_timeout,
            ) as response:
                response_data = await self._read_json(response)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"DocuSign API error in create_envelope: {e!r}")
            raise EnvelopeSendFailed(
                message=f"WARNING: Contract failed to connect to DocuSign. Error: {str(e) or type(e).__name__}",
                error_code="api_connect_error",
            )

        envelope_id = response_data.get("envelopeId") or NO_ENVELOPE_ID
        error_code = response_data.get("errorCode")

        if error_code or envelope_id == NO_ENVELOPE_ID:
            detail = error_code or response_data.get("message") or "DocuSign API did not return an Envelope ID."
            logger.error(f"DocuSign API error in create_envelope: {detail} | Full response: {json.dumps(response_data)}")
            raise EnvelopeSendFailed(
                message=f"WARNING: Contract failed to send to DocuSign. Error: {detail}",
                envelope_id=envelope_id,
            )

        logger.info(f"DocuSign envelope sent successfully. ID: {envelope_id}")
        return EnvelopeSubmission(
            envelope_id=envelope_id,
            status=self._map_status_from_docusign(response_data.get("status", "sent")),
            provider_response=response_data,
        )

    async def get_signing_url(
        self,
        envelope_id: str,
        recipient: RecipientInfo,
        return_url: str,
    ) -> SigningUrlInfo:
        """
        Get embedded signing URL for a recipient.

        The recipient's ``client_user_id`` must match the one used when the
        envelope was created or DocuSign refuses the view.

        Raises:
            ViewGenerationFailed: If URL generation fails
        """
        endpoint = f"{self.envelopes_endpoint}/{envelope_id}/views/recipient"

        payload = {
            "authenticationMethod": "none",
            "clientUserId": recipient.client_user_id,
            "email": recipient.email,
            "userName": recipient.name,
            "returnUrl": return_url,
        }

        try:
            async with self.session.post(endpoint, json=payload) as response:
                if response.status != 201:
                    error_body = await response.text()
                    logger.error(f"DocuSign Recipient View API failed. Code: {response.status}. Body: {error_body}")
                    raise ViewGenerationFailed(
                        "DocuSign Recipient View API failed. Please check logs for details.",
                        provider="docusign",
                        details={"envelope_id": envelope_id, "status": response.status},
                    )
                response_data = await self._read_json(response)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"DocuSign API error in get_signing_url: {e!r}")
            raise ViewGenerationFailed(
                "DocuSign Recipient View API failed. Please check logs for details.",
                error_code="api_connect_error",
                provider="docusign",
                details={"envelope_id": envelope_id},
            )

        url = response_data.get("url")
        if not url:
            raise ViewGenerationFailed(
                "Failed to generate embedded signing link.",
                error_code="link_gen_fail",
                provider="docusign",
                details={"envelope_id": envelope_id},
            )

        return SigningUrlInfo(
            url=url,
            envelope_id=envelope_id,
            recipient_email=recipient.email,
            # Recipient view URLs are single use and expire after five minutes
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=5),
        )

    async def get_envelope_status(self, envelope_id: str) -> EnvelopeStatusInfo:
        """
        Get the status of an envelope.

        Raises:
            EnvelopeStatusFailed: If status query fails
        """
        endpoint = f"{self.envelopes_endpoint}/{envelope_id}"

        try:
            async with self.session.get(endpoint) as response:
                await self._handle_api_error(response, "get_envelope_status", EnvelopeStatusFailed)
                response_data = await self._read_json(response)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"DocuSign API error in get_envelope_status: {e!r}")
            raise EnvelopeStatusFailed(
                message=f"Failed to check envelope status: {str(e) or type(e).__name__}",
                provider="docusign",
                details={"envelope_id": envelope_id},
            )

        return EnvelopeStatusInfo(
            envelope_id=envelope_id,
            status=response_data.get("status") or EnvelopeStatus.UNKNOWN.value,
            created_date=response_data.get("createdDateTime") or "",
            sent_date=response_data.get("sentDateTime") or "",
            completed_date=response_data.get("completedDateTime") or "",
        )

    def build_envelope_definition(
        self,
        email_subject: str,
        documents: List[DocumentInfo],
        recipients: List[RecipientInfo],
    ) -> Dict[str, Any]:
        """Build envelope payload for document-based envelopes."""
        return {
            "emailSubject": email_subject,
            "status": "sent",
            "documents": [
                {
                    "documentBase64": base64.b64encode(doc.content).decode('utf-8'),
                    "name": doc.name,
                    "documentId": doc.document_id,
                    "fileExtension": doc.file_type,
                }
                for doc in documents
            ],
            "recipients": self._build_recipients_payload(recipients),
        }

    def _build_recipients_payload(self, recipients: List[RecipientInfo]) -> Dict[str, Any]:
        """Build recipients payload for DocuSign API."""
        payload = {
            "signers": [],
            "carbonCopies": []
        }

        for recipient in sorted(recipients, key=lambda r: r.routing_order):
            recipient_data = {
                "email": recipient.email,
                "name": recipient.name,
                "recipientId": recipient.recipient_id,
                "routingOrder": str(recipient.routing_order),
                "deliveryMethod": "email",
            }

            if recipient.client_user_id:
                recipient_data["clientUserId"] = recipient.client_user_id

            if recipient.email_subject or recipient.email_body:
                recipient_data["emailNotification"] = {
                    "emailSubject": recipient.email_subject or "",
                    "emailBody": recipient.email_body or "",
                    "supportedLanguage": "en",
                }

            if recipient.type == RecipientType.SIGNER:
                recipient_data["tabs"] = {
                    "signHereTabs": [tab.to_payload() for tab in recipient.sign_here_tabs],
                    "dateSignedTabs": [tab.to_payload() for tab in recipient.date_signed_tabs],
                }
                payload["signers"].append(recipient_data)
            elif recipient.type == RecipientType.CC:
                payload["carbonCopies"].append(recipient_data)

        return payload

    def _map_status_from_docusign(self, docusign_status: str) -> EnvelopeStatus:
        """Map DocuSign status to our EnvelopeStatus enum."""
        try:
            return EnvelopeStatus(docusign_status.lower())
        except ValueError:
            return EnvelopeStatus.UNKNOWN

    async def _read_json(self, response: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError):
            return {}
        return body if isinstance(body, dict) else {}

    async def _handle_api_error(
        self,
        response: aiohttp.ClientResponse,
        operation: str,
        error_cls: Type[WorkflowError],
    ):
        """Handle DocuSign API response with proper error handling."""
        if response.status in [200, 201, 204]:
            return

        error_message = f"DocuSign API error in {operation}"
        error_code = "api_error"

        try:
            error_data = await response.json(content_type=None)
            error_message = error_data.get("message", error_message)
            error_code = error_data.get("errorCode", error_code)
        except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError, AttributeError):
            error_message = await response.text() or error_message

        logger.error(f"DocuSign {operation} failed with HTTP {response.status}: {error_code} {error_message}")

        if response.status == 401:
            raise error_cls("Authentication failed - check access token", "AUTH_ERROR", "docusign")
        elif response.status == 404:
            raise error_cls("Resource not found", "NOT_FOUND", "docusign")
        elif response.status == 429:
            retry_after = response.headers.get('Retry-After', '60')
            raise error_cls(f"Rate limit exceeded, retry after {retry_after}s", "RATE_LIMIT", "docusign")
        elif response.status >= 500:
            raise error_cls("DocuSign server error", "SERVER_ERROR", "docusign")
        else:
            raise error_cls(error_message, error_code, "docusign")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
