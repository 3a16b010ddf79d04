"""
DocuSign adapter tests with aiohttp mocked out.
"""

import base64
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from signflow.core.errors import EnvelopeSendFailed, EnvelopeStatusFailed, ViewGenerationFailed
from signflow.integrations.esignature import (
    AnchorTab,
    DocumentInfo,
    DocuSignAdapter,
    EnvelopeStatus,
    RecipientInfo,
)


@pytest.fixture
def adapter():
    return DocuSignAdapter(
        base_path="https://demo.docusign.net/restapi/",
        account_id="account-123",
        access_token="access-token-abc",
    )


@pytest.fixture
def client_recipient():
    return RecipientInfo(
        name="John Smith",
        email="john@acme.com",
        recipient_id="1",
        routing_order=1,
        client_user_id="1",
        sign_here_tabs=[AnchorTab("/s2/")],
        date_signed_tabs=[AnchorTab("/d2/")],
        email_subject="Please sign",
        email_body="Body",
    )


@pytest.fixture
def approver_recipient():
    return RecipientInfo(
        name="Ada Approver",
        email="approver@example.com",
        recipient_id="2",
        routing_order=2,
        sign_here_tabs=[AnchorTab("/s1/")],
        date_signed_tabs=[AnchorTab("/d1/")],
    )


class TestEnvelopeDefinition:
    def test_document_is_base64_html(self, adapter, client_recipient):
        definition = adapter.build_envelope_definition(
            email_subject="Services Agreement for Acme Corp",
            documents=[DocumentInfo(name="Agreement", content=b"<p>/s2/</p>")],
            recipients=[client_recipient],
        )

        document = definition["documents"][0]
        assert definition["status"] == "sent"
        assert base64.b64decode(document["documentBase64"]) == b"<p>/s2/</p>"
        assert document["fileExtension"] == "html"
        assert document["documentId"] == "1"

    def test_signers_ordered_with_anchor_tabs(self, adapter, client_recipient, approver_recipient):
        definition = adapter.build_envelope_definition(
            email_subject="subject",
            documents=[DocumentInfo(name="Agreement", content=b"x")],
            recipients=[approver_recipient, client_recipient],
        )

        client, approver = definition["recipients"]["signers"]
        assert client["recipientId"] == "1"
        assert client["routingOrder"] == "1"
        assert client["clientUserId"] == "1"
        assert client["tabs"]["signHereTabs"] == [{"anchorString": "/s2/", "documentId": "1", "required": True}]
        assert client["tabs"]["dateSignedTabs"][0]["anchorString"] == "/d2/"
        assert client["emailNotification"]["emailSubject"] == "Please sign"

        assert approver["recipientId"] == "2"
        assert approver["routingOrder"] == "2"
        assert "clientUserId" not in approver
        assert approver["tabs"]["signHereTabs"][0]["anchorString"] == "/s1/"


class TestCreateEnvelope:
    @pytest.mark.asyncio
    async def test_success(self, adapter):
        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value.json = AsyncMock(
                return_value={"envelopeId": "env_123", "status": "sent"}
            )
            mock_post.return_value.__aenter__.return_value.status = 201

            submission = await adapter.create_envelope({"status": "sent"})

        assert submission.envelope_id == "env_123"
        assert submission.status == EnvelopeStatus.SENT
        args, kwargs = mock_post.call_args
        assert args[0] == "https://demo.docusign.net/restapi/v2.1/accounts/account-123/envelopes"
        assert kwargs["timeout"].total == 190
        await adapter.close()

    @pytest.mark.asyncio
    async def test_error_code_is_failure_even_with_id(self, adapter):
        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value.json = AsyncMock(
                return_value={"envelopeId": "env_partial", "errorCode": "ANCHOR_TAB_STRING_NOT_FOUND"}
            )

            with pytest.raises(EnvelopeSendFailed) as exc_info:
                await adapter.create_envelope({"status": "sent"})

        assert exc_info.value.envelope_id == "env_partial"
        assert "ANCHOR_TAB_STRING_NOT_FOUND" in exc_info.value.error_message
        await adapter.close()

    @pytest.mark.asyncio
    async def test_missing_id_reports_na(self, adapter):
        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value.json = AsyncMock(return_value={})

            with pytest.raises(EnvelopeSendFailed) as exc_info:
                await adapter.create_envelope({"status": "sent"})

        assert exc_info.value.envelope_id == "N/A"
        await adapter.close()

    @pytest.mark.asyncio
    async def test_timeout_is_failure(self, adapter):
        with patch("aiohttp.ClientSession.post", side_effect=aiohttp.ServerTimeoutError("timed out")):
            with pytest.raises(EnvelopeSendFailed) as exc_info:
                await adapter.create_envelope({"status": "sent"})

        assert exc_info.value.error_code == "api_connect_error"
        await adapter.close()


class TestSigningUrl:
    @pytest.mark.asyncio
    async def test_recipient_view(self, adapter, client_recipient):
        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value.json = AsyncMock(
                return_value={"url": "https://demo.docusign.net/Signing/StartInSession.aspx?t=abc"}
            )
            mock_post.return_value.__aenter__.return_value.status = 201

            signing = await adapter.get_signing_url(
                "env_123", client_recipient, return_url="https://agreements.example.com/docusign/complete?envelope_id=env_123"
            )

        assert signing.url.startswith("https://demo.docusign.net/Signing/")
        payload = mock_post.call_args.kwargs["json"]
        assert payload["authenticationMethod"] == "none"
        assert payload["clientUserId"] == "1"
        assert payload["userName"] == "John Smith"
        assert payload["returnUrl"].endswith("envelope_id=env_123")
        await adapter.close()

    @pytest.mark.asyncio
    async def test_non_201_fails(self, adapter, client_recipient):
        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value.status = 400
            mock_post.return_value.__aenter__.return_value.text = AsyncMock(return_value="UNKNOWN_ENVELOPE_RECIPIENT")

            with pytest.raises(ViewGenerationFailed):
                await adapter.get_signing_url("env_123", client_recipient, return_url="https://x")
        await adapter.close()

    @pytest.mark.asyncio
    async def test_missing_url_fails(self, adapter, client_recipient):
        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value.json = AsyncMock(return_value={})
            mock_post.return_value.__aenter__.return_value.status = 201

            with pytest.raises(ViewGenerationFailed) as exc_info:
                await adapter.get_signing_url("env_123", client_recipient, return_url="https://x")

        assert exc_info.value.error_code == "link_gen_fail"
        await adapter.close()


class TestEnvelopeStatus:
    @pytest.mark.asyncio
    async def test_status_snapshot(self, adapter):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value.json = AsyncMock(return_value={
                "status": "completed",
                "createdDateTime": "2024-01-01T10:00:00Z",
                "sentDateTime": "2024-01-01T10:00:05Z",
                "completedDateTime": "2024-01-02T09:00:00Z",
            })
            mock_get.return_value.__aenter__.return_value.status = 200

            status = await adapter.get_envelope_status("env_123")

        assert status.is_completed
        assert status.completed_date == "2024-01-02T09:00:00Z"
        await adapter.close()

    @pytest.mark.asyncio
    async def test_missing_fields_default(self, adapter):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value.json = AsyncMock(return_value={})
            mock_get.return_value.__aenter__.return_value.status = 200

            status = await adapter.get_envelope_status("env_123")

        assert status.status == "unknown"
        assert status.created_date == ""
        assert not status.is_completed
        await adapter.close()

    @pytest.mark.asyncio
    async def test_not_found(self, adapter):
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value.json = AsyncMock(
                return_value={"errorCode": "ENVELOPE_DOES_NOT_EXIST", "message": "Invalid envelope"}
            )
            mock_get.return_value.__aenter__.return_value.status = 404

            with pytest.raises(EnvelopeStatusFailed) as exc_info:
                await adapter.get_envelope_status("env_missing")

        assert exc_info.value.error_code == "NOT_FOUND"
        await adapter.close()
