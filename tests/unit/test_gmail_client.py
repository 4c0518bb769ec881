"""Unit tests for Gmail client."""

from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from recipient_suggest.config import Settings
from recipient_suggest.exceptions import AuthenticationError, ConfigurationError, MailProviderError
from recipient_suggest.gmail.client import GmailClient, is_transient_error


def _client_with_service(service: MagicMock) -> GmailClient:
    client = GmailClient(Settings(max_retries=0))
    client._service = service
    return client


class TestGmailClient:
    """Test suite for GmailClient class."""

    def test_gmail_client_initialization(self) -> None:
        """Test that Gmail client is properly initialized."""
        client = GmailClient()

        assert client.settings is not None
        assert client._service is None

    @pytest.mark.asyncio
    async def test_authenticate_missing_credentials_raises(self, tmp_path) -> None:
        """Test that authenticate fails fast when credentials.json is missing."""
        client = GmailClient(Settings(gmail_credentials_path=tmp_path / "missing.json"))

        with pytest.raises(ConfigurationError):
            await client.authenticate()

    @pytest.mark.asyncio
    async def test_list_folder_requires_authentication(self) -> None:
        """Test that list_folder requires authenticate() first."""
        client = GmailClient()

        with pytest.raises(AuthenticationError):
            await client.list_folder("inbox")

    @pytest.mark.asyncio
    async def test_get_thread_detail_requires_authentication(self) -> None:
        """Test that get_thread_detail requires authenticate() first."""
        client = GmailClient()

        with pytest.raises(AuthenticationError):
            await client.get_thread_detail("thread123")

    @pytest.mark.asyncio
    async def test_list_folder_maps_folder_to_label(self) -> None:
        """Test that folders are listed through their Gmail system label."""
        service = MagicMock()
        threads = service.users.return_value.threads.return_value
        threads.list.return_value.execute.return_value = {
            "threads": [{"id": "t1"}, {"id": "t2"}],
            "nextPageToken": "next",
        }
        client = _client_with_service(service)

        page = await client.list_folder("sent", "", 100, "")

        assert [t.id for t in page.threads] == ["t1", "t2"]
        assert page.next_page_token == "next"
        kwargs = threads.list.call_args.kwargs
        assert kwargs["labelIds"] == ["SENT"]
        assert kwargs["maxResults"] == 100
        assert kwargs["pageToken"] is None
        assert kwargs["q"] is None

    @pytest.mark.asyncio
    async def test_list_folder_unknown_folder_raises(self) -> None:
        """Test that an unmapped folder name is rejected."""
        client = _client_with_service(MagicMock())

        with pytest.raises(MailProviderError):
            await client.list_folder("archive")

    @pytest.mark.asyncio
    async def test_get_thread_detail_parses_response(self, sample_thread_data) -> None:
        """Test that thread payloads come back as provider-neutral models."""
        service = MagicMock()
        threads = service.users.return_value.threads.return_value
        threads.get.return_value.execute.return_value = sample_thread_data
        client = _client_with_service(service)

        detail = await client.get_thread_detail("thread789")

        assert detail.id == "thread789"
        assert detail.messages[0].sender.email == "me@example.com"
        assert threads.get.call_args.kwargs["format"] == "metadata"

    @pytest.mark.asyncio
    async def test_get_thread_detail_wraps_api_errors(self) -> None:
        """Test that API failures surface as MailProviderError."""
        service = MagicMock()
        threads = service.users.return_value.threads.return_value
        threads.get.return_value.execute.side_effect = RuntimeError("boom")
        client = _client_with_service(service)

        with pytest.raises(MailProviderError):
            await client.get_thread_detail("thread789")

    @pytest.mark.asyncio
    async def test_get_identity_uses_profile_and_primary_alias(self) -> None:
        """Test identity resolution from the profile and send-as settings."""
        service = MagicMock()
        users = service.users.return_value
        users.getProfile.return_value.execute.return_value = {"emailAddress": "me@example.com"}
        users.settings.return_value.sendAs.return_value.list.return_value.execute.return_value = {
            "sendAs": [{"sendAsEmail": "me@example.com", "displayName": "Me", "isPrimary": True}]
        }
        client = _client_with_service(service)

        identity = await client.get_identity("acct-1")

        assert identity.account_id == "acct-1"
        assert identity.email == "me@example.com"
        assert identity.name == "Me"


@pytest.mark.parametrize(
    ("status", "expected"),
    [(429, True), (503, True), (400, False), (404, False)],
)
def test_http_errors_retry_only_when_transient(status: int, expected: bool) -> None:
    error = HttpError(MagicMock(status=status, reason="status"), b"")

    assert is_transient_error(error) is expected


def test_network_errors_are_transient() -> None:
    assert is_transient_error(ConnectionResetError("reset"))
    assert not is_transient_error(ValueError("bad request body"))
