"""Gmail API adapter for contact discovery.

This module implements the ``MailProvider`` contract on top of the Gmail API.

Notes:
    The Google API client is synchronous. This project wraps those calls using
    `asyncio.to_thread` so the indexer can fan out thread fetches concurrently.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import structlog
from googleapiclient.errors import HttpError

from recipient_suggest.config import Settings
from recipient_suggest.exceptions import AuthenticationError, ConfigurationError, MailProviderError
from recipient_suggest.gmail.parsing import list_response_to_page, send_as_to_aliases, thread_to_detail
from recipient_suggest.models import AccountIdentity, EmailAlias, ThreadDetail, ThreadPage
from recipient_suggest.utils import retry_on_failure

logger = structlog.get_logger()

# Folder names used by the indexer mapped to Gmail system labels.
FOLDER_LABELS: dict[str, str] = {
    "inbox": "INBOX",
    "sent": "SENT",
    "draft": "DRAFT",
    "trash": "TRASH",
    "spam": "SPAM",
}

METADATA_HEADERS: tuple[str, ...] = ("From", "To", "Cc", "Bcc", "Date")

# Rate limiting and server-side failures; everything else is permanent.
TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})


def is_transient_error(exc: BaseException) -> bool:
    """True for Gmail errors worth retrying."""

    if isinstance(exc, HttpError):
        return int(getattr(exc.resp, "status", 0) or 0) in TRANSIENT_STATUSES
    return isinstance(exc, OSError)


class GmailClient:
    """Gmail-backed mail provider.

    Lists threads per folder, fetches thread metadata and reads send-as
    aliases. Gmail payloads are converted to provider-neutral models before
    they are returned.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize Gmail client.

        Args:
            settings: Application settings. If None, uses default settings.
        """
        from recipient_suggest.config import get_settings

        self.settings = settings or get_settings()
        self._service: Any | None = None
        logger.info("gmail_client_initialized")

    async def authenticate(self) -> None:
        """Authenticate with Gmail API using OAuth2.

        Raises:
            ConfigurationError: If the credentials file is missing.
            AuthenticationError: If authentication fails.
        """

        if self._service is not None:
            return

        credentials_path = Path(self.settings.gmail_credentials_path)
        token_path = Path(self.settings.gmail_token_path)
        scope = self.settings.gmail_scope

        if not credentials_path.exists():
            raise ConfigurationError(
                f"Gmail credentials file not found: {credentials_path}. "
                "Download an OAuth client file from the Google Cloud console."
            )

        logger.info(
            "gmail_authentication_started",
            credentials_path=str(credentials_path),
            token_path=str(token_path),
            scope=scope,
        )

        try:
            self._service = await asyncio.to_thread(
                self._build_service,
                credentials_path,
                token_path,
                scope,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_authentication_failed", error=str(exc))
            raise AuthenticationError(str(exc)) from exc

        logger.info("gmail_authentication_completed")

    async def list_folder(
        self,
        folder: str,
        query: str = "",
        max_results: int = 100,
        page_token: str | None = None,
    ) -> ThreadPage:
        """List one page of threads in a folder.

        Args:
            folder: Folder name (inbox, sent, draft, trash, spam).
            query: Gmail search query string; empty for everything.
            max_results: Page size.
            page_token: Cursor from a previous page; empty or None for the first.

        Returns:
            ThreadPage with thread ids and the next cursor.

        Raises:
            MailProviderError: If the folder is unknown or the API request fails.
        """

        await self._ensure_authenticated()

        label = FOLDER_LABELS.get(folder.lower())
        if label is None:
            raise MailProviderError(f"Unknown folder: {folder}")

        logger.debug("listing_threads", folder=folder, max_results=max_results, query=query)

        try:
            response = await asyncio.to_thread(
                self._list_threads_sync,
                label,
                query or None,
                max_results,
                page_token or None,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_list_threads_failed", folder=folder, error=str(exc))
            raise MailProviderError(str(exc)) from exc

        return list_response_to_page(response)

    async def get_thread_detail(self, thread_id: str) -> ThreadDetail:
        """Get addressing metadata for every message in a thread.

        Args:
            thread_id: The Gmail thread ID.

        Returns:
            ThreadDetail with parsed sender/to/cc/bcc/date per message.

        Raises:
            MailProviderError: If the API request fails.
        """

        await self._ensure_authenticated()

        try:
            response = await asyncio.to_thread(self._get_thread_sync, thread_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("gmail_get_thread_failed", thread_id=thread_id, error=str(exc))
            raise MailProviderError(str(exc)) from exc

        return thread_to_detail(response)

    async def get_email_aliases(self) -> list[EmailAlias]:
        """Return the account's send-as aliases."""

        await self._ensure_authenticated()

        try:
            response = await asyncio.to_thread(self._list_send_as_sync)
        except Exception as exc:  # noqa: BLE001
            logger.warning("gmail_list_send_as_failed", error=str(exc))
            raise MailProviderError(str(exc)) from exc

        return send_as_to_aliases(response)

    async def get_identity(self, account_id: str) -> AccountIdentity:
        """Resolve the authenticated mailbox identity.

        The display name comes from the primary send-as alias when Gmail
        reports one.
        """

        await self._ensure_authenticated()

        try:
            profile = await asyncio.to_thread(self._get_profile_sync)
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_get_profile_failed", error=str(exc))
            raise MailProviderError(str(exc)) from exc

        email = str(profile.get("emailAddress") or "")
        name: str | None = None
        try:
            for alias in await self.get_email_aliases():
                if alias.primary:
                    name = alias.name
                    break
        except MailProviderError:
            name = None

        return AccountIdentity(account_id=account_id, email=email, name=name)

    async def _ensure_authenticated(self) -> None:
        if self._service is None:
            raise AuthenticationError(
                "Gmail client is not authenticated. Call await GmailClient.authenticate() first."
            )

    def _build_service(self, credentials_path: Path, token_path: Path, scope: str) -> Any:
        # Imported lazily to keep import-time cost low and tests fast.
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from google_auth_oauthlib.flow import InstalledAppFlow
        from googleapiclient.discovery import build

        creds: Credentials | None = None
        if token_path.exists():
            creds = Credentials.from_authorized_user_file(str(token_path), scopes=[scope])

        if creds is not None and creds.expired and creds.refresh_token:
            creds.refresh(Request())

        if creds is None or not creds.valid:
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), scopes=[scope])
            creds = flow.run_local_server(port=0)
            token_path.parent.mkdir(parents=True, exist_ok=True)
            token_path.write_text(creds.to_json(), encoding="utf-8")

        # cache_discovery=False prevents writing discovery docs to disk.
        return build("gmail", "v1", credentials=creds, cache_discovery=False)

    def _execute(self, request: Any) -> dict[str, Any]:
        @retry_on_failure(
            max_retries=self.settings.max_retries,
            delay=0.5,
            should_retry=is_transient_error,
        )
        def run() -> dict[str, Any]:
            return request.execute()

        return run()

    def _list_threads_sync(
        self,
        label: str,
        query: str | None,
        max_results: int,
        page_token: str | None,
    ) -> dict[str, Any]:
        assert self._service is not None
        request = (
            self._service.users()
            .threads()
            .list(
                userId=self.settings.gmail_user_id,
                labelIds=[label],
                q=query,
                maxResults=max_results,
                pageToken=page_token,
                includeSpamTrash=label in {"TRASH", "SPAM"},
            )
        )
        return self._execute(request)

    def _get_thread_sync(self, thread_id: str) -> dict[str, Any]:
        assert self._service is not None
        request = (
            self._service.users()
            .threads()
            .get(
                userId=self.settings.gmail_user_id,
                id=thread_id,
                format="metadata",
                metadataHeaders=list(METADATA_HEADERS),
            )
        )
        return self._execute(request)

    def _list_send_as_sync(self) -> dict[str, Any]:
        assert self._service is not None
        request = self._service.users().settings().sendAs().list(userId=self.settings.gmail_user_id)
        return self._execute(request)

    def _get_profile_sync(self) -> dict[str, Any]:
        assert self._service is not None
        return self._execute(self._service.users().getProfile(userId=self.settings.gmail_user_id))
