"""
Outgoing transactional email.

Three emails exist: the verification link after signup (and on resend),
the reset link after forgot-password, and the notice after a completed
reset. Delivery is best effort:

- a failed or timed-out send is logged and reported in an EmailResult,
  never raised, so it cannot change the HTTP outcome of the flow
- a token stored before a failed send stays valid; the user can ask again
- without RESEND_API_KEY the DisabledEmailProvider is installed and every
  send is a logged no-op (`EmailResult.skipped`)

EmailService owns link building and template rendering; an EmailProvider
only moves an already rendered EmailMessage.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import quote

import httpx

from auth_service.core.config import Settings
from auth_service.services.email_templates import EmailTemplates

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailType(str, Enum):
    """Kind of email, carried into log records."""

    VERIFICATION = "verification"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGED = "password_changed"
    GENERIC = "generic"


@dataclass
class EmailMessage:
    """A rendered email ready for a provider."""

    to_email: str
    subject: str
    html_content: str
    text_content: Optional[str] = None

    from_email: Optional[str] = None
    """Filled from EMAIL_FROM by EmailService when left empty."""

    email_type: EmailType = EmailType.GENERIC


@dataclass
class EmailResult:
    """
    Outcome of one send.

    `skipped` tells "nothing was attempted" (email disabled) apart from
    "attempted and failed"; only the latter is logged as an error.
    """

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None
    skipped: bool = False


# ============================================================================
# Providers
# ============================================================================


class EmailProvider(ABC):
    """Transport for rendered messages."""

    name: str = "abstract"

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult:
        """Deliver one message. Implementations report failures in the result."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the provider has the credentials it needs."""


class ResendProvider(EmailProvider):
    """
    Resend REST API (POST /emails) over httpx.

    Every request is bounded by `timeout`. Non-2xx answers and transport
    errors, timeouts included, come back as failed results.

    Args:
        api_key: Resend API key, sent as a bearer token
        from_email: Sender used when the message has none
        timeout: Seconds before the request is abandoned
        transport: httpx transport override (tests pass httpx.MockTransport)
    """

    name = "resend"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._default_from = from_email
        self._timeout = timeout
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _payload(self, message: EmailMessage) -> dict:
        payload = {
            "from": message.from_email or self._default_from,
            "to": [message.to_email],
            "subject": message.subject,
            "html": message.html_content,
        }
        if message.text_content:
            payload["text"] = message.text_content
        return payload

    async def send(self, message: EmailMessage) -> EmailResult:
        if not self.is_configured():
            return EmailResult(success=False, error="RESEND_API_KEY is empty", provider=self.name)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=self._payload(message),
                )
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed: {e!r}")
            return EmailResult(success=False, error=str(e), provider=self.name)

        if not response.is_success:
            return EmailResult(
                success=False,
                error=f"Resend answered {response.status_code}: {response.text}",
                provider=self.name,
            )

        return EmailResult(success=True, message_id=response.json().get("id"), provider=self.name)


class DisabledEmailProvider(EmailProvider):
    """Installed when no provider key is configured; logs and sends nothing."""

    name = "disabled"

    def is_configured(self) -> bool:
        return False

    async def send(self, message: EmailMessage) -> EmailResult:
        logger.warning(
            "Email disabled (RESEND_API_KEY not set), not sending",
            extra={"email_type": message.email_type.value, "subject": message.subject},
        )
        return EmailResult(success=False, provider=self.name, skipped=True)


# ============================================================================
# Service
# ============================================================================


class EmailService:
    """
    Builds the auth emails and hands them to the provider.

    Links are `{FRONTEND_URL}/verify-email?token=...` and
    `{FRONTEND_URL}/reset-password?token=...`.

    Args:
        settings: Application settings (FRONTEND_URL, EMAIL_FROM, TTLs)
        provider: Transport; chosen from settings when omitted
        templates: Renderer; created from settings when omitted
    """

    def __init__(
        self,
        settings: Settings,
        provider: Optional[EmailProvider] = None,
        templates: Optional[EmailTemplates] = None,
    ):
        self._settings = settings
        self._provider = provider or build_email_provider(settings)
        self._templates = templates or EmailTemplates(settings)

    @property
    def provider(self) -> EmailProvider:
        return self._provider

    async def send_email(self, message: EmailMessage) -> EmailResult:
        """
        Send through the provider without ever raising.

        A provider that raises instead of returning a failed result is
        treated the same way: logged with its traceback, reported as failed.
        """
        message.from_email = message.from_email or self._settings.EMAIL_FROM
        log_extra = {"email_type": message.email_type.value, "provider": self._provider.name}

        try:
            result = await self._provider.send(message)
        except Exception as e:
            logger.error(f"Email provider raised: {e}", exc_info=e, extra=log_extra)
            return EmailResult(success=False, error=str(e), provider=self._provider.name)

        if result.success:
            logger.info(
                f"Email sent: {result.message_id}",
                extra={**log_extra, "message_id": result.message_id},
            )
        elif not result.skipped:
            logger.error(f"Email send failed: {result.error}", extra=log_extra)

        return result

    async def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> EmailResult:
        """Send an ad-hoc message, best effort."""
        return await self.send_email(
            EmailMessage(to_email=to, subject=subject, html_content=html_body, text_content=text_body)
        )

    def verification_url(self, token: str) -> str:
        return f"{self._settings.FRONTEND_URL}/verify-email?token={quote(token)}"

    def reset_url(self, token: str) -> str:
        return f"{self._settings.FRONTEND_URL}/reset-password?token={quote(token)}"

    async def _send_rendered(
        self,
        to_email: str,
        email_type: EmailType,
        rendered: Tuple[str, str, str],
    ) -> EmailResult:
        subject, html_content, text_content = rendered
        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
                email_type=email_type,
            )
        )

    async def send_verification_email(
        self,
        to_email: str,
        user_name: str,
        verification_token: str,
    ) -> EmailResult:
        return await self._send_rendered(
            to_email,
            EmailType.VERIFICATION,
            self._templates.verification_email(
                user_name=user_name,
                verification_url=self.verification_url(verification_token),
            ),
        )

    async def send_password_reset_email(
        self,
        to_email: str,
        user_name: str,
        reset_token: str,
    ) -> EmailResult:
        return await self._send_rendered(
            to_email,
            EmailType.PASSWORD_RESET,
            self._templates.password_reset_email(
                user_name=user_name,
                reset_url=self.reset_url(reset_token),
            ),
        )

    async def send_password_changed_email(self, to_email: str, user_name: str) -> EmailResult:
        """Tell the owner their password changed, with a way back in if it wasn't them."""
        return await self._send_rendered(
            to_email,
            EmailType.PASSWORD_CHANGED,
            self._templates.password_changed_email(user_name=user_name),
        )


def build_email_provider(settings: Settings) -> EmailProvider:
    """Resend when RESEND_API_KEY is set, otherwise the disabled provider."""
    if settings.email_enabled:
        return ResendProvider(
            api_key=settings.RESEND_API_KEY,
            from_email=settings.EMAIL_FROM,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )

    logger.warning("No email provider configured, outgoing email is disabled")
    return DisabledEmailProvider()


def build_email_service(settings: Settings) -> EmailService:
    return EmailService(settings, provider=build_email_provider(settings))
