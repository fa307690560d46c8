"""
E-mail notification of newly found opportunities via Microsoft Graph.

Uses app-only (client credentials) authentication. The Azure AD app
registration needs Mail.Send as an APPLICATION permission with admin
consent; without it sendMail answers 403.
"""

import time
from html import escape
from typing import Any, Sequence

import httpx

from samgov_intel.core.config import Settings, get_settings
from samgov_intel.core.exceptions import NotificationException, ServiceNotConfiguredException
from samgov_intel.core.logging import LoggerMixin
from samgov_intel.sam.models import OpportunityRecord

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"

PERMISSION_HINT = (
    "Ensure Mail.Send is added as an Application permission (not Delegated) "
    "in Azure AD and admin consent is granted"
)


def build_notification(records: Sequence[OpportunityRecord], app_url: str) -> tuple[str, str]:
    """Return (subject, html_body) for a batch of new opportunities."""
    subject = f"[SAM.gov] {len(records)} New Contract Opportunities Found"

    items = "\n".join(
        f"<li><strong>{escape(record.title)}</strong><br/>\n"
        f"Solicitation: {escape(record.solicitation_number)}<br/>\n"
        f"Agency: {escape(record.agency)}<br/>\n"
        f"Deadline: {escape(record.response_deadline or 'Not specified')}<br/>\n"
        f'<a href="{escape(record.ui_link)}">View on SAM.gov</a></li>'
        for record in records
    )
    body = (
        "<h2>New Contract Opportunities</h2>\n"
        "<p>New contract opportunities matching your filters have been found on SAM.gov:</p>\n"
        f"<ul>\n{items}\n</ul>\n"
        f'<p><a href="{escape(app_url.rstrip("/"))}/settings/sam-gov">View all opportunities</a></p>\n'
        "<hr/>\n"
        '<p style="color: #666; font-size: 12px;">This is an automated notification.</p>'
    )
    return subject, body


def _graph_error(response: httpx.Response) -> tuple[str, str]:
    try:
        error = response.json().get("error", {})
    except ValueError:
        return "", response.text
    if not isinstance(error, dict):
        return "", response.text
    return str(error.get("code", "")), str(error.get("message", ""))


class GraphNotifier(LoggerMixin):
    """Sends HTML mail from a shared mailbox through Graph ``sendMail``."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if not self.settings.graph_configured:
            raise ServiceNotConfiguredException("GRAPH_CLIENT_ID")

        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=30.0)
        self._token: str | None = None
        self._token_expires_at = 0.0

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _get_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        response = await self._http.post(
            TOKEN_URL.format(tenant=self.settings.graph_tenant_id),
            data={
                "grant_type": "client_credentials",
                "client_id": self.settings.graph_client_id,
                "client_secret": self.settings.graph_client_secret,
                "scope": GRAPH_SCOPE,
            },
        )
        if response.is_error:
            _, message = _graph_error(response)
            raise NotificationException(
                f"Token request failed: {message or response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            payload = response.json()
            token = payload["access_token"]
            expires_in = int(payload.get("expires_in", 3600))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise NotificationException(
                "Token response did not contain an access token",
                upstream_status=response.status_code,
            ) from e

        self._token = token
        # Refresh a minute early
        self._token_expires_at = time.monotonic() + expires_in - 60
        return self._token

    async def _post_send_mail(self, message: dict[str, Any], save_to_sent: bool) -> httpx.Response:
        token = await self._get_token()
        return await self._http.post(
            f"{GRAPH_BASE_URL}/users/{self.settings.graph_sender_mailbox}/sendMail",
            headers={"Authorization": f"Bearer {token}"},
            json={"message": message, "saveToSentItems": save_to_sent},
        )

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        """
        Send one HTML message.

        Raises:
            NotificationException: Graph rejected the message
        """
        message = {
            "subject": subject,
            "body": {"contentType": "HTML", "content": html_body},
            "toRecipients": [{"emailAddress": {"address": recipient}}],
        }

        response = await self._post_send_mail(message, save_to_sent=True)
        code, error_message = _graph_error(response) if response.is_error else ("", "")

        # saveToSentItems needs MailboxSettings.ReadWrite; retry without it
        if response.status_code == 400 and "saveToSentItems" in error_message:
            self.logger.warning("saveToSentItems failed, retrying without it", error=error_message)
            response = await self._post_send_mail(message, save_to_sent=False)
            code, error_message = _graph_error(response) if response.is_error else ("", "")

        if response.status_code == 403 or code == "Authorization_RequestDenied":
            raise NotificationException(
                "Missing Mail.Send APPLICATION permission",
                upstream_status=response.status_code,
                hint=PERMISSION_HINT,
            )
        if response.is_error:
            raise NotificationException(
                f"sendMail failed: {error_message or response.status_code}",
                upstream_status=response.status_code,
            )

        self.logger.info("Notification e-mail sent", to=recipient, subject=subject)


_notifier: GraphNotifier | None = None


def get_notifier() -> GraphNotifier | None:
    """Shared notifier, or None when Microsoft Graph is not configured."""
    global _notifier

    if _notifier is None and get_settings().graph_configured:
        _notifier = GraphNotifier()
    return _notifier


async def close_notifier() -> None:
    global _notifier

    if _notifier is not None:
        await _notifier.aclose()
        _notifier = None
