"""Outgoing mail via an HTTP mail API.

The API receives JSON {from, to, subject, text, html} with a bearer key.
Without MAIL_API_URL (local development) the message is logged instead.
"""

import html
import logging

import httpx

from storedir.settings import get_settings
from storedir.services.errors import MailError

logger = logging.getLogger("uvicorn.error")

# template name -> (text body, html body); both formatted with name/reset_url
TEMPLATES: dict[str, tuple[str, str]] = {
    "password-reset": (
        "Hello {name},\n\n"
        "You have requested a password reset. Follow the link below within the next hour:\n\n"
        "{reset_url}\n\n"
        "If you did not request this, you can ignore this email.\n",
        "<p>Hello {name},</p>"
        "<p>You have requested a password reset. "
        "<a href=\"{reset_url}\">Reset my password</a> within the next hour.</p>"
        "<p>If you did not request this, you can ignore this email.</p>",
    ),
}


def render_template(template: str, *, name: str, reset_url: str) -> tuple[str, str]:
    """Render the text and HTML bodies of a mail template."""
    try:
        text_tpl, html_tpl = TEMPLATES[template]
    except KeyError:
        raise MailError(f"Unknown mail template: {template}") from None
    text = text_tpl.format(name=name, reset_url=reset_url)
    body = html_tpl.format(name=html.escape(name), reset_url=html.escape(reset_url, quote=True))
    return text, body


async def send_mail(
    *,
    recipient: str,
    subject: str,
    template: str,
    reset_url: str,
    name: str = "",
) -> None:
    """Send one templated message.

    Raises:
        MailError: If the mail API is unreachable or rejects the message.
    """
    settings = get_settings()
    text, body = render_template(template, name=name or recipient, reset_url=reset_url)

    if not settings.mail_api_url:
        logger.warning(f"MAIL_API_URL is not set - not sending '{subject}' to {recipient}")
        if settings.debug:
            logger.info(f"Undelivered mail body:\n{text}")
        return

    headers = {}
    if settings.mail_api_key:
        headers["Authorization"] = f"Bearer {settings.mail_api_key}"

    payload = {
        "from": settings.mail_from,
        "to": recipient,
        "subject": subject,
        "text": text,
        "html": body,
    }

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            resp = await client.post(settings.mail_api_url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Mail API unreachable: {e}")
        raise MailError("Could not send email") from e

    if resp.status_code >= 400:
        logger.error(f"Mail API error: {resp.status_code} - {resp.text[:200]}")
        raise MailError("Could not send email", detail={"status": resp.status_code})

    logger.info(f"Sent '{subject}' to {recipient}")
