"""
Invite emails via SendGrid.

Without ``SENDGRID_API_KEY`` sends are simulated: the message is logged and
reported as delivered so local development does not need an account.
"""
from html import escape

import structlog
from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail

from settings import get_settings

logger = structlog.get_logger(__name__)


def send_email(to_email: str, subject: str, html_content: str, text_content: str) -> bool:
    """Send one email. Returns False on delivery failure instead of raising."""
    settings = get_settings()

    if not settings.sendgrid_api_key:
        logger.info(
            "Simulating email send (SendGrid API key not configured)",
            to=to_email,
            subject=subject,
            body=text_content,
        )
        return True

    message = Mail(
        from_email=Email(settings.email_from, settings.email_from_name),
        to_emails=to_email,
        subject=subject,
        html_content=html_content,
        plain_text_content=text_content,
    )
    try:
        response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except HTTPError as exc:
        logger.error("SendGrid rejected email", to=to_email, status_code=exc.status_code, body=exc.body)
        return False
    except OSError as exc:
        logger.error("SendGrid unreachable", to=to_email, exc=str(exc))
        return False

    logger.info("Email sent", to=to_email, subject=subject, status_code=response.status_code)
    return True


def send_invite_email(to_email: str, company_name: str, role: str, invite_id: int) -> bool:
    settings = get_settings()
    accept_url = f"{settings.app_base_url}/invites/{invite_id}"
    role_label = role.replace("_", " ")
    subject = f"You're invited to join {company_name} on Matchboard"
    text = (
        f"You have been invited to join {company_name} as a {role_label}.\n"
        f"Accept the invitation: {accept_url}\n"
        f"The invitation expires in {settings.invite_expiry_days} days."
    )
    html = (
        f"<p>You have been invited to join <strong>{escape(company_name)}</strong> as a {role_label}.</p>"
        f'<p><a href="{accept_url}">Accept the invitation</a></p>'
        f"<p>The invitation expires in {settings.invite_expiry_days} days.</p>"
    )
    return send_email(to_email, subject, html, text)
