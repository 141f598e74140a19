import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from hylian.config import settings

logger = logging.getLogger(__name__)


def get_smtp_config() -> dict:
    return {
        "host": settings.smtp_host,
        "port": settings.smtp_port,
        "username": settings.smtp_username,
        "password": settings.smtp_password,
        "use_tls": settings.smtp_use_tls,
        "use_ssl": settings.smtp_use_ssl,
        "timeout": settings.smtp_timeout,
        "from_email": settings.smtp_from_email,
        "from_name": settings.smtp_from_name,
    }


def email_enabled(config: dict | None = None) -> bool:
    config = config or get_smtp_config()
    return bool(config.get("host"))


def _create_smtp_client(host: str, port: int, use_ssl: bool, timeout: int | None = None):
    if use_ssl:
        return smtplib.SMTP_SSL(host, port, timeout=timeout)
    return smtplib.SMTP(host, port, timeout=timeout)


def send_email(
    to_email: str,
    subject: str,
    body_html: str,
    body_text: str | None = None,
    config: dict | None = None,
) -> bool:
    """
    Send an email via SMTP.

    Args:
        to_email: Recipient email address
        subject: Email subject
        body_html: HTML body content
        body_text: Plain text alternative (optional)
        config: SMTP settings, defaults to the environment configuration

    Returns:
        True if email was sent successfully, False otherwise
    """
    config = config or get_smtp_config()
    host = str(config.get("host") or "")
    if not host:
        logger.info("SMTP not configured, skipping email to %s", to_email)
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{config['from_name']} <{config['from_email']}>"
    msg["To"] = to_email
    if body_text:
        msg.attach(MIMEText(body_text, "plain"))
    msg.attach(MIMEText(body_html, "html"))

    try:
        server = _create_smtp_client(
            host,
            int(config.get("port") or 587),
            bool(config.get("use_ssl")),
            config.get("timeout"),
        )
        if config.get("use_tls") and not config.get("use_ssl"):
            server.starttls()
        if config.get("username") and config.get("password"):
            server.login(config["username"], config["password"])
        server.sendmail(config["from_email"], to_email, msg.as_string())
        server.quit()
        logger.info("Email sent successfully to %s", to_email)
        return True
    except smtplib.SMTPAuthenticationError as exc:
        logger.error("SMTP authentication failed for %s: %s", to_email, exc)
        return False
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email to %s: %s", to_email, exc)
        return False


def send_signing_invitation(
    to_email: str,
    recipient_name: str,
    contract_title: str,
    signing_link: str,
    config: dict | None = None,
) -> bool:
    """Send the "please sign" invitation carrying the signer's personal link."""
    name = escape(recipient_name)
    title = escape(contract_title)
    link = escape(signing_link, quote=True)
    subject = f"Please sign: {contract_title}"

    body_html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2>Document Signature Request</h2>
    <p>Hello {name},</p>
    <p>You have been requested to sign the following document:</p>
    <h3>{title}</h3>
    <p>Please click the link below to view and sign the document:</p>
    <a href="{link}" style="background-color: #007bff; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px; display: inline-block;">
        View and Sign Document
    </a>
    <p>This link will remain active until the document is signed by all parties.</p>
</div>
"""

    body_text = f"""Hello {recipient_name},

You have been requested to sign the following document: {contract_title}

Open the link below to view and sign the document:
{signing_link}

This link will remain active until the document is signed by all parties.
"""

    return send_email(to_email, subject, body_html, body_text, config=config)
