import logging
import smtplib
from html import escape
from email.message import EmailMessage

from app.config import Settings

logger = logging.getLogger(__name__)


class EmailSender:
    """Outbound notification channel. Implementations raise on failure."""

    def send(self, to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
        raise NotImplementedError


class ConsoleEmailSender(EmailSender):
    """Writes messages to the application log instead of delivering them."""

    def send(self, to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
        logger.info("[EMAIL] to=%s subject=%s\n%s", to_email, subject, text_body)


class SmtpEmailSender(EmailSender):
    def __init__(self, config: Settings):
        self.config = config

    def send(self, to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
        if not self.config.SMTP_HOST or not self.config.SMTP_FROM_EMAIL:
            raise RuntimeError("SMTP is not configured (SMTP_HOST and SMTP_FROM_EMAIL are required).")

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = f"{self.config.SMTP_FROM_NAME} <{self.config.SMTP_FROM_EMAIL}>"
        message["To"] = to_email
        message.set_content(text_body)
        if html_body:
            message.add_alternative(html_body, subtype="html")

        with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10) as smtp:
            smtp.ehlo()
            if self.config.SMTP_USE_TLS:
                smtp.starttls()
                smtp.ehlo()
            if self.config.SMTP_USER:
                smtp.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD)
            smtp.send_message(message)


def build_email_sender(config: Settings) -> EmailSender:
    backend = config.EMAIL_BACKEND
    if backend == "smtp":
        return SmtpEmailSender(config)
    if backend != "console":
        logger.warning("Unknown EMAIL_BACKEND=%r, falling back to console", backend)
    return ConsoleEmailSender()


def send_verification_code(
    sender: EmailSender,
    to_email: str,
    name: str | None,
    code: str,
    expires_in_minutes: int,
) -> None:
    greeting = name or "there"
    text = (
        f"Hi {greeting},\n\n"
        f"Your verification code is: {code}\n\n"
        f"The code expires in {expires_in_minutes} minutes.\n"
        "If you did not create this account, ignore this message."
    )
    html = (
        f"<p>Hi {escape(greeting)},</p>"
        "<p>Your verification code is:</p>"
        f"<p style=\"font-size:24px;letter-spacing:4px\"><strong>{code}</strong></p>"
        f"<p>The code expires in {expires_in_minutes} minutes.</p>"
        "<p>If you did not create this account, ignore this message.</p>"
    )
    sender.send(to_email=to_email, subject="Verify your email", text_body=text, html_body=html)
