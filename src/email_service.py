# src/email_service.py
"""
Email service for password reset and account notices.
Supports both SMTP and console logging for development.
"""
import os
import re
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from urllib.parse import quote
import logging

from config.settings import FRONTEND_URL

logger = logging.getLogger(__name__)

_TAG = re.compile(r'<[^>]+>')


class EmailService:
    """Service for sending emails."""

    def __init__(self):
        """Initialize email service with environment configuration."""
        self.smtp_host = os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.from_email = os.getenv("FROM_EMAIL", self.smtp_user or "noreply@coinhub.app")
        self.from_name = os.getenv("FROM_NAME", "CoinHub")
        self.frontend_url = FRONTEND_URL.rstrip("/")

        # Use console mode if SMTP credentials not configured
        self.console_mode = not (self.smtp_user and self.smtp_password)

        if self.console_mode:
            logger.info("Email service running in CONSOLE MODE (no SMTP configured)")
        else:
            logger.info("Email service configured: %s:%s", self.smtp_host, self.smtp_port)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None
    ) -> bool:
        """
        Send an email.

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            if self.console_mode:
                return self._send_console(to_email, subject, plain_body or html_body)
            return self._send_smtp(to_email, subject, html_body, plain_body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False

    def _send_console(self, to_email: str, subject: str, body: str) -> bool:
        """Record that an email would have been sent; the body may carry tokens."""
        logger.info("EMAIL (console mode) to=%s subject=%s body_chars=%d", to_email, subject, len(body))
        return True

    def _send_smtp(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None
    ) -> bool:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        if not plain_body:
            plain_body = html_body.replace('<br>', '\n').replace('<br/>', '\n')
            plain_body = plain_body.replace('</p>', '\n\n')
            plain_body = _TAG.sub('', plain_body)

        msg.attach(MIMEText(plain_body, 'plain'))
        msg.attach(MIMEText(html_body, 'html'))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        logger.info("Email sent to %s: %s", to_email, subject)
        return True

    def password_reset_link(self, reset_token: str) -> str:
        return f"{self.frontend_url}/auth?mode=reset&token={quote(reset_token)}"

    def send_password_reset_email(
        self,
        to_email: str,
        reset_token: str,
        user_name: Optional[str] = None
    ) -> bool:
        """Send the password reset link (valid for one hour)."""
        reset_url = self.password_reset_link(reset_token)
        greeting = f"Hi {user_name}," if user_name else "Hello,"

        html_body = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333;">
            <h2>Reset your CoinHub password</h2>
            <p>{greeting}</p>
            <p>We received a request to reset the password for your CoinHub account.</p>
            <p><a href="{reset_url}" style="display:inline-block;padding:12px 24px;background:#B8860B;color:#fff;text-decoration:none;border-radius:6px;">Reset Password</a></p>
            <p>Or paste this link into your browser:<br>{reset_url}</p>
            <p>This link expires in 1 hour. If you didn't request a reset, you can ignore this email.</p>
        </body>
        </html>
        """
        plain_body = (
            f"{greeting}\n\n"
            "We received a request to reset the password for your CoinHub account.\n\n"
            f"Reset it here: {reset_url}\n\n"
            "This link expires in 1 hour. If you didn't request a reset, you can ignore this email.\n"
        )
        return self.send_email(
            to_email=to_email,
            subject="Reset Your CoinHub Password",
            html_body=html_body,
            plain_body=plain_body,
        )

    def send_password_changed_notification(self, to_email: str, user_name: Optional[str] = None) -> bool:
        greeting = f"Hi {user_name}," if user_name else "Hello,"
        plain_body = (
            f"{greeting}\n\n"
            "The password for your CoinHub account was just changed and all devices were signed out.\n"
            "If this wasn't you, reset your password right away.\n"
        )
        html_body = "<p>" + plain_body.replace("\n\n", "</p><p>").replace("\n", "<br>") + "</p>"
        return self.send_email(
            to_email=to_email,
            subject="Your CoinHub Password Was Changed",
            html_body=html_body,
            plain_body=plain_body,
        )


# Singleton instance
_email_service = None


def get_email_service() -> EmailService:
    """Get or create email service singleton."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


__all__ = ["EmailService", "get_email_service"]
