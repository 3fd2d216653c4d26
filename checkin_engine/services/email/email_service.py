"""
Email service for sending transactional emails.

Supports SMTP, Resend API, and console logging modes.
Supports i18n via JSON locale files.
"""

import json
import os
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from pathlib import Path
from typing import Optional

import httpx
import aiosmtplib

from config.email_config import RESEND_API_URL, EMAIL_DEFAULTS

logger = logging.getLogger(__name__)

# Load locale files
LOCALES_DIR = Path(__file__).parent / "locales"
_translations_cache: dict = {}

SUPPORTED_LANGUAGES = ["en"]


class EmailService:
    """
    Email service with multi-mode support.

    Modes:
        - console: Log emails to console (development)
        - smtp: Send via SMTP (e.g., Resend SMTP relay)
        - resend: Send via Resend HTTP API
    """

    def __init__(
        self,
        mode: Optional[str] = None,
        resend_api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        team_name: Optional[str] = None,
        app_url: Optional[str] = None,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize email service.

        Args:
            mode: "console", "smtp", or "resend" (default from EMAIL_MODE env var)
            resend_api_key: Resend API key (default from RESEND_API_KEY env var)
            from_email: Sender email address
            from_name: Sender display name
            team_name: Team name for email signatures
            app_url: Base URL for frontend links in emails
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            timeout: Per-send timeout in seconds
        """
        self._mode = mode or os.environ.get("EMAIL_MODE", EMAIL_DEFAULTS["mode"])
        self._from_email = from_email or os.environ.get("SMTP_FROM_EMAIL", "noreply@example.com")
        self._from_name = from_name or os.environ.get("SMTP_FROM_NAME", EMAIL_DEFAULTS["from_name"])
        self._team_name = team_name or os.environ.get("EMAIL_TEAM_NAME", EMAIL_DEFAULTS["team_name"])
        self._app_url = app_url or os.environ.get("APP_URL", "http://localhost:3000")
        self._timeout = timeout

        self._resend_api_key = resend_api_key or os.environ.get("RESEND_API_KEY")

        # SMTP settings (for actual SMTP mode)
        self._smtp_host = smtp_host or os.environ.get("SMTP_HOST")
        self._smtp_port = smtp_port or int(os.environ.get("SMTP_PORT", "465"))
        self._smtp_user = smtp_user or os.environ.get("SMTP_USER", "resend")
        self._smtp_password = smtp_password or os.environ.get("SMTP_PASSWORD")

        # Normalize mode: if smtp mode with Resend API key, use Resend HTTP API
        if self._mode == "smtp" and self._resend_api_key:
            logger.info("EMAIL_MODE=smtp with Resend API key detected, using Resend HTTP API")
            self._mode = "resend"
        elif self._mode == "resend" and not self._resend_api_key:
            logger.warning("Resend API key not configured, falling back to console mode")
            self._mode = "console"
        elif self._mode == "smtp" and not self._smtp_host:
            logger.warning("SMTP host not configured, falling back to console mode")
            self._mode = "console"

        logger.info(f"Email service initialized in {self._mode} mode")

    @property
    def mode(self) -> str:
        return self._mode

    def _get_translations(
        self,
        lang: str,
        email_type: str,
        variables: dict
    ) -> dict:
        """
        Load translations from JSON file and replace placeholders.

        Args:
            lang: Language code
            email_type: Email type key (e.g., "checkin_confirmation")
            variables: Dict of placeholder values to substitute

        Returns:
            dict with all translated strings for the email type
        """
        global _translations_cache

        # Fallback to English if language not supported
        if lang not in SUPPORTED_LANGUAGES:
            lang = "en"

        if lang not in _translations_cache:
            locale_file = LOCALES_DIR / f"{lang}.json"
            with open(locale_file, "r", encoding="utf-8") as f:
                _translations_cache[lang] = json.load(f)

        translations = _translations_cache.get(lang, {}).get(email_type, {})

        # Replace {{placeholders}} in each string
        result = {}
        for key, value in translations.items():
            if isinstance(value, str):
                for var_name, var_value in variables.items():
                    value = value.replace(f"{{{{{var_name}}}}}", str(var_value))
            result[key] = value

        return result

    @staticmethod
    def _score_tier(score: int) -> str:
        if score >= 80:
            return "score_message_high"
        if score >= 60:
            return "score_message_mid"
        return "score_message_low"

    async def send_checkin_confirmation_email(
        self,
        to_email: str,
        client_name: Optional[str],
        form_title: str,
        score: int,
        language: str = "en",
    ) -> dict:
        """
        Send the client a confirmation that their check-in was received.

        Args:
            to_email: Recipient email address
            client_name: Client's display name (optional)
            form_title: Title of the submitted form
            score: Final score (0-100)
            language: Language code

        Returns:
            dict with success status and message
        """
        name = client_name or "there"
        portal_url = f"{self._app_url}/client-portal"

        t = self._get_translations(
            language,
            "checkin_confirmation",
            {"name": name, "formTitle": form_title, "score": score},
        )
        score_message = t.get(self._score_tier(score), "")

        html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; background-color: #f5f5f5; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333333;">
    <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #f5f5f5;">
        <tr>
            <td align="center" style="padding: 20px 0;">
                <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; max-width: 600px;">
                    <!-- Header -->
                    <tr>
                        <td align="center" bgcolor="#0d9488" style="background-color: #0d9488; padding: 40px 20px;">
                            <h1 style="margin: 0; font-size: 28px; color: #ffffff; font-weight: 600;">{t.get("header", "Check-in received")}</h1>
                        </td>
                    </tr>
                    <!-- Content -->
                    <tr>
                        <td style="padding: 40px 30px;">
                            <p style="margin: 0 0 16px 0; font-size: 16px; color: #333333;">{t.get("greeting", f"Hi {name},")}</p>
                            <p style="margin: 0 0 24px 0; font-size: 16px; color: #333333;">{t.get("body", f"Thank you for completing your {form_title} check-in.")}</p>
                            <p style="margin: 0 0 8px 0; font-size: 36px; color: #059669; text-align: center; font-weight: 700;">{score}%</p>
                            <p style="margin: 0 0 24px 0; font-size: 16px; color: #333333;">{score_message}</p>

                            <!-- Button -->
                            <table role="presentation" cellpadding="0" cellspacing="0" style="margin: 24px auto;">
                                <tr>
                                    <td align="center" bgcolor="#0d9488" style="background-color: #0d9488; border-radius: 8px;">
                                        <a href="{portal_url}" target="_blank" style="display: inline-block; padding: 14px 28px; font-size: 16px; font-weight: 600; color: #ffffff; text-decoration: none;">{t.get("button", "View your progress")}</a>
                                    </td>
                                </tr>
                            </table>
                        </td>
                    </tr>
                    <!-- Footer -->
                    <tr>
                        <td style="padding: 20px 30px; border-top: 1px solid #eeeeee;">
                            <p style="margin: 0; font-size: 14px; color: #666666; text-align: center;">{t.get("sign_off", "Best regards,")}<br>{self._team_name}</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""

        text_content = f"""
{t.get("header", "Check-in received")}

{t.get("greeting", f"Hi {name},")}

{t.get("body", f"Thank you for completing your {form_title} check-in.")}

{t.get("score_label", "Score")}: {score}%

{score_message}

{portal_url}

{t.get("sign_off", "Best regards,")}
{self._team_name}
"""

        subject = t.get("subject", f"Thank You - Your Check-in Has Been Received: {form_title}")
        return await self._send(to_email, subject, html_content, text_content)

    async def _send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """
        Send email via configured provider.

        Args:
            to: Recipient email
            subject: Email subject
            html: HTML content
            text: Plain text content

        Returns:
            dict with success status and details
        """
        if self._mode == "console":
            return self._send_console(to, subject, html, text)
        elif self._mode == "smtp":
            return await self._send_smtp(to, subject, html, text)
        elif self._mode == "resend":
            return await self._send_resend(to, subject, html, text)
        else:
            logger.error(f"Unknown email mode: {self._mode}")
            return {"success": False, "error": f"Unknown email mode: {self._mode}"}

    def _send_console(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Log email to console (development mode)."""
        logger.info("=" * 60)
        logger.info("EMAIL (console mode)")
        logger.info(f"To: {to}")
        logger.info(f"Subject: {subject}")
        logger.info("-" * 60)
        logger.info(text)
        logger.info("=" * 60)

        return {
            "success": True,
            "mode": "console",
            "message": "Email logged to console",
        }

    async def _send_smtp(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Send email via SMTP."""
        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = f"{self._from_name} <{self._from_email}>"
            message["To"] = to

            message.attach(MIMEText(text, "plain"))
            message.attach(MIMEText(html, "html"))

            # SSL on 465, STARTTLS otherwise
            use_tls = self._smtp_port == 465

            await aiosmtplib.send(
                message,
                hostname=self._smtp_host,
                port=self._smtp_port,
                username=self._smtp_user,
                password=self._smtp_password,
                use_tls=use_tls,
                start_tls=not use_tls,
                timeout=self._timeout,
            )

            logger.info(f"Email sent via SMTP to {to}")
            return {
                "success": True,
                "mode": "smtp",
                "message": "Email sent via SMTP",
            }

        except Exception as e:
            logger.error(f"Failed to send email via SMTP: {e}")
            return {
                "success": False,
                "error": str(e),
            }

    async def _send_resend(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict:
        """Send email via Resend API."""
        if not self._resend_api_key:
            return {"success": False, "error": "Resend API key not configured"}

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            try:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self._resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": f"{self._from_name} <{self._from_email}>",
                        "to": [to],
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                )

                if response.status_code == 200:
                    data = response.json()
                    return {
                        "success": True,
                        "mode": "resend",
                        "messageId": data.get("id"),
                    }
                else:
                    error_data = response.json()
                    error_msg = error_data.get("message", "Unknown error")
                    logger.error(f"Resend API error: {error_msg}")
                    return {
                        "success": False,
                        "error": error_msg,
                    }

            except Exception as e:
                logger.error(f"Failed to send email via Resend: {e}")
                return {
                    "success": False,
                    "error": str(e),
                }
