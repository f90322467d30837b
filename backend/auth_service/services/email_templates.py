"""
Email templates rendered with Jinja2.

WHAT: Renders the three transactional emails this service sends:
email verification, password reset and password changed.

WHY: Template-based emails provide:
- Consistent Dr3amToReal branding across email types
- Auto-escaping of user-supplied values (the display name) in HTML
- Separation of content from sending logic

HOW: A Jinja2 Environment over an in-module DictLoader. Every HTML body
extends "base.html"; plain-text bodies share a common footer.
"""

import logging
from typing import Any, Dict, Tuple

from jinja2 import DictLoader, Environment, TemplateNotFound, select_autoescape

from auth_service.core.auth import utcnow
from auth_service.core.config import Settings
from auth_service.core.exceptions import EmailServiceError


logger = logging.getLogger(__name__)

BRAND_NAME = "Dr3amToReal"

_TEMPLATES: Dict[str, str] = {
    "base.html": """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 0; background-color: #f5f5f5;">
    <div style="max-width: 600px; margin: 40px auto; background-color: #ffffff; border-radius: 8px; overflow: hidden;">
        <div style="background-color: #7c3aed; color: white; padding: 24px; text-align: center;">
            <h1 style="margin: 0; font-size: 24px; font-weight: 600;">{{ brand_name }}</h1>
        </div>
        <div style="padding: 32px;">
            {% block content %}{% endblock %}
        </div>
        <div style="background-color: #f9fafb; padding: 16px 32px; text-align: center; font-size: 14px; color: #6b7280;">
            <p>&copy; {{ year }} {{ brand_name }}. All rights reserved.</p>
            <p>If you didn't request this email, please ignore it.</p>
        </div>
    </div>
</body>
</html>
""",
    "verification.html": """{% extends "base.html" %}
{% block content %}
<h2>Welcome, {{ user_name }}!</h2>
<p>Thanks for signing up. Please confirm your email address to start
calculating your print costs.</p>
<p style="text-align: center;">
    <a href="{{ verification_url }}" style="display: inline-block; background-color: #7c3aed; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">Verify Email Address</a>
</p>
<p>This link will expire in {{ expires_in }}.</p>
<p>If you didn't create an account, you can safely ignore this email.</p>
{% endblock %}
""",
    "password_reset.html": """{% extends "base.html" %}
{% block content %}
<h2>Password Reset Request</h2>
<p>Hi {{ user_name }},</p>
<p>We received a request to reset your password. Click the button below
to choose a new one:</p>
<p style="text-align: center;">
    <a href="{{ reset_url }}" style="display: inline-block; background-color: #7c3aed; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">Reset Password</a>
</p>
<p><strong>This link will expire in {{ expires_in }}.</strong></p>
<p style="color: #dc2626;"><strong>Security Note:</strong> If you didn't
request this password reset, please ignore this email. Your password will
remain unchanged.</p>
{% endblock %}
""",
    "password_changed.html": """{% extends "base.html" %}
{% block content %}
<h2>Password Changed</h2>
<p>Hi {{ user_name }},</p>
<p>Your password was changed on {{ changed_at }} and you have been signed
out on every device.</p>
<p style="color: #dc2626;"><strong>Didn't change your password?</strong>
Your account may be compromised. Please reset your password immediately.</p>
<p style="text-align: center;">
    <a href="{{ forgot_password_url }}" style="display: inline-block; background-color: #7c3aed; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">Reset Password</a>
</p>
{% endblock %}
""",
}


def format_duration(minutes: int) -> str:
    """
    Human-readable duration for "this link will expire in ..." lines.

    Example:
        >>> format_duration(1440)
        '24 hours'
        >>> format_duration(60)
        '1 hour'
    """
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


class EmailTemplates:
    """
    Renders subject, HTML and plain-text bodies for each email type.

    Example:
        templates = EmailTemplates(settings)
        subject, html, text = templates.verification_email(
            user_name="Ana",
            verification_url="https://...",
        )
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._env = Environment(
            loader=DictLoader(_TEMPLATES),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def _get_base_context(self) -> Dict[str, Any]:
        return {
            "year": utcnow().year,
            "brand_name": BRAND_NAME,
            "frontend_url": self._settings.FRONTEND_URL,
        }

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render a template with given context.

        Args:
            template_name: Name of template (e.g., "verification.html")
            context: Template variables

        Returns:
            Rendered HTML string

        Raises:
            EmailServiceError: If template not found
        """
        try:
            template = self._env.get_template(template_name)
        except TemplateNotFound:
            logger.error(f"Email template not found: {template_name}")
            raise EmailServiceError(
                message=f"Email template not found: {template_name}",
                template=template_name,
            )

        return template.render(**{**self._get_base_context(), **context})

    @staticmethod
    def _text_version(content: str) -> str:
        footer = (
            "\n\n---\n"
            f"{BRAND_NAME}\n"
            "If you didn't expect this email, please ignore it."
        )
        return content.strip() + footer

    def verification_email(self, user_name: str, verification_url: str) -> Tuple[str, str, str]:
        """
        Render the email verification email.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        subject = "Verify your email address"
        expires_in = format_duration(self._settings.EMAIL_VERIFICATION_TTL_MINUTES)

        html = self.render_template(
            "verification.html",
            {
                "title": subject,
                "user_name": user_name,
                "verification_url": verification_url,
                "expires_in": expires_in,
            },
        )
        text = self._text_version(
            f"Welcome, {user_name}!\n\n"
            f"Please verify your email address by opening the link below:\n\n"
            f"{verification_url}\n\n"
            f"This link will expire in {expires_in}.\n\n"
            f"If you didn't create an account, please ignore this email."
        )

        return subject, html, text

    def password_reset_email(self, user_name: str, reset_url: str) -> Tuple[str, str, str]:
        """
        Render the password reset email.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        subject = "Reset your password"
        expires_in = format_duration(self._settings.PASSWORD_RESET_TTL_MINUTES)

        html = self.render_template(
            "password_reset.html",
            {
                "title": subject,
                "user_name": user_name,
                "reset_url": reset_url,
                "expires_in": expires_in,
            },
        )
        text = self._text_version(
            f"Hi {user_name},\n\n"
            f"We received a request to reset your password.\n\n"
            f"Open this link to choose a new one: {reset_url}\n\n"
            f"This link will expire in {expires_in}.\n\n"
            f"If you didn't request this, please ignore this email."
        )

        return subject, html, text

    def password_changed_email(self, user_name: str) -> Tuple[str, str, str]:
        """
        Render the password changed notification.

        WHY: Notifying users of password changes helps detect
        unauthorized account access.

        Returns:
            Tuple of (subject, html_content, text_content)
        """
        subject = "Your password has been changed"
        changed_at = utcnow().strftime("%Y-%m-%d %H:%M UTC")
        forgot_password_url = f"{self._settings.FRONTEND_URL}/forgot-password"

        html = self.render_template(
            "password_changed.html",
            {
                "title": subject,
                "user_name": user_name,
                "changed_at": changed_at,
                "forgot_password_url": forgot_password_url,
            },
        )
        text = self._text_version(
            f"Hi {user_name},\n\n"
            f"Your password was changed on {changed_at}.\n\n"
            f"If you made this change, no action is needed.\n\n"
            f"If you didn't change your password, please reset it immediately:\n"
            f"{forgot_password_url}"
        )

        return subject, html, text
