"""
MJML Email Templates
"""

import html
from typing import Optional

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#4f46e5",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}

APP_NAME = "SocialScribe"


def get_base_template(title: str, preview_text: str, content_sections: str, footer: Optional[str] = None) -> str:
    """Base MJML wrapper shared by every email"""
    footer = footer or f"You're receiving this because you have an account with {APP_NAME}."
    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['card_bg']}" padding="32px 20px 16px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" font-weight="700" color="{THEME['primary']}" padding="0">
              {APP_NAME}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 0 0" />
          </mj-column>
        </mj-section>
        {content_sections}
        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="0">
              {footer}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def email_verification_template(user_name: str, otp: str, expires_minutes: int = 5) -> str:
    """Email verification OTP MJML template"""
    content = f"""
        <mj-section background-color="{THEME['card_bg']}" padding="0 40px 20px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              Verify Your Email Address
            </mj-text>
            <mj-text>
              Hi {html.escape(user_name, quote=True)},
            </mj-text>
            <mj-text>
              Use the code below to verify your email address. It expires in {expires_minutes} minutes.
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="{THEME['primary_light']}" padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="14px" color="{THEME['text_muted']}" text-transform="uppercase" letter-spacing="1px" font-weight="600" padding="0 0 12px 0">
              Verification Code
            </mj-text>
            <mj-text align="center" font-size="36px" font-weight="700" color="{THEME['text_primary']}" letter-spacing="8px" font-family="'Courier New', monospace" padding="0">
              {otp}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="{THEME['card_bg']}" padding="20px 40px 32px 40px">
          <mj-column>
            <mj-text font-size="14px" color="{THEME['text_muted']}">
              If you didn't request this code, you can safely ignore this email.
            </mj-text>
          </mj-column>
        </mj-section>
    """
    return get_base_template(
        title="Verify Your Email Address",
        preview_text=f"Your verification code is {otp}",
        content_sections=content,
    )
