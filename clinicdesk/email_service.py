"""
Transactional email via Resend, rendered from MJML templates
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import (
    appointment_reminder_template,
    daily_summary_template,
    member_invitation_template,
)

logger = logging.getLogger(__name__)

if RESEND_API_KEY:
    resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    """Raised when no email provider key is set"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    errors = getattr(result, "errors", None) or (
        result.get("errors") if isinstance(result, dict) else None
    )
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    if isinstance(result, dict):
        return result.get("html", "")
    return getattr(result, "html", str(result))


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": compile_mjml_to_html(mjml_content),
    }

    try:
        response = resend.Emails.send(email_data)
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise
    logger.info(f"📧 Email sent via Resend to {recipients}")
    return response


async def send_appointment_reminder_email(
    to: str,
    patient_name: str,
    clinic_name: str,
    doctor_name: str,
    date_label: str,
    time_label: str,
    token_number: int,
) -> dict:
    mjml_content = appointment_reminder_template(
        patient_name, clinic_name, doctor_name, date_label, time_label, token_number
    )
    return await send_email(
        to=to,
        subject=f"Reminder: your appointment at {clinic_name} tomorrow",
        mjml_content=mjml_content,
    )


async def send_daily_summary_email(
    to: str, clinic_id: str, clinic_name: str, date_label: str, appointment_count: int, revenue: float
) -> dict:
    mjml_content = daily_summary_template(
        clinic_name,
        date_label,
        appointment_count,
        revenue,
        dashboard_url=f"{FRONTEND_URL}/app/clinic/{clinic_id}",
    )
    return await send_email(
        to=to,
        subject=f"{clinic_name} - summary for {date_label}",
        mjml_content=mjml_content,
    )


async def send_member_invitation_email(
    to: str, member_name: str, clinic_name: str, role: str
) -> dict:
    mjml_content = member_invitation_template(
        member_name, clinic_name, role, sign_in_url=f"{FRONTEND_URL}/login"
    )
    return await send_email(
        to=to,
        subject=f"You've been added to {clinic_name} on ClinicDesk",
        mjml_content=mjml_content,
    )


async def send_best_effort(coro, description: str) -> bool:
    """Await an email coroutine; failures are logged and reported as False"""
    try:
        await coro
        return True
    except EmailNotConfiguredError:
        logger.info(f"ℹ️ Skipping {description}: email not configured")
    except Exception as e:
        logger.warning(f"⚠️ Failed to send {description}: {e}")
    return False
