"""
MJML Email Templates
"""

from html import escape
from typing import Optional

THEME = {
    "primary": "#0ea5e9",
    "primary_dark": "#0284c7",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="18px 40px" font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Sent by ClinicDesk on behalf of your clinic.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_rows(rows: list[tuple[str, str]]) -> str:
    cells = "".join(
        f"""
        <tr>
          <td style="padding: 6px 0; color: {THEME['text_muted']};">{escape(label)}</td>
          <td style="padding: 6px 0; text-align: right; font-weight: 600;">{escape(value)}</td>
        </tr>"""
        for label, value in rows
    )
    return f"""
    <mj-table padding="8px 0" border="none">
      {cells}
    </mj-table>
    """


def appointment_reminder_template(
    patient_name: str,
    clinic_name: str,
    doctor_name: str,
    date_label: str,
    time_label: str,
    token_number: int,
) -> str:
    content = f"""
    <mj-text padding="0 0 16px 0">
      Hi {escape(patient_name)}, this is a reminder of your appointment tomorrow at
      <strong>{escape(clinic_name)}</strong>.
    </mj-text>
    {_detail_rows([
        ("Doctor", doctor_name),
        ("Date", date_label),
        ("Time", time_label),
        ("Token", f"#{token_number}"),
    ])}
    <mj-text padding="16px 0 0 0" color="{THEME['text_muted']}" font-size="14px">
      Please arrive a few minutes early and check in at reception.
    </mj-text>
    """
    return get_base_template(
        title="Appointment reminder",
        preview_text=f"Your appointment with {doctor_name} is tomorrow at {time_label}",
        content_sections=content,
    )


def daily_summary_template(
    clinic_name: str, date_label: str, appointment_count: int, revenue: float, dashboard_url: str
) -> str:
    content = f"""
    <mj-text padding="0 0 16px 0">
      Here is how <strong>{escape(clinic_name)}</strong> did on {escape(date_label)}.
    </mj-text>
    {_detail_rows([
        ("Appointments", str(appointment_count)),
        ("Revenue collected", f"{revenue:,.2f}"),
    ])}
    """
    return get_base_template(
        title="Daily summary",
        preview_text=f"{appointment_count} appointments on {date_label}",
        content_sections=content,
        cta_url=dashboard_url,
        cta_label="Open dashboard",
    )


def member_invitation_template(
    member_name: str, clinic_name: str, role: str, sign_in_url: str
) -> str:
    content = f"""
    <mj-text padding="0 0 16px 0">
      Hi {escape(member_name or 'there')}, you have been added to
      <strong>{escape(clinic_name)}</strong> as <strong>{escape(role.title())}</strong>.
    </mj-text>
    <mj-text padding="0" color="{THEME['text_muted']}" font-size="14px">
      Sign in with this email address to get started.
    </mj-text>
    """
    return get_base_template(
        title=f"You've joined {escape(clinic_name)}",
        preview_text=f"You now have access to {clinic_name} on ClinicDesk",
        content_sections=content,
        cta_url=sign_in_url,
        cta_label="Sign in",
    )
