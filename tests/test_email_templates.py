import asyncio

from clinicdesk.email_service import compile_mjml_to_html, send_best_effort, send_member_invitation_email
from clinicdesk.email_templates import (
    appointment_reminder_template,
    daily_summary_template,
    member_invitation_template,
)


def test_reminder_template_escapes_names():
    mjml = appointment_reminder_template(
        "Ali <Khan>", "Shifa & Sons", "Dr. Ayesha", "06 Mar 2026", "09:30", 4
    )
    assert "<mjml>" in mjml
    assert "Ali &lt;Khan&gt;" in mjml
    assert "Shifa &amp; Sons" in mjml
    assert "#4" in mjml


def test_summary_template_formats_revenue():
    mjml = daily_summary_template("Shifa Clinic", "05 Mar 2026", 12, 45250.5, "https://app.test/c/1")
    assert "45,250.50" in mjml
    assert "https://app.test/c/1" in mjml


def test_invitation_template_titles_role():
    mjml = member_invitation_template("Hina", "Shifa Clinic", "RECEPTION", "https://app.test/login")
    assert "Reception" in mjml


def test_sending_without_provider_is_skipped():
    sent = asyncio.run(
        send_best_effort(
            send_member_invitation_email("hina@example.com", "Hina", "Shifa Clinic", "DOCTOR"),
            "invitation",
        )
    )
    assert sent is False


def test_reminder_compiles_to_html():
    html = compile_mjml_to_html(
        appointment_reminder_template("Ali Khan", "Shifa Clinic", "Dr. Ayesha", "06 Mar 2026", "09:30", 4)
    )
    assert "<html" in html.lower()
    assert "<mj-" not in html
    assert "Ali Khan" in html
