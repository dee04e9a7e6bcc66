"""Report service - appointment reminders and daily clinic summaries"""

import logging
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...email_service import (
    send_appointment_reminder_email,
    send_best_effort,
    send_daily_summary_email,
)
from ...plan_limits import subscription_has_access
from ...shared.timeutils import utcnow
from ..clinics.repository import ClinicRepository
from .repository import ReportRepository

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ReportRepository()

    async def send_reminders(self, now: Optional[datetime] = None) -> dict:
        """Remind patients booked for tomorrow (UTC) at clinics that still have access"""
        now = now or utcnow()
        tomorrow = now.date() + timedelta(days=1)
        appointments = self.repo.get_scheduled_appointments_on(self.db, tomorrow)

        reminders = []
        access: dict[str, bool] = {}
        for appt in appointments:
            if appt.clinic_id not in access:
                access[appt.clinic_id] = subscription_has_access(appt.clinic.subscription, now)
            if not access[appt.clinic_id]:
                continue

            emailed = False
            if appt.patient.email:
                emailed = await send_best_effort(
                    send_appointment_reminder_email(
                        to=appt.patient.email,
                        patient_name=appt.patient.name,
                        clinic_name=appt.clinic.name,
                        doctor_name=appt.doctor.name,
                        date_label=appt.appointment_date.strftime("%d %b %Y"),
                        time_label=appt.start_time.strftime("%H:%M"),
                        token_number=appt.token_number,
                    ),
                    f"reminder for appointment {appt.id}",
                )

            reminders.append(
                {
                    "appointmentId": appt.id,
                    "clinicName": appt.clinic.name,
                    "doctorName": appt.doctor.name,
                    "patientName": appt.patient.name,
                    "patientPhone": appt.patient.phone,
                    "patientEmail": appt.patient.email,
                    "date": appt.appointment_date.isoformat(),
                    "startTime": appt.start_time.strftime("%H:%M"),
                    "emailed": emailed,
                }
            )

        logger.info(f"⏰ {len(reminders)} reminders for {tomorrow}")
        return {"success": True, "remindersSent": len(reminders), "reminders": reminders}

    async def send_daily_summaries(self, now: Optional[datetime] = None) -> dict:
        """Yesterday's (UTC) appointments and collected revenue, mailed to each owner"""
        now = now or utcnow()
        yesterday = now.date() - timedelta(days=1)
        start = datetime.combine(yesterday, time.min)
        end = start + timedelta(days=1)

        summaries = []
        for clinic in self.repo.get_clinics(self.db):
            if not subscription_has_access(clinic.subscription, now):
                continue

            appointment_count = self.repo.count_appointments_on(self.db, clinic.id, yesterday)
            revenue = ClinicRepository.get_revenue_between(self.db, clinic.id, start, end)

            emailed = False
            if clinic.owner and clinic.owner.email:
                emailed = await send_best_effort(
                    send_daily_summary_email(
                        to=clinic.owner.email,
                        clinic_id=clinic.id,
                        clinic_name=clinic.name,
                        date_label=yesterday.strftime("%d %b %Y"),
                        appointment_count=appointment_count,
                        revenue=revenue,
                    ),
                    f"daily summary for clinic {clinic.id}",
                )

            summaries.append(
                {
                    "clinicId": clinic.id,
                    "clinicName": clinic.name,
                    "date": yesterday.isoformat(),
                    "appointments": appointment_count,
                    "revenue": revenue,
                    "emailed": emailed,
                }
            )

        logger.info(f"📊 Daily summaries built for {len(summaries)} clinics ({yesterday})")
        return {"success": True, "date": yesterday.isoformat(), "summaries": summaries}
