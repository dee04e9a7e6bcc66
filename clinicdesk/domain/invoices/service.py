"""Invoice service - billing patients for visits"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models_invoice import (
    INVOICE_CANCELLED,
    INVOICE_PAID,
    INVOICE_UNPAID,
    Invoice,
    InvoiceItem,
)
from ...shared.timeutils import utcnow
from ..appointments.repository import AppointmentRepository
from ..catalog.repository import CatalogRepository
from ..patients.repository import PatientRepository
from .repository import InvoiceRepository
from .schemas import InvoiceCreate

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 5


def format_invoice_number(clinic_id: str, seq: int) -> str:
    return f"INV-{clinic_id[:4].upper()}-{seq:06d}"


def calculate_totals(items: list[dict], discount: float = 0, tax: float = 0) -> tuple[float, float]:
    """Returns (subtotal, total); the total never goes below zero"""
    subtotal = round(sum(item["quantity"] * item["unit_price"] for item in items), 2)
    total = round(max(0.0, subtotal - (discount or 0) + (tax or 0)), 2)
    return subtotal, total


class InvoiceService:
    """Service layer for invoice business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()

    def get_invoices(self, clinic_id: str, status: Optional[str] = None) -> list[Invoice]:
        return self.repo.get_invoices(self.db, clinic_id, status)

    def get_invoice(self, clinic_id: str, invoice_id: int) -> Invoice:
        invoice = self.repo.get_invoice(self.db, clinic_id, invoice_id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def _resolve_items(self, clinic_id: str, data: InvoiceCreate, appointment) -> list[dict]:
        items = []
        for item in data.items:
            if item.serviceId is not None:
                svc = CatalogRepository.get_service(self.db, clinic_id, item.serviceId)
                if not svc:
                    raise HTTPException(status_code=404, detail="Service not found")
                items.append(
                    {
                        "service_id": svc.id,
                        "description": item.description or svc.name,
                        "quantity": item.quantity,
                        "unit_price": item.unitPrice if item.unitPrice is not None else svc.price,
                    }
                )
            else:
                items.append(
                    {
                        "service_id": None,
                        "description": item.description,
                        "quantity": item.quantity,
                        "unit_price": item.unitPrice,
                    }
                )

        # Bill the booked service when nothing else was itemised
        if not items and appointment is not None and appointment.primary_service is not None:
            svc = appointment.primary_service
            items.append(
                {
                    "service_id": svc.id,
                    "description": svc.name,
                    "quantity": 1,
                    "unit_price": svc.price,
                }
            )
        return items

    def create_invoice(self, clinic_id: str, data: InvoiceCreate, created_by_id: int) -> Invoice:
        patient = PatientRepository.get_patient(self.db, clinic_id, data.patientId)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")

        appointment = None
        if data.appointmentId is not None:
            appointment = AppointmentRepository.get_appointment(
                self.db, clinic_id, data.appointmentId
            )
            if not appointment:
                raise HTTPException(status_code=404, detail="Appointment not found")
            if appointment.patient_id != patient.id:
                raise HTTPException(
                    status_code=400, detail="Appointment belongs to a different patient"
                )

        items = self._resolve_items(clinic_id, data, appointment)
        subtotal, total = calculate_totals(items, data.discountAmount, data.taxAmount)

        for attempt in range(MAX_NUMBER_ATTEMPTS):
            seq = self.repo.count_invoices(self.db, clinic_id) + 1 + attempt
            number = format_invoice_number(clinic_id, seq)
            invoice = Invoice(
                clinic_id=clinic_id,
                patient_id=patient.id,
                appointment_id=appointment.id if appointment else None,
                created_by_id=created_by_id,
                invoice_number=number,
                subtotal=subtotal,
                discount_amount=data.discountAmount,
                tax_amount=data.taxAmount,
                total_amount=total,
                status=INVOICE_UNPAID,
                notes=data.notes,
                items=[
                    InvoiceItem(amount=round(i["quantity"] * i["unit_price"], 2), **i)
                    for i in items
                ],
            )
            try:
                invoice = self.repo.insert_invoice(self.db, invoice)
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    f"⚠️ Invoice number {number} taken (attempt {attempt + 1})"
                )
                continue

            logger.info(f"🧾 Invoice {invoice.invoice_number} created for patient {patient.id}")
            return self.get_invoice(clinic_id, invoice.id)

        raise HTTPException(status_code=409, detail="Could not allocate an invoice number, please retry")

    def mark_paid(self, clinic_id: str, invoice_id: int, payment_method: str) -> Invoice:
        invoice = self.get_invoice(clinic_id, invoice_id)
        if invoice.status == INVOICE_CANCELLED:
            raise HTTPException(status_code=400, detail="Invoice is cancelled")
        if invoice.status == INVOICE_PAID:
            raise HTTPException(status_code=400, detail="Invoice already paid")

        invoice.status = INVOICE_PAID
        invoice.payment_method = payment_method
        invoice.paid_at = utcnow()
        invoice = self.repo.save(self.db, invoice)
        logger.info(f"💰 Invoice {invoice.invoice_number} paid by {payment_method}")
        return invoice

    def cancel_invoice(self, clinic_id: str, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(clinic_id, invoice_id)
        if invoice.status == INVOICE_PAID:
            raise HTTPException(status_code=400, detail="Paid invoices cannot be cancelled")

        invoice.status = INVOICE_CANCELLED
        invoice = self.repo.save(self.db, invoice)
        logger.info(f"🚫 Invoice {invoice.invoice_number} cancelled")
        return invoice
