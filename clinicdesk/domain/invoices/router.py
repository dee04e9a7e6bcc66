"""Invoice router - FastAPI endpoints for patient invoices"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_clinic_membership, require_active_subscription
from ...database import get_db
from ...models import ClinicMembership
from ...models_invoice import Invoice
from .schemas import InvoiceCreate, InvoicePay, InvoiceResponse, InvoiceStatus
from .service import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clinics/{clinic_id}/invoices", tags=["Invoices"])


def get_invoice_service(db: Session = Depends(get_db)) -> InvoiceService:
    """Dependency injection for InvoiceService"""
    return InvoiceService(db)


def to_invoice_response(inv: Invoice, with_items: bool = True) -> InvoiceResponse:
    return InvoiceResponse(
        id=inv.id,
        invoiceNumber=inv.invoice_number,
        status=inv.status,
        patientId=inv.patient_id,
        patientName=inv.patient.name if inv.patient else None,
        appointmentId=inv.appointment_id,
        subtotal=inv.subtotal,
        discountAmount=inv.discount_amount or 0,
        taxAmount=inv.tax_amount or 0,
        totalAmount=inv.total_amount,
        paymentMethod=inv.payment_method,
        paidAt=inv.paid_at,
        notes=inv.notes,
        createdAt=inv.created_at,
        items=(
            [
                {
                    "id": i.id,
                    "serviceId": i.service_id,
                    "description": i.description,
                    "quantity": i.quantity,
                    "unitPrice": i.unit_price,
                    "amount": i.amount,
                }
                for i in inv.items
            ]
            if with_items
            else []
        ),
    )


@router.get("", response_model=list[InvoiceResponse])
async def get_invoices(
    clinic_id: str,
    status: Optional[InvoiceStatus] = Query(None),
    _: ClinicMembership = Depends(get_clinic_membership),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Latest 50 invoices, newest first"""
    return [to_invoice_response(i, with_items=False) for i in service.get_invoices(clinic_id, status)]


@router.post("", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    clinic_id: str,
    data: InvoiceCreate,
    membership: ClinicMembership = Depends(require_active_subscription),
    service: InvoiceService = Depends(get_invoice_service),
):
    return to_invoice_response(service.create_invoice(clinic_id, data, membership.user_id))


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    clinic_id: str,
    invoice_id: int,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: InvoiceService = Depends(get_invoice_service),
):
    return to_invoice_response(service.get_invoice(clinic_id, invoice_id))


@router.post("/{invoice_id}/pay", response_model=InvoiceResponse)
async def pay_invoice(
    clinic_id: str,
    invoice_id: int,
    data: InvoicePay,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Record payment taken at the front desk"""
    return to_invoice_response(service.mark_paid(clinic_id, invoice_id, data.paymentMethod))


@router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    clinic_id: str,
    invoice_id: int,
    _: ClinicMembership = Depends(get_clinic_membership),
    service: InvoiceService = Depends(get_invoice_service),
):
    return to_invoice_response(service.cancel_invoice(clinic_id, invoice_id))
