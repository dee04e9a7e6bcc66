"""
Invoice and Payment Models for patient billing and the clinic's own subscription
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

INVOICE_UNPAID = "UNPAID"
INVOICE_PAID = "PAID"
INVOICE_CANCELLED = "CANCELLED"


class Invoice(Base):
    """Invoice issued by a clinic to a patient"""

    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("clinic_id", "invoice_number", name="uq_invoice_number"),)

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    appointment_id = Column(
        Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True
    )
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # INV-{clinic prefix}-{sequence}, unique within a clinic
    invoice_number = Column(String(50), nullable=False, index=True)

    # Pricing
    subtotal = Column(Float, nullable=False, default=0)
    discount_amount = Column(Float, default=0)
    tax_amount = Column(Float, default=0)
    total_amount = Column(Float, nullable=False, default=0)

    # Status
    status = Column(String(20), nullable=False, default=INVOICE_UNPAID)  # UNPAID, PAID, CANCELLED
    payment_method = Column(String(20), nullable=True)  # CASH, CARD, BANK_TRANSFER, OTHER
    paid_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient")
    appointment = relationship("Appointment")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(
        Integer, ForeignKey("clinic_services.id", ondelete="SET NULL"), nullable=True
    )
    description = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False)
    amount = Column(Float, nullable=False)  # quantity * unit_price

    invoice = relationship("Invoice", back_populates="items")


class SubscriptionPayment(Base):
    """Track subscription payments charged to the clinic via Dodo"""

    __tablename__ = "subscription_payments"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(
        String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Dodo references
    dodo_payment_id = Column(String(255), unique=True, nullable=False, index=True)
    dodo_subscription_id = Column(String(255), nullable=True)
    dodo_customer_id = Column(String(255), nullable=True)

    # Amounts (store in major units for display; raw_lowest_unit stored for audit)
    amount = Column(Float, nullable=True)
    amount_lowest_unit = Column(Integer, nullable=True)  # Raw amount from Dodo (e.g., cents)
    currency = Column(String(10), default="USD")

    status = Column(String(50), default="paid")
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
