"""Invoice schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

InvoiceStatus = Literal["UNPAID", "PAID", "CANCELLED"]
PaymentMethod = Literal["CASH", "CARD", "BANK_TRANSFER", "OTHER"]


class InvoiceItemCreate(BaseModel):
    """A line item: a catalog service, or a free-text description with a price"""

    serviceId: Optional[int] = None
    description: Optional[str] = None
    unitPrice: Optional[float] = Field(None, ge=0)
    quantity: int = Field(1, ge=1)

    @model_validator(mode="after")
    def check_source(self):
        if self.serviceId is None and (not self.description or self.unitPrice is None):
            raise ValueError("Each item needs a serviceId or a description and unitPrice")
        return self


class InvoiceCreate(BaseModel):
    patientId: int
    appointmentId: Optional[int] = None
    items: list[InvoiceItemCreate] = []
    discountAmount: float = Field(0, ge=0)
    taxAmount: float = Field(0, ge=0)
    notes: Optional[str] = None


class InvoicePay(BaseModel):
    paymentMethod: PaymentMethod


class InvoiceItemResponse(BaseModel):
    id: int
    serviceId: Optional[int] = None
    description: str
    quantity: int
    unitPrice: float
    amount: float


class InvoiceResponse(BaseModel):
    id: int
    invoiceNumber: str
    status: str
    patientId: int
    patientName: Optional[str] = None
    appointmentId: Optional[int] = None
    subtotal: float
    discountAmount: float
    taxAmount: float
    totalAmount: float
    paymentMethod: Optional[str] = None
    paidAt: Optional[datetime] = None
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    items: list[InvoiceItemResponse] = []
