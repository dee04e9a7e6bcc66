"""Invoice repository - Database operations for invoices"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models_invoice import Invoice

INVOICE_LIST_LIMIT = 50


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def get_invoices(db: Session, clinic_id: str, status: Optional[str] = None) -> list[Invoice]:
        query = (
            db.query(Invoice)
            .options(joinedload(Invoice.patient))
            .filter(Invoice.clinic_id == clinic_id)
        )
        if status:
            query = query.filter(Invoice.status == status)
        return (
            query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .limit(INVOICE_LIST_LIMIT)
            .all()
        )

    @staticmethod
    def get_invoice(db: Session, clinic_id: str, invoice_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .options(joinedload(Invoice.patient), joinedload(Invoice.items))
            .filter(Invoice.id == invoice_id, Invoice.clinic_id == clinic_id)
            .first()
        )

    @staticmethod
    def count_invoices(db: Session, clinic_id: str) -> int:
        return db.query(Invoice).filter(Invoice.clinic_id == clinic_id).count()

    @staticmethod
    def insert_invoice(db: Session, invoice: Invoice) -> Invoice:
        """Commit invoice and items; IntegrityError propagates on a number collision"""
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def save(db: Session, invoice: Invoice) -> Invoice:
        db.commit()
        db.refresh(invoice)
        return invoice
