"""Billing repository - Database operations for subscriptions and their payments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Clinic, Subscription
from ...models_invoice import SubscriptionPayment


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_subscription(db: Session, clinic_id: str) -> Optional[Subscription]:
        return db.query(Subscription).filter(Subscription.clinic_id == clinic_id).first()

    @staticmethod
    def get_subscription_by_dodo_id(db: Session, dodo_subscription_id: str) -> Optional[Subscription]:
        return (
            db.query(Subscription)
            .filter(Subscription.dodo_subscription_id == dodo_subscription_id)
            .first()
        )

    @staticmethod
    def get_clinic(db: Session, clinic_id: str) -> Optional[Clinic]:
        return db.query(Clinic).filter(Clinic.id == clinic_id).first()

    @staticmethod
    def create_subscription(db: Session, clinic_id: str, **fields) -> Subscription:
        subscription = Subscription(clinic_id=clinic_id, **fields)
        db.add(subscription)
        db.flush()
        return subscription

    @staticmethod
    def update_subscription(db: Session, subscription: Subscription, **updates) -> Subscription:
        """Apply updates; None is a real value here (clears the field)"""
        for key, value in updates.items():
            setattr(subscription, key, value)
        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def payment_exists(db: Session, dodo_payment_id: str) -> bool:
        return (
            db.query(SubscriptionPayment.id)
            .filter(SubscriptionPayment.dodo_payment_id == dodo_payment_id)
            .first()
            is not None
        )

    @staticmethod
    def record_payment(db: Session, **payment_data) -> SubscriptionPayment:
        payment = SubscriptionPayment(**payment_data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment
