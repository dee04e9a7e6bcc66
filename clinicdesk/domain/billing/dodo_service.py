"""Dodo Payments service - Integration with Dodo Payments API"""

import logging
from typing import Optional

from dodopayments import AsyncDodoPayments  # type: ignore

from ...config import DODO_PAYMENTS_API_KEY, DODO_PAYMENTS_ENVIRONMENT

logger = logging.getLogger(__name__)


def normalize_dodo_environment(env: Optional[str]) -> str:
    """Normalize Dodo environment value to expected format"""
    value = (env or "test_mode").strip().lower()
    if value in {"live", "production", "prod"}:
        return "live_mode"
    if value in {"test", "sandbox", "staging", "dev", "development"}:
        return "test_mode"
    if value in {"test_mode", "live_mode"}:
        return value
    logger.warning(f"Unknown DODO environment '{env}', defaulting to test_mode")
    return "test_mode"


class DodoPaymentsService:
    """Thin async wrapper over the Dodo Payments SDK"""

    def __init__(self, api_key: Optional[str] = None, environment: Optional[str] = None):
        self.api_key = api_key if api_key is not None else DODO_PAYMENTS_API_KEY
        self.environment = normalize_dodo_environment(environment or DODO_PAYMENTS_ENVIRONMENT)
        self.client = None

        if not self.api_key:
            logger.warning(
                "DODO_PAYMENTS_API_KEY not set; billing endpoints will fail until configured"
            )
        else:
            try:
                self.client = AsyncDodoPayments(
                    bearer_token=self.api_key,
                    environment=self.environment,
                )
                logger.info(f"Dodo Payments client initialized (env={self.environment})")
            except Exception as e:
                logger.error(f"Failed to initialize Dodo client (env={self.environment}): {e}")
                self.client = None

    def is_available(self) -> bool:
        """Check if Dodo Payments client is available"""
        return self.client is not None

    async def create_checkout_session(
        self,
        product_id: str,
        customer_email: str,
        return_url: str,
        metadata: Optional[dict] = None,
        customer_name: Optional[str] = None,
    ):
        """Hosted checkout for a single subscription product"""
        if not self.client:
            raise RuntimeError("Dodo Payments client not initialized")

        customer = {"email": customer_email}
        if customer_name:
            customer["name"] = customer_name

        try:
            return await self.client.checkout_sessions.create(
                product_cart=[{"product_id": product_id, "quantity": 1}],
                customer=customer,
                return_url=return_url,
                metadata=metadata or {},
            )
        except Exception as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise

    async def cancel_subscription(self, subscription_id: str, cancel_at_period_end: bool = True):
        """Cancel a subscription, by default once the paid period runs out"""
        if not self.client:
            raise RuntimeError("Dodo Payments client not initialized")

        try:
            return await self.client.subscriptions.update(
                subscription_id=subscription_id,
                cancel_at_next_billing_date=cancel_at_period_end,
                **({} if cancel_at_period_end else {"status": "cancelled"}),
            )
        except Exception as e:
            logger.error(f"Failed to cancel subscription {subscription_id}: {e}")
            raise


# Singleton instance
dodo_service = DodoPaymentsService()
