import time
from uuid import uuid4
from typing import Dict, List, Optional

from storefront.config import settings


class MockPaymentAdapter:
    """
    Stand-in for a hosted payment page provider.

    create_session() returns the payload a real gateway would hand back for a
    checkout session. Confirmation arrives later as an admin/gateway call to
    mark the order paid; there is no webhook handling here.
    """

    def __init__(self, delay_ms: int = 0):
        # Convert delay from milliseconds to seconds for time.sleep
        self.delay_seconds = delay_ms / 1000.0

    def create_session(
        self,
        amount_cents: int,
        client_reference_id: str,
        line_items: List[Dict],
        customer_email: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ) -> Dict:
        """
        Args:
            amount_cents: total to collect, discounts already applied.
            client_reference_id: our cart id, echoed back on confirmation.
            line_items: [{name, quantity, unit_amount}] for display.
            customer_email: prefilled on the payment page.
            metadata: free-form values echoed back (shipping address etc.).

        Returns:
            A dictionary describing the open session.
        """
        # Simulate network latency / gateway processing
        time.sleep(self.delay_seconds)
        session_id = f"cs_mock_{uuid4().hex}"
        return {
            "id": session_id,
            "object": "checkout.session",
            "url": f"https://payments.mock/pay/{session_id}",
            "mode": "payment",
            "status": "open",
            "payment_status": "unpaid",
            "amount_total": amount_cents,
            "currency": settings.CURRENCY,
            "client_reference_id": client_reference_id,
            "customer_email": customer_email,
            "line_items": line_items,
            "metadata": metadata or {},
            "success_url": settings.PAYMENT_SUCCESS_URL,
            "cancel_url": settings.PAYMENT_CANCEL_URL,
        }

    def health_check(self) -> bool:
        return True
