"""Simulated payment verifier used until a ledger verifier is configured."""

import asyncio
import logging
from decimal import Decimal

from app.gateways.base import PaymentVerifier, VerificationResult, VerifierType

logger = logging.getLogger(__name__)


class SimulatedVerifier(PaymentVerifier):
    """Waits a fixed delay and accepts every transaction.

    No ledger lookup is performed.
    """

    def __init__(self, delay_seconds: float = 2.0) -> None:
        self.delay_seconds = delay_seconds

    @property
    def verifier_type(self) -> VerifierType:
        return VerifierType.SIMULATED

    async def verify_payment(
        self,
        transaction_hash: str,
        amount: Decimal,
        recipient_wallet: str | None,
    ) -> VerificationResult:
        """Simulate verification (always succeeds)."""
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        logger.info(f"Simulated verification accepted transaction for {amount}")
        return VerificationResult(
            success=True,
            transaction_hash=transaction_hash,
            raw_response={
                "type": "simulated",
                "amount": str(amount),
                "recipient": recipient_wallet,
            },
        )
