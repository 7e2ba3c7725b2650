"""Base payment verifier interface.

Verifiers only check a payment proof against the ledger they front.
Business logic should NOT live in adapters - the booking controller decides
what a verification result means for the booking.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class VerifierType(str, Enum):
    """Supported payment verifiers."""

    SIMULATED = "simulated"


@dataclass
class VerificationResult:
    """Result of a payment verification."""

    success: bool
    transaction_hash: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentVerifier(ABC):
    """Abstract base class for payment verifiers."""

    @property
    @abstractmethod
    def verifier_type(self) -> VerifierType:
        """Return the verifier type."""
        pass

    @abstractmethod
    async def verify_payment(
        self,
        transaction_hash: str,
        amount: Decimal,
        recipient_wallet: str | None,
    ) -> VerificationResult:
        """Verify that a transaction paid a booking.

        A ledger-backed implementation confirms the transaction exists, its
        recipient matches the developer's wallet, the amount matches the
        booking amount and it has enough confirmations.

        Args:
            transaction_hash: Customer-supplied transaction reference
            amount: Booking amount expected on the transaction
            recipient_wallet: Developer wallet address expected as recipient

        Returns:
            VerificationResult with the outcome
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None
