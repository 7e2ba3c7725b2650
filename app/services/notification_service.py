"""Booking notice delivery.

After a booking is created the developer is emailed through a hosted email
function. Delivery is best effort: a failure is logged and reported back as
a warning, and never undoes the booking.
"""

import logging

import httpx

from app.core.exceptions import NotificationDeliveryFailure
from app.schemas.booking import BookingDetail, BookingNotice

logger = logging.getLogger(__name__)


def build_booking_notice(detail: BookingDetail) -> BookingNotice:
    """Payload for the email function from a joined booking."""
    return BookingNotice(
        bookingId=detail.id,
        developerEmail=detail.developer_email or "",
        customerName=detail.customer_name,
        projectDetails=detail.project_details,
        bookingTime=detail.booking_time,
        duration=detail.duration,
        amount=detail.amount,
    )


class EmailNotifier:
    """Send booking notices to the developer."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        function_url: str | None = None,
        function_key: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.http_client = http_client
        self.function_url = function_url
        self.function_key = function_key
        self.timeout = timeout

    async def _deliver(self, notice: BookingNotice) -> None:
        headers = {"Content-Type": "application/json"}
        if self.function_key:
            headers["Authorization"] = f"Bearer {self.function_key}"
        try:
            response = await self.http_client.post(
                self.function_url,
                headers=headers,
                content=notice.model_dump_json(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise NotificationDeliveryFailure(f"Email function unreachable: {e}") from e
        if response.status_code >= 400:
            raise NotificationDeliveryFailure(
                f"Email function returned {response.status_code}"
            )

    async def send_booking_notice(self, detail: BookingDetail) -> str | None:
        """Notify the developer of a new booking.

        Args:
            detail: The created booking joined with both parties

        Returns:
            None on success, otherwise a warning message for the caller
        """
        if not self.function_url:
            logger.info(f"Email function not configured; skipping notice for booking {detail.id}")
            return None
        if not detail.developer_email:
            logger.warning(f"Booking {detail.id} has no developer email; notice not sent")
            return "Booking notification could not be delivered"

        try:
            await self._deliver(build_booking_notice(detail))
        except NotificationDeliveryFailure as e:
            logger.warning(f"Email notification failed, but booking {detail.id} was created: {e}")
            return str(NotificationDeliveryFailure())
        logger.info(f"Booking notice sent for {detail.id}")
        return None
