"""
Receiving Service for pallet tracking.

Records the arrival of an in-transit pallet. Reconciliation of counted
quantities is a separate call (see ReconciliationService).
"""

import logging
from typing import Dict, Optional, Sequence

from django.db import transaction
from django.utils import timezone

from ..exceptions import AlreadyReceivedException, InvalidStateException
from ..models import (
    AuditAction, AuditLog, ComparisonSeverity, Location, Pallet, PalletStatus, Receipt
)
from .lookups import get_or_not_found
from .workflow import transition_pallet

logger = logging.getLogger(__name__)


class ReceivingService:
    """Service class for receiving operations."""

    def receive_pallet(self, pallet_id, destination_location_id, actor_id,
                       photos: Optional[Sequence[str]] = None, notes: str = "") -> Receipt:
        """
        Create the receipt of an in-transit pallet and mark it received.

        Args:
            pallet_id: Pallet id
            destination_location_id: Location where the pallet arrived
            actor_id: Receiving user
            photos: Photo references taken on arrival
            notes: Free-text observations

        Returns:
            Created Receipt instance

        Raises:
            InvalidStateException: If the pallet is not in transit
            ReferenceNotFoundException: If the destination location is missing
            AlreadyReceivedException: If the pallet already has a receipt
        """
        with transaction.atomic():
            pallet = get_or_not_found(Pallet.objects.select_for_update(), pallet_id, 'Pallet')
            if pallet.status != PalletStatus.IN_TRANSIT:
                raise InvalidStateException(
                    f"Pallet {pallet.id} is not in transit (status {pallet.status})",
                    {"pallet_id": str(pallet.id), "current_status": pallet.status}
                )

            destination = get_or_not_found(
                Location.objects.all(), destination_location_id, 'Destination location'
            )

            if Receipt.objects.filter(pallet=pallet).exists():
                raise AlreadyReceivedException(pallet.id)

            receipt = Receipt.objects.create(
                pallet=pallet,
                destination_location=destination,
                received_by=str(actor_id),
                received_at=timezone.now(),
                photos=[url for url in (photos or []) if url],
                notes=notes or "",
            )

            old_status = pallet.status
            transition_pallet(pallet, PalletStatus.RECEIVED, destination_location=destination)

            AuditLog.log_status_change(
                pallet, AuditAction.PALLET_RECEIVED, old_status, pallet.status, actor_id,
                {
                    'receipt_id': str(receipt.id),
                    'destination_location_id': str(destination.id),
                    'photo_count': len(receipt.photos),
                    'notes': receipt.notes,
                }
            )

        logger.info(f"Pallet {pallet.id} received at {destination.code} by {actor_id}")
        return receipt

    def get_receipt_stats(self) -> Dict[str, int]:
        """Receipt totals: all time, received today and pallets with a critical discrepancy."""
        start_of_day = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
        receipts = Receipt.objects.all()
        return {
            'total': receipts.count(),
            'today': receipts.filter(received_at__gte=start_of_day).count(),
            'critical': receipts.filter(
                pallet__comparisons__severity=ComparisonSeverity.CRITICAL
            ).distinct().count(),
        }
