"""
Reconciliation Service for pallet tracking.

Compares the departure counts locked at seal time with the quantities
counted on arrival and classifies every difference by severity.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone

from ..conf import TrackingConfig, get_tracking_config
from ..exceptions import (
    InvalidStateException, ReasonRequiredException, ReferenceNotFoundException,
    ValidationException
)
from ..models import (
    AuditAction, AuditLog, Comparison, ComparisonSeverity, Pallet, PalletStatus,
    Receipt, Sku
)
from .lookups import get_or_not_found

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrivalCount:
    sku_id: Any
    quantity: int


def classify_delta(delta: int, config: TrackingConfig) -> str:
    """Map an absolute difference to OK, ALERT or CRITICAL."""
    if delta >= config.delta_critical:
        return ComparisonSeverity.CRITICAL
    if delta >= config.delta_alert:
        return ComparisonSeverity.ALERT
    return ComparisonSeverity.OK


class ReconciliationService:
    """Service class for origin/destination reconciliation."""

    RECONCILABLE_STATUSES = (PalletStatus.SEALED, PalletStatus.IN_TRANSIT, PalletStatus.RECEIVED)

    def __init__(self, config: Optional[TrackingConfig] = None):
        self.config = config or get_tracking_config()

    def compare_origin_destination(self, pallet_id, arrival_counts: Iterable, actor_id) -> List[Comparison]:
        """
        Reconcile a pallet's departure items against arrival counts.

        Every departure SKU is compared with its arrival count (0 when not
        counted); SKUs only found on arrival are compared with a departure
        of 0. All lines of one call share a run_id.

        Args:
            pallet_id: Pallet id
            arrival_counts: ArrivalCount instances or {'sku_id', 'quantity'} dicts
            actor_id: User submitting the counts

        Returns:
            Created Comparison instances

        Raises:
            InvalidStateException: If the pallet has not been sealed or is finalized
            ValidationException: If counts are malformed or the pallet has no items
            ReferenceNotFoundException: If a counted SKU does not exist
        """
        counts = self._normalize_counts(arrival_counts)

        with transaction.atomic():
            pallet = get_or_not_found(Pallet.objects.select_for_update(), pallet_id, 'Pallet')
            if pallet.status not in self.RECONCILABLE_STATUSES:
                raise InvalidStateException(
                    f"Pallet {pallet.id} cannot be reconciled in status {pallet.status}",
                    {"pallet_id": str(pallet.id), "current_status": pallet.status}
                )

            items = list(pallet.items.select_related('sku').order_by('sku__code'))
            if not items:
                raise ValidationException(
                    "No departure items found for pallet", {"pallet_id": str(pallet.id)}
                )

            departure_sku_ids = {str(item.sku_id) for item in items}
            extra_sku_ids = [sku_id for sku_id in counts if sku_id not in departure_sku_ids]
            extra_skus = list(Sku.objects.filter(pk__in=extra_sku_ids).order_by('code'))
            if len(extra_skus) != len(extra_sku_ids):
                found = {str(sku.id) for sku in extra_skus}
                missing = sorted(set(extra_sku_ids) - found)
                raise ReferenceNotFoundException('SKU', missing[0])

            receipt = Receipt.objects.filter(pallet=pallet).first()
            run_id = uuid.uuid4()
            comparisons = []

            for item in items:
                comparisons.append(self._create_comparison(
                    pallet, receipt, run_id, item.sku, item.departure_quantity,
                    counts.get(str(item.sku_id), 0), actor_id
                ))

            for sku in extra_skus:
                comparisons.append(self._create_comparison(
                    pallet, receipt, run_id, sku, 0, counts[str(sku.id)], actor_id
                ))

            alert_count = sum(1 for c in comparisons if c.severity == ComparisonSeverity.ALERT)
            critical_count = sum(1 for c in comparisons if c.severity == ComparisonSeverity.CRITICAL)

            AuditLog.log_change(pallet, AuditAction.COMPARISON_CREATED, actor_id, {
                'run_id': str(run_id),
                'comparison_count': len(comparisons),
                'alert_count': alert_count,
                'critical_count': critical_count,
            })

        logger.info(
            f"Pallet {pallet.id} reconciled: {len(comparisons)} lines, "
            f"{alert_count} alert, {critical_count} critical"
        )
        return comparisons

    def annotate_comparison(self, comparison_id, actor_id, reason: Optional[str] = None,
                            evidence: Optional[Sequence[str]] = None) -> Comparison:
        """
        Attach a reason and evidence to a comparison.

        Raises:
            ReasonRequiredException: If the comparison is flagged and no reason is given
            InvalidStateException: If the pallet is already finalized
        """
        reason = (reason or "").strip()

        with transaction.atomic():
            comparison = get_or_not_found(
                Comparison.objects.select_for_update().select_related('pallet'),
                comparison_id, 'Comparison'
            )

            if comparison.pallet.status == PalletStatus.FINALIZED:
                raise InvalidStateException(
                    "Comparisons of a finalized pallet cannot be annotated",
                    {"comparison_id": str(comparison.id), "pallet_id": str(comparison.pallet_id)}
                )

            if comparison.is_flagged and not reason:
                raise ReasonRequiredException(details={
                    "comparison_id": str(comparison.id),
                    "severity": comparison.severity,
                })

            comparison.reason = reason
            if evidence is not None:
                comparison.evidence = [ref for ref in evidence if ref]
            comparison.annotated_by = str(actor_id)
            comparison.annotated_at = timezone.now()
            comparison.save(update_fields=['reason', 'evidence', 'annotated_by', 'annotated_at'])

            AuditLog.log_change(comparison, AuditAction.COMPARISON_ANNOTATED, actor_id, {
                'pallet_id': str(comparison.pallet_id),
                'severity': comparison.severity,
                'evidence_count': len(comparison.evidence),
            })

        logger.info(f"Comparison {comparison.id} annotated by {actor_id}")
        return comparison

    def get_comparison_stats(self) -> Dict[str, Any]:
        """Totals by severity, average delta and flagged lines still lacking a reason."""
        flagged = ~Q(severity=ComparisonSeverity.OK)
        stats = Comparison.objects.aggregate(
            total=Count('id'),
            ok=Count('id', filter=Q(severity=ComparisonSeverity.OK)),
            alert=Count('id', filter=Q(severity=ComparisonSeverity.ALERT)),
            critical=Count('id', filter=Q(severity=ComparisonSeverity.CRITICAL)),
            unresolved=Count('id', filter=flagged & Q(reason='')),
            average_delta=Avg('delta'),
        )
        stats['average_delta'] = round(stats['average_delta'] or 0, 2)
        return stats

    def _create_comparison(self, pallet, receipt, run_id, sku, departure: int, arrival: int,
                           actor_id) -> Comparison:
        delta = abs(departure - arrival)
        return Comparison.objects.create(
            pallet=pallet,
            receipt=receipt,
            run_id=run_id,
            sku=sku,
            departure_quantity=departure,
            arrival_quantity=arrival,
            delta=delta,
            severity=classify_delta(delta, self.config),
            created_by=str(actor_id),
        )

    @staticmethod
    def _normalize_counts(arrival_counts: Iterable) -> Dict[str, int]:
        counts = {}
        for entry in arrival_counts or []:
            if isinstance(entry, dict):
                sku_id, quantity = entry.get('sku_id'), entry.get('quantity')
            else:
                sku_id, quantity = entry.sku_id, entry.quantity

            try:
                key = str(uuid.UUID(str(sku_id)))
            except ValueError:
                raise ValidationException("Invalid SKU id in arrival counts", {"sku_id": str(sku_id)})

            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
                raise ValidationException(
                    "Arrival quantities must be non-negative integers",
                    {"sku_id": key, "quantity": quantity}
                )
            if key in counts:
                raise ValidationException("SKU counted more than once", {"sku_id": key})
            counts[key] = quantity
        return counts
