"""
Pallet Service for pallet tracking.

Owns the pallet lifecycle: creation with a pool tag, items and photos while
open, count suggestion with the confidence gate, sealing, deletion and
finalization. Sealing is the single point where the item cap and the manual
review of low-confidence counts are enforced.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from django.db import transaction
from django.utils import timezone

from ..adapters.count_estimator import CountEstimatorInterface, get_count_estimator
from ..conf import TrackingConfig, get_tracking_config
from ..exceptions import (
    DuplicateSkuException, InvalidStateException, ItemLimitExceededException,
    ReasonRequiredException, ReferenceNotFoundException, ReviewRequiredException,
    ValidationException
)
from ..models import (
    AuditAction, AuditLog, ComparisonSeverity, Contract, Location, Pallet,
    PalletItem, PalletStatus, QrTag, Sku
)
from .lookups import get_or_not_found
from .qr_tag_service import QrTagService
from .workflow import transition_pallet

logger = logging.getLogger(__name__)


@dataclass
class CountAdjustment:
    sku_id: Any
    adjusted_quantity: int


@dataclass
class CountReview:
    """Human review supplied when sealing."""

    items: List[CountAdjustment] = field(default_factory=list)
    confirmed: bool = False


class PalletService:
    """Service class for pallet lifecycle operations."""

    def __init__(self, config: Optional[TrackingConfig] = None,
                 estimator: Optional[CountEstimatorInterface] = None,
                 qr_tag_service: Optional[QrTagService] = None):
        self.config = config or get_tracking_config()
        self._estimator = estimator
        self.qr_tags = qr_tag_service or QrTagService()

    @property
    def estimator(self) -> CountEstimatorInterface:
        return self._estimator or get_count_estimator()

    def create_pallet(self, contract_id, location_id, actor_id, qr_code: Optional[str] = None) -> Pallet:
        """
        Create an open pallet and bind a tag to it.

        Args:
            contract_id: Origin contract id
            location_id: Origin location id
            actor_id: User creating the pallet
            qr_code: Tag to bind; the lowest free code is used when omitted

        Returns:
            Created Pallet instance

        Raises:
            ReferenceNotFoundException: If contract or location is missing
            NotFoundException / AlreadyBoundException: For an unusable qr_code
            PoolExhaustedException: If no free tag is left
        """
        with transaction.atomic():
            contract = get_or_not_found(Contract.objects.all(), contract_id, 'Contract')
            location = get_or_not_found(Location.objects.all(), location_id, 'Location')

            pallet = Pallet.objects.create(
                contract=contract,
                origin_location=location,
                status=PalletStatus.OPEN,
                confidence_score=None,
                requires_manual_review=False,
                photos=[],
                created_by=str(actor_id),
            )

            tag = self.qr_tags.allocate(pallet, qr_code)

            AuditLog.log_change(pallet, AuditAction.PALLET_CREATED, actor_id, {
                'contract_id': str(contract.id),
                'location_id': str(location.id),
                'qr_code': tag.code,
            })

        logger.info(f"Pallet {pallet.id} created with tag {tag.code} by {actor_id}")
        return pallet

    def add_item(self, pallet_id, sku_id, actor_id) -> PalletItem:
        """
        Add a SKU line to an open pallet.

        Raises:
            InvalidStateException: If the pallet is not open
            ReferenceNotFoundException: If pallet or SKU is missing
            DuplicateSkuException: If the SKU is already on the pallet
            ItemLimitExceededException: If the pallet already holds the maximum SKUs
        """
        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            self._ensure_open(pallet, "add items to")
            sku = get_or_not_found(Sku.objects.all(), sku_id, 'SKU')

            existing_sku_ids = set(pallet.items.values_list('sku_id', flat=True))
            if sku.id in existing_sku_ids:
                raise DuplicateSkuException(sku.code)

            if len(existing_sku_ids) >= self.config.max_skus_per_pallet:
                raise ItemLimitExceededException(self.config.max_skus_per_pallet)

            item = PalletItem.objects.create(pallet=pallet, sku=sku)

            AuditLog.log_change(pallet, AuditAction.ITEM_ADDED, actor_id, {
                'sku_id': str(sku.id),
                'sku_code': sku.code,
                'item_count': len(existing_sku_ids) + 1,
            })

        logger.info(f"SKU {sku.code} added to pallet {pallet.id}")
        return item

    def remove_item(self, pallet_id, sku_id, actor_id) -> None:
        """Remove a SKU line from an open pallet."""
        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            self._ensure_open(pallet, "remove items from")

            item = pallet.items.select_related('sku').filter(sku_id=sku_id).first()
            if item is None:
                raise ReferenceNotFoundException('PalletItem', sku_id)

            sku_code = item.sku.code
            item.delete()

            AuditLog.log_change(pallet, AuditAction.ITEM_REMOVED, actor_id, {
                'sku_id': str(sku_id),
                'sku_code': sku_code,
            })

        logger.info(f"SKU {sku_code} removed from pallet {pallet.id}")

    def attach_photos(self, pallet_id, photo_urls: Sequence[str], actor_id) -> Pallet:
        """
        Append photo references to an open pallet.

        Raises:
            InvalidStateException: If the pallet is not open
            ValidationException: If no photo is supplied
        """
        photo_urls = [url for url in photo_urls if url]
        if not photo_urls:
            raise ValidationException("At least one photo is required", {"photos": "empty"})

        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            self._ensure_open(pallet, "attach photos to")

            pallet.photos = list(pallet.photos) + photo_urls
            pallet.save(update_fields=['photos', 'updated_at'])

            AuditLog.log_change(pallet, AuditAction.PHOTOS_CAPTURED, actor_id, {
                'photo_count': len(photo_urls),
                'total_photos': len(pallet.photos),
            })

        logger.info(f"{len(photo_urls)} photos attached to pallet {pallet.id}")
        return pallet

    def suggest_count(self, pallet_id, actor_id) -> Dict[str, Any]:
        """
        Run the count estimator and store its suggestions.

        Advisory only: may be re-run while the pallet is open and never
        changes the lifecycle state.

        Returns:
            {'confidence': float, 'items': [PalletItem, ...]}
        """
        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            self._ensure_open(pallet, "suggest counts for")

            items = list(pallet.items.select_related('sku'))
            estimate = self.estimator.estimate(list(pallet.photos), [str(item.sku_id) for item in items])
            self._check_confidence(estimate.confidence)

            for item in items:
                suggestion = estimate.items.get(str(item.sku_id))
                if suggestion is None:
                    continue
                self._check_confidence(suggestion.confidence)
                item.ai_quantity = max(0, int(suggestion.quantity))
                item.ai_confidence = suggestion.confidence
                item.save(update_fields=['ai_quantity', 'ai_confidence'])

            pallet.confidence_score = estimate.confidence
            pallet.save(update_fields=['confidence_score', 'updated_at'])

            AuditLog.log_change(pallet, AuditAction.COUNT_SUGGESTED, actor_id, {
                'confidence': estimate.confidence,
                'item_count': len(items),
            })

        logger.info(f"Count suggested for pallet {pallet.id} with confidence {estimate.confidence:.2f}")
        return {'confidence': estimate.confidence, 'items': items}

    def enforce_manual_review(self, pallet_id, confidence: float, actor_id) -> bool:
        """
        Flag the pallet for manual review when confidence is below the threshold.

        Returns:
            The new value of ``requires_manual_review``
        """
        self._check_confidence(confidence)
        requires_review = confidence < self.config.confidence_threshold

        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            self._ensure_open(pallet, "evaluate review for")
            pallet.requires_manual_review = requires_review
            pallet.save(update_fields=['requires_manual_review', 'updated_at'])

            AuditLog.log_change(pallet, AuditAction.MANUAL_REVIEW_EVALUATED, actor_id, {
                'confidence': confidence,
                'threshold': self.config.confidence_threshold,
                'requires_manual_review': requires_review,
            })

        return requires_review

    def infer_and_review(self, pallet_id, actor_id) -> Dict[str, Any]:
        """
        Suggest counts, then apply the confidence gate with the pallet confidence.

        Both steps share one transaction so the pallet row stays locked
        until the review flag is written.
        """
        with transaction.atomic():
            result = self.suggest_count(pallet_id, actor_id)
            result['requires_manual_review'] = self.enforce_manual_review(
                pallet_id, result['confidence'], actor_id
            )
        return result

    def seal(self, pallet_id, actor_id, review: Optional[CountReview] = None) -> Pallet:
        """
        Seal an open pallet, locking its departure counts.

        Args:
            pallet_id: Pallet id
            actor_id: User sealing the pallet
            review: Optional human review with adjusted quantities

        Returns:
            Sealed Pallet instance

        Raises:
            InvalidStateException: If the pallet is not open
            ReviewRequiredException: If manual review is required and not confirmed
            ItemLimitExceededException: If the pallet carries too many SKUs
            ValidationException: If an adjusted quantity is negative
        """
        if review:
            for adjustment in review.items:
                if adjustment.adjusted_quantity is None or adjustment.adjusted_quantity < 0:
                    raise ValidationException(
                        "Adjusted quantities must be zero or greater",
                        {"sku_id": str(adjustment.sku_id)}
                    )

        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            if pallet.status != PalletStatus.OPEN:
                raise InvalidStateException(
                    f"Pallet {pallet.id} is already sealed",
                    {"pallet_id": str(pallet.id), "current_status": pallet.status}
                )

            if pallet.requires_manual_review and not (review and review.confirmed):
                raise ReviewRequiredException(pallet.id, pallet.confidence_score)

            items = list(pallet.items.all())
            if len(items) > self.config.max_skus_per_pallet:
                raise ItemLimitExceededException(self.config.max_skus_per_pallet)

            now = timezone.now()
            adjustments_applied = 0
            if review:
                items_by_sku = {str(item.sku_id): item for item in items}
                for adjustment in review.items:
                    item = items_by_sku.get(str(adjustment.sku_id))
                    if item is None:
                        continue
                    item.adjusted_quantity = adjustment.adjusted_quantity
                    item.adjusted_by = str(actor_id)
                    item.adjusted_at = now
                    item.save(update_fields=['adjusted_quantity', 'adjusted_by', 'adjusted_at'])
                    adjustments_applied += 1

            transition_pallet(pallet, PalletStatus.SEALED, sealed_by=str(actor_id), sealed_at=now)

            AuditLog.log_change(pallet, AuditAction.PALLET_SEALED, actor_id, {
                'item_count': len(items),
                'manual_review_required': pallet.requires_manual_review,
                'adjustments_applied': adjustments_applied,
            })

        logger.info(f"Pallet {pallet.id} sealed by {actor_id}")
        return pallet

    def delete_pallet(self, pallet_id, actor_id) -> None:
        """
        Delete an open pallet and return its tag to the pool.

        Raises:
            InvalidStateException: If the pallet is not open
        """
        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            self._ensure_open(pallet, "delete")

            released_code = None
            tag = QrTag.objects.select_for_update().filter(current_pallet=pallet).first()
            if tag is not None:
                self.qr_tags.release_from(tag)
                released_code = tag.code

            deleted_id = pallet.id
            pallet.delete()

            AuditLog.record(
                action=AuditAction.PALLET_DELETED,
                entity_type='Pallet',
                entity_id=deleted_id,
                user_id=actor_id,
                details={'released_qr_code': released_code}
            )

        logger.info(f"Pallet {deleted_id} deleted, tag {released_code} released")

    def finalize(self, pallet_id, actor_id) -> Pallet:
        """
        Close a received pallet.

        Raises:
            InvalidStateException: If the pallet is not received
            ReasonRequiredException: If a flagged comparison has no reason
        """
        with transaction.atomic():
            pallet = self._get_pallet_for_update(pallet_id)
            if pallet.status != PalletStatus.RECEIVED:
                raise InvalidStateException(
                    f"Only received pallets can be finalized (pallet {pallet.id} is {pallet.status})",
                    {"pallet_id": str(pallet.id), "current_status": pallet.status}
                )

            unresolved = pallet.comparisons.exclude(severity=ComparisonSeverity.OK).filter(reason='').count()
            if unresolved:
                raise ReasonRequiredException(
                    f"{unresolved} flagged comparisons need a reason before finalizing",
                    {"pallet_id": str(pallet.id), "unresolved_comparisons": unresolved}
                )

            old_status = pallet.status
            transition_pallet(
                pallet, PalletStatus.FINALIZED,
                finalized_by=str(actor_id), finalized_at=timezone.now()
            )

            AuditLog.log_status_change(
                pallet, AuditAction.PALLET_FINALIZED, old_status, pallet.status, actor_id
            )

        logger.info(f"Pallet {pallet.id} finalized by {actor_id}")
        return pallet

    @staticmethod
    def _get_pallet_for_update(pallet_id) -> Pallet:
        return get_or_not_found(Pallet.objects.select_for_update(), pallet_id, 'Pallet')

    @staticmethod
    def _ensure_open(pallet: Pallet, operation: str) -> None:
        if not pallet.is_open:
            raise InvalidStateException(
                f"Cannot {operation} pallet {pallet.id} in status {pallet.status}",
                {"pallet_id": str(pallet.id), "current_status": pallet.status}
            )

    @staticmethod
    def _check_confidence(confidence) -> None:
        if confidence is None or not 0.0 <= confidence <= 1.0:
            raise ValidationException(
                "Confidence must be between 0 and 1", {"confidence": confidence}
            )
