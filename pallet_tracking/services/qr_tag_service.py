"""
QR Tag Service for pallet tracking.

Manages the pool of pre-printed identifiers: bulk provisioning, binding a
tag to a pallet, releasing it back to the pool, and utilization stats.
"""

import logging
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from ..exceptions import (
    AlreadyBoundException, ConflictException, DuplicateCodeException,
    InvalidStateException, NotFoundException, PoolExhaustedException,
    ReferenceNotFoundException, ValidationException
)
from ..models import AuditAction, AuditLog, Pallet, PalletStatus, QrTag, QrTagStatus

logger = logging.getLogger(__name__)


class QrTagService:
    """Service class for identifier pool operations."""

    MAX_PREFIX_LENGTH = 10
    MAX_BATCH_SIZE = 1000
    # Candidates tried per allocation before giving up
    ALLOCATION_CANDIDATES = 5

    @staticmethod
    def format_code(prefix: str, number: int) -> str:
        return f"{prefix}{number:03d}"

    def provision(self, prefix: str, start_number: int, count: int, actor_id) -> List[QrTag]:
        """
        Bulk-create free tags with sequential codes.

        Args:
            prefix: Code prefix (1-10 characters)
            start_number: First sequence number (>= 1)
            count: Number of tags to create (1-1000)
            actor_id: User provisioning the tags

        Returns:
            Created QrTag instances, in code order

        Raises:
            ValidationException: If the batch parameters are invalid
            DuplicateCodeException: If any generated code already exists
        """
        prefix = (prefix or '').strip()
        if not prefix or len(prefix) > self.MAX_PREFIX_LENGTH:
            raise ValidationException(
                f"Prefix must be between 1 and {self.MAX_PREFIX_LENGTH} characters",
                {"prefix": prefix}
            )
        if start_number < 1:
            raise ValidationException("Start number must be at least 1", {"start_number": start_number})
        if not 1 <= count <= self.MAX_BATCH_SIZE:
            raise ValidationException(
                f"Count must be between 1 and {self.MAX_BATCH_SIZE}", {"count": count}
            )

        codes = [self.format_code(prefix, start_number + i) for i in range(count)]

        try:
            with transaction.atomic():
                existing = set(QrTag.objects.filter(code__in=codes).values_list('code', flat=True))
                if existing:
                    raise DuplicateCodeException(existing)

                tags = QrTag.objects.bulk_create([QrTag(code=code) for code in codes])

                AuditLog.record(
                    action=AuditAction.QR_TAGS_PROVISIONED,
                    entity_type='QrTag',
                    entity_id=prefix,
                    user_id=actor_id,
                    details={
                        'start_number': start_number,
                        'count': count,
                        'first_code': codes[0],
                        'last_code': codes[-1],
                    }
                )
        except IntegrityError as e:
            # Another batch created some of the codes between our check and insert
            raise DuplicateCodeException(codes) from e

        logger.info(f"Provisioned {count} QR tags {codes[0]}..{codes[-1]}")
        return tags

    def bind(self, code: str, pallet_id, actor_id) -> QrTag:
        """
        Bind a free tag to a pallet.

        Raises:
            NotFoundException: If the code is unknown
            ReferenceNotFoundException: If the pallet does not exist
            AlreadyBoundException: If the tag is not free
            ConflictException: If the pallet already holds a tag
        """
        with transaction.atomic():
            tag = self._get_tag_for_update(code)
            pallet = Pallet.objects.select_for_update().filter(pk=pallet_id).first()
            if pallet is None:
                raise ReferenceNotFoundException('Pallet', pallet_id)

            self.bind_to(tag, pallet)

            AuditLog.record(
                action=AuditAction.QR_TAG_BOUND,
                entity_type='QrTag',
                entity_id=tag.code,
                user_id=actor_id,
                details={'pallet_id': str(pallet.id)}
            )

        logger.info(f"QR tag {tag.code} bound to pallet {pallet.id}")
        return tag

    def release(self, code: str, actor_id) -> QrTag:
        """
        Return a tag to the pool.

        Releasing a tag that is already free is a no-op and writes no audit
        entry, so retried deletions never fail on it.

        Raises:
            NotFoundException: If the code is unknown
            InvalidStateException: If the bound pallet is no longer open
        """
        with transaction.atomic():
            tag = self._get_tag_for_update(code)
            if tag.is_free:
                logger.debug(f"QR tag {tag.code} already free, nothing to release")
                return tag

            pallet_id = tag.current_pallet_id
            pallet_status = Pallet.objects.filter(pk=pallet_id).values_list('status', flat=True).first()
            if pallet_status is not None and pallet_status != PalletStatus.OPEN:
                raise InvalidStateException(
                    f"QR tag {tag.code} cannot be released while its pallet is {pallet_status}",
                    {"qr_code": tag.code, "pallet_id": str(pallet_id), "pallet_status": pallet_status}
                )

            if self.release_from(tag):
                AuditLog.record(
                    action=AuditAction.QR_TAG_RELEASED,
                    entity_type='QrTag',
                    entity_id=tag.code,
                    user_id=actor_id,
                    details={'pallet_id': str(pallet_id)}
                )
                logger.info(f"QR tag {tag.code} released from pallet {pallet_id}")

        return tag

    def stats(self) -> Dict[str, Any]:
        """Counts of total, free and bound tags plus utilization percentage."""
        counts = QrTag.objects.aggregate(
            total=Count('id'),
            free=Count('id', filter=Q(status=QrTagStatus.FREE)),
            bound=Count('id', filter=Q(status=QrTagStatus.BOUND)),
        )
        total = counts['total']
        return {
            'total': total,
            'free': counts['free'],
            'bound': counts['bound'],
            'utilization': round(counts['bound'] / total * 100) if total else 0,
        }

    # Helpers used inside the caller's transaction. They write no audit entry.

    def allocate(self, pallet: Pallet, code: Optional[str] = None) -> QrTag:
        """
        Bind the requested tag, or the lowest free code, to a new pallet.

        Raises:
            NotFoundException / AlreadyBoundException: For a requested code
            PoolExhaustedException: If no free tag could be bound
        """
        if code:
            tag = self._get_tag_for_update(code)
            return self.bind_to(tag, pallet)

        candidates = list(
            QrTag.objects.select_for_update(skip_locked=True)
            .filter(status=QrTagStatus.FREE)
            .order_by('code')[:self.ALLOCATION_CANDIDATES]
        )
        for tag in candidates:
            try:
                return self.bind_to(tag, pallet)
            except AlreadyBoundException:
                continue

        raise PoolExhaustedException()

    def bind_to(self, tag: QrTag, pallet: Pallet) -> QrTag:
        if not tag.is_free:
            raise AlreadyBoundException(tag.code)

        if QrTag.objects.filter(current_pallet=pallet).exists():
            raise ConflictException(
                f"Pallet {pallet.id} already holds a QR tag",
                {"pallet_id": str(pallet.id)}
            )

        now = timezone.now()
        updated = QrTag.objects.filter(pk=tag.pk, status=QrTagStatus.FREE).update(
            status=QrTagStatus.BOUND,
            current_pallet=pallet,
            bound_at=now,
            updated_at=now,
        )
        if updated != 1:
            raise AlreadyBoundException(tag.code)

        tag.status = QrTagStatus.BOUND
        tag.current_pallet = pallet
        tag.bound_at = now
        return tag

    def release_from(self, tag: QrTag) -> bool:
        """Free a bound tag; returns False if it was already free."""
        now = timezone.now()
        updated = QrTag.objects.filter(pk=tag.pk, status=QrTagStatus.BOUND).update(
            status=QrTagStatus.FREE,
            current_pallet=None,
            released_at=now,
            updated_at=now,
        )
        tag.status = QrTagStatus.FREE
        tag.current_pallet = None
        if updated:
            tag.released_at = now
        return bool(updated)

    @staticmethod
    def _get_tag_for_update(code: str) -> QrTag:
        tag = QrTag.objects.select_for_update().filter(code=code).first()
        if tag is None:
            raise NotFoundException(code)
        return tag
