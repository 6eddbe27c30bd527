"""
Audit log model for pallet tracking.
"""

import uuid
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from ..exceptions import ImmutableRecordException


class AuditAction(models.TextChoices):
    """Action tags written by the lifecycle services."""
    PALLET_CREATED = 'pallet_created', 'Pallet created'
    ITEM_ADDED = 'item_added', 'Item added'
    ITEM_REMOVED = 'item_removed', 'Item removed'
    PHOTOS_CAPTURED = 'photos_captured', 'Photos captured'
    COUNT_SUGGESTED = 'count_suggested', 'Count suggested'
    MANUAL_REVIEW_EVALUATED = 'manual_review_evaluated', 'Manual review evaluated'
    PALLET_SEALED = 'pallet_sealed', 'Pallet sealed'
    PALLET_DELETED = 'pallet_deleted', 'Pallet deleted'
    PALLET_RECEIVED = 'pallet_received', 'Pallet received'
    PALLET_FINALIZED = 'pallet_finalized', 'Pallet finalized'
    MANIFEST_CREATED = 'manifest_created', 'Manifest created'
    PALLET_ADDED_TO_MANIFEST = 'pallet_added_to_manifest', 'Pallet added to manifest'
    PALLET_REMOVED_FROM_MANIFEST = 'pallet_removed_from_manifest', 'Pallet removed from manifest'
    MANIFEST_LOADED = 'manifest_loaded', 'Manifest loaded'
    MANIFEST_DISPATCHED = 'manifest_dispatched', 'Manifest dispatched'
    MANIFEST_DELIVERED = 'manifest_delivered', 'Manifest delivered'
    QR_TAGS_PROVISIONED = 'qr_tags_provisioned', 'QR tags provisioned'
    QR_TAG_BOUND = 'qr_tag_bound', 'QR tag bound'
    QR_TAG_RELEASED = 'qr_tag_released', 'QR tag released'
    COMPARISON_CREATED = 'comparison_created', 'Comparison created'
    COMPARISON_ANNOTATED = 'comparison_annotated', 'Comparison annotated'


class AuditLogQuerySet(models.QuerySet):
    """Read-only query surface over the audit trail."""

    def for_entity(self, entity_type: str, entity_id):
        return self.filter(entity_type=entity_type, entity_id=str(entity_id))

    def by_user(self, user_id):
        return self.filter(user_id=str(user_id))

    def by_action(self, action: str):
        return self.filter(action=action)

    def between(self, start=None, end=None):
        qs = self
        if start is not None:
            qs = qs.filter(timestamp__gte=start)
        if end is not None:
            qs = qs.filter(timestamp__lte=end)
        return qs

    def update(self, **kwargs):
        raise ImmutableRecordException('AuditLog')

    def delete(self):
        raise ImmutableRecordException('AuditLog')


class AuditLog(models.Model):
    """
    Append-only audit trail for pallets, manifests, tags and comparisons.

    Entries are written inside the transaction of the operation they
    describe, after its mutation, so a rejected or rolled back operation
    never leaves an entry behind. Entries are never updated or deleted.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Entity being audited
    entity_type = models.CharField(
        max_length=50,
        help_text="Type of entity (Pallet, Manifest, QrTag, Comparison, etc.)"
    )
    entity_id = models.CharField(
        max_length=64,
        help_text="Identifier of the entity being audited"
    )

    # Action performed
    action = models.CharField(
        max_length=50,
        choices=AuditAction.choices,
        help_text="Action performed"
    )

    # Opaque id of the user who performed the action
    user_id = models.CharField(max_length=64)

    details = models.JSONField(
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
        help_text="Structured detail payload"
    )

    timestamp = models.DateTimeField(default=timezone.now, editable=False)

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-timestamp']),
            models.Index(fields=['action', '-timestamp']),
            models.Index(fields=['user_id', '-timestamp']),
            models.Index(fields=['timestamp']),
        ]

    def __str__(self):
        return f"{self.entity_type} {self.entity_id} - {self.action} by {self.user_id} at {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordException('AuditLog')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordException('AuditLog')

    @classmethod
    def record(cls, action: str, entity_type: str, entity_id, user_id, details=None):
        """
        Append one entry with a server-assigned timestamp.

        Args:
            action: Action tag (see AuditAction)
            entity_type: Type of the entity being audited
            entity_id: Identifier of the entity
            user_id: Acting user id
            details: Arbitrary JSON-serialisable payload

        Returns:
            Created AuditLog instance
        """
        return cls.objects.create(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            user_id=str(user_id),
            details=details or {},
            timestamp=timezone.now(),
        )

    @classmethod
    def log_change(cls, entity, action: str, user_id, details=None):
        """Record an entry for a model instance, typed by its class name."""
        return cls.record(
            action=action,
            entity_type=entity.__class__.__name__,
            entity_id=entity.pk,
            user_id=user_id,
            details=details,
        )

    @classmethod
    def log_status_change(cls, entity, action: str, old_status: str, new_status: str,
                          user_id, details=None):
        """Record a lifecycle transition of an entity."""
        payload = {'old_status': old_status, 'new_status': new_status}
        payload.update(details or {})
        return cls.log_change(entity, action, user_id, payload)
