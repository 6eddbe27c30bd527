"""
Pallet models for pallet tracking.
"""

import uuid
from django.db import models
from django.utils import timezone

from .manifest import ManifestPallet
from .qr_tag import QrTag


class PalletStatus(models.TextChoices):
    """Pallet status enumeration following the pallet lifecycle."""
    OPEN = 'OPEN', 'Open'
    SEALED = 'SEALED', 'Sealed'
    IN_TRANSIT = 'IN_TRANSIT', 'In Transit'
    RECEIVED = 'RECEIVED', 'Received'
    FINALIZED = 'FINALIZED', 'Finalized'


class Pallet(models.Model):
    """
    Physical unit of goods moving from an origin to a destination.

    The scannable tag and the manifest membership are owned by QrTag and
    ManifestPallet; the pallet exposes them through read-only properties.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    contract = models.ForeignKey(
        'Contract',
        on_delete=models.PROTECT,
        related_name='pallets',
        help_text="Origin contract"
    )
    origin_location = models.ForeignKey(
        'Location',
        on_delete=models.PROTECT,
        related_name='originating_pallets',
        help_text="Location where the pallet was built"
    )
    destination_location = models.ForeignKey(
        'Location',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='received_pallets',
        help_text="Location where the pallet was received"
    )

    status = models.CharField(
        max_length=20,
        choices=PalletStatus.choices,
        default=PalletStatus.OPEN,
        help_text="Current pallet status"
    )

    # Count suggestion
    confidence_score = models.FloatField(
        null=True,
        blank=True,
        help_text="Aggregate estimator confidence (0-1)"
    )
    requires_manual_review = models.BooleanField(default=False)

    photos = models.JSONField(default=list, blank=True)

    # Actors are opaque user ids supplied by the identity context
    created_by = models.CharField(max_length=64)
    sealed_by = models.CharField(max_length=64, blank=True, null=True)
    sealed_at = models.DateTimeField(null=True, blank=True)
    finalized_by = models.CharField(max_length=64, blank=True, null=True)
    finalized_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['contract', 'status']),
            models.Index(fields=['origin_location', 'status']),
            models.Index(fields=['requires_manual_review']),
        ]

    def __str__(self):
        return f"Pallet {self.qr_code or self.id} ({self.status})"

    @property
    def qr_code(self):
        """Code of the tag currently bound to this pallet, if any."""
        return QrTag.objects.filter(current_pallet=self).values_list('code', flat=True).first()

    @property
    def manifest(self):
        """Manifest this pallet is attached to, if any."""
        link = ManifestPallet.objects.select_related('manifest').filter(pallet=self).first()
        return link.manifest if link else None

    @property
    def is_open(self):
        return self.status == PalletStatus.OPEN


class PalletItem(models.Model):
    """
    A (pallet, SKU) line with suggested and human-adjusted quantities.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pallet = models.ForeignKey(
        Pallet,
        on_delete=models.CASCADE,
        related_name='items'
    )
    sku = models.ForeignKey(
        'Sku',
        on_delete=models.PROTECT,
        related_name='pallet_items'
    )

    ai_quantity = models.PositiveIntegerField(null=True, blank=True)
    ai_confidence = models.FloatField(null=True, blank=True)

    adjusted_quantity = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Human-reviewed quantity, overrides the suggested one"
    )
    adjusted_by = models.CharField(max_length=64, blank=True, null=True)
    adjusted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at']
        unique_together = ['pallet', 'sku']

    def __str__(self):
        return f"{self.sku.code} on pallet {self.pallet_id}"

    @property
    def departure_quantity(self) -> int:
        """Quantity treated as ground truth once the pallet is sealed."""
        if self.adjusted_quantity is not None:
            return self.adjusted_quantity
        if self.ai_quantity is not None:
            return self.ai_quantity
        return 0
