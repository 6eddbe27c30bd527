"""
Manifest models for pallet tracking.
"""

import uuid
from django.db import models
from django.utils import timezone


class ManifestStatus(models.TextChoices):
    """Manifest status enumeration following the outbound lifecycle."""
    DRAFT = 'DRAFT', 'Draft'
    LOADED = 'LOADED', 'Loaded'
    IN_TRANSIT = 'IN_TRANSIT', 'In Transit'
    DELIVERED = 'DELIVERED', 'Delivered'


class Manifest(models.Model):
    """
    Outbound shipment grouping sealed pallets under one contract and route.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(
        max_length=50,
        unique=True,
        help_text="Human-readable manifest identifier"
    )

    contract = models.ForeignKey(
        'Contract',
        on_delete=models.PROTECT,
        related_name='manifests'
    )
    origin_location = models.ForeignKey(
        'Location',
        on_delete=models.PROTECT,
        related_name='outbound_manifests'
    )
    destination_location = models.ForeignKey(
        'Location',
        on_delete=models.PROTECT,
        related_name='inbound_manifests'
    )

    status = models.CharField(
        max_length=20,
        choices=ManifestStatus.choices,
        default=ManifestStatus.DRAFT,
        help_text="Current manifest status"
    )

    created_by = models.CharField(max_length=64)
    loaded_by = models.CharField(max_length=64, blank=True, null=True)
    loaded_at = models.DateTimeField(null=True, blank=True)
    dispatched_by = models.CharField(max_length=64, blank=True, null=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    delivered_by = models.CharField(max_length=64, blank=True, null=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['contract', 'status']),
        ]

    def __str__(self):
        return f"Manifest {self.code} ({self.status})"

    def save(self, *args, **kwargs):
        """Override save to auto-generate the manifest code if not provided."""
        if not self.code:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.code = f"MAN-{timestamp}-{self.id.hex[:8].upper()}"
        super().save(*args, **kwargs)

    @property
    def pallet_count(self):
        return self.manifest_pallets.count()


class ManifestPallet(models.Model):
    """
    Attachment record linking one pallet to one manifest.

    The one-to-one key on pallet keeps a pallet in at most one manifest.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    manifest = models.ForeignKey(
        Manifest,
        on_delete=models.CASCADE,
        related_name='manifest_pallets'
    )
    pallet = models.OneToOneField(
        'Pallet',
        on_delete=models.PROTECT,
        related_name='manifest_link'
    )

    added_by = models.CharField(max_length=64)
    added_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['manifest', 'added_at']

    def __str__(self):
        return f"Pallet {self.pallet_id} in Manifest {self.manifest.code}"
