"""
Receiving and reconciliation models.
"""

import uuid
from django.db import models
from django.utils import timezone

from ..exceptions import ImmutableRecordException


class Receipt(models.Model):
    """Arrival of a pallet at its destination."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pallet = models.OneToOneField(
        'Pallet',
        on_delete=models.PROTECT,
        related_name='receipt'
    )
    destination_location = models.ForeignKey(
        'Location',
        on_delete=models.PROTECT,
        related_name='receipts'
    )

    received_by = models.CharField(max_length=64)
    received_at = models.DateTimeField(default=timezone.now)
    photos = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-received_at']

    def __str__(self):
        return f"Receipt for pallet {self.pallet_id} at {self.destination_location.code}"


class ComparisonSeverity(models.TextChoices):
    OK = 'OK', 'Ok'
    ALERT = 'ALERT', 'Alert'
    CRITICAL = 'CRITICAL', 'Critical'


class Comparison(models.Model):
    """
    One reconciled line between departure and arrival counts.

    Only the annotation fields may change once the row exists.
    """

    ANNOTATION_FIELDS = frozenset({'reason', 'evidence', 'annotated_by', 'annotated_at'})

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pallet = models.ForeignKey(
        'Pallet',
        on_delete=models.PROTECT,
        related_name='comparisons'
    )
    receipt = models.ForeignKey(
        Receipt,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='comparisons'
    )
    run_id = models.UUIDField(help_text="Reconciliation batch this line belongs to")
    sku = models.ForeignKey(
        'Sku',
        on_delete=models.PROTECT,
        related_name='comparisons'
    )

    departure_quantity = models.PositiveIntegerField()
    arrival_quantity = models.PositiveIntegerField()
    delta = models.PositiveIntegerField()
    severity = models.CharField(max_length=10, choices=ComparisonSeverity.choices)

    reason = models.TextField(blank=True)
    evidence = models.JSONField(default=list, blank=True)
    annotated_by = models.CharField(max_length=64, blank=True, null=True)
    annotated_at = models.DateTimeField(null=True, blank=True)

    created_by = models.CharField(max_length=64)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at', 'sku__code']
        indexes = [
            models.Index(fields=['pallet', 'run_id']),
            models.Index(fields=['severity']),
        ]

    def __str__(self):
        return f"{self.sku.code}: {self.departure_quantity} -> {self.arrival_quantity} ({self.severity})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            update_fields = kwargs.get('update_fields')
            if update_fields is None or not set(update_fields) <= self.ANNOTATION_FIELDS:
                raise ImmutableRecordException('Comparison')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordException('Comparison')

    @property
    def is_flagged(self):
        return self.severity != ComparisonSeverity.OK

    @property
    def is_resolved(self):
        return not self.is_flagged or bool(self.reason.strip())
