"""
Scannable tag pool models.
"""

import uuid
from django.db import models
from django.utils import timezone


class QrTagStatus(models.TextChoices):
    FREE = 'FREE', 'Free'
    BOUND = 'BOUND', 'Bound'


class QrTag(models.Model):
    """
    Pre-provisioned, physically printed code drawn from the pool.

    The tag owns its binding to a pallet. The one-to-one key keeps a pallet
    from holding two tags, and PROTECT keeps a bound tag from leaking when its
    pallet row is removed without releasing it first.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)
    status = models.CharField(
        max_length=10,
        choices=QrTagStatus.choices,
        default=QrTagStatus.FREE
    )
    current_pallet = models.OneToOneField(
        'Pallet',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='qr_tag'
    )

    bound_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['code']
        indexes = [
            models.Index(fields=['status', 'code']),
        ]

    def __str__(self):
        return f"{self.code} ({self.status})"

    @property
    def is_free(self):
        return self.status == QrTagStatus.FREE
