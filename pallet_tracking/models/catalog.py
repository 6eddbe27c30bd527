"""
Reference data for pallet tracking: contracts, locations and SKUs.

These tables have no lifecycle of their own; the services only check that
referenced rows exist.
"""

import uuid
from django.db import models
from django.utils import timezone


class CatalogEntry(models.Model):
    """Common fields shared by catalog tables."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['code']

    def __str__(self):
        return f"{self.code} - {self.name}"


class Contract(CatalogEntry):
    """Customer contract under which pallets and manifests move."""

    description = models.TextField(blank=True)


class Location(CatalogEntry):
    """Origin or destination site."""

    address = models.CharField(max_length=255, blank=True)


class Sku(CatalogEntry):
    """Stock keeping unit counted on pallets."""

    description = models.TextField(blank=True)
    unit = models.CharField(max_length=20, default='UN')

    class Meta(CatalogEntry.Meta):
        verbose_name = 'SKU'
        verbose_name_plural = 'SKUs'
