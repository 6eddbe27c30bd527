"""
Lifecycle and reconciliation thresholds.

Services receive a TrackingConfig at construction; by default it is built
from ``settings.PALLET_TRACKING``.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class TrackingConfig:
    """Thresholds used by the pallet, manifest and reconciliation services."""

    confidence_threshold: float = 0.65
    delta_alert: int = 2
    delta_critical: int = 5
    max_skus_per_pallet: int = 2

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ImproperlyConfigured(
                f"CONFIDENCE_THRESHOLD must be between 0 and 1, got {self.confidence_threshold}"
            )
        if self.delta_alert < 0 or self.delta_alert >= self.delta_critical:
            raise ImproperlyConfigured(
                f"DELTA_ALERT ({self.delta_alert}) must be non-negative and lower than "
                f"DELTA_CRITICAL ({self.delta_critical})"
            )
        if self.max_skus_per_pallet < 1:
            raise ImproperlyConfigured("MAX_SKUS_PER_PALLET must be at least 1")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'TrackingConfig':
        defaults = cls.__dataclass_fields__
        return cls(
            confidence_threshold=float(values.get(
                'CONFIDENCE_THRESHOLD', defaults['confidence_threshold'].default)),
            delta_alert=int(values.get('DELTA_ALERT', defaults['delta_alert'].default)),
            delta_critical=int(values.get('DELTA_CRITICAL', defaults['delta_critical'].default)),
            max_skus_per_pallet=int(values.get(
                'MAX_SKUS_PER_PALLET', defaults['max_skus_per_pallet'].default)),
        )


def get_tracking_config(overrides: Optional[Dict[str, Any]] = None) -> TrackingConfig:
    """Build the active configuration from Django settings plus optional overrides."""
    values = dict(getattr(settings, 'PALLET_TRACKING', {}) or {})
    if overrides:
        values.update(overrides)
    return TrackingConfig.from_dict(values)
