"""
Count Estimator Adapter for pallet tracking.

Provides the interface to the vision/count-suggestion model with a seedable
mock implementation.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence


@dataclass(frozen=True)
class ItemEstimate:
    quantity: int
    confidence: float


@dataclass(frozen=True)
class CountEstimate:
    """Pallet-level confidence plus per-SKU suggestions keyed by SKU id."""

    confidence: float
    items: Dict[str, ItemEstimate] = field(default_factory=dict)


class CountEstimatorInterface(ABC):
    """
    Interface for count-suggestion integrations.

    Implementations only see opaque photo references and the SKU ids on the
    pallet; they never touch persistence.
    """

    @abstractmethod
    def estimate(self, photos: Sequence[str], sku_ids: Sequence[str]) -> CountEstimate:
        """
        Estimate quantities for a pallet.

        Args:
            photos: Photo references attached to the pallet
            sku_ids: Ids of the SKUs on the pallet, as strings

        Returns:
            CountEstimate with a pallet confidence in [0, 1] and one
            ItemEstimate per SKU id
        """
        pass


def _clamp(value: float, low: float = 0.1, high: float = 0.95) -> float:
    return max(low, min(high, value))


class MockCountEstimator(CountEstimatorInterface):
    """
    Stub estimator for testing and development.

    Confidence is higher with at least three photos; quantities are random
    in [1, 50]. Pass a seed for repeatable results.
    """

    MIN_PHOTOS_FOR_HIGH_CONFIDENCE = 3

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def estimate(self, photos: Sequence[str], sku_ids: Sequence[str]) -> CountEstimate:
        has_photos = len(photos) >= self.MIN_PHOTOS_FOR_HIGH_CONFIDENCE
        base_confidence = 0.8 if has_photos else 0.4
        confidence = _clamp(base_confidence + (self._random.random() - 0.5) * 0.3)

        items = {}
        for sku_id in sku_ids:
            items[sku_id] = ItemEstimate(
                quantity=self._random.randint(1, 50),
                confidence=_clamp(confidence + (self._random.random() - 0.5) * 0.2),
            )

        return CountEstimate(confidence=confidence, items=items)


# Active estimator; production deployments swap in a real implementation
count_estimator: CountEstimatorInterface = MockCountEstimator()


def get_count_estimator() -> CountEstimatorInterface:
    """Return the currently configured count estimator."""
    return count_estimator


def switch_to_mock_estimator(seed: Optional[int] = None):
    """Switch to the mock estimator for testing."""
    global count_estimator
    count_estimator = MockCountEstimator(seed)


def switch_to_estimator(estimator: CountEstimatorInterface):
    """
    Switch to another estimator implementation.

    Args:
        estimator: Implementation of CountEstimatorInterface
    """
    global count_estimator
    count_estimator = estimator
