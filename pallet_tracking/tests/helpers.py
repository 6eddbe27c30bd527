"""
Shared fixtures for pallet tracking tests.
"""

from ..adapters.count_estimator import CountEstimate, CountEstimatorInterface, ItemEstimate
from ..conf import TrackingConfig
from ..models import Contract, Location, Sku
from ..services import (
    CountAdjustment, CountReview, ManifestService, PalletService, QrTagService,
    ReceivingService, ReconciliationService
)


class FixedCountEstimator(CountEstimatorInterface):
    """Estimator returning a fixed confidence and per-SKU quantities."""

    def __init__(self, confidence=0.9, quantities=None, default_quantity=10):
        self.confidence = confidence
        self.quantities = quantities or {}
        self.default_quantity = default_quantity

    def estimate(self, photos, sku_ids):
        return CountEstimate(
            confidence=self.confidence,
            items={
                sku_id: ItemEstimate(self.quantities.get(sku_id, self.default_quantity), self.confidence)
                for sku_id in sku_ids
            }
        )


class TrackingTestMixin:
    """Reference data, a provisioned tag pool and helpers to walk a pallet through its lifecycle."""

    config = TrackingConfig(
        confidence_threshold=0.65, delta_alert=2, delta_critical=5, max_skus_per_pallet=2
    )

    def setUp(self):
        self.actor = 'operator-1'
        self.admin = 'admin-1'

        self.contract = Contract.objects.create(code='CT-001', name='Main contract')
        self.other_contract = Contract.objects.create(code='CT-002', name='Other contract')
        self.origin = Location.objects.create(code='WH-ORIGIN', name='Origin warehouse')
        self.other_origin = Location.objects.create(code='WH-OTHER', name='Other warehouse')
        self.destination = Location.objects.create(code='WH-DEST', name='Destination warehouse')
        self.sku_a = Sku.objects.create(code='SKU-A', name='Widget A')
        self.sku_b = Sku.objects.create(code='SKU-B', name='Widget B')
        self.sku_c = Sku.objects.create(code='SKU-C', name='Widget C')

        self.estimator = FixedCountEstimator()
        self.qr_tags = QrTagService()
        self.pallets = PalletService(config=self.config, estimator=self.estimator, qr_tag_service=self.qr_tags)
        self.manifests = ManifestService()
        self.receiving = ReceivingService()
        self.reconciliation = ReconciliationService(config=self.config)

        self.qr_tags.provision('PAL', 1, 10, self.admin)

    def create_pallet(self, contract=None, origin=None, qr_code=None):
        return self.pallets.create_pallet(
            (contract or self.contract).id, (origin or self.origin).id, self.actor, qr_code=qr_code
        )

    def create_sealed_pallet(self, quantities=None, contract=None, origin=None):
        """Open, fill and seal a pallet; quantities maps Sku -> departure quantity."""
        if quantities is None:
            quantities = {self.sku_a: 10}

        pallet = self.create_pallet(contract=contract, origin=origin)
        for sku in quantities:
            self.pallets.add_item(pallet.id, sku.id, self.actor)

        review = CountReview(
            items=[CountAdjustment(sku_id=sku.id, adjusted_quantity=qty) for sku, qty in quantities.items()]
        )
        return self.pallets.seal(pallet.id, self.actor, review)

    def create_manifest(self, contract=None, origin=None):
        return self.manifests.create_manifest(
            (contract or self.contract).id, (origin or self.origin).id, self.destination.id, self.actor
        )

    def ship(self, *pallets):
        """Attach sealed pallets to a new manifest and load it."""
        manifest = self.create_manifest()
        for pallet in pallets:
            self.manifests.attach_pallet(manifest.id, pallet.id, self.actor)
        return self.manifests.mark_loaded(manifest.id, self.actor)

    def create_in_transit_pallet(self, quantities=None):
        pallet = self.create_sealed_pallet(quantities)
        self.ship(pallet)
        pallet.refresh_from_db()
        return pallet

    def create_received_pallet(self, quantities=None):
        pallet = self.create_in_transit_pallet(quantities)
        self.receiving.receive_pallet(pallet.id, self.destination.id, self.actor)
        pallet.refresh_from_db()
        return pallet
