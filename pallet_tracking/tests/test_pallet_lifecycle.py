"""
Tests for the pallet lifecycle.
"""

from unittest.mock import patch

from django.test import TestCase

from ..conf import TrackingConfig
from ..exceptions import (
    ConflictException, DuplicateSkuException, InvalidStateException, InvalidTransitionException,
    ItemLimitExceededException, ReasonRequiredException, ReferenceNotFoundException,
    ReviewRequiredException, ValidationException
)
from ..models import AuditLog, Comparison, Pallet, PalletItem, PalletStatus, QrTag
from ..services import (
    ArrivalCount, CountAdjustment, CountReview, PalletService, transition_pallet
)
from .helpers import FixedCountEstimator, TrackingTestMixin


class PalletCreationTest(TrackingTestMixin, TestCase):

    def test_create_pallet(self):
        pallet = self.create_pallet()

        self.assertEqual(pallet.status, PalletStatus.OPEN)
        self.assertEqual(pallet.contract, self.contract)
        self.assertEqual(pallet.origin_location, self.origin)
        self.assertIsNone(pallet.confidence_score)
        self.assertFalse(pallet.requires_manual_review)
        self.assertEqual(pallet.photos, [])
        self.assertEqual(pallet.created_by, self.actor)
        self.assertEqual(pallet.qr_code, 'PAL001')

    def test_unknown_references(self):
        with self.assertRaises(ReferenceNotFoundException):
            self.pallets.create_pallet('00000000-0000-0000-0000-000000000000', self.origin.id, self.actor)
        with self.assertRaises(ReferenceNotFoundException):
            self.pallets.create_pallet(self.contract.id, 'not-a-uuid', self.actor)
        self.assertEqual(Pallet.objects.count(), 0)


class PalletItemsTest(TrackingTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.pallet = self.create_pallet()

    def test_add_and_remove_items(self):
        item = self.pallets.add_item(self.pallet.id, self.sku_a.id, self.actor)
        self.assertEqual(item.sku, self.sku_a)
        self.assertEqual(item.departure_quantity, 0)

        self.pallets.remove_item(self.pallet.id, self.sku_a.id, self.actor)
        self.assertFalse(PalletItem.objects.filter(pallet=self.pallet).exists())

    def test_duplicate_sku(self):
        self.pallets.add_item(self.pallet.id, self.sku_a.id, self.actor)
        with self.assertRaises(DuplicateSkuException):
            self.pallets.add_item(self.pallet.id, self.sku_a.id, self.actor)

    def test_sku_cap(self):
        self.pallets.add_item(self.pallet.id, self.sku_a.id, self.actor)
        self.pallets.add_item(self.pallet.id, self.sku_b.id, self.actor)

        with self.assertRaises(ItemLimitExceededException):
            self.pallets.add_item(self.pallet.id, self.sku_c.id, self.actor)
        self.assertEqual(self.pallet.items.count(), 2)

    def test_remove_missing_item(self):
        with self.assertRaises(ReferenceNotFoundException):
            self.pallets.remove_item(self.pallet.id, self.sku_a.id, self.actor)

    def test_items_frozen_after_seal(self):
        self.pallets.add_item(self.pallet.id, self.sku_a.id, self.actor)
        self.pallets.seal(self.pallet.id, self.actor)

        with self.assertRaises(InvalidStateException):
            self.pallets.add_item(self.pallet.id, self.sku_b.id, self.actor)
        with self.assertRaises(InvalidStateException):
            self.pallets.remove_item(self.pallet.id, self.sku_a.id, self.actor)

    def test_attach_photos(self):
        self.pallets.attach_photos(self.pallet.id, ['photos/1.jpg', 'photos/2.jpg'], self.actor)
        pallet = self.pallets.attach_photos(self.pallet.id, ['photos/3.jpg'], self.actor)
        self.assertEqual(pallet.photos, ['photos/1.jpg', 'photos/2.jpg', 'photos/3.jpg'])

        with self.assertRaises(ValidationException):
            self.pallets.attach_photos(self.pallet.id, [], self.actor)


class CountSuggestionTest(TrackingTestMixin, TestCase):
    """Test count suggestion and the manual review gate."""

    def setUp(self):
        super().setUp()
        self.pallet = self.create_pallet()
        self.pallets.add_item(self.pallet.id, self.sku_a.id, self.actor)

    def test_suggest_count_stores_estimates(self):
        self.estimator.quantities = {str(self.sku_a.id): 42}

        result = self.pallets.suggest_count(self.pallet.id, self.actor)

        self.assertEqual(result['confidence'], 0.9)
        item = PalletItem.objects.get(pallet=self.pallet, sku=self.sku_a)
        self.assertEqual(item.ai_quantity, 42)
        self.assertEqual(item.departure_quantity, 42)
        self.pallet.refresh_from_db()
        self.assertEqual(self.pallet.confidence_score, 0.9)
        self.assertEqual(self.pallet.status, PalletStatus.OPEN)

    def test_estimator_confidence_out_of_range(self):
        self.estimator.confidence = 1.5
        with self.assertRaises(ValidationException):
            self.pallets.suggest_count(self.pallet.id, self.actor)

    def test_manual_review_threshold(self):
        self.assertTrue(self.pallets.enforce_manual_review(self.pallet.id, 0.64, self.actor))
        self.assertFalse(self.pallets.enforce_manual_review(self.pallet.id, 0.65, self.actor))
        self.assertTrue(self.pallets.enforce_manual_review(self.pallet.id, 0.0, self.actor))
        self.assertFalse(self.pallets.enforce_manual_review(self.pallet.id, 1.0, self.actor))

    def test_manual_review_threshold_from_config(self):
        service = PalletService(config=TrackingConfig(confidence_threshold=0.9), estimator=self.estimator)
        self.assertTrue(service.enforce_manual_review(self.pallet.id, 0.8, self.actor))

    def test_invalid_confidence(self):
        with self.assertRaises(ValidationException):
            self.pallets.enforce_manual_review(self.pallet.id, 1.2, self.actor)

    def test_infer_and_review_flags_low_confidence(self):
        low = PalletService(config=self.config, estimator=FixedCountEstimator(confidence=0.4))

        result = low.infer_and_review(self.pallet.id, self.actor)

        self.assertTrue(result['requires_manual_review'])
        self.pallet.refresh_from_db()
        self.assertTrue(self.pallet.requires_manual_review)

    def test_infer_and_review_rolls_back_suggestion(self):
        low = PalletService(config=self.config, estimator=FixedCountEstimator(confidence=0.2))
        audit_count = AuditLog.objects.count()

        with patch.object(
            PalletService, 'enforce_manual_review',
            side_effect=ConflictException("Pallet was modified concurrently")
        ):
            with self.assertRaises(ConflictException):
                low.infer_and_review(self.pallet.id, self.actor)

        self.pallet.refresh_from_db()
        self.assertIsNone(self.pallet.confidence_score)
        self.assertFalse(self.pallet.requires_manual_review)
        self.assertIsNone(PalletItem.objects.get(pallet=self.pallet).ai_quantity)
        self.assertEqual(AuditLog.objects.count(), audit_count)

    def test_suggestion_rejected_after_seal(self):
        self.pallets.seal(self.pallet.id, self.actor)
        self.pallet.refresh_from_db()
        self.assertFalse(self.pallet.is_open)

        with self.assertRaises(InvalidStateException):
            self.pallets.infer_and_review(self.pallet.id, self.actor)

    def test_mock_estimator_is_deterministic_with_seed(self):
        from ..adapters.count_estimator import MockCountEstimator

        first = MockCountEstimator(seed=7).estimate(['a', 'b', 'c'], ['sku'])
        second = MockCountEstimator(seed=7).estimate(['a', 'b', 'c'], ['sku'])
        self.assertEqual(first, second)
        self.assertTrue(0.1 <= first.confidence <= 0.95)
        self.assertTrue(1 <= first.items['sku'].quantity <= 50)


class SealTest(TrackingTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.pallet = self.create_pallet()
        self.pallets.add_item(self.pallet.id, self.sku_a.id, self.actor)

    def test_seal_applies_adjustments(self):
        self.pallets.suggest_count(self.pallet.id, self.actor)
        review = CountReview(items=[CountAdjustment(sku_id=self.sku_a.id, adjusted_quantity=12)])

        pallet = self.pallets.seal(self.pallet.id, self.actor, review)

        self.assertEqual(pallet.status, PalletStatus.SEALED)
        self.assertEqual(pallet.sealed_by, self.actor)
        self.assertIsNotNone(pallet.sealed_at)
        item = PalletItem.objects.get(pallet=pallet, sku=self.sku_a)
        self.assertEqual(item.ai_quantity, 10)
        self.assertEqual(item.adjusted_quantity, 12)
        self.assertEqual(item.departure_quantity, 12)

    def test_seal_twice(self):
        self.pallets.seal(self.pallet.id, self.actor)
        with self.assertRaises(InvalidStateException) as ctx:
            self.pallets.seal(self.pallet.id, self.actor)
        self.assertIn('already sealed', ctx.exception.message)

    def test_negative_adjustment(self):
        review = CountReview(items=[CountAdjustment(sku_id=self.sku_a.id, adjusted_quantity=-1)])
        with self.assertRaises(ValidationException):
            self.pallets.seal(self.pallet.id, self.actor, review)
        self.pallet.refresh_from_db()
        self.assertEqual(self.pallet.status, PalletStatus.OPEN)

    def test_review_required(self):
        self.pallets.enforce_manual_review(self.pallet.id, 0.3, self.actor)

        with self.assertRaises(ReviewRequiredException):
            self.pallets.seal(self.pallet.id, self.actor)
        with self.assertRaises(ReviewRequiredException):
            self.pallets.seal(self.pallet.id, self.actor, CountReview(confirmed=False))

        pallet = self.pallets.seal(self.pallet.id, self.actor, CountReview(confirmed=True))
        self.assertEqual(pallet.status, PalletStatus.SEALED)

    def test_seal_checks_sku_cap(self):
        self.pallets.add_item(self.pallet.id, self.sku_b.id, self.actor)
        strict = PalletService(config=TrackingConfig(max_skus_per_pallet=1), estimator=self.estimator)

        with self.assertRaises(ItemLimitExceededException):
            strict.seal(self.pallet.id, self.actor)

    def test_delete_only_while_open(self):
        self.pallets.seal(self.pallet.id, self.actor)
        with self.assertRaises(InvalidStateException):
            self.pallets.delete_pallet(self.pallet.id, self.actor)
        self.assertTrue(Pallet.objects.filter(pk=self.pallet.id).exists())
        self.assertFalse(QrTag.objects.get(code='PAL001').is_free)

    def test_photos_frozen_after_seal(self):
        self.pallets.seal(self.pallet.id, self.actor)
        with self.assertRaises(InvalidStateException):
            self.pallets.attach_photos(self.pallet.id, ['late.jpg'], self.actor)
        with self.assertRaises(InvalidStateException):
            self.pallets.suggest_count(self.pallet.id, self.actor)


class PalletTransitionTest(TrackingTestMixin, TestCase):

    def test_cannot_skip_states(self):
        pallet = self.create_pallet()
        with self.assertRaises(InvalidTransitionException):
            transition_pallet(pallet, PalletStatus.RECEIVED)
        with self.assertRaises(InvalidTransitionException):
            transition_pallet(pallet, PalletStatus.OPEN)

    def test_stale_instance_conflicts(self):
        pallet = self.create_pallet()
        Pallet.objects.filter(pk=pallet.pk).update(status=PalletStatus.SEALED)

        with self.assertRaises(ConflictException):
            transition_pallet(pallet, PalletStatus.SEALED)

    def test_finalize_requires_received(self):
        pallet = self.create_sealed_pallet()
        with self.assertRaises(InvalidStateException):
            self.pallets.finalize(pallet.id, self.actor)

    def test_finalize_requires_reasons(self):
        pallet = self.create_received_pallet({self.sku_a: 10})
        comparisons = self.reconciliation.compare_origin_destination(
            pallet.id, [ArrivalCount(sku_id=self.sku_a.id, quantity=4)], self.actor
        )

        with self.assertRaises(ReasonRequiredException):
            self.pallets.finalize(pallet.id, self.actor)

        self.reconciliation.annotate_comparison(comparisons[0].id, self.actor, reason="Damaged in transit")
        pallet = self.pallets.finalize(pallet.id, self.actor)

        self.assertEqual(pallet.status, PalletStatus.FINALIZED)
        self.assertEqual(pallet.finalized_by, self.actor)
        self.assertEqual(Comparison.objects.filter(pallet=pallet).count(), 1)

    def test_full_lifecycle(self):
        pallet = self.create_received_pallet({self.sku_a: 10, self.sku_b: 5})
        self.assertEqual(pallet.status, PalletStatus.RECEIVED)
        self.assertEqual(pallet.destination_location, self.destination)

        self.reconciliation.compare_origin_destination(pallet.id, [
            ArrivalCount(sku_id=self.sku_a.id, quantity=10),
            ArrivalCount(sku_id=self.sku_b.id, quantity=5),
        ], self.actor)
        pallet = self.pallets.finalize(pallet.id, self.actor)
        self.assertEqual(pallet.status, PalletStatus.FINALIZED)

        with self.assertRaises(InvalidTransitionException):
            transition_pallet(pallet, PalletStatus.OPEN)
