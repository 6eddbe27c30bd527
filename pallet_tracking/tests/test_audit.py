"""
Tests for the audit trail.
"""

from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase, override_settings

from ..conf import TrackingConfig, get_tracking_config
from ..exceptions import BusinessException, ImmutableRecordException
from ..models import AuditAction, AuditLog
from ..services import ArrivalCount, CountReview
from .helpers import TrackingTestMixin


class AuditTrailTest(TrackingTestMixin, TestCase):
    """Every successful mutation writes exactly one entry; rejected ones write none."""

    def assertAudited(self, action, call, *args, **kwargs):
        before = AuditLog.objects.count()
        result = call(*args, **kwargs)
        self.assertEqual(AuditLog.objects.count(), before + 1)
        self.assertEqual(AuditLog.objects.order_by('-timestamp').first().action, action)
        return result

    def assertNotAudited(self, call, *args, **kwargs):
        before = AuditLog.objects.count()
        with self.assertRaises(BusinessException):
            call(*args, **kwargs)
        self.assertEqual(AuditLog.objects.count(), before)

    def test_one_entry_per_operation(self):
        pallet = self.assertAudited(
            AuditAction.PALLET_CREATED, self.pallets.create_pallet, self.contract.id, self.origin.id, self.actor
        )
        self.assertAudited(AuditAction.ITEM_ADDED, self.pallets.add_item, pallet.id, self.sku_a.id, self.actor)
        self.assertAudited(AuditAction.ITEM_ADDED, self.pallets.add_item, pallet.id, self.sku_b.id, self.actor)
        self.assertAudited(AuditAction.ITEM_REMOVED, self.pallets.remove_item, pallet.id, self.sku_b.id, self.actor)
        self.assertAudited(AuditAction.PHOTOS_CAPTURED, self.pallets.attach_photos, pallet.id, ['p.jpg'], self.actor)
        self.assertAudited(AuditAction.COUNT_SUGGESTED, self.pallets.suggest_count, pallet.id, self.actor)
        self.assertAudited(
            AuditAction.MANUAL_REVIEW_EVALUATED, self.pallets.enforce_manual_review, pallet.id, 0.5, self.actor
        )
        self.assertAudited(
            AuditAction.PALLET_SEALED, self.pallets.seal, pallet.id, self.actor, CountReview(confirmed=True)
        )

        manifest = self.assertAudited(
            AuditAction.MANIFEST_CREATED, self.manifests.create_manifest,
            self.contract.id, self.origin.id, self.destination.id, self.actor
        )
        self.assertAudited(
            AuditAction.PALLET_ADDED_TO_MANIFEST, self.manifests.attach_pallet, manifest.id, pallet.id, self.actor
        )
        self.assertAudited(
            AuditAction.PALLET_REMOVED_FROM_MANIFEST, self.manifests.detach_pallet, manifest.id, pallet.id, self.actor
        )
        self.assertAudited(
            AuditAction.PALLET_ADDED_TO_MANIFEST, self.manifests.attach_pallet, manifest.id, pallet.id, self.actor
        )
        self.assertAudited(AuditAction.MANIFEST_LOADED, self.manifests.mark_loaded, manifest.id, self.actor)
        self.assertAudited(AuditAction.MANIFEST_DISPATCHED, self.manifests.mark_in_transit, manifest.id, self.actor)
        self.assertAudited(AuditAction.MANIFEST_DELIVERED, self.manifests.mark_delivered, manifest.id, self.actor)

        self.assertAudited(
            AuditAction.PALLET_RECEIVED, self.receiving.receive_pallet, pallet.id, self.destination.id, self.actor
        )
        comparisons = self.assertAudited(
            AuditAction.COMPARISON_CREATED, self.reconciliation.compare_origin_destination,
            pallet.id, [ArrivalCount(sku_id=self.sku_a.id, quantity=0)], self.actor
        )
        self.assertAudited(
            AuditAction.COMPARISON_ANNOTATED, self.reconciliation.annotate_comparison,
            comparisons[0].id, self.actor, reason='Lost'
        )
        self.assertAudited(AuditAction.PALLET_FINALIZED, self.pallets.finalize, pallet.id, self.actor)

    def test_tag_operations(self):
        self.assertAudited(AuditAction.QR_TAGS_PROVISIONED, self.qr_tags.provision, 'NEW', 1, 3, self.admin)

        pallet = self.create_pallet()
        self.assertAudited(AuditAction.QR_TAG_RELEASED, self.qr_tags.release, pallet.qr_code, self.actor)
        self.assertAudited(AuditAction.QR_TAG_BOUND, self.qr_tags.bind, 'NEW001', pallet.id, self.actor)

        entry = self.assertAudited(AuditAction.PALLET_DELETED, self.pallets.delete_pallet, pallet.id, self.actor)
        self.assertIsNone(entry)
        deleted = AuditLog.objects.for_entity('Pallet', pallet.id).by_action(AuditAction.PALLET_DELETED).get()
        self.assertEqual(deleted.details['released_qr_code'], 'NEW001')

    def test_rejected_operations_leave_no_entry(self):
        pallet = self.create_sealed_pallet()

        self.assertNotAudited(self.pallets.seal, pallet.id, self.actor)
        self.assertNotAudited(self.pallets.add_item, pallet.id, self.sku_b.id, self.actor)
        self.assertNotAudited(self.pallets.delete_pallet, pallet.id, self.actor)
        self.assertNotAudited(self.pallets.finalize, pallet.id, self.actor)
        self.assertNotAudited(self.qr_tags.provision, 'PAL', 1, 1, self.admin)
        self.assertNotAudited(self.qr_tags.release, pallet.qr_code, self.actor)
        self.assertNotAudited(self.manifests.mark_loaded, self.create_manifest().id, self.actor)
        self.assertNotAudited(self.receiving.receive_pallet, pallet.id, self.destination.id, self.actor)

    def test_entry_contents(self):
        pallet = self.create_pallet()
        self.pallets.add_item(pallet.id, self.sku_a.id, self.actor)
        self.pallets.seal(pallet.id, 'sealer-7')

        entry = AuditLog.objects.for_entity('Pallet', pallet.id).by_action(AuditAction.PALLET_SEALED).get()
        self.assertEqual(entry.entity_type, 'Pallet')
        self.assertEqual(entry.entity_id, str(pallet.id))
        self.assertEqual(entry.user_id, 'sealer-7')
        self.assertEqual(entry.details['item_count'], 1)
        self.assertFalse(entry.details['manual_review_required'])

        created = AuditLog.objects.for_entity('Pallet', pallet.id).by_action(AuditAction.PALLET_CREATED).get()
        self.assertEqual(created.details['qr_code'], 'PAL001')

        history = list(AuditLog.objects.for_entity('Pallet', pallet.id).order_by('timestamp'))
        self.assertEqual(
            [e.action for e in history],
            [AuditAction.PALLET_CREATED, AuditAction.ITEM_ADDED, AuditAction.PALLET_SEALED]
        )
        self.assertEqual(AuditLog.objects.by_user('sealer-7').count(), 1)

    def test_entries_are_immutable(self):
        entry = AuditLog.record(AuditAction.PALLET_CREATED, 'Pallet', 'x', self.actor, {'a': 1})
        entry.details = {'a': 2}

        with self.assertRaises(ImmutableRecordException):
            entry.save()
        with self.assertRaises(ImmutableRecordException):
            entry.delete()
        with self.assertRaises(ImmutableRecordException):
            AuditLog.objects.filter(pk=entry.pk).update(user_id='someone-else')
        with self.assertRaises(ImmutableRecordException):
            AuditLog.objects.all().delete()

        entry.refresh_from_db()
        self.assertEqual(entry.details, {'a': 1})


class TrackingConfigTest(TestCase):

    @override_settings(PALLET_TRACKING={'CONFIDENCE_THRESHOLD': '0.8', 'DELTA_ALERT': '3', 'DELTA_CRITICAL': '9'})
    def test_read_from_settings(self):
        config = get_tracking_config()
        self.assertEqual(config.confidence_threshold, 0.8)
        self.assertEqual(config.delta_alert, 3)
        self.assertEqual(config.delta_critical, 9)
        self.assertEqual(config.max_skus_per_pallet, 2)

    def test_overrides(self):
        config = get_tracking_config({'MAX_SKUS_PER_PALLET': 4})
        self.assertEqual(config.max_skus_per_pallet, 4)

    def test_invalid_values(self):
        with self.assertRaises(ImproperlyConfigured):
            TrackingConfig(confidence_threshold=1.5)
        with self.assertRaises(ImproperlyConfigured):
            TrackingConfig(delta_alert=5, delta_critical=5)
        with self.assertRaises(ImproperlyConfigured):
            TrackingConfig(max_skus_per_pallet=0)
