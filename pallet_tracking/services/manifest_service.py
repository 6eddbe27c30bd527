"""
Manifest Service for pallet tracking.

Handles manifest creation, pallet attachment and the load / dispatch /
delivery transitions. Loading moves the manifest and every attached pallet
in one transaction: either all of them change state or none does.
"""

import logging
from typing import Any, Dict

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from ..exceptions import (
    ContractMismatchException, EmptyManifestException, InvalidStateException,
    LocationMismatchException, PalletAlreadyAttachedException,
    PalletNotSealedException, ReferenceNotFoundException
)
from ..models import (
    AuditAction, AuditLog, Contract, Location, Manifest, ManifestPallet,
    ManifestStatus, Pallet, PalletStatus
)
from .lookups import get_or_not_found
from .workflow import transition_manifest, transition_pallet

logger = logging.getLogger(__name__)


class ManifestService:
    """Service class for manifest operations."""

    def create_manifest(self, contract_id, origin_location_id, destination_location_id, actor_id) -> Manifest:
        """
        Create a draft manifest.

        Raises:
            ReferenceNotFoundException: If the contract or a location is missing
        """
        with transaction.atomic():
            contract = get_or_not_found(Contract.objects.all(), contract_id, 'Contract')
            origin = get_or_not_found(Location.objects.all(), origin_location_id, 'Origin location')
            destination = get_or_not_found(
                Location.objects.all(), destination_location_id, 'Destination location'
            )

            manifest = Manifest.objects.create(
                contract=contract,
                origin_location=origin,
                destination_location=destination,
                status=ManifestStatus.DRAFT,
                created_by=str(actor_id),
            )

            AuditLog.log_change(manifest, AuditAction.MANIFEST_CREATED, actor_id, {
                'code': manifest.code,
                'contract_id': str(contract.id),
                'origin_location_id': str(origin.id),
                'destination_location_id': str(destination.id),
            })

        logger.info(f"Manifest {manifest.code} created by {actor_id}")
        return manifest

    def attach_pallet(self, manifest_id, pallet_id, actor_id) -> ManifestPallet:
        """
        Attach a sealed pallet to a draft manifest.

        Raises:
            InvalidStateException: If the manifest is not a draft
            PalletNotSealedException: If the pallet is not sealed
            PalletAlreadyAttachedException: If the pallet is in any manifest
            ContractMismatchException / LocationMismatchException: If the
                pallet does not match the manifest's contract or origin
        """
        with transaction.atomic():
            manifest = self._get_manifest_for_update(manifest_id)
            self._ensure_draft(manifest, "add pallets to")

            pallet = get_or_not_found(Pallet.objects.select_for_update(), pallet_id, 'Pallet')
            if pallet.status != PalletStatus.SEALED:
                raise PalletNotSealedException(pallet.id, pallet.status)

            existing = ManifestPallet.objects.select_related('manifest').filter(pallet=pallet).first()
            if existing is not None:
                raise PalletAlreadyAttachedException(pallet.id, existing.manifest.code)

            if pallet.contract_id != manifest.contract_id:
                raise ContractMismatchException(str(pallet.contract_id), str(manifest.contract_id))

            if pallet.origin_location_id != manifest.origin_location_id:
                raise LocationMismatchException(
                    str(pallet.origin_location_id), str(manifest.origin_location_id)
                )

            link = ManifestPallet.objects.create(
                manifest=manifest,
                pallet=pallet,
                added_by=str(actor_id),
                added_at=timezone.now(),
            )

            AuditLog.log_change(manifest, AuditAction.PALLET_ADDED_TO_MANIFEST, actor_id, {
                'pallet_id': str(pallet.id),
                'qr_code': pallet.qr_code,
            })

        logger.info(f"Pallet {pallet.id} added to manifest {manifest.code}")
        return link

    def detach_pallet(self, manifest_id, pallet_id, actor_id) -> None:
        """
        Remove a pallet from a draft manifest.

        Raises:
            InvalidStateException: If the manifest is not a draft
            ReferenceNotFoundException: If the pallet is not on this manifest
        """
        with transaction.atomic():
            manifest = self._get_manifest_for_update(manifest_id)
            self._ensure_draft(manifest, "remove pallets from")

            pallet = get_or_not_found(Pallet.objects.all(), pallet_id, 'Pallet')
            link = manifest.manifest_pallets.filter(pallet=pallet).first()
            if link is None:
                raise ReferenceNotFoundException('ManifestPallet', pallet.id)

            link.delete()

            AuditLog.log_change(manifest, AuditAction.PALLET_REMOVED_FROM_MANIFEST, actor_id, {
                'pallet_id': str(pallet.id),
            })

        logger.info(f"Pallet {pallet.id} removed from manifest {manifest.code}")

    def mark_loaded(self, manifest_id, actor_id) -> Manifest:
        """
        Load a draft manifest and move every attached pallet to in transit.

        Raises:
            InvalidStateException: If the manifest is not a draft
            EmptyManifestException: If no pallet is attached
        """
        with transaction.atomic():
            manifest = self._get_manifest_for_update(manifest_id)
            if manifest.status != ManifestStatus.DRAFT:
                raise InvalidStateException(
                    f"Manifest {manifest.code} is already loaded",
                    {"manifest_code": manifest.code, "current_status": manifest.status}
                )

            pallet_ids = list(manifest.manifest_pallets.values_list('pallet_id', flat=True))
            if not pallet_ids:
                raise EmptyManifestException(manifest.code)

            pallets = list(Pallet.objects.select_for_update().filter(pk__in=pallet_ids).order_by('pk'))

            old_status = manifest.status
            transition_manifest(
                manifest, ManifestStatus.LOADED,
                loaded_by=str(actor_id), loaded_at=timezone.now()
            )
            for pallet in pallets:
                transition_pallet(pallet, PalletStatus.IN_TRANSIT)

            AuditLog.log_status_change(
                manifest, AuditAction.MANIFEST_LOADED, old_status, manifest.status, actor_id,
                {'pallet_count': len(pallets)}
            )

        logger.info(f"Manifest {manifest.code} loaded with {len(pallets)} pallets")
        return manifest

    def mark_in_transit(self, manifest_id, actor_id) -> Manifest:
        """Dispatch a loaded manifest."""
        with transaction.atomic():
            manifest = self._get_manifest_for_update(manifest_id)
            old_status = manifest.status
            transition_manifest(
                manifest, ManifestStatus.IN_TRANSIT,
                dispatched_by=str(actor_id), dispatched_at=timezone.now()
            )
            AuditLog.log_status_change(
                manifest, AuditAction.MANIFEST_DISPATCHED, old_status, manifest.status, actor_id
            )

        logger.info(f"Manifest {manifest.code} dispatched")
        return manifest

    def mark_delivered(self, manifest_id, actor_id) -> Manifest:
        """Mark an in-transit manifest as delivered."""
        with transaction.atomic():
            manifest = self._get_manifest_for_update(manifest_id)
            old_status = manifest.status
            transition_manifest(
                manifest, ManifestStatus.DELIVERED,
                delivered_by=str(actor_id), delivered_at=timezone.now()
            )
            AuditLog.log_status_change(
                manifest, AuditAction.MANIFEST_DELIVERED, old_status, manifest.status, actor_id
            )

        logger.info(f"Manifest {manifest.code} delivered")
        return manifest

    def generate_manifest_document(self, manifest_id) -> Dict[str, Any]:
        """
        Build the manifest document with pallet and item details.

        Rendering to PDF is left to an external exporter; this returns the
        data it needs.
        """
        manifest = get_or_not_found(
            Manifest.objects.select_related('contract', 'origin_location', 'destination_location'),
            manifest_id, 'Manifest'
        )

        document = {
            'code': manifest.code,
            'status': manifest.status,
            'contract': manifest.contract.code,
            'origin': manifest.origin_location.code,
            'destination': manifest.destination_location.code,
            'loaded_by': manifest.loaded_by,
            'loaded_at': manifest.loaded_at,
            'pallets': []
        }

        links = manifest.manifest_pallets.select_related('pallet').prefetch_related('pallet__items__sku')
        for link in links:
            pallet = link.pallet
            document['pallets'].append({
                'pallet_id': str(pallet.id),
                'qr_code': pallet.qr_code,
                'status': pallet.status,
                'sealed_at': pallet.sealed_at,
                'items': [
                    {
                        'sku': item.sku.code,
                        'sku_name': item.sku.name,
                        'quantity': item.departure_quantity,
                    }
                    for item in pallet.items.all()
                ],
            })

        document['pallet_count'] = len(document['pallets'])
        return document

    def get_manifest_stats(self) -> Dict[str, Any]:
        """Manifest counts per status."""
        by_status = {status: 0 for status in ManifestStatus.values}
        for row in Manifest.objects.order_by().values('status').annotate(count=Count('id')):
            by_status[row['status']] = row['count']

        return {
            'total': sum(by_status.values()),
            'by_status': by_status,
            'pallets_attached': ManifestPallet.objects.count(),
        }

    @staticmethod
    def _get_manifest_for_update(manifest_id) -> Manifest:
        return get_or_not_found(Manifest.objects.select_for_update(), manifest_id, 'Manifest')

    @staticmethod
    def _ensure_draft(manifest: Manifest, operation: str) -> None:
        if manifest.status != ManifestStatus.DRAFT:
            raise InvalidStateException(
                f"Cannot {operation} manifest {manifest.code} in status {manifest.status}",
                {"manifest_code": manifest.code, "current_status": manifest.status}
            )
