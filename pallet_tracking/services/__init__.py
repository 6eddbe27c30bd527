"""
Pallet Tracking Services
"""

from .workflow import (
    PalletWorkflow, ManifestWorkflow, transition_pallet, transition_manifest
)
from .qr_tag_service import QrTagService
from .pallet_service import PalletService, CountAdjustment, CountReview
from .manifest_service import ManifestService
from .receiving_service import ReceivingService
from .reconciliation_service import ReconciliationService, ArrivalCount, classify_delta
from .reporting_service import ReportingService

__all__ = [
    # Workflow
    'PalletWorkflow', 'ManifestWorkflow', 'transition_pallet', 'transition_manifest',

    # Services
    'QrTagService', 'PalletService', 'ManifestService', 'ReceivingService',
    'ReconciliationService', 'ReportingService',

    # Inputs
    'CountAdjustment', 'CountReview', 'ArrivalCount', 'classify_delta',
]
