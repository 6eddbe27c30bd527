"""
Pallet Tracking Models
"""

from .catalog import Contract, Location, Sku
from .qr_tag import QrTag, QrTagStatus
from .manifest import Manifest, ManifestStatus, ManifestPallet
from .pallet import Pallet, PalletStatus, PalletItem
from .receiving import Receipt, Comparison, ComparisonSeverity
from .audit import AuditLog, AuditAction

__all__ = [
    # Reference data
    'Contract', 'Location', 'Sku',

    # Identifier pool
    'QrTag', 'QrTagStatus',

    # Pallet models
    'Pallet', 'PalletStatus', 'PalletItem',

    # Manifest models
    'Manifest', 'ManifestStatus', 'ManifestPallet',

    # Receiving and reconciliation
    'Receipt', 'Comparison', 'ComparisonSeverity',

    # Audit
    'AuditLog', 'AuditAction',
]
