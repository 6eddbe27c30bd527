"""
Django admin configuration for pallet tracking.
"""

from django.contrib import admin
from .models import (
    AuditLog, Comparison, Contract, Location, Manifest, ManifestPallet, Pallet,
    PalletItem, QrTag, Receipt, Sku
)


@admin.register(Contract, Location, Sku)
class CatalogAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['code', 'name']


class PalletItemInline(admin.TabularInline):
    model = PalletItem
    extra = 0
    readonly_fields = ['id', 'ai_quantity', 'ai_confidence', 'adjusted_quantity', 'adjusted_by', 'adjusted_at']


@admin.register(Pallet)
class PalletAdmin(admin.ModelAdmin):
    list_display = ['id', 'contract', 'origin_location', 'status', 'confidence_score',
                    'requires_manual_review', 'created_at']
    list_filter = ['status', 'requires_manual_review', 'created_at']
    search_fields = ['id', 'qr_tag__code', 'contract__code']
    readonly_fields = ['id', 'status', 'created_at', 'updated_at']
    inlines = [PalletItemInline]


@admin.register(QrTag)
class QrTagAdmin(admin.ModelAdmin):
    list_display = ['code', 'status', 'current_pallet', 'bound_at', 'released_at']
    list_filter = ['status']
    search_fields = ['code']
    readonly_fields = ['id', 'status', 'current_pallet', 'bound_at', 'released_at']


class ManifestPalletInline(admin.TabularInline):
    model = ManifestPallet
    extra = 0
    readonly_fields = ['pallet', 'added_by', 'added_at']


@admin.register(Manifest)
class ManifestAdmin(admin.ModelAdmin):
    list_display = ['code', 'contract', 'origin_location', 'destination_location', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['code']
    readonly_fields = ['id', 'code', 'status', 'created_at', 'updated_at']
    inlines = [ManifestPalletInline]


@admin.register(Receipt)
class ReceiptAdmin(admin.ModelAdmin):
    list_display = ['pallet', 'destination_location', 'received_by', 'received_at']
    search_fields = ['pallet__id', 'received_by']
    readonly_fields = ['id', 'received_at']


@admin.register(Comparison)
class ComparisonAdmin(admin.ModelAdmin):
    list_display = ['pallet', 'sku', 'departure_quantity', 'arrival_quantity', 'delta', 'severity', 'created_at']
    list_filter = ['severity', 'created_at']
    search_fields = ['pallet__id', 'sku__code']
    readonly_fields = ['id', 'pallet', 'receipt', 'run_id', 'sku', 'departure_quantity',
                       'arrival_quantity', 'delta', 'severity', 'created_by', 'created_at']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['entity_type', 'entity_id', 'action', 'user_id', 'timestamp']
    list_filter = ['entity_type', 'action', 'timestamp']
    search_fields = ['entity_id', 'user_id']
    readonly_fields = ['id', 'entity_type', 'entity_id', 'action', 'user_id', 'details', 'timestamp']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
