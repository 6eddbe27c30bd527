from django.apps import AppConfig


class PalletTrackingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'pallet_tracking'
    verbose_name = 'Pallet Tracking'
