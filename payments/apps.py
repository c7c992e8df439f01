from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'payments'

    # Built once from settings.PAYMENT_PROVIDERS when the app registry is ready
    registry = None

    def ready(self):
        from .providers import ProviderRegistry

        self.registry = ProviderRegistry.from_settings()
