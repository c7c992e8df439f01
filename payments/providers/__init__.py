"""
Payment provider contract and the registry that maps payment methods to
provider instances.

A provider initiates a payment with the gateway and later verifies it, either
from a webhook callback or by polling:

    initiate -> store transaction reference -> verify
"""
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

from django.conf import settings
from django.utils.module_loading import import_string


@dataclass(frozen=True)
class InitiateResult:
    transaction_id: str
    status: str  # PENDING, PAID or FAILED
    redirect_url: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VerifyResult:
    success: bool
    status: str


class PaymentProvider(Protocol):

    def initiate(
        self,
        order_id: int,
        amount: Decimal,
        return_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> InitiateResult:
        ...

    def verify(self, transaction_id: str, raw_callback: Optional[Dict] = None) -> VerifyResult:
        ...


class ProviderRegistry:
    """Payment method name -> provider instance."""

    def __init__(self, providers: Optional[Dict[str, PaymentProvider]] = None):
        self._providers = dict(providers or {})

    @classmethod
    def from_settings(cls, config: Optional[Dict] = None) -> 'ProviderRegistry':
        """
        Build providers from PAYMENT_PROVIDERS:

            {'CHAPA': {'BACKEND': 'payments.providers.mock.MockPaymentProvider',
                       'OPTIONS': {'failure_rate': 0.05}}}
        """
        if config is None:
            config = getattr(settings, 'PAYMENT_PROVIDERS', {})
        providers = {}
        for method, entry in config.items():
            backend = import_string(entry['BACKEND'])
            providers[method] = backend(**entry.get('OPTIONS', {}))
        return cls(providers)

    def get(self, method: str) -> Optional[PaymentProvider]:
        return self._providers.get(method)

    def register(self, method: str, provider: PaymentProvider) -> None:
        self._providers[method] = provider

    def methods(self):
        return sorted(self._providers)

    def __contains__(self, method):
        return method in self._providers
