"""
Settings Service Layer - Typed reads and bulk upserts of Setting rows.
"""
import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.conf import settings as django_settings
from django.db import transaction
from rest_framework.exceptions import ValidationError

from core.exceptions import NotFound
from .models import Setting

logger = logging.getLogger(__name__)

UI_KEYS = ('ui_theme', 'ui_modules', 'ui_home_layout', 'ui_category_layout')

UI_DEFAULTS = {
    'ui_theme': {'primary': '#03A688', 'accent': '#F2EDD5'},
    'ui_modules': [],
    'ui_home_layout': {},
    'ui_category_layout': 'chips',
}

# numeric settings read by order pricing
PRICING_KEYS = ('tax_rate', 'free_shipping_threshold', 'default_shipping_cost')


@dataclass(frozen=True)
class PricingConfig:
    """Inputs to the order total computation."""
    tax_rate: Decimal
    free_shipping_threshold: Decimal
    default_shipping_cost: Decimal


def category_for_key(key: str) -> str:
    if key == 'payment_methods':
        return 'payment'
    if key in UI_KEYS or key.startswith('ui_'):
        return 'ui'
    return 'general'


def get_value(key: str, default: Any = None) -> Any:
    setting = Setting.objects.filter(key=key).first()
    if setting is None:
        return default
    return setting.typed_value


def get_setting(key: str) -> Setting:
    try:
        return Setting.objects.get(key=key)
    except Setting.DoesNotExist:
        raise NotFound("Setting not found")


def parse_amount(raw) -> Optional[Decimal]:
    """A finite, non-negative Decimal parsed from `raw`, or None."""
    if isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


def get_decimal(key: str, default: Decimal) -> Decimal:
    raw = Setting.objects.filter(key=key).values_list('value', flat=True).first()
    if raw is None:
        return default
    value = parse_amount(raw)
    if value is None:
        logger.warning(f"Setting {key!r} is not a non-negative number ({raw!r}); using {default}")
        return default
    return value


def get_pricing_config() -> PricingConfig:
    return PricingConfig(
        tax_rate=get_decimal('tax_rate', django_settings.ORDER_TAX_RATE),
        free_shipping_threshold=get_decimal(
            'free_shipping_threshold', django_settings.ORDER_FREE_SHIPPING_THRESHOLD
        ),
        default_shipping_cost=get_decimal(
            'default_shipping_cost', django_settings.ORDER_DEFAULT_SHIPPING_COST
        ),
    )


def as_dict(category: Optional[str] = None) -> Dict[str, Any]:
    """All settings (optionally one category) as a decoded key/value mapping."""
    queryset = Setting.objects.all()
    if category:
        queryset = queryset.filter(category=category)
    return {setting.key: setting.typed_value for setting in queryset}


def ui_settings() -> Dict[str, Any]:
    values = as_dict(category='ui')
    return {key: values.get(key, default) for key, default in UI_DEFAULTS.items()}


def encode_value(value: Any):
    """Return (stored string, type) for a JSON-decoded request value."""
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return ('true' if value else 'false'), Setting.Type.BOOLEAN
    if isinstance(value, (int, float)):
        return str(value), Setting.Type.NUMBER
    if isinstance(value, (dict, list)):
        return json.dumps(value), Setting.Type.JSON
    return str(value), Setting.Type.STRING


def update_settings(values: Dict[str, Any]) -> None:
    """
    Upsert settings in one transaction.

    Raises:
        ValidationError: If a pricing key is not a finite, non-negative number;
            nothing is written in that case
    """
    errors = {
        key: ['Must be a non-negative number']
        for key in PRICING_KEYS
        if key in values and parse_amount(values[key]) is None
    }
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        for key, value in values.items():
            stored, value_type = encode_value(value)
            Setting.objects.update_or_create(
                key=key,
                defaults={'value': stored, 'type': value_type},
                create_defaults={
                    'value': stored,
                    'type': value_type,
                    'category': category_for_key(key),
                },
            )
    logger.info(f"Updated settings: {', '.join(sorted(values))}")
