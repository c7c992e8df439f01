"""
Tests for the typed settings store and pricing configuration.
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from core.exceptions import NotFound
from siteconfig.models import Setting
from siteconfig.services import (
    UI_DEFAULTS,
    category_for_key,
    encode_value,
    get_pricing_config,
    get_setting,
    update_settings,
)

User = get_user_model()


class SettingValueTestCase(TestCase):

    def test_typed_values(self):
        self.assertEqual(Setting(value='12', type=Setting.Type.NUMBER).typed_value, 12)
        self.assertEqual(Setting(value='0.15', type=Setting.Type.NUMBER).typed_value, 0.15)
        self.assertIs(Setting(value='true', type=Setting.Type.BOOLEAN).typed_value, True)
        self.assertEqual(Setting(value='[1, 2]', type=Setting.Type.JSON).typed_value, [1, 2])

    def test_undecodable_value_returned_raw(self):
        self.assertEqual(Setting(value='abc', type=Setting.Type.NUMBER).typed_value, 'abc')
        self.assertEqual(Setting(value='{bad', type=Setting.Type.JSON).typed_value, '{bad')

    def test_encode_value_infers_type(self):
        self.assertEqual(encode_value(True), ('true', Setting.Type.BOOLEAN))
        self.assertEqual(encode_value(25), ('25', Setting.Type.NUMBER))
        self.assertEqual(encode_value({'a': 1}), ('{"a": 1}', Setting.Type.JSON))
        self.assertEqual(encode_value('dark'), ('dark', Setting.Type.STRING))

    def test_category_for_key(self):
        self.assertEqual(category_for_key('payment_methods'), 'payment')
        self.assertEqual(category_for_key('ui_theme'), 'ui')
        self.assertEqual(category_for_key('tax_rate'), 'general')


class PricingConfigTestCase(TestCase):

    @override_settings(
        ORDER_TAX_RATE=Decimal('0.15'),
        ORDER_FREE_SHIPPING_THRESHOLD=Decimal('500'),
        ORDER_DEFAULT_SHIPPING_COST=Decimal('25'),
    )
    def test_defaults_come_from_django_settings(self):
        pricing = get_pricing_config()
        self.assertEqual(pricing.tax_rate, Decimal('0.15'))
        self.assertEqual(pricing.free_shipping_threshold, Decimal('500'))
        self.assertEqual(pricing.default_shipping_cost, Decimal('25'))

    def test_stored_settings_override(self):
        update_settings({'tax_rate': 0.1, 'free_shipping_threshold': 1000})

        pricing = get_pricing_config()
        self.assertEqual(pricing.tax_rate, Decimal('0.1'))
        self.assertEqual(pricing.free_shipping_threshold, Decimal('1000'))

    def test_non_numeric_setting_falls_back(self):
        Setting.objects.create(key='tax_rate', value='lots', type=Setting.Type.STRING)
        self.assertEqual(get_pricing_config().tax_rate, Decimal('0.15'))

    @override_settings(
        ORDER_TAX_RATE=Decimal('0.15'),
        ORDER_FREE_SHIPPING_THRESHOLD=Decimal('500'),
        ORDER_DEFAULT_SHIPPING_COST=Decimal('25'),
    )
    def test_non_finite_or_negative_setting_falls_back(self):
        Setting.objects.create(key='tax_rate', value='NaN', type=Setting.Type.STRING)
        Setting.objects.create(key='default_shipping_cost', value='-2', type=Setting.Type.NUMBER)
        Setting.objects.create(key='free_shipping_threshold', value='Infinity', type=Setting.Type.STRING)

        pricing = get_pricing_config()

        self.assertEqual(pricing.tax_rate, Decimal('0.15'))
        self.assertEqual(pricing.default_shipping_cost, Decimal('25'))
        self.assertEqual(pricing.free_shipping_threshold, Decimal('500'))

    def test_zero_is_a_valid_amount(self):
        update_settings({'default_shipping_cost': 0})
        self.assertEqual(get_pricing_config().default_shipping_cost, Decimal('0'))


class UpdateSettingsTestCase(TestCase):

    def test_upsert_keeps_category_of_existing_key(self):
        Setting.objects.create(key='store_name', value='Old', category='branding')

        update_settings({'store_name': 'New', 'ui_theme': {'primary': '#000'}})

        store_name = get_setting('store_name')
        self.assertEqual(store_name.value, 'New')
        self.assertEqual(store_name.category, 'branding')
        self.assertEqual(get_setting('ui_theme').category, 'ui')

    def test_missing_setting(self):
        with self.assertRaises(NotFound):
            get_setting('nope')

    def test_invalid_pricing_values_rejected(self):
        for value in ('NaN', 'Infinity', -2, 'lots', True):
            with self.assertRaises(ValidationError):
                update_settings({'store_name': 'Shop', 'tax_rate': value})

        self.assertFalse(Setting.objects.exists())


class SettingsAPITestCase(TestCase):
    """Endpoint tests for /api/settings/."""

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username='admin', password='pw', role=User.Role.ADMIN)
        self.customer = User.objects.create_user(username='abebe', password='pw')

    def test_ui_settings_are_public_with_defaults(self):
        Setting.objects.create(key='ui_category_layout', value='grid', category='ui')

        response = self.client.get('/api/settings/ui/')

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['ui_category_layout'], 'grid')
        self.assertEqual(data['ui_theme'], UI_DEFAULTS['ui_theme'])

    def test_bulk_update_requires_admin(self):
        self.client.force_authenticate(self.customer)
        response = self.client.put('/api/settings/', {'tax_rate': 0.2}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_bulk_update_and_read_back(self):
        self.client.force_authenticate(self.admin)

        response = self.client.put('/api/settings/', {'tax_rate': 0.2, 'maintenance': False}, format='json')
        self.assertEqual(response.status_code, 200)

        listing = self.client.get('/api/settings/')
        self.assertEqual(listing.json()['data'], {'maintenance': False, 'tax_rate': 0.2})

        detail = self.client.get('/api/settings/tax_rate/')
        self.assertEqual(detail.json()['data'], {
            'key': 'tax_rate', 'value': 0.2, 'type': 'number', 'category': 'general',
        })

    def test_negative_tax_rate_rejected(self):
        self.client.force_authenticate(self.admin)

        response = self.client.put('/api/settings/', {'tax_rate': -2}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['errors'][0]['field'], 'tax_rate')
        self.assertFalse(Setting.objects.filter(key='tax_rate').exists())

    def test_empty_update_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.client.put('/api/settings/', {}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_unknown_key(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/settings/nope/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['message'], 'Setting not found')
