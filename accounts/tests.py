"""
Tests for user roles and account endpoints.
"""
from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from core.permissions import is_elevated, user_role

User = get_user_model()


class RoleTestCase(TestCase):

    def test_new_users_are_active_customers(self):
        user = User.objects.create_user(username='abebe', password='pw')
        self.assertEqual(user.role, User.Role.CUSTOMER)
        self.assertEqual(user.status, User.Status.ACTIVE)
        self.assertTrue(user.is_customer)
        self.assertFalse(is_elevated(user))

    def test_superuser_acts_as_admin(self):
        root = User.objects.create_superuser(username='root', password='pw', email='root@example.com')
        self.assertEqual(user_role(root), 'ADMIN')
        self.assertTrue(is_elevated(root))
        self.assertFalse(root.is_customer)

    def test_display_name(self):
        user = User(username='abebe', first_name='Abebe', last_name='Kebede')
        self.assertEqual(user.display_name, 'Abebe Kebede')
        self.assertEqual(User(username='sara').display_name, 'sara')


class UserAPITestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.manager = User.objects.create_user(username='manager', password='pw', role=User.Role.MANAGER)
        self.seller = User.objects.create_user(username='seller', password='pw', role=User.Role.SELLER)
        self.customer = User.objects.create_user(username='abebe', email='abebe@example.com', password='pw')

    def test_me(self):
        self.client.force_authenticate(self.customer)

        response = self.client.get('/api/users/me/')

        data = response.json()['data']
        self.assertEqual(data['username'], 'abebe')
        self.assertEqual(data['total_orders'], 0)
        self.assertEqual(data['total_spent'], '0.00')

    def test_list_requires_admin_or_manager(self):
        self.client.force_authenticate(self.seller)
        response = self.client.get('/api/users/')
        self.assertEqual(response.status_code, 403)

    def test_list_filters_by_role(self):
        self.client.force_authenticate(self.manager)

        response = self.client.get('/api/users/', {'role': 'customer'})

        data = response.json()['data']
        self.assertEqual(data['pagination']['total'], 1)
        self.assertEqual(data['results'][0]['email'], 'abebe@example.com')

    def test_basic_authentication(self):
        self.client.credentials(HTTP_AUTHORIZATION='Basic YWJlYmU6cHc=')  # abebe:pw
        response = self.client.get('/api/users/me/')
        self.assertEqual(response.status_code, 200)

    def test_detail(self):
        self.client.force_authenticate(self.manager)
        response = self.client.get(f'/api/users/{self.customer.id}/')
        self.assertEqual(response.json()['data']['role'], 'CUSTOMER')
