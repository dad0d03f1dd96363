# POS/tests.py

from io import StringIO

from django.core.management import call_command
from django.utils import timezone
from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from decimal import Decimal

from . import services
from .models import Category, MenuItem, Table, Order, RestaurantSettings


class POSAPITestCase(APITestCase):
    def setUp(self):
        self.client = APIClient()
        settings_record = RestaurantSettings.load()
        settings_record.tax_rate = Decimal('5.25')
        settings_record.save()

        self.category = Category.objects.create(name='Main Course', color='bg-purple-500')
        self.biryani = MenuItem.objects.create(
            title='Chicken Biryani',
            category=self.category,
            price=Decimal('450'),
            description='Rice dish with chicken and spices',
        )
        self.lime = MenuItem.objects.create(
            title='Fresh Lime',
            category=self.category,
            price=Decimal('80'),
        )
        self.table = Table.objects.create(number=4, capacity=4)

    def order_payload(self, **kwargs):
        data = {
            'customer_name': 'Ali Ahmed',
            'type': 'dine-in',
            'table_number': 4,
            'items': [
                {'menu_item_id': self.biryani.id, 'quantity': 2},
                {'menu_item_id': self.lime.id, 'quantity': 1, 'special_instructions': 'No ice'},
            ],
        }
        data.update(kwargs)
        return data

    def create_order(self):
        return services.create_order(
            customer_name='Ali Ahmed',
            order_type='dine-in',
            table_number=4,
            items=[
                {'menu_item_id': self.biryani.id, 'quantity': 2},
                {'menu_item_id': self.lime.id, 'quantity': 1},
            ],
        )


class CategoryTests(POSAPITestCase):
    def test_list_hides_inactive_categories(self):
        Category.objects.create(name='Seasonal', is_active=False)
        response = self.client.get('/api/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['item_count'], 2)

    def test_create_category(self):
        data = {'name': 'Desserts', 'color': 'bg-pink-500', 'description': 'Sweet treats'}
        response = self.client.post('/api/categories/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Category.objects.count(), 2)

    def test_category_with_items_cannot_be_deleted(self):
        response = self.client.delete(f'/api/categories/{self.category.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Category.objects.filter(pk=self.category.id).exists())


class MenuItemTests(POSAPITestCase):
    def test_list_menu_items(self):
        response = self.client.get('/api/menu/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['results'][0]['category_name'], 'Main Course')

    def test_create_menu_item(self):
        data = {
            'title': 'Mutton Karahi',
            'category': self.category.id,
            'price': '850.00',
            'description': 'Wok-cooked mutton curry',
            'spicy_level': 'hot',
            'ingredients': ['Mutton', 'Tomatoes'],
            'size_prices': {'half': 450, 'full': '850'},
        }
        response = self.client.post('/api/menu/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item = MenuItem.objects.get(title='Mutton Karahi')
        self.assertEqual(item.price_for('half'), Decimal('450'))

    def test_invalid_size_price(self):
        data = {
            'title': 'Mutton Karahi',
            'category': self.category.id,
            'price': '850.00',
            'size_prices': {'half': 'cheap'},
        }
        response = self.client.post('/api/menu/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_available_items(self):
        self.lime.is_available = False
        self.lime.save()
        response = self.client.get('/api/menu/available/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_search_menu(self):
        response = self.client.get('/api/menu/', {'q': 'chicken'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['title'], 'Chicken Biryani')

    def test_non_numeric_category_filter(self):
        response = self.client.get('/api/menu/', {'category': 'mains'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TableTests(POSAPITestCase):
    def test_list_tables(self):
        response = self.client.get('/api/tables/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'][0]['status'], 'available')

    def test_create_table_starts_available(self):
        data = {'number': 7, 'capacity': 2, 'location': 'terrace', 'status': 'occupied'}
        response = self.client.post('/api/tables/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Table.objects.get(number=7).status, 'available')

    def test_available_tables(self):
        Table.objects.create(number=2, capacity=2, status='reserved')
        response = self.client.get('/api/tables/available/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/tables/available/', {'min_capacity': 6})
        self.assertEqual(len(response.data), 0)

        response = self.client.get('/api/tables/available/', {'min_capacity': 'four'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_by_number(self):
        response = self.client.get('/api/tables/by_number/', {'number': 4})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.table.id)

        response = self.client.get('/api/tables/by_number/', {'number': 40})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_assign_and_free_table(self):
        response = self.client.post(
            f'/api/tables/{self.table.id}/assign/',
            {'status': 'occupied', 'customer_name': 'Zara Ali'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['customer_initials'], 'ZA')

        response = self.client.post(f'/api/tables/{self.table.id}/free/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')
        self.assertEqual(self.table.customer_name, '')

    def test_free_unknown_table(self):
        response = self.client.post('/api/tables/9999/free/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')


class OrderTests(POSAPITestCase):
    def test_create_order(self):
        response = self.client.post('/api/orders/', self.order_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Order.objects.count(), 1)

        self.assertEqual(Decimal(response.data['subtotal']), Decimal('980'))
        self.assertEqual(Decimal(response.data['tax']), Decimal('51.45'))
        self.assertEqual(Decimal(response.data['total']), Decimal('1031.45'))
        self.assertEqual(response.data['type'], 'dine-in')
        self.assertEqual(len(response.data['items']), 2)
        self.assertTrue(response.data['order_number'].startswith('ORD'))

        # Check table is marked occupied
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')
        self.assertEqual(self.table.current_order_id, response.data['id'])

    def test_create_order_for_occupied_table(self):
        self.create_order()
        response = self.client.post('/api/orders/', self.order_payload(customer_name='Bilal'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'validation_error')
        self.assertEqual(Order.objects.count(), 1)

    def test_create_order_with_unknown_menu_item(self):
        payload = self.order_payload(items=[{'menu_item_id': 9999, 'quantity': 1}])
        response = self.client.post('/api/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_order_requires_items(self):
        response = self.client.post('/api/orders/', self.order_payload(items=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_update_order_status(self):
        order = self.create_order()
        response = self.client.patch(
            f'/api/orders/{order.id}/update_status/', {'status': 'preparing'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertEqual(order.status, 'preparing')

    def test_skipping_status_is_rejected(self):
        order = self.create_order()
        response = self.client.patch(
            f'/api/orders/{order.id}/update_status/', {'status': 'completed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_apply_discount(self):
        order = self.create_order()
        response = self.client.post(
            f'/api/orders/{order.id}/apply_discount/',
            {'discount_type': 'percentage', 'discount_value': '10'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['discount']), Decimal('98'))
        self.assertEqual(Decimal(response.data['total']), Decimal('928.305'))

    def test_add_item_to_order(self):
        order = self.create_order()
        data = {'menu_item_id': self.lime.id, 'quantity': 2}
        response = self.client.post(f'/api/orders/{order.id}/add_item/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(order.items.count(), 3)
        order.refresh_from_db()
        self.assertEqual(order.subtotal, Decimal('1140'))

    def test_add_item_rejects_fractional_quantity(self):
        order = self.create_order()
        data = {'menu_item_id': self.lime.id, 'quantity': 1.5}
        response = self.client.post(f'/api/orders/{order.id}/add_item/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(order.items.count(), 2)

        response = self.client.post(f'/api/orders/{order.id}/add_item/', {'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_item_from_order(self):
        order = self.create_order()
        item = order.items.get(menu_item=self.lime)
        response = self.client.delete(
            f'/api/orders/{order.id}/remove_item/', {'item_id': item.id}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('900'))

    def test_delete_order_frees_table(self):
        order = self.create_order()
        response = self.client.delete(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Order.objects.count(), 0)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')

    def test_malformed_order_filters(self):
        self.create_order()
        response = self.client.get('/api/orders/', {'table': 'four'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/orders/', {'date': '19-10-2026'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/orders/', {'table': 4, 'date': str(timezone.localdate())})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)

    def test_filter_and_search_orders(self):
        order = self.create_order()
        services.create_order(
            customer_name='Sara Khan',
            order_type='takeaway',
            items=[{'menu_item_id': self.lime.id, 'quantity': 1}],
        )

        response = self.client.get('/api/orders/', {'type': 'takeaway'})
        self.assertEqual(len(response.data['results']), 1)

        response = self.client.get('/api/orders/', {'q': 'ali'})
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['order_number'], order.order_number)

        response = self.client.get('/api/orders/', {'q': '4'})
        self.assertGreaterEqual(len(response.data['results']), 1)

        response = self.client.get('/api/orders/active/')
        self.assertEqual(len(response.data), 2)


class PaymentTests(POSAPITestCase):
    def setUp(self):
        super().setUp()
        self.order = self.create_order()

    def test_pay_order(self):
        data = {'payment_method': 'cash', 'amount_paid': '1100'}
        response = self.client.post(f'/api/orders/{self.order.id}/pay/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['change']), Decimal('68.55'))
        self.assertEqual(response.data['order']['payment_status'], 'paid')
        self.assertEqual(response.data['order']['status'], 'completed')

        # Check table is available
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')

    def test_insufficient_payment(self):
        data = {'payment_method': 'cash', 'amount_paid': '900'}
        response = self.client.post(f'/api/orders/{self.order.id}/pay/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'pending')
        self.assertEqual(self.order.payment_status, 'pending')

    def test_prevent_duplicate_payment(self):
        services.process_payment(self.order.id, 'card', Decimal('1031.45'))
        data = {'payment_method': 'cash', 'amount_paid': '1100'}
        response = self.client.post(f'/api/orders/{self.order.id}/pay/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_paid')

    def test_unknown_payment_method(self):
        data = {'payment_method': 'cheque', 'amount_paid': '1100'}
        response = self.client.post(f'/api/orders/{self.order.id}/pay/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SettingsTests(POSAPITestCase):
    def test_get_settings(self):
        response = self.client.get('/api/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['tax_rate']), Decimal('5.25'))

    def test_update_tax_rate(self):
        response = self.client.patch('/api/settings/', {'tax_rate': '8'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(RestaurantSettings.get_tax_rate_percent(), Decimal('8'))

        order = self.create_order()
        self.assertEqual(order.tax, Decimal('78.4'))

    def test_tax_rate_out_of_range(self):
        response = self.client.patch('/api/settings/', {'tax_rate': '150'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_format_currency(self):
        self.assertEqual(RestaurantSettings.load().format_currency(Decimal('1031.45')), 'Rs1,031.45')


class DashboardTests(POSAPITestCase):
    def test_dashboard_stats(self):
        order = self.create_order()
        services.process_payment(order.id, 'cash', 1100)
        cancelled = services.create_order(
            customer_name='Sara Khan',
            order_type='takeaway',
            items=[{'menu_item_id': self.lime.id, 'quantity': 1}],
        )
        services.update_order_status(cancelled.id, 'cancelled')
        Table.objects.create(number=5, capacity=8, status='reserved')

        response = self.client.get('/api/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['revenue']['today'], Decimal('1031.45'))
        self.assertEqual(response.data['orders']['today'], 2)
        self.assertEqual(response.data['orders']['completed'], 1)
        self.assertEqual(response.data['orders']['cancelled'], 1)
        self.assertEqual(response.data['tables']['total'], 2)
        self.assertEqual(response.data['tables']['available'], 1)
        self.assertEqual(response.data['tables']['reserved'], 1)
        self.assertEqual(response.data['popular_dishes'][0]['name'], 'Chicken Biryani')
        self.assertEqual(response.data['popular_dishes'][0]['orders'], 2)

    def test_popular_dishes(self):
        self.create_order()
        response = self.client.get('/api/dashboard/popular_dishes/', {'days': 1, 'limit': 1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['revenue'], Decimal('900'))

    def test_today_summary(self):
        self.create_order()
        today = timezone.localdate()
        response = self.client.get(f'/api/orders/today_summary/?date={today}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(Decimal(response.data['total_revenue']), Decimal('1031.45'))

    def test_today_summary_bad_date(self):
        response = self.client.get('/api/orders/today_summary/?date=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SeedCommandTests(POSAPITestCase):
    def test_seed_replaces_everything(self):
        self.create_order()
        call_command('seed', stdout=StringIO())

        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(Table.objects.count(), 6)
        self.assertFalse(Table.objects.exclude(status='available').exists())
        self.assertEqual(MenuItem.objects.count(), 8)

    def test_keep_orders_keeps_their_tables(self):
        order = self.create_order()
        call_command('seed', '--keep-orders', stdout=StringIO())

        self.assertTrue(Order.objects.filter(pk=order.id).exists())
        self.assertEqual(Table.objects.count(), 6)
        table = Table.objects.get(number=4)
        self.assertEqual(table.pk, self.table.pk)
        self.assertEqual(table.status, 'occupied')
        self.assertEqual(table.current_order_id, order.id)

        # The kept order can still be settled and frees its table
        services.process_payment(order.id, 'cash', 1100)
        table.refresh_from_db()
        self.assertEqual(table.status, 'available')
