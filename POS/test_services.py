# POS/test_services.py

import threading
from datetime import date
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from . import services
from .exceptions import (
    AlreadyPaidError, InsufficientPaymentError, InvalidTransitionError, OrderEngineError,
    NotFoundError, PersistenceError, ValidationError,
)
from .models import Category, MenuItem, Order, OrderCounter, RestaurantSettings, Table


class EngineTestCase(TestCase):
    def setUp(self):
        self.settings_record = RestaurantSettings.load()
        self.settings_record.tax_rate = Decimal('5.25')
        self.settings_record.save()

        self.category = Category.objects.create(name='Main Course')
        self.biryani = MenuItem.objects.create(
            title='Chicken Biryani',
            category=self.category,
            price=Decimal('450'),
            size_prices={'half': '250'},
        )
        self.lime = MenuItem.objects.create(
            title='Fresh Lime',
            category=self.category,
            price=Decimal('80'),
        )
        self.table = Table.objects.create(number=4, capacity=4)

    def create_dine_in_order(self, **kwargs):
        params = {
            'customer_name': 'Ali Ahmed',
            'order_type': 'dine-in',
            'table_number': 4,
            'items': [
                {'menu_item_id': self.biryani.id, 'quantity': 2},
                {'menu_item_id': self.lime.id, 'quantity': 1},
            ],
        }
        params.update(kwargs)
        return services.create_order(**params)


class TotalsTests(TestCase):
    def test_percentage_is_clamped_before_applying(self):
        self.assertEqual(services.compute_discount(Decimal('980'), 'percentage', 150), Decimal('980'))
        self.assertEqual(services.compute_discount(Decimal('980'), 'percentage', -5), Decimal('0'))

    def test_fixed_discount_is_capped_at_subtotal(self):
        self.assertEqual(services.compute_discount(Decimal('980'), 'fixed', 5000), Decimal('980'))
        self.assertEqual(services.compute_discount(Decimal('980'), 'fixed', -10), Decimal('0'))

    def test_unknown_discount_type(self):
        with self.assertRaises(ValidationError):
            services.compute_discount(Decimal('980'), 'bogo', 1)

    def test_total_includes_delivery_charges(self):
        totals = services.compute_totals(Decimal('980'), Decimal('5.25'), delivery_charges=Decimal('100'))
        self.assertEqual(totals.tax, Decimal('51.45'))
        self.assertEqual(totals.total, Decimal('1131.45'))

    def test_fully_discounted_order_is_free(self):
        totals = services.compute_totals(Decimal('980'), Decimal('5.25'), 'fixed', 2000)
        self.assertEqual(totals.discount, Decimal('980'))
        self.assertEqual(totals.tax, Decimal('0'))
        self.assertEqual(totals.total, Decimal('0'))


class CreateOrderTests(EngineTestCase):
    def test_dine_in_order_totals_and_table(self):
        order = self.create_dine_in_order()
        order.refresh_from_db()

        self.assertEqual(order.subtotal, Decimal('980'))
        self.assertEqual(order.discount, Decimal('0'))
        self.assertEqual(order.tax, Decimal('51.45'))
        self.assertEqual(order.total, Decimal('1031.45'))
        self.assertEqual(order.tax_rate, Decimal('5.25'))
        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.payment_status, 'pending')
        self.assertEqual(order.payment_method, 'pending')
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.items.get(menu_item=self.biryani).line_total, Decimal('900'))

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')
        self.assertEqual(self.table.current_order, order)
        self.assertEqual(self.table.customer_name, 'Ali Ahmed')
        self.assertEqual(self.table.customer_initials, 'AA')
        self.assertIsNotNone(self.table.occupied_at)

    def test_order_number_format(self):
        order = self.create_dine_in_order()
        today = timezone.localdate().strftime('%Y%m%d')
        self.assertEqual(order.order_number, f'ORD{today}001')

    def test_percentage_discount_at_creation(self):
        order = self.create_dine_in_order(discount_type='percentage', discount_value=10)
        self.assertEqual(order.discount, Decimal('98'))
        self.assertEqual(order.tax, Decimal('46.305'))
        self.assertEqual(order.total, Decimal('928.305'))

    def test_takeaway_order_has_no_table(self):
        order = services.create_order(
            customer_name='Sara Khan',
            order_type='takeaway',
            table_number=4,
            items=[{'menu_item_id': self.lime.id, 'quantity': 3}],
        )
        self.assertIsNone(order.table_number)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')

    def test_delivery_order_adds_charges(self):
        order = services.create_order(
            customer_name='Sara Khan',
            order_type='delivery',
            delivery_address='12 Clifton Block 5, Karachi',
            delivery_charges=100,
            items=[
                {'menu_item_id': self.biryani.id, 'quantity': 2},
                {'menu_item_id': self.lime.id, 'quantity': 1},
            ],
        )
        self.assertEqual(order.delivery_charges, Decimal('100'))
        self.assertEqual(order.total, Decimal('1131.45'))

    def test_size_price_is_used(self):
        order = services.create_order(
            customer_name='Sara Khan',
            order_type='takeaway',
            items=[{'menu_item_id': self.biryani.id, 'quantity': 1, 'size': 'half'}],
        )
        self.assertEqual(order.subtotal, Decimal('250'))
        self.assertEqual(order.items.get().size, 'half')

    def test_tax_rate_is_snapshotted(self):
        order = self.create_dine_in_order()
        self.settings_record.tax_rate = Decimal('10')
        self.settings_record.save()

        order = services.apply_discount(order.id, 'percentage', 10)
        self.assertEqual(order.tax_rate, Decimal('5.25'))
        self.assertEqual(order.tax, Decimal('46.305'))

    def assertRejected(self, error, **kwargs):
        with self.assertRaises(error):
            self.create_dine_in_order(**kwargs)
        self.assertEqual(Order.objects.count(), 0)
        self.assertFalse(OrderCounter.objects.exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')

    def test_validation_failures_have_no_side_effects(self):
        self.assertRejected(ValidationError, customer_name='   ')
        self.assertRejected(ValidationError, items=[])
        self.assertRejected(ValidationError, items=[{'menu_item_id': self.lime.id, 'quantity': 0}])
        self.assertRejected(ValidationError, items=[{'menu_item_id': self.lime.id}])
        self.assertRejected(ValidationError, items=[{'menu_item_id': self.lime.id, 'quantity': 1.5}])
        self.assertRejected(ValidationError, items=[{'menu_item_id': self.lime.id, 'quantity': 'two'}])
        self.assertRejected(ValidationError, table_number=None)
        self.assertRejected(ValidationError, order_type='drive-thru')
        self.assertRejected(ValidationError, discount_type='bogo')
        self.assertRejected(
            ValidationError,
            items=[{'menu_item_id': self.biryani.id, 'quantity': 1, 'size': 'family'}],
        )

    def test_delivery_requires_address(self):
        self.assertRejected(ValidationError, order_type='delivery', delivery_address='')
        self.assertRejected(
            ValidationError, order_type='delivery', delivery_address='Clifton', delivery_charges=-5
        )

    def test_missing_references(self):
        self.assertRejected(NotFoundError, table_number=99)
        self.assertRejected(NotFoundError, items=[{'menu_item_id': 9999, 'quantity': 1}])

    def test_unavailable_menu_item(self):
        self.lime.is_available = False
        self.lime.save()
        self.assertRejected(ValidationError)

    def test_occupied_table_is_rejected(self):
        first = self.create_dine_in_order()
        with self.assertRaises(ValidationError):
            self.create_dine_in_order(customer_name='Bilal')
        self.assertEqual(Order.objects.count(), 1)
        self.table.refresh_from_db()
        self.assertEqual(self.table.current_order, first)

    def test_persistence_failure_rolls_back_everything(self):
        with mock.patch('POS.services._occupy_table', side_effect=DatabaseError('disk I/O error')):
            with self.assertRaises(PersistenceError):
                self.create_dine_in_order()

        self.assertEqual(Order.objects.count(), 0)
        order = self.create_dine_in_order()
        self.assertTrue(order.order_number.endswith('001'))

    def test_lookup_failures_are_reported(self):
        with mock.patch.object(MenuItem.objects, 'get', side_effect=DatabaseError('disk I/O error')):
            self.assertRejected(PersistenceError)
        with mock.patch('POS.services._get_table', side_effect=DatabaseError('database is locked')):
            self.assertRejected(PersistenceError)

    def test_whole_number_quantity_strings_are_accepted(self):
        order = self.create_dine_in_order(items=[{'menu_item_id': self.lime.id, 'quantity': '3'}])
        self.assertEqual(order.items.get().quantity, 3)


class OrderNumberTests(TestCase):
    def test_counter_increments(self):
        first = services.next_order_number(today=date(2024, 3, 1))
        second = services.next_order_number(today=date(2024, 3, 1))
        self.assertEqual(first, 'ORD20240301001')
        self.assertEqual(second, 'ORD20240301002')
        self.assertEqual(OrderCounter.objects.get(name='order').value, 3)

    def test_counter_does_not_reset_daily(self):
        services.next_order_number(today=date(2024, 3, 1))
        self.assertEqual(services.next_order_number(today=date(2024, 3, 2)), 'ORD20240302002')

    def test_counter_failure_is_reported(self):
        with mock.patch.object(OrderCounter, 'save', side_effect=DatabaseError('locked')):
            with self.assertRaises(PersistenceError):
                services.next_order_number()
        self.assertFalse(OrderCounter.objects.exists())


class StatusTransitionTests(EngineTestCase):
    def test_full_lifecycle_frees_table(self):
        order = self.create_dine_in_order()
        for status in ('preparing', 'ready', 'completed'):
            order = services.update_order_status(order.id, status)
            self.assertEqual(order.status, status)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')
        self.assertIsNone(self.table.current_order)
        self.assertEqual(self.table.customer_name, '')

    def test_cannot_skip_states(self):
        order = self.create_dine_in_order()
        with self.assertRaises(InvalidTransitionError):
            services.update_order_status(order.id, 'completed')
        order.refresh_from_db()
        self.assertEqual(order.status, 'pending')

    def test_ready_cannot_go_back_to_preparing(self):
        order = self.create_dine_in_order()
        services.update_order_status(order.id, 'preparing')
        services.update_order_status(order.id, 'ready')
        with self.assertRaises(InvalidTransitionError):
            services.update_order_status(order.id, 'preparing')

    def test_terminal_states(self):
        order = self.create_dine_in_order()
        services.update_order_status(order.id, 'cancelled')
        with self.assertRaises(InvalidTransitionError):
            services.update_order_status(order.id, 'preparing')

    def test_transition_keeps_totals(self):
        order = self.create_dine_in_order()
        self.settings_record.tax_rate = Decimal('20')
        self.settings_record.save()
        order = services.update_order_status(order.id, 'preparing')
        order.refresh_from_db()
        self.assertEqual(order.total, Decimal('1031.45'))

    def test_unknown_status(self):
        order = self.create_dine_in_order()
        with self.assertRaises(ValidationError):
            services.update_order_status(order.id, 'served')

    def test_unknown_order(self):
        with self.assertRaises(NotFoundError):
            services.update_order_status(9999, 'preparing')


class PaymentTests(EngineTestCase):
    def test_payment_completes_order_and_frees_table(self):
        order = self.create_dine_in_order()
        result = services.process_payment(order.id, 'cash', 1100)

        self.assertEqual(result.change, Decimal('68.55'))
        order.refresh_from_db()
        self.assertEqual(order.status, 'completed')
        self.assertEqual(order.payment_status, 'paid')
        self.assertEqual(order.payment_method, 'cash')
        self.assertEqual(order.amount_paid, Decimal('1100'))
        self.assertIsNotNone(order.paid_at)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')
        self.assertIsNone(self.table.current_order)

    def test_exact_payment_has_no_change(self):
        order = self.create_dine_in_order()
        result = services.process_payment(order.id, 'upi', Decimal('1031.45'))
        self.assertEqual(result.change, Decimal('0'))

    def test_insufficient_payment_changes_nothing(self):
        order = self.create_dine_in_order()
        with self.assertRaises(InsufficientPaymentError):
            services.process_payment(order.id, 'cash', 900)

        order.refresh_from_db()
        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.payment_status, 'pending')
        self.assertEqual(order.amount_paid, Decimal('0'))
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')

    def test_second_payment_is_rejected(self):
        order = self.create_dine_in_order()
        services.process_payment(order.id, 'card', 1100)
        with self.assertRaises(AlreadyPaidError):
            services.process_payment(order.id, 'card', 1100)

    def test_cancelled_order_cannot_be_paid(self):
        order = self.create_dine_in_order()
        services.update_order_status(order.id, 'cancelled')
        with self.assertRaises(InvalidTransitionError):
            services.process_payment(order.id, 'cash', 1100)

    def test_payment_input_is_validated(self):
        order = self.create_dine_in_order()
        with self.assertRaises(ValidationError):
            services.process_payment(order.id, 'pending', 1100)
        with self.assertRaises(ValidationError):
            services.process_payment(order.id, 'cash', -1)
        with self.assertRaises(ValidationError):
            services.process_payment(order.id, 'cash', None)

    def test_payment_failure_rolls_back_order_and_table(self):
        order = self.create_dine_in_order()
        with mock.patch('POS.services._release_table', side_effect=DatabaseError('disk I/O error')):
            with self.assertRaises(PersistenceError):
                services.process_payment(order.id, 'cash', 1100)

        order.refresh_from_db()
        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.payment_status, 'pending')
        self.assertIsNone(order.paid_at)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')
        self.assertEqual(self.table.current_order_id, order.id)


class DiscountAndItemTests(EngineTestCase):
    def test_apply_percentage_discount(self):
        order = self.create_dine_in_order()
        order = services.apply_discount(order.id, 'percentage', 10)
        order.refresh_from_db()

        self.assertEqual(order.discount, Decimal('98'))
        self.assertEqual(order.discount_type, 'percentage')
        self.assertEqual(order.discount_value, Decimal('10'))
        self.assertEqual(order.tax, Decimal('46.305'))
        self.assertEqual(order.total, Decimal('928.305'))

    def test_large_fixed_discount_is_capped(self):
        order = self.create_dine_in_order()
        order = services.apply_discount(order.id, 'fixed', 5000)
        self.assertEqual(order.discount, order.subtotal)
        self.assertEqual(order.total, Decimal('0'))

    def test_paid_order_cannot_be_discounted(self):
        order = self.create_dine_in_order()
        services.process_payment(order.id, 'cash', 1100)
        with self.assertRaises(AlreadyPaidError):
            services.apply_discount(order.id, 'fixed', 10)

    def test_add_and_remove_items(self):
        order = self.create_dine_in_order()
        order_item = services.add_order_item(order.id, self.lime.id, quantity=2)
        order.refresh_from_db()
        self.assertEqual(order.subtotal, Decimal('1140'))
        self.assertEqual(order.tax, Decimal('59.85'))
        self.assertEqual(order.total, Decimal('1199.85'))

        order = services.remove_order_item(order.id, order_item.id)
        self.assertEqual(order.total, Decimal('1031.45'))

    def test_discount_follows_item_changes(self):
        order = self.create_dine_in_order(discount_type='percentage', discount_value=10)
        services.add_order_item(order.id, self.lime.id, quantity=2)
        order.refresh_from_db()
        self.assertEqual(order.discount, Decimal('114'))

    def test_last_item_cannot_be_removed(self):
        order = services.create_order(
            customer_name='Sara Khan',
            order_type='takeaway',
            items=[{'menu_item_id': self.lime.id, 'quantity': 1}],
        )
        with self.assertRaises(ValidationError):
            services.remove_order_item(order.id, order.items.get().id)

    def test_items_cannot_change_after_completion(self):
        order = self.create_dine_in_order()
        for status in ('preparing', 'ready', 'completed'):
            services.update_order_status(order.id, status)
        with self.assertRaises(InvalidTransitionError):
            services.add_order_item(order.id, self.lime.id)

    def test_add_item_lookup_failure_is_reported(self):
        order = self.create_dine_in_order()
        with mock.patch.object(MenuItem.objects, 'get', side_effect=DatabaseError('disk I/O error')):
            with self.assertRaises(PersistenceError):
                services.add_order_item(order.id, self.lime.id)
        self.assertEqual(order.items.count(), 2)

    def test_fractional_quantity_is_rejected(self):
        order = self.create_dine_in_order()
        with self.assertRaises(ValidationError):
            services.add_order_item(order.id, self.lime.id, quantity=1.5)
        self.assertEqual(order.items.count(), 2)


class DeletionAndTableTests(EngineTestCase):
    def test_deleting_order_frees_table(self):
        order = self.create_dine_in_order()
        services.delete_order(order.id)

        self.assertFalse(Order.objects.filter(pk=order.id).exists())
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')
        self.assertIsNone(self.table.current_order)

    def test_delete_failure_keeps_order_and_table(self):
        order = self.create_dine_in_order()
        with mock.patch('POS.services._release_table', side_effect=DatabaseError('disk I/O error')):
            with self.assertRaises(PersistenceError):
                services.delete_order(order.id)

        self.assertTrue(Order.objects.filter(pk=order.id).exists())
        self.assertEqual(order.items.count(), 2)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')
        self.assertEqual(self.table.current_order_id, order.id)

    def test_deleting_missing_order(self):
        with self.assertRaises(NotFoundError):
            services.delete_order(9999)

    def test_freeing_available_table_is_a_no_op(self):
        before = self.table.updated_at
        table = services.free_table(self.table.id)
        self.assertEqual(table.status, 'available')
        self.table.refresh_from_db()
        self.assertEqual(self.table.updated_at, before)

    def test_free_table_releases_order_link(self):
        self.create_dine_in_order()
        table = services.free_table(self.table.id)
        self.assertEqual(table.status, 'available')
        self.assertIsNone(table.current_order)

        # The table is free for the next party
        self.create_dine_in_order(customer_name='Bilal')

    def test_walk_in_and_reservation(self):
        table = services.update_table_status(self.table.id, 'occupied', 'Zara Ali')
        self.assertEqual(table.status, 'occupied')
        self.assertEqual(table.customer_initials, 'ZA')

        table = services.update_table_status(self.table.id, 'cleaning')
        self.assertEqual(table.status, 'cleaning')
        self.assertEqual(table.customer_name, '')

        with self.assertRaises(ValidationError):
            self.create_dine_in_order()

        table = services.update_table_status(self.table.id, 'available')
        self.assertEqual(table.status, 'available')

    def test_invalid_table_status(self):
        with self.assertRaises(ValidationError):
            services.update_table_status(self.table.id, 'booked')


class ConcurrentWriteTests(TransactionTestCase):
    workers = 8

    def setUp(self):
        RestaurantSettings.load()
        category = Category.objects.create(name='Beverages')
        self.lime = MenuItem.objects.create(title='Fresh Lime', category=category, price=Decimal('80'))
        self.table = Table.objects.create(number=4, capacity=4)

    def run_concurrently(self, operation):
        results = []
        barrier = threading.Barrier(self.workers)

        def worker(index):
            barrier.wait()
            try:
                results.append(operation(index))
            except OrderEngineError as exc:
                results.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(self.workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_order_numbers_are_unique(self):
        results = self.run_concurrently(lambda index: services.create_order(
            customer_name=f'Guest {index}',
            order_type='takeaway',
            items=[{'menu_item_id': self.lime.id, 'quantity': 1}],
        ))

        self.assertTrue(all(isinstance(result, Order) for result in results), results)
        numbers = {result.order_number for result in results}
        self.assertEqual(len(numbers), self.workers)
        self.assertEqual(Order.objects.count(), self.workers)
        self.assertEqual(OrderCounter.objects.get(name='order').value, self.workers + 1)

    def test_table_is_occupied_once(self):
        results = self.run_concurrently(lambda index: services.create_order(
            customer_name=f'Guest {index}',
            order_type='dine-in',
            table_number=4,
            items=[{'menu_item_id': self.lime.id, 'quantity': 1}],
        ))

        orders = [result for result in results if isinstance(result, Order)]
        rejected = [result for result in results if isinstance(result, ValidationError)]
        self.assertEqual(len(orders), 1, results)
        self.assertEqual(len(rejected), self.workers - 1, results)
        self.assertEqual(Order.objects.count(), 1)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')
        self.assertEqual(self.table.current_order_id, orders[0].id)
