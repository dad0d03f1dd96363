"""
Order & billing engine.

Every public operation validates its input before touching the database and
then runs as one unit: a process-wide lock plus ``transaction.atomic``. The
order-number counter, the order rows and the paired table row are written in
that same unit, so a failure anywhere leaves nothing behind and no order
number is consumed.

Tables and orders are only linked by ``Table.current_order`` and
``Order.table_number``. Keeping the two in step is the job of this module:
creation occupies the table, completion, payment and deletion free it.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.db import DatabaseError, transaction
from django.db.models import Sum
from django.utils import timezone

from .exceptions import (
    AlreadyPaidError, InsufficientPaymentError, InvalidTransitionError,
    NotFoundError, PersistenceError, ValidationError,
)
from .models import MenuItem, Order, OrderCounter, OrderItem, RestaurantSettings, Table

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal('0.001')
ZERO = Decimal('0')
HUNDRED = Decimal('100')

ORDER_COUNTER = 'order'

TRANSITIONS = {
    'pending': ('preparing', 'cancelled'),
    'preparing': ('ready', 'cancelled'),
    'ready': ('completed',),
    'completed': (),
    'cancelled': (),
}

ORDER_TYPES = dict(Order.TYPE_CHOICES)
ORDER_STATUSES = dict(Order.STATUS_CHOICES)
TABLE_STATUSES = dict(Table.STATUS_CHOICES)
DISCOUNT_TYPES = dict(Order.DISCOUNT_TYPE_CHOICES)
PAYMENT_METHODS = ('cash', 'card', 'upi', 'online')

# select_for_update() is a no-op on SQLite; this lock keeps counter and
# table read-modify-writes single-writer within the process.
_write_lock = threading.RLock()


@dataclass
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


@dataclass
class PaymentResult:
    order: Order
    change: Decimal


@contextmanager
def _write_unit(action):
    with _write_lock:
        try:
            with transaction.atomic():
                yield
        except DatabaseError as exc:
            logger.exception("Could not %s, nothing was committed", action)
            raise PersistenceError(f"Could not {action}: {exc}") from exc


@contextmanager
def _read_unit(action):
    """Lookups made ahead of a write unit, under the same lock."""
    with _write_lock:
        try:
            yield
        except DatabaseError as exc:
            logger.exception("Could not %s", action)
            raise PersistenceError(f"Could not {action}: {exc}") from exc


def to_decimal(value, field, default=None):
    if value is None or value == '':
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number")
    return result


def quantize(amount):
    return amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def compute_discount(subtotal, discount_type='fixed', discount_value=0):
    """
    Resolve a discount request to an amount in ``[0, subtotal]``.

    ``fixed`` takes ``discount_value`` as a currency amount, ``percentage``
    as a percentage of the subtotal (itself clamped to 0-100).
    """
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"Unknown discount type '{discount_type}'")
    value = to_decimal(discount_value, 'discount', default=ZERO)
    if discount_type == 'percentage':
        percent = min(max(value, ZERO), HUNDRED)
        amount = subtotal * percent / HUNDRED
    else:
        amount = value
    return quantize(min(max(amount, ZERO), subtotal))


def compute_totals(subtotal, tax_rate, discount_type='fixed', discount_value=0, delivery_charges=ZERO):
    subtotal = Decimal(subtotal)
    discount = compute_discount(subtotal, discount_type, discount_value)
    tax = quantize((subtotal - discount) * Decimal(tax_rate) / HUNDRED)
    total = quantize(subtotal - discount + tax + Decimal(delivery_charges))
    return Totals(subtotal=subtotal, discount=discount, tax=tax, total=total)


def customer_initials(name):
    return ''.join(part[0] for part in name.split()).upper()[:2]


def next_order_number(today=None):
    """
    Allocate ``ORD<YYYYMMDD><seq>`` from the persisted counter.

    The counter is global and never resets at midnight. Call it inside the
    unit that writes the order so a rollback also returns the number.
    """
    today = today or timezone.localdate()
    with _write_unit('allocate an order number'):
        counter, _ = OrderCounter.objects.select_for_update().get_or_create(
            name=ORDER_COUNTER, defaults={'value': 1}
        )
        number = f"ORD{today:%Y%m%d}{counter.value:03d}"
        counter.value += 1
        counter.save(update_fields=['value', 'updated_at'])
    return number


def _get_order(order_id, for_update=False):
    queryset = Order.objects.select_for_update() if for_update else Order.objects.all()
    try:
        return queryset.get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Order {order_id} not found")


def _get_table(for_update=False, **lookup):
    queryset = Table.objects.select_for_update() if for_update else Table.objects.all()
    try:
        return queryset.get(**lookup)
    except (Table.DoesNotExist, ValueError, TypeError):
        description = lookup.get('number', lookup.get('pk'))
        raise NotFoundError(f"Table {description} not found")


def _resolve_items(items):
    """Turn item requests into order lines priced from the menu."""
    if not items:
        raise ValidationError("Order must contain at least one item")

    lines = []
    for entry in items:
        if 'menu_item_id' not in entry or 'quantity' not in entry:
            raise ValidationError("Each item must have 'menu_item_id' and 'quantity'")
        menu_item_id = entry['menu_item_id']
        quantity = to_decimal(entry['quantity'], f"Quantity for menu item {menu_item_id}")
        if quantity != quantity.to_integral_value():
            raise ValidationError(f"Quantity for menu item {menu_item_id} must be a whole number")
        quantity = int(quantity)
        if quantity < 1:
            raise ValidationError(f"Quantity for menu item {menu_item_id} must be at least 1")

        try:
            menu_item = MenuItem.objects.get(pk=menu_item_id)
        except (MenuItem.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Menu item with id {menu_item_id} does not exist")
        if not menu_item.is_available:
            raise ValidationError(f"{menu_item.title} is currently unavailable")

        size = entry.get('size') or ''
        unit_price = menu_item.price_for(size)
        if unit_price is None:
            raise ValidationError(f"{menu_item.title} has no price for size '{size}'")

        lines.append({
            'menu_item': menu_item,
            'title': menu_item.title,
            'size': size,
            'unit_price': unit_price,
            'quantity': quantity,
            'special_instructions': entry.get('special_instructions') or '',
        })
    return lines


def _occupy_table(table, order):
    table.status = 'occupied'
    table.customer_name = order.customer_name
    table.customer_initials = customer_initials(order.customer_name)
    table.current_order = order
    table.occupied_at = timezone.now()
    table.save()
    logger.info("Table %s occupied by order %s", table.number, order.order_number)


def _release_table(table):
    if (table.status == 'available' and table.current_order_id is None
            and not table.customer_name and table.occupied_at is None):
        return False
    table.status = 'available'
    table.customer_name = ''
    table.customer_initials = ''
    table.current_order = None
    table.occupied_at = None
    table.save()
    logger.info("Table %s is available", table.number)
    return True


def _free_order_tables(order):
    tables = list(Table.objects.select_for_update().filter(current_order_id=order.pk))
    for table in tables:
        _release_table(table)
    return tables


def _ensure_editable(order):
    if order.payment_status == 'paid':
        raise AlreadyPaidError(f"Order {order.order_number} is already paid")
    if order.is_terminal:
        raise InvalidTransitionError(f"Order {order.order_number} is {order.status} and can no longer change")


def _recalculate(order, discount_type=None, discount_value=None):
    if discount_type is not None:
        order.discount_type = discount_type
        order.discount_value = to_decimal(discount_value, 'discount', default=ZERO)
    subtotal = order.items.aggregate(subtotal=Sum('line_total'))['subtotal'] or ZERO
    totals = compute_totals(
        subtotal, order.tax_rate, order.discount_type, order.discount_value, order.delivery_charges
    )
    order.subtotal = totals.subtotal
    order.discount = totals.discount
    order.tax = totals.tax
    order.total = totals.total
    return totals


def create_order(customer_name, order_type, items, table_number=None, delivery_address='',
                 delivery_charges=0, discount_type='fixed', discount_value=0,
                 waiter_name='', notes=''):
    customer_name = (customer_name or '').strip()
    if not customer_name:
        raise ValidationError("Customer name is required")
    if order_type not in ORDER_TYPES:
        raise ValidationError(f"Unknown order type '{order_type}'")
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"Unknown discount type '{discount_type}'")
    discount_value = to_decimal(discount_value, 'discount', default=ZERO)

    with _read_unit('look up menu items'):
        lines = _resolve_items(items)

    table = None
    if order_type == 'dine-in':
        if table_number is None or table_number == '':
            raise ValidationError("Table number is required for dine-in orders")
        try:
            table_number = int(table_number)
        except (TypeError, ValueError):
            raise ValidationError("Table number must be a whole number")
        with _read_unit('look up table'):
            table = _get_table(number=table_number)
        if table.status != 'available':
            raise ValidationError(f"Table {table_number} is {table.status}")
    else:
        table_number = None

    charges = ZERO
    delivery_address = (delivery_address or '').strip()
    if order_type == 'delivery':
        if not delivery_address:
            raise ValidationError("Delivery address is required for delivery orders")
        charges = to_decimal(delivery_charges, 'delivery_charges', default=ZERO)
        if charges < 0:
            raise ValidationError("Delivery charges cannot be negative")
    else:
        delivery_address = ''

    subtotal = sum((line['unit_price'] * line['quantity'] for line in lines), ZERO)

    with _write_unit('create order'):
        if table is not None:
            table = _get_table(for_update=True, pk=table.pk)
            if table.status != 'available':
                raise ValidationError(f"Table {table_number} is {table.status}")

        tax_rate = RestaurantSettings.get_tax_rate_percent()
        totals = compute_totals(subtotal, tax_rate, discount_type, discount_value, charges)

        order = Order.objects.create(
            order_number=next_order_number(),
            customer_name=customer_name,
            table_number=table_number,
            order_type=order_type,
            delivery_address=delivery_address,
            delivery_charges=charges,
            subtotal=totals.subtotal,
            discount=totals.discount,
            discount_type=discount_type,
            discount_value=discount_value,
            tax_rate=tax_rate,
            tax=totals.tax,
            total=totals.total,
            waiter_name=waiter_name or '',
            notes=notes or '',
        )
        for line in lines:
            OrderItem.objects.create(order=order, **line)

        if table is not None:
            _occupy_table(table, order)

    logger.info("Created order %s (%s) total %s", order.order_number, order_type, order.total)
    return order


def update_order_status(order_id, status):
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status '{status}'")

    with _write_unit('update order status'):
        order = _get_order(order_id, for_update=True)
        if status not in TRANSITIONS[order.status]:
            raise InvalidTransitionError(
                f"Cannot change order {order.order_number} from {order.status} to {status}"
            )
        previous = order.status
        order.status = status
        order.save(update_fields=['status', 'updated_at'])

        if status == 'completed' and order.order_type == 'dine-in':
            _free_order_tables(order)

    logger.info("Order %s moved from %s to %s", order.order_number, previous, status)
    return order


def process_payment(order_id, payment_method, amount_paid):
    with _write_unit('process payment'):
        order = _get_order(order_id, for_update=True)
        if order.payment_status == 'paid':
            raise AlreadyPaidError(f"Order {order.order_number} is already paid")
        if order.status == 'cancelled':
            raise InvalidTransitionError(f"Cannot take payment for cancelled order {order.order_number}")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Invalid payment method '{payment_method}'")
        amount = to_decimal(amount_paid, 'amount_paid')
        if amount < 0:
            raise ValidationError("Amount paid cannot be negative")
        if amount < order.total:
            raise InsufficientPaymentError(
                f"Amount paid ({amount}) is less than the order total ({order.total})"
            )

        order.payment_status = 'paid'
        order.payment_method = payment_method
        order.amount_paid = amount
        order.paid_at = timezone.now()
        order.status = 'completed'
        order.save()

        if order.order_type == 'dine-in':
            _free_order_tables(order)

    change = quantize(amount - order.total)
    logger.info("Order %s paid by %s, change %s", order.order_number, payment_method, change)
    return PaymentResult(order=order, change=change)


def apply_discount(order_id, discount_type, discount_value):
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(f"Unknown discount type '{discount_type}'")
    to_decimal(discount_value, 'discount')

    with _write_unit('apply discount'):
        order = _get_order(order_id, for_update=True)
        _ensure_editable(order)
        _recalculate(order, discount_type, discount_value)
        order.save()

    logger.info("Order %s discounted by %s", order.order_number, order.discount)
    return order


def add_order_item(order_id, menu_item_id, quantity=1, size='', special_instructions=''):
    with _read_unit('look up menu item'):
        line, = _resolve_items([{
            'menu_item_id': menu_item_id,
            'quantity': quantity,
            'size': size,
            'special_instructions': special_instructions,
        }])

    with _write_unit('add order item'):
        order = _get_order(order_id, for_update=True)
        _ensure_editable(order)
        order_item = OrderItem.objects.create(order=order, **line)
        _recalculate(order)
        order.save()

    return order_item


def remove_order_item(order_id, item_id):
    with _write_unit('remove order item'):
        order = _get_order(order_id, for_update=True)
        _ensure_editable(order)
        try:
            order_item = order.items.get(pk=item_id)
        except (OrderItem.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Order item not found")
        if order.items.count() == 1:
            raise ValidationError("Order must contain at least one item")
        order_item.delete()
        _recalculate(order)
        order.save()

    return order


def delete_order(order_id):
    with _write_unit('delete order'):
        order = _get_order(order_id, for_update=True)
        freed = _free_order_tables(order)
        order_number = order.order_number
        order.delete()

    logger.info("Deleted order %s, freed %d table(s)", order_number, len(freed))


def free_table(table_id):
    with _write_unit('free table'):
        table = _get_table(for_update=True, pk=table_id)
        _release_table(table)
    return table


def update_table_status(table_id, status, customer_name=''):
    """Manual status change from the floor view (walk-ins, reservations, cleaning)."""
    if status not in TABLE_STATUSES:
        raise ValidationError(f"Invalid table status '{status}'")
    customer_name = (customer_name or '').strip()

    with _write_unit('update table status'):
        table = _get_table(for_update=True, pk=table_id)
        if status == 'available':
            _release_table(table)
            return table

        table.status = status
        if customer_name:
            table.customer_name = customer_name
            table.customer_initials = customer_initials(customer_name)
            if status == 'occupied' and table.occupied_at is None:
                table.occupied_at = timezone.now()
        elif status != 'occupied':
            table.customer_name = ''
            table.customer_initials = ''
            table.current_order = None
            table.occupied_at = None
        table.save()

    logger.info("Table %s set to %s", table.number, status)
    return table
