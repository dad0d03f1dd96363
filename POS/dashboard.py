from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.utils import timezone

from .models import Order, OrderItem, Table


def _day_bounds(day):
    start = timezone.make_aware(datetime.combine(day, time.min))
    return start, start + timedelta(days=1)


def _revenue(queryset):
    return queryset.exclude(status='cancelled').aggregate(total=Sum('total'))['total'] or Decimal('0')


def _status_counts(queryset):
    counts = dict(
        queryset.order_by().values_list('status').annotate(count=Count('id'))
    )
    return {status: counts.get(status, 0) for status, _ in Order.STATUS_CHOICES}


def popular_dishes(since, limit=10):
    """Best sellers by quantity since ``since``, cancelled orders left out."""
    rows = (
        OrderItem.objects
        .filter(order__created_at__gte=since)
        .exclude(order__status='cancelled')
        .values('menu_item_id', 'title')
        .annotate(orders=Sum('quantity'), revenue=Sum('line_total'))
        .order_by('-orders', 'title')[:limit]
    )
    return [
        {
            'menu_item_id': row['menu_item_id'],
            'name': row['title'],
            'orders': row['orders'],
            'revenue': row['revenue'],
        }
        for row in rows
    ]


def dashboard_stats(now=None):
    now = now or timezone.now()
    today_start, today_end = _day_bounds(timezone.localdate(now))
    week_start = now - timedelta(days=7)

    orders = Order.objects.all()
    todays_orders = orders.filter(created_at__gte=today_start, created_at__lt=today_end)

    table_counts = dict(
        Table.objects.order_by().values_list('status').annotate(count=Count('id'))
    )

    return {
        'revenue': {
            'today': _revenue(todays_orders),
            'weekly': _revenue(orders.filter(created_at__gte=week_start)),
            'total': _revenue(orders),
        },
        'orders': {
            'today': todays_orders.count(),
            'total': orders.count(),
            **_status_counts(orders),
        },
        'tables': {
            'total': Table.objects.count(),
            **{status: table_counts.get(status, 0) for status, _ in Table.STATUS_CHOICES},
        },
        'popular_dishes': popular_dishes(week_start),
    }


def daily_summary(day):
    start, end = _day_bounds(day)
    orders = Order.objects.filter(created_at__gte=start, created_at__lt=end)
    paid = orders.filter(payment_status='paid')

    total_orders = orders.count()
    total_revenue = _revenue(orders)
    billable = orders.exclude(status='cancelled').count()

    return {
        'date': day,
        'total_orders': total_orders,
        'total_revenue': total_revenue,
        'paid_orders': paid.count(),
        'amount_collected': paid.aggregate(total=Sum('total'))['total'] or Decimal('0'),
        'average_order_value': total_revenue / billable if billable else Decimal('0'),
        **_status_counts(orders),
    }
