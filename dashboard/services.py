"""
Dashboard aggregation - read-only rollups over orders, users and products.
"""
import calendar
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, List, Optional

from django.contrib.auth import get_user_model
from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from inventory.models import Product
from orders.models import Order, OrderStatus, PaymentStatus

DEFAULT_CHART_MONTHS = 12
MAX_CHART_MONTHS = 36


def shift_month(value: date, months: int) -> date:
    """Same day `months` months away, clamped to the length of that month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def trend(current, previous) -> float:
    """Percent change, one decimal; 0 when there is no previous value."""
    current, previous = Decimal(current or 0), Decimal(previous or 0)
    if previous <= 0:
        return 0.0
    return round(float((current - previous) / previous * 100), 1)


def _paid_revenue(queryset) -> Decimal:
    return queryset.filter(payment_status=PaymentStatus.PAID).aggregate(
        revenue=Sum('total')
    )['revenue'] or Decimal('0.00')


def dashboard_stats(now: Optional[datetime] = None) -> Dict:
    """
    Headline numbers plus month-over-month trends.

    Trends compare the last month (now - 1 month .. now) with the month
    before it.
    """
    now = now or timezone.now()
    last_month = shift_month(now, -1)
    previous_month = shift_month(now, -2)

    User = get_user_model()
    customers = User.objects.filter(role=User.Role.CUSTOMER)

    current_orders = Order.objects.filter(created_at__gte=last_month, created_at__lte=now)
    previous_orders = Order.objects.filter(created_at__gte=previous_month, created_at__lt=last_month)

    total_revenue = _paid_revenue(Order.objects.all())

    return {
        'total_orders': Order.objects.count(),
        'total_revenue': str(total_revenue),
        'active_users': customers.filter(status=User.Status.ACTIVE).count(),
        'pending_orders': Order.objects.filter(order_status=OrderStatus.PENDING).count(),
        'orders_trend': trend(current_orders.count(), previous_orders.count()),
        'revenue_trend': trend(_paid_revenue(current_orders), _paid_revenue(previous_orders)),
        'users_trend': trend(
            customers.filter(date_joined__gte=last_month, date_joined__lte=now).count(),
            customers.filter(date_joined__gte=previous_month, date_joined__lt=last_month).count(),
        ),
    }


def _month_starts(months: int, today: date) -> List[date]:
    first = today.replace(day=1)
    return [shift_month(first, -offset) for offset in range(months - 1, -1, -1)]


def _monthly(queryset, months: int, today: Optional[date], **aggregate) -> List[Dict]:
    today = today or timezone.localdate()
    starts = _month_starts(months, today)
    since = timezone.make_aware(datetime.combine(starts[0], time.min))

    (name, expression), = aggregate.items()
    rows = (
        queryset.filter(created_at__gte=since)
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(value=expression)
        .order_by()
    )
    by_month = {(row['month'].year, row['month'].month): row['value'] for row in rows}

    return [
        {
            'date': start.strftime('%b'),
            'month': start.strftime('%Y-%m'),
            name: by_month.get((start.year, start.month)) or 0,
        }
        for start in starts
    ]


def orders_chart(months: int = DEFAULT_CHART_MONTHS, today: Optional[date] = None) -> List[Dict]:
    """Order counts per calendar month, oldest first."""
    return _monthly(Order.objects.all(), months, today, orders=Count('id'))


def revenue_chart(months: int = DEFAULT_CHART_MONTHS, today: Optional[date] = None) -> List[Dict]:
    """Paid revenue per calendar month, oldest first."""
    data = _monthly(
        Order.objects.filter(payment_status=PaymentStatus.PAID), months, today, revenue=Sum('total')
    )
    for point in data:
        point['revenue'] = str(Decimal(point['revenue']).quantize(Decimal('0.01')))
    return data


def top_products(limit: int = 10):
    return Product.objects.select_related('category').order_by('-sales_count', 'id')[:limit]


def recent_orders(limit: int = 10):
    return Order.objects.order_by('-created_at', '-id')[:limit]
