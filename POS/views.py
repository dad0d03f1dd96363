from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView
from rest_framework.exceptions import ValidationError
from django.db.models import ProtectedError, Q
from django.utils import timezone
from datetime import datetime, timedelta

from . import services
from . import dashboard
from .exceptions import OrderEngineError
from .models import Category, MenuItem, Table, Order, RestaurantSettings
from .serializers import (
    CategorySerializer, MenuItemSerializer, TableSerializer, TableStatusSerializer,
    OrderSerializer, OrderItemSerializer, OrderItemRequestSerializer, OrderCreateSerializer,
    OrderStatusSerializer, PaymentSerializer, DiscountSerializer, RemoveItemSerializer,
    RestaurantSettingsSerializer, DailySummarySerializer,
)


def engine_error_response(exc):
    return Response({'error': exc.message, 'code': exc.code}, status=exc.status_code)


def parse_date(value):
    return datetime.strptime(value, '%Y-%m-%d').date()


def whole_number_param(request, name, default=None):
    value = request.query_params.get(name, default)
    if value is None or value == '':
        return None
    if not str(value).isdigit():
        raise ValidationError({'error': f'{name} must be a whole number'})
    return int(value)


def date_param(request, name='date'):
    value = request.query_params.get(name, None)
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError({'error': 'Dates must be YYYY-MM-DD'})


class CategoryViewSet(viewsets.ModelViewSet):
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        queryset = super().get_queryset()

        # Inactive categories are hidden from listings unless asked for
        include_inactive = self.request.query_params.get('include_inactive', 'false')
        if self.action == 'list' and include_inactive.lower() != 'true':
            queryset = queryset.filter(is_active=True)

        return queryset

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response(
                {'error': 'Category still has menu items'},
                status=status.HTTP_400_BAD_REQUEST
            )


class MenuItemViewSet(viewsets.ModelViewSet):
    queryset = MenuItem.objects.select_related('category')
    serializer_class = MenuItemSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        queryset = super().get_queryset()

        # Filter by category
        category = whole_number_param(self.request, 'category')
        if category is not None:
            queryset = queryset.filter(category_id=category)

        # Filter by availability
        available = self.request.query_params.get('available', None)
        if available is not None:
            queryset = queryset.filter(is_available=available.lower() == 'true')

        # Search title, description or category name
        search = self.request.query_params.get('q', None)
        if search:
            queryset = queryset.filter(
                Q(title__icontains=search)
                | Q(description__icontains=search)
                | Q(category__name__icontains=search)
            )

        return queryset

    @action(detail=False, methods=['get'])
    def available(self, request):
        """Get only available menu items"""
        available_items = self.get_queryset().filter(is_available=True)
        serializer = self.get_serializer(available_items, many=True)
        return Response(serializer.data)


class TableViewSet(viewsets.ModelViewSet):
    queryset = Table.objects.select_related('current_order')
    serializer_class = TableSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        queryset = super().get_queryset()

        table_status = self.request.query_params.get('status', None)
        if table_status and table_status.lower() != 'all':
            queryset = queryset.filter(status=table_status.lower())

        return queryset

    @action(detail=False, methods=['get'])
    def available(self, request):
        """Get all available tables"""
        min_capacity = whole_number_param(request, 'min_capacity', '1')
        tables = self.get_queryset().filter(status='available', capacity__gte=min_capacity)
        serializer = self.get_serializer(tables, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def by_number(self, request):
        """Get a table by its floor number"""
        number = request.query_params.get('number', '')
        if not number.isdigit():
            return Response(
                {'error': 'A numeric table number is required'},
                status=status.HTTP_400_BAD_REQUEST
            )
        table = self.get_queryset().filter(number=int(number)).first()
        if table is None:
            return Response({'error': 'Table not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(table).data)

    @action(detail=True, methods=['post'])
    def free(self, request, pk=None):
        """Mark a table as available and clear its customer"""
        try:
            table = services.free_table(pk)
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response(self.get_serializer(table).data)

    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        """Set a table's status, optionally for a named customer"""
        serializer = TableStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            table = services.update_table_status(
                pk,
                serializer.validated_data['status'],
                serializer.validated_data['customer_name'],
            )
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response(self.get_serializer(table).data)


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Order.objects.prefetch_related('items')
    serializer_class = OrderSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        queryset = super().get_queryset()

        # Filter by status
        order_status = self.request.query_params.get('status', None)
        if order_status and order_status.lower() != 'all':
            queryset = queryset.filter(status=order_status.lower())

        # Filter by type
        order_type = self.request.query_params.get('type', None)
        if order_type and order_type.lower() != 'all':
            queryset = queryset.filter(order_type=order_type.lower())

        # Filter by table
        table = whole_number_param(self.request, 'table')
        if table is not None:
            queryset = queryset.filter(table_number=table)

        # Filter by date
        day = date_param(self.request)
        if day:
            queryset = queryset.filter(created_at__date=day)

        # Search customer name, order number or table number
        search = self.request.query_params.get('q', None)
        if search:
            condition = Q(customer_name__icontains=search) | Q(order_number__icontains=search)
            if search.isdigit():
                condition |= Q(table_number=int(search))
            queryset = queryset.filter(condition)

        return queryset

    def create(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = services.create_order(
                customer_name=data['customer_name'],
                order_type=data['type'],
                items=[dict(item) for item in data['items']],
                table_number=data['table_number'],
                delivery_address=data['delivery_address'],
                delivery_charges=data['delivery_charges'],
                discount_type=data['discount_type'],
                discount_value=data['discount_value'],
                waiter_name=data['waiter_name'],
                notes=data['notes'],
            )
        except OrderEngineError as exc:
            return engine_error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        try:
            services.delete_order(pk)
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['patch'])
    def update_status(self, request, pk=None):
        """Move an order along pending -> preparing -> ready -> completed"""
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.update_order_status(pk, serializer.validated_data['status'])
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['post'])
    def pay(self, request, pk=None):
        """Settle an order and report the change due"""
        serializer = PaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = services.process_payment(
                pk,
                serializer.validated_data['payment_method'],
                serializer.validated_data['amount_paid'],
            )
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response({
            'order': OrderSerializer(result.order).data,
            'change': str(result.change),
        })

    @action(detail=True, methods=['post'])
    def apply_discount(self, request, pk=None):
        """Apply a fixed or percentage discount to an unpaid order"""
        serializer = DiscountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.apply_discount(
                pk,
                serializer.validated_data['discount_type'],
                serializer.validated_data['discount_value'],
            )
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['post'])
    def add_item(self, request, pk=None):
        """Add item to existing order"""
        serializer = OrderItemRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            order_item = services.add_order_item(
                pk,
                data['menu_item_id'],
                quantity=data['quantity'],
                size=data['size'],
                special_instructions=data['special_instructions'],
            )
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response(OrderItemSerializer(order_item).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'])
    def remove_item(self, request, pk=None):
        """Remove item from order"""
        serializer = RemoveItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = services.remove_order_item(pk, serializer.validated_data['item_id'])
        except OrderEngineError as exc:
            return engine_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=['get'])
    def active(self, request):
        """Get all orders still in the kitchen or waiting to be served"""
        active_orders = self.get_queryset().filter(status__in=['pending', 'preparing', 'ready'])
        serializer = self.get_serializer(active_orders, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def today(self, request):
        """Get today's orders"""
        today = timezone.localdate()
        orders = self.get_queryset().filter(created_at__date=today)
        serializer = self.get_serializer(orders, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def today_summary(self, request):
        """Order counts and revenue for one day (today by default)"""
        day = date_param(request) or timezone.localdate()
        serializer = DailySummarySerializer(dashboard.daily_summary(day))
        return Response(serializer.data)


class RestaurantSettingsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        serializer = RestaurantSettingsSerializer(RestaurantSettings.load())
        return Response(serializer.data)

    def put(self, request):
        return self._update(request, partial=False)

    def patch(self, request):
        return self._update(request, partial=True)

    def _update(self, request, partial):
        serializer = RestaurantSettingsSerializer(
            RestaurantSettings.load(), data=request.data, partial=partial
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class DashboardViewSet(viewsets.ViewSet):
    permission_classes = [AllowAny]

    def list(self, request):
        """Revenue, order, table and best-seller figures for the dashboard"""
        return Response(dashboard.dashboard_stats())

    @action(detail=False, methods=['get'])
    def popular_dishes(self, request):
        """Best sellers over the last ``days`` days (7 by default)"""
        days = whole_number_param(request, 'days', '7')
        limit = whole_number_param(request, 'limit', '10')
        since = timezone.now() - timedelta(days=days)
        return Response(dashboard.popular_dishes(since, limit=limit))
