from decimal import Decimal, InvalidOperation

from rest_framework import serializers

from .models import Category, MenuItem, Table, Order, OrderItem, RestaurantSettings


class CategorySerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(source='menu_items.count', read_only=True)

    class Meta:
        model = Category
        fields = '__all__'
        read_only_fields = ['created_at', 'updated_at']


class MenuItemSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)
    category_color = serializers.CharField(source='category.color', read_only=True)

    class Meta:
        model = MenuItem
        fields = '__all__'
        read_only_fields = ['created_at', 'updated_at']

    def validate_ingredients(self, value):
        if not isinstance(value, list) or not all(isinstance(i, str) for i in value):
            raise serializers.ValidationError("Ingredients must be a list of strings")
        return value

    def validate_size_prices(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Size prices must map a size name to a price")
        cleaned = {}
        for size, price in value.items():
            try:
                amount = Decimal(str(price))
            except (InvalidOperation, ValueError):
                raise serializers.ValidationError(f"Price for size '{size}' must be a number")
            if not amount.is_finite() or amount < 0:
                raise serializers.ValidationError(f"Price for size '{size}' must be a non-negative number")
            cleaned[size] = str(amount)
        return cleaned


class TableSerializer(serializers.ModelSerializer):
    current_order_number = serializers.CharField(source='current_order.order_number', read_only=True, default=None)

    class Meta:
        model = Table
        fields = '__all__'
        read_only_fields = [
            'status', 'customer_name', 'customer_initials', 'current_order',
            'occupied_at', 'created_at', 'updated_at',
        ]


class TableStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Table.STATUS_CHOICES)
    customer_name = serializers.CharField(required=False, allow_blank=True, default='')


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'menu_item', 'title', 'size', 'unit_price', 'quantity',
                  'line_total', 'special_instructions']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source='order_type', read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'customer_name', 'table_number', 'type',
                  'delivery_address', 'delivery_charges', 'items', 'subtotal',
                  'discount', 'discount_type', 'discount_value', 'tax_rate', 'tax',
                  'total', 'status', 'payment_status', 'payment_method', 'amount_paid',
                  'waiter_name', 'notes', 'created_at', 'updated_at', 'paid_at']
        read_only_fields = fields


class OrderItemRequestSerializer(serializers.Serializer):
    menu_item_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    size = serializers.CharField(required=False, allow_blank=True, default='')
    special_instructions = serializers.CharField(required=False, allow_blank=True, default='')


class OrderCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField()
    type = serializers.ChoiceField(choices=Order.TYPE_CHOICES, default='dine-in')
    table_number = serializers.IntegerField(required=False, allow_null=True, default=None)
    delivery_address = serializers.CharField(required=False, allow_blank=True, default='')
    delivery_charges = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, default=0)
    discount_type = serializers.ChoiceField(choices=Order.DISCOUNT_TYPE_CHOICES, default='fixed')
    discount_value = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, default=0)
    waiter_name = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = OrderItemRequestSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Order must contain at least one item")
        return value


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class PaymentSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=['cash', 'card', 'upi', 'online'])
    amount_paid = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'))


class DiscountSerializer(serializers.Serializer):
    discount_type = serializers.ChoiceField(choices=Order.DISCOUNT_TYPE_CHOICES)
    discount_value = serializers.DecimalField(max_digits=12, decimal_places=3)


class RemoveItemSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()


class RestaurantSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = RestaurantSettings
        exclude = ['id']
        read_only_fields = ['updated_at']


class DailySummarySerializer(serializers.Serializer):
    date = serializers.DateField()
    total_orders = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=3)
    paid_orders = serializers.IntegerField()
    amount_collected = serializers.DecimalField(max_digits=14, decimal_places=3)
    average_order_value = serializers.DecimalField(max_digits=14, decimal_places=3)
    pending = serializers.IntegerField()
    preparing = serializers.IntegerField()
    ready = serializers.IntegerField()
    completed = serializers.IntegerField()
    cancelled = serializers.IntegerField()
