from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    color = models.CharField(max_length=50, default='bg-gray-500')
    description = models.TextField(blank=True)
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'Categories'
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name


class MenuItem(models.Model):
    SPICY_LEVEL_CHOICES = [
        ('none', 'None'),
        ('mild', 'Mild'),
        ('medium', 'Medium'),
        ('hot', 'Hot'),
        ('extra-hot', 'Extra Hot'),
    ]

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='menu_items')
    image = models.CharField(max_length=500, blank=True)
    is_available = models.BooleanField(default=True)
    preparation_time = models.IntegerField(default=15, validators=[MinValueValidator(0)])
    ingredients = models.JSONField(default=list, blank=True)
    spicy_level = models.CharField(max_length=20, choices=SPICY_LEVEL_CHOICES, default='mild')
    # {"small": "250.00", "large": "450.00"}
    size_prices = models.JSONField(default=dict, blank=True)
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['display_order', 'title']

    def __str__(self):
        return f"{self.title} - {self.price}"

    def price_for(self, size=None):
        """Unit price for the given size, falling back to the base price."""
        if not size:
            return self.price
        if size not in (self.size_prices or {}):
            return None
        return Decimal(str(self.size_prices[size]))


class Order(models.Model):
    TYPE_CHOICES = [
        ('dine-in', 'Dine In'),
        ('takeaway', 'Takeaway'),
        ('delivery', 'Delivery'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('preparing', 'Preparing'),
        ('ready', 'Ready'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Credit/Debit Card'),
        ('upi', 'UPI'),
        ('online', 'Online'),
        ('pending', 'Pending'),
    ]

    DISCOUNT_TYPE_CHOICES = [
        ('fixed', 'Fixed Amount'),
        ('percentage', 'Percentage'),
    ]

    order_number = models.CharField(max_length=32, unique=True, editable=False)
    customer_name = models.CharField(max_length=200)
    table_number = models.IntegerField(null=True, blank=True)
    order_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='dine-in')
    delivery_address = models.TextField(blank=True)
    delivery_charges = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    subtotal = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    discount = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default='fixed')
    discount_value = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    tax_rate = models.DecimalField(max_digits=6, decimal_places=3, default=0)
    tax = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='pending')
    amount_paid = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    waiter_name = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        if self.table_number is not None:
            return f"Order {self.order_number} - Table {self.table_number}"
        return f"Order {self.order_number} - {self.get_order_type_display()}"

    @property
    def is_terminal(self):
        return self.status in ('completed', 'cancelled')


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    menu_item = models.ForeignKey(MenuItem, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    title = models.CharField(max_length=200)
    size = models.CharField(max_length=50, blank=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.IntegerField(validators=[MinValueValidator(1)])
    line_total = models.DecimalField(max_digits=12, decimal_places=2)
    special_instructions = models.TextField(blank=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.title}"

    def save(self, *args, **kwargs):
        self.line_total = self.unit_price * self.quantity
        super().save(*args, **kwargs)


class Table(models.Model):
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('occupied', 'Occupied'),
        ('reserved', 'Reserved'),
        ('cleaning', 'Cleaning'),
    ]

    LOCATION_CHOICES = [
        ('main-hall', 'Main Hall'),
        ('terrace', 'Terrace'),
        ('private-room', 'Private Room'),
        ('vip-room', 'VIP Room'),
        ('bar', 'Bar'),
    ]

    number = models.IntegerField(unique=True)
    capacity = models.IntegerField(validators=[MinValueValidator(1)])
    location = models.CharField(max_length=20, choices=LOCATION_CHOICES, default='main-hall')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')
    customer_name = models.CharField(max_length=200, blank=True)
    customer_initials = models.CharField(max_length=10, blank=True)
    # Plain back-reference; services.py keeps it in step with the order.
    current_order = models.ForeignKey(
        Order, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    occupied_at = models.DateTimeField(null=True, blank=True)
    reservation_time = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['number']

    def __str__(self):
        return f"Table {self.number} (Capacity: {self.capacity})"

    @property
    def is_available(self):
        return self.status == 'available'


class OrderCounter(models.Model):
    name = models.CharField(max_length=50, unique=True)
    value = models.PositiveIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name}: {self.value}"


class RestaurantSettings(models.Model):
    restaurant_name = models.CharField(max_length=200)
    tax_rate = models.DecimalField(
        max_digits=6, decimal_places=3,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))]
    )
    currency = models.CharField(max_length=10)
    currency_symbol = models.CharField(max_length=10)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    email = models.EmailField(blank=True)
    gstin = models.CharField(max_length=50, blank=True)
    website = models.CharField(max_length=200, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'Restaurant settings'

    def __str__(self):
        return self.restaurant_name

    @classmethod
    def load(cls):
        defaults = dict(settings.POS_DEFAULT_SETTINGS)
        defaults['tax_rate'] = Decimal(str(defaults['tax_rate']))
        obj, _ = cls.objects.get_or_create(pk=1, defaults=defaults)
        return obj

    @classmethod
    def get_tax_rate_percent(cls):
        return cls.load().tax_rate

    def format_currency(self, amount):
        return f"{self.currency_symbol}{Decimal(str(amount)):,.2f}"
