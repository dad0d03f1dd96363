from django.contrib import admin
from .models import Category, MenuItem, Table, Order, OrderItem, OrderCounter, RestaurantSettings


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'color', 'display_order', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'description']
    ordering = ['display_order', 'name']
    list_editable = ['display_order', 'is_active']


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['title', 'category', 'price', 'is_available', 'spicy_level', 'preparation_time']
    list_filter = ['category', 'is_available', 'spicy_level']
    search_fields = ['title', 'description']
    ordering = ['category', 'display_order', 'title']
    list_editable = ['is_available', 'price']


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ['number', 'capacity', 'location', 'status', 'customer_name', 'current_order']
    list_filter = ['status', 'location', 'capacity']
    ordering = ['number']
    # Occupancy is driven by orders; see POS.services
    readonly_fields = ['status', 'customer_name', 'customer_initials', 'current_order', 'occupied_at']


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['menu_item', 'title', 'size', 'unit_price', 'quantity', 'line_total', 'special_instructions']
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'order_type', 'table_number', 'customer_name', 'total',
                    'status', 'payment_status', 'created_at']
    list_filter = ['status', 'payment_status', 'order_type', 'created_at']
    search_fields = ['order_number', 'customer_name']
    ordering = ['-created_at']
    inlines = [OrderItemInline]
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Order Information', {
            'fields': ('order_number', 'customer_name', 'order_type', 'table_number', 'waiter_name')
        }),
        ('Delivery', {
            'fields': ('delivery_address', 'delivery_charges'),
            'classes': ('collapse',)
        }),
        ('Amounts', {
            'fields': ('subtotal', 'discount_type', 'discount_value', 'discount', 'tax_rate', 'tax', 'total')
        }),
        ('Status', {
            'fields': ('status', 'payment_status', 'payment_method', 'amount_paid', 'paid_at')
        }),
        ('Additional Information', {
            'fields': ('notes', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def get_readonly_fields(self, request, obj=None):
        # Orders change through POS.services only
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(OrderCounter)
class OrderCounterAdmin(admin.ModelAdmin):
    list_display = ['name', 'value', 'updated_at']
    readonly_fields = ['name', 'value', 'updated_at']


@admin.register(RestaurantSettings)
class RestaurantSettingsAdmin(admin.ModelAdmin):
    list_display = ['restaurant_name', 'tax_rate', 'currency', 'phone']

    def has_add_permission(self, request):
        return not RestaurantSettings.objects.exists()


# Customize admin site
admin.site.site_header = "Restaurant POS"
admin.site.site_title = "Restaurant POS Admin"
admin.site.index_title = "Welcome to Restaurant POS"
