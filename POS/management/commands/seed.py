# POS/management/commands/seed.py

from django.core.management.base import BaseCommand
from django.db import transaction
from POS.models import Category, MenuItem, Table, Order, OrderCounter, RestaurantSettings
from decimal import Decimal


class Command(BaseCommand):
    help = 'Seed the database with the default tables, menu and settings'

    def add_arguments(self, parser):
        parser.add_argument(
            '--keep-orders', action='store_true',
            help='Keep existing orders, the order counter and table occupancy',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write('Seeding database...')

        # Clear existing data
        self.stdout.write('Clearing existing data...')
        # Tables stay when orders do, so kept orders still point at them
        if not options['keep_orders']:
            Order.objects.all().delete()
            OrderCounter.objects.all().delete()
            Table.objects.all().delete()
        MenuItem.objects.all().delete()
        Category.objects.all().delete()

        # Create Categories
        self.stdout.write('Creating categories...')

        categories_data = [
            {'name': 'Starters', 'color': 'bg-red-500', 'description': 'Appetizers and small bites',
             'display_order': 1},
            {'name': 'Main Course', 'color': 'bg-purple-500', 'description': 'Main dishes and entrees',
             'display_order': 2},
            {'name': 'Beverages', 'color': 'bg-blue-500', 'description': 'Drinks and refreshments',
             'display_order': 3},
            {'name': 'Desserts', 'color': 'bg-pink-500', 'description': 'Sweet treats and desserts',
             'display_order': 4},
        ]

        categories = {}
        for category_data in categories_data:
            categories[category_data['name']] = Category.objects.create(**category_data)

        self.stdout.write(self.style.SUCCESS(f'Created {len(categories_data)} categories'))

        # Create Menu Items
        self.stdout.write('Creating menu items...')

        menu_items = [
            # Starters
            {'title': 'Chicken Biryani', 'category': 'Starters', 'price': Decimal('450'),
             'description': 'Traditional Pakistani rice dish with chicken and spices',
             'preparation_time': 25, 'spicy_level': 'medium',
             'ingredients': ['Basmati Rice', 'Chicken', 'Spices'],
             'size_prices': {'half': '250', 'full': '450'}},
            {'title': 'Seekh Kebab', 'category': 'Starters', 'price': Decimal('320'),
             'description': 'Minced meat kebabs with traditional spices',
             'preparation_time': 20, 'spicy_level': 'medium',
             'ingredients': ['Minced Meat', 'Spices', 'Herbs']},
            {'title': 'Chicken Tikka', 'category': 'Starters', 'price': Decimal('550'),
             'description': 'Grilled chicken pieces with spices',
             'preparation_time': 25, 'spicy_level': 'medium',
             'ingredients': ['Chicken', 'Yogurt', 'Spices']},

            # Main Course
            {'title': 'Chicken Karahi', 'category': 'Main Course', 'price': Decimal('650'),
             'description': 'Traditional Pakistani wok-cooked chicken curry',
             'preparation_time': 30, 'spicy_level': 'medium',
             'ingredients': ['Chicken', 'Tomatoes', 'Ginger', 'Garlic']},
            {'title': 'Mutton Karahi', 'category': 'Main Course', 'price': Decimal('850'),
             'description': 'Traditional Pakistani wok-cooked mutton curry',
             'preparation_time': 35, 'spicy_level': 'hot',
             'ingredients': ['Mutton', 'Tomatoes', 'Ginger', 'Garlic']},
            {'title': 'Fish Curry', 'category': 'Main Course', 'price': Decimal('750'),
             'description': 'Spicy fish curry with traditional spices',
             'preparation_time': 20, 'spicy_level': 'medium',
             'ingredients': ['Fish', 'Spices', 'Coconut Milk']},

            # Beverages
            {'title': 'Fresh Lime', 'category': 'Beverages', 'price': Decimal('80'),
             'description': 'Fresh lime soda with mint',
             'preparation_time': 5, 'spicy_level': 'none',
             'ingredients': ['Lime', 'Soda', 'Mint', 'Sugar']},

            # Desserts
            {'title': 'Gulab Jamun', 'category': 'Desserts', 'price': Decimal('120'),
             'description': 'Sweet milk balls in sugar syrup',
             'preparation_time': 10, 'spicy_level': 'none',
             'ingredients': ['Milk', 'Sugar', 'Flour']},
        ]

        for item_data in menu_items:
            item_data = dict(item_data, category=categories[item_data['category']])
            MenuItem.objects.create(**item_data)

        self.stdout.write(self.style.SUCCESS(f'Created {len(menu_items)} menu items'))

        # Create Tables
        self.stdout.write('Creating tables...')

        tables_data = [
            {'number': 1, 'capacity': 4, 'location': 'main-hall'},
            {'number': 2, 'capacity': 6, 'location': 'main-hall'},
            {'number': 3, 'capacity': 2, 'location': 'terrace'},
            {'number': 4, 'capacity': 4, 'location': 'main-hall'},
            {'number': 5, 'capacity': 8, 'location': 'vip-room'},
            {'number': 6, 'capacity': 4, 'location': 'terrace'},
        ]

        for table_data in tables_data:
            Table.objects.update_or_create(number=table_data['number'], defaults=table_data)

        self.stdout.write(self.style.SUCCESS(f'Created {len(tables_data)} tables'))

        # Restaurant settings
        settings_record = RestaurantSettings.load()
        self.stdout.write(self.style.SUCCESS(
            f'Settings: {settings_record.restaurant_name}, tax {settings_record.tax_rate}%'
        ))

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))
