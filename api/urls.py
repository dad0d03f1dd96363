# api/urls.py

from django.contrib import admin
from django.urls import path, include, re_path
from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

# Swagger/OpenAPI Schema
schema_view = get_schema_view(
    openapi.Info(
        title="Restaurant POS API",
        default_version='v1',
        description="""
        Point-of-sale API for a single restaurant:
        - Menu categories and menu items
        - Tables and occupancy
        - Orders, status changes, discounts and payments
        - Restaurant settings (tax rate, currency)
        - Dashboard statistics
        """,
        contact=openapi.Contact(email="info@termizrestaurant.com"),
        license=openapi.License(name="BSD License"),
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API endpoints
    path('api/', include('POS.urls')),

    # API Documentation
    re_path(r'^swagger(?P<format>\.json|\.yaml)$',
            schema_view.without_ui(cache_timeout=0),
            name='schema-json'),
    path('swagger/',
        schema_view.with_ui('swagger', cache_timeout=0),
        name='schema-swagger-ui'),
    path('redoc/',
        schema_view.with_ui('redoc', cache_timeout=0),
        name='schema-redoc'),

    # DRF Browsable API auth
    path('api-auth/', include('rest_framework.urls')),
]
