from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    CategoryViewSet, MenuItemViewSet, TableViewSet,
    OrderViewSet, DashboardViewSet, RestaurantSettingsView
)

# Create router
router = DefaultRouter()
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'menu', MenuItemViewSet, basename='menu')
router.register(r'tables', TableViewSet, basename='table')
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'dashboard', DashboardViewSet, basename='dashboard')

urlpatterns = [
    path('settings/', RestaurantSettingsView.as_view(), name='settings'),
    path('', include(router.urls)),
]
