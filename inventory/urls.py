"""
URL routing for catalog and inventory API endpoints.
"""
from django.urls import path
from . import views

app_name = 'inventory'

urlpatterns = [
    # Categories
    path('categories/', views.CategoryListCreateView.as_view(), name='category-list'),
    path('categories/<int:pk>/', views.CategoryDetailView.as_view(), name='category-detail'),

    # Products
    path('products/', views.ProductListCreateView.as_view(), name='product-list'),
    path('products/<int:pk>/', views.ProductDetailView.as_view(), name='product-detail'),
    path('products/search/', views.ProductSearchView.as_view(), name='product-search'),
    path('products/autocomplete/', views.ProductAutocompleteView.as_view(), name='product-autocomplete'),

    # Inventory
    path('inventory/', views.InventoryListView.as_view(), name='inventory-list'),
    path('inventory/low-stock/', views.LowStockView.as_view(), name='inventory-low-stock'),
    path('inventory/<int:product_id>/stock/', views.StockUpdateView.as_view(), name='inventory-stock'),
    path('inventory/<int:product_id>/history/', views.MovementHistoryView.as_view(), name='inventory-history'),
]
