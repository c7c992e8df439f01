"""
Catalog and Inventory API Views.

Implements:
- CRUD operations for Category and Product
- Product search with keyword and filter support
- Autocomplete with rate limiting
- Inventory listing, low stock report, stock adjustment, movement history
"""
from django.db.models import Q
from rest_framework import generics
from rest_framework.views import APIView
from rest_framework.response import Response

from core.permissions import IsStaffRole, ReadOnlyOrStaffRole
from core.rate_limiting import rate_limit
from .models import Category, Product
from .serializers import (
    CategorySerializer,
    ProductSerializer,
    ProductMinimalSerializer,
    InventoryProductSerializer,
    StockUpdateSerializer,
    InventoryMovementSerializer,
)
from .services import adjust_stock, low_stock_products, movement_history


# =============================================================================
# Category Views
# =============================================================================

class CategoryListCreateView(generics.ListCreateAPIView):
    """
    GET: List all categories
    POST: Create a new category
    """
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [ReadOnlyOrStaffRole]


class CategoryDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a category
    PUT/PATCH: Update a category
    DELETE: Delete a category
    """
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [ReadOnlyOrStaffRole]


# =============================================================================
# Product Views
# =============================================================================

class ProductListCreateView(generics.ListCreateAPIView):
    """
    GET: List products with category info
    POST: Create a new product

    Uses select_related to eliminate N+1 queries.
    """
    serializer_class = ProductSerializer
    permission_classes = [ReadOnlyOrStaffRole]

    def get_queryset(self):
        return Product.objects.select_related('category').order_by('-created_at')


class ProductDetailView(generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update a product
    DELETE: Delete a product
    """
    serializer_class = ProductSerializer
    permission_classes = [ReadOnlyOrStaffRole]

    def get_queryset(self):
        return Product.objects.select_related('category')


class ProductSearchView(generics.ListAPIView):
    """
    GET: Search products with keyword and filters.

    Query Parameters:
        - q: Keyword to search in name, description, SKU and category name
        - category_id: Filter by category ID
        - status: Filter by product status
        - min_price: Minimum price filter
        - max_price: Maximum price filter
    """
    serializer_class = ProductSerializer

    def get_queryset(self):
        queryset = Product.objects.select_related('category')

        keyword = self.request.query_params.get('q', '').strip()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) |
                Q(description__icontains=keyword) |
                Q(sku__icontains=keyword) |
                Q(category__name__icontains=keyword)
            )

        category_id = self.request.query_params.get('category_id')
        if category_id:
            queryset = queryset.filter(category_id=category_id)

        status_filter = self.request.query_params.get('status', '').upper()
        if status_filter in Product.Status.values:
            queryset = queryset.filter(status=status_filter)
        else:
            queryset = queryset.filter(status=Product.Status.ACTIVE)

        # Price range filters
        min_price = self.request.query_params.get('min_price')
        if min_price:
            try:
                queryset = queryset.filter(price__gte=float(min_price))
            except ValueError:
                pass

        max_price = self.request.query_params.get('max_price')
        if max_price:
            try:
                queryset = queryset.filter(price__lte=float(max_price))
            except ValueError:
                pass

        return queryset.order_by('name')


class ProductAutocompleteView(APIView):
    """
    GET: Fast prefix-matching autocomplete for product names.

    Query Parameters:
        - q: Search query (minimum 3 characters)

    Returns top 10 matching products.
    Rate limited to 20 requests per minute.
    """

    @rate_limit(max_requests=20, window_seconds=60)
    def get(self, request):
        query = request.query_params.get('q', '').strip()

        if len(query) < 3:
            return Response(
                {'success': False, 'message': 'Query must be at least 3 characters'},
                status=400
            )

        products = Product.objects.filter(
            name__istartswith=query,
            status=Product.Status.ACTIVE
        )[:10]

        return Response(ProductMinimalSerializer(products, many=True).data)


# =============================================================================
# Inventory Views
# =============================================================================

class InventoryListView(generics.ListAPIView):
    """
    GET: List tracked products ordered by stock (lowest first).

    Query Parameters:
        - category: Filter by category ID
        - low_stock_only: Show only low stock items (true/false)
        - search: Match product name or SKU
    """
    serializer_class = InventoryProductSerializer
    permission_classes = [IsStaffRole]

    def get_queryset(self):
        queryset = Product.objects.select_related('category').filter(track_inventory=True)

        category_id = self.request.query_params.get('category')
        if category_id:
            queryset = queryset.filter(category_id=category_id)

        low_stock = self.request.query_params.get('low_stock_only', '').lower()
        if low_stock == 'true':
            queryset = low_stock_products(queryset)

        search = self.request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(sku__icontains=search)
            )

        return queryset.order_by('stock', 'name')


class LowStockView(APIView):
    """GET: All tracked products at or below their low stock threshold."""
    permission_classes = [IsStaffRole]

    def get(self, request):
        products = low_stock_products(
            Product.objects.select_related('category')
        ).order_by('stock', 'name')
        return Response(InventoryProductSerializer(products, many=True).data)


class StockUpdateView(APIView):
    """
    PATCH: Increase, decrease or set a product's stock.

    Request Body:
    {
        "quantity": 10,
        "operation": "increase",
        "type": "RESTOCK",
        "reason": "Supplier delivery"
    }
    """
    permission_classes = [IsStaffRole]

    def patch(self, request, product_id):
        serializer = StockUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        product = adjust_stock(
            product_id,
            quantity=data['quantity'],
            operation=data['operation'],
            movement_type=data['type'],
            reason=data['reason'],
            user=request.user,
        )

        return Response({
            'success': True,
            'message': 'Stock updated',
            'data': ProductSerializer(product).data,
        })


class MovementHistoryView(generics.ListAPIView):
    """GET: Paginated inventory movements for a product, newest first."""
    serializer_class = InventoryMovementSerializer
    permission_classes = [IsStaffRole]

    def get_queryset(self):
        return movement_history(self.kwargs['product_id'])
