"""
Inventory Models - Catalog entities and the stock movement ledger.

Models:
    - Category: Product categorization
    - Product: Items available for sale, carrying their own stock counter
    - InventoryMovement: Append-only audit log of every stock change
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.text import slugify


class Category(models.Model):
    """
    Product category for organizing products.
    """
    name = models.CharField(
        max_length=100,
        unique=True,
        db_index=True,
        help_text="Unique category name"
    )
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.TextField(blank=True, default='')
    image = models.CharField(max_length=500, blank=True, default='')
    parent = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='children',
        help_text="Optional parent category"
    )
    is_active = models.BooleanField(default=True, db_index=True)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'
        ordering = ['sort_order', 'name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)


class Product(models.Model):
    """
    Product entity representing items available for sale.

    When `track_inventory` is set, `stock` is only changed through
    inventory.services and orders.services so that each change is logged.
    """

    class Status(models.TextChoices):
        DRAFT = 'DRAFT', 'Draft'
        ACTIVE = 'ACTIVE', 'Active'
        OUT_OF_STOCK = 'OUT_OF_STOCK', 'Out of stock'
        DISCONTINUED = 'DISCONTINUED', 'Discontinued'

    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    slug = models.SlugField(max_length=220, unique=True, blank=True)
    sku = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        help_text="Stock keeping unit"
    )
    description = models.TextField(blank=True, default='')
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text="Unit price (must be positive)"
    )
    cost_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Unit cost"
    )
    stock = models.PositiveIntegerField(
        default=0,
        help_text="Units currently in stock"
    )
    track_inventory = models.BooleanField(
        default=True,
        help_text="Whether orders draw down stock"
    )
    low_stock_threshold = models.PositiveIntegerField(
        default=10,
        help_text="Threshold for low stock alerts"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    sales_count = models.PositiveIntegerField(default=0)
    thumbnail = models.CharField(max_length=500, blank=True, default='')
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name='products',
        help_text="Product category"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['category', 'status'], name='product_category_status_idx'),
            models.Index(fields=['track_inventory', 'stock'], name='product_track_stock_idx'),
            models.Index(fields=['price'], name='product_price_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.price})"

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    @property
    def is_low_stock(self) -> bool:
        return self.track_inventory and self.stock <= self.low_stock_threshold

    @property
    def is_out_of_stock(self) -> bool:
        return self.track_inventory and self.stock == 0


class InventoryMovement(models.Model):
    """
    Immutable record of a stock quantity change and its cause.

    Rows are inserted once and never updated or deleted.
    """

    class Type(models.TextChoices):
        SALE = 'SALE', 'Sale'
        RETURN = 'RETURN', 'Return'
        RESTOCK = 'RESTOCK', 'Restock'
        ADJUSTMENT = 'ADJUSTMENT', 'Adjustment'

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='movements'
    )
    quantity_delta = models.IntegerField(help_text="Signed change in stock")
    type = models.CharField(max_length=20, choices=Type.choices, db_index=True)
    reason = models.CharField(max_length=255, blank=True, default='')
    reference_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        db_index=True,
        help_text="Related entity id, e.g. an order"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inventory_movements'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Inventory Movement'
        verbose_name_plural = 'Inventory Movements'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.type} {self.quantity_delta:+d} {self.product.name}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Inventory movements are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Inventory movements are append-only")
