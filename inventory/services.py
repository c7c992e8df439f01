"""
Inventory Service Layer - Stock ledger and manual stock adjustment.

Every stock change goes through here (or through orders.services, which
uses record_movement) so that the product counter and the movement log are
always written in the same transaction.
"""
import logging

from django.db import transaction
from django.db.models import F

from core.exceptions import InvalidState, NotFound
from .models import Product, InventoryMovement

logger = logging.getLogger(__name__)

INCREASE = 'increase'
DECREASE = 'decrease'
SET = 'set'
STOCK_OPERATIONS = (INCREASE, DECREASE, SET)

ADJUSTMENT_TYPES = (
    InventoryMovement.Type.ADJUSTMENT,
    InventoryMovement.Type.RESTOCK,
    InventoryMovement.Type.RETURN,
)


def record_movement(
    product: Product,
    quantity_delta: int,
    movement_type: str,
    reason: str = '',
    reference_id: str = '',
    user=None,
) -> InventoryMovement:
    """Append one row to the inventory ledger."""
    return InventoryMovement.objects.create(
        product=product,
        quantity_delta=quantity_delta,
        type=movement_type,
        reason=reason or '',
        reference_id=str(reference_id or ''),
        user=user,
    )


def sync_stock_status(product: Product) -> None:
    """
    Keep product status consistent with its stock counter.

    Zero stock forces OUT_OF_STOCK; restocking an OUT_OF_STOCK product brings
    it back to ACTIVE. Restocking never reactivates DRAFT or DISCONTINUED.
    """
    if product.stock == 0:
        product.status = Product.Status.OUT_OF_STOCK
    elif product.status == Product.Status.OUT_OF_STOCK:
        product.status = Product.Status.ACTIVE


def adjust_stock(
    product_id: int,
    quantity: int,
    operation: str,
    movement_type: str = InventoryMovement.Type.ADJUSTMENT,
    reason: str = '',
    user=None,
) -> Product:
    """
    Apply a manual stock change and log it.

    Args:
        product_id: Product to adjust
        quantity: Non-negative amount (the new value for 'set')
        operation: 'increase', 'decrease' or 'set'
        movement_type: ADJUSTMENT, RESTOCK or RETURN
        reason: Optional free-text reason
        user: Acting user

    Returns:
        The updated Product

    Raises:
        NotFound: If the product does not exist
        InvalidState: If the product does not track inventory
    """
    if operation not in STOCK_OPERATIONS:
        raise ValueError(f"Unknown stock operation: {operation}")
    if quantity < 0:
        raise ValueError("Quantity must not be negative")

    with transaction.atomic():
        try:
            product = Product.objects.select_for_update().get(pk=product_id)
        except Product.DoesNotExist:
            raise NotFound("Product not found")

        if not product.track_inventory:
            raise InvalidState("Product does not track inventory")

        current = product.stock
        if operation == SET:
            new_stock = quantity
        elif operation == INCREASE:
            new_stock = current + quantity
        else:
            # Decrease floors at zero
            new_stock = max(0, current - quantity)

        delta = new_stock - current

        record_movement(
            product,
            quantity_delta=delta,
            movement_type=movement_type,
            reason=reason,
            user=user,
        )

        product.stock = new_stock
        sync_stock_status(product)
        product.save(update_fields=['stock', 'status', 'updated_at'])

    logger.info(
        f"Stock {operation} on product #{product.id} ({product.name}): "
        f"{current} -> {new_stock} ({movement_type})"
    )
    return product


def low_stock_products(queryset=None):
    """Tracked products at or below their low-stock threshold."""
    if queryset is None:
        queryset = Product.objects.all()
    return queryset.filter(
        track_inventory=True,
        stock__lte=F('low_stock_threshold')
    )


def movement_history(product_id: int):
    """Ledger rows for one product, newest first."""
    if not Product.objects.filter(pk=product_id).exists():
        raise NotFound("Product not found")
    return InventoryMovement.objects.filter(product_id=product_id).select_related('user')
