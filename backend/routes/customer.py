# backend/routes/customer.py
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import CurrentUser, customer_required
from utils.audit import write_log
from models.order import Order
from models.product import Product
from models.shop import ShopOwner
from repositories.orders import OrderRepository
from schemas.checkout import CheckoutErrorOut, CheckoutRequest, CheckoutResponse
from schemas.order import CustomerOrderOut, OrderItemOut
from schemas.product import PublicProductOut
from schemas.shop import ShopOut
from services.checkout import CartLine, CheckoutService
from services.exceptions import CheckoutError

router = APIRouter(prefix="/api/customer", tags=["Customer"])


def get_checkout_service() -> CheckoutService:
    return CheckoutService()


# Map Order model to the customer's order history entry
def _order_to_out(order: Order) -> CustomerOrderOut:
    return CustomerOrderOut(
        id=order.id,
        shop_id=order.shop_id,
        shop_name=order.shop.shop_name if order.shop else "Unknown Shop",
        status=order.status,
        total_amount=order.total_amount,
        ordered_at=order.ordered_at,
        items=[OrderItemOut.model_validate(it) for it in order.items],
    )


# Browse shops: public details only
@router.get("/shops", response_model=List[ShopOut])
def list_shops(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(customer_required),
):
    return db.execute(select(ShopOwner).order_by(ShopOwner.shop_name)).scalars().all()


# In-stock products of one shop
@router.get("/shops/{shop_id}/products", response_model=List[PublicProductOut])
def list_shop_products(
    shop_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(customer_required),
):
    stmt = (
        select(Product)
        .where(Product.shop_id == shop_id, Product.stock_quantity > 0)
        .order_by(Product.name)
    )
    return db.execute(stmt).scalars().all()


# Search in-stock products by text and shop category
@router.get("/products/search", response_model=List[PublicProductOut])
def search_products(
    q: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(customer_required),
):
    stmt = select(Product).where(Product.stock_quantity > 0)
    if q:
        like = f"%{q}%"
        stmt = stmt.where(or_(Product.name.ilike(like), Product.description.ilike(like)))
    if category:
        stmt = stmt.join(ShopOwner, Product.shop_id == ShopOwner.id).where(
            ShopOwner.category.ilike(f"%{category}%")
        )
    return db.execute(stmt.order_by(Product.name)).scalars().all()


# Checkout: one order per shop, stock deducted atomically
@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses={code: {"model": CheckoutErrorOut} for code in (400, 402, 409, 500, 504)},
)
def checkout(
    payload: CheckoutRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(customer_required),
    service: CheckoutService = Depends(get_checkout_service),
):
    lines = [CartLine(product_id=it.product_id, quantity=it.quantity) for it in payload.cart_items]
    try:
        order_ids = service.checkout(current_user.id, lines, payment_confirmed=payload.payment_confirmed)
    except CheckoutError as e:
        write_log(
            db,
            actor_id=current_user.id,
            actor_type=current_user.type,
            action="CHECKOUT",
            resource="orders",
            status="FAIL",
            ip=request.client.host if request.client else None,
            meta={"error": e.error_kind, "message": e.message, "lines": len(lines)},
        )
        raise

    write_log(
        db,
        actor_id=current_user.id,
        actor_type=current_user.type,
        action="CHECKOUT",
        resource="orders",
        status="SUCCESS",
        ip=request.client.host if request.client else None,
        meta={"order_ids": order_ids, "lines": len(lines)},
    )
    return CheckoutResponse(order_ids=[str(i) for i in order_ids])


# Order history, newest first
@router.get("/orders", response_model=List[CustomerOrderOut])
def list_my_orders(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(customer_required),
):
    orders = OrderRepository(db).list_for_customer(current_user.id)
    return [_order_to_out(o) for o in orders]
