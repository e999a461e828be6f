# backend/routes/owner.py
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from database import get_db
from utils.tokenJWT import CurrentUser, owner_required
from utils.audit import write_log
from models.order import Order, OrderStatus
from models.product import Product
from repositories.orders import OrderRepository
from repositories.products import ProductRepository
from schemas.order import OrderItemOut, OrderStatusPatch, ShopOrderOut
from schemas.product import ProductCreate, ProductOut, ProductUpdate

router = APIRouter(prefix="/api/owner", tags=["Owner"])
logger = logging.getLogger(__name__)


def _client_ip(request: Request):
    return request.client.host if request.client else None


# Map Order model to the shop's order list entry
def _order_to_out(order: Order) -> ShopOrderOut:
    customer = order.customer
    return ShopOrderOut(
        id=order.id,
        customer_id=order.customer_id,
        customer_name=customer.name if customer else "N/A",
        customer_phone=customer.phone if customer else "N/A",
        status=order.status,
        total_amount=order.total_amount,
        ordered_at=order.ordered_at,
        items=[OrderItemOut.model_validate(it) for it in order.items],
    )


# ---- PRODUCTS ----

@router.get("/products", response_model=List[ProductOut])
def list_products(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(owner_required),
):
    return ProductRepository(db).list_for_shop(current_user.id)


@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(owner_required),
):
    product = Product(shop_id=current_user.id, **payload.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)

    write_log(db, actor_id=current_user.id, actor_type=current_user.type, action="PRODUCT_CREATE",
              resource="products", status="SUCCESS", ip=_client_ip(request), meta={"product_id": product.id})
    return product


@router.put("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(owner_required),
):
    # Row lock + version check keep manual restocks from clobbering concurrent checkouts
    product = ProductRepository(db).get_for_shop(product_id, current_user.id, lock=True)
    if not product:
        db.rollback()
        raise HTTPException(status_code=404, detail="Product not found or access denied.")

    updates = payload.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if value is not None:
            setattr(product, field, value)

    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Product was modified concurrently, please retry.")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update product %s", product_id)
        raise HTTPException(status_code=500, detail="Server error updating product.")
    db.refresh(product)

    write_log(db, actor_id=current_user.id, actor_type=current_user.type, action="PRODUCT_UPDATE",
              resource="products", status="SUCCESS", ip=_client_ip(request),
              meta={"product_id": product.id, "fields": sorted(updates)})
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(owner_required),
):
    product = ProductRepository(db).get_for_shop(product_id, current_user.id, lock=True)
    if not product:
        db.rollback()
        raise HTTPException(status_code=404, detail="Product not found or access denied.")

    db.delete(product)
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Product was modified concurrently, please retry.")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to delete product %s", product_id)
        raise HTTPException(status_code=500, detail="Server error deleting product.")
    write_log(db, actor_id=current_user.id, actor_type=current_user.type, action="PRODUCT_DELETE",
              resource="products", status="SUCCESS", ip=_client_ip(request), meta={"product_id": product_id})


# ---- ORDERS ----

@router.get("/orders", response_model=List[ShopOrderOut])
def list_orders(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(owner_required),
):
    return [_order_to_out(o) for o in OrderRepository(db).list_for_shop(current_user.id)]


# Any of the five statuses may be set from any status
@router.put("/orders/{order_id}/status", response_model=ShopOrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(owner_required),
):
    try:
        new_status = OrderStatus(payload.status)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid status provided.")

    repo = OrderRepository(db)
    order = repo.get_for_shop(order_id, current_user.id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found or access denied.")

    old_status = order.status
    order.status = new_status
    db.commit()

    write_log(db, actor_id=current_user.id, actor_type=current_user.type, action="ORDER_STATUS_CHANGE",
              resource="orders", status="SUCCESS", ip=_client_ip(request),
              meta={"order_id": order_id, "old": old_status.value, "new": new_status.value})

    db.refresh(order)
    return _order_to_out(order)
