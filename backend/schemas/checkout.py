# backend/schemas/checkout.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List


# A single cart line as sent by the client; only identity and quantity are trusted
class CartItemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: int = Field(alias="productId")
    quantity: int = Field(gt=0)


# Checkout request; any client-side prices or totals are dropped by extra="ignore"
class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cart_items: List[CartItemIn] = Field(default_factory=list, alias="cartItems")
    payment_confirmed: bool = Field(default=False, alias="paymentConfirmed")


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_ids: List[str] = Field(alias="orderIds")


class CheckoutErrorOut(BaseModel):
    errorKind: str
    message: str
