from pydantic import BaseModel, ConfigDict


# Public shop details shown to customers
class ShopOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    shop_name: str
    category: str
