import uuid
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from pizzacraft.models.catalog import IngredientCategory


class CatalogItemRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Display name (e.g., Mozzarella).")
    category: IngredientCategory
    description: str = Field("", description="Short description shown in the builder.")
    price: Decimal = Field(..., ge=0, description="Price added to the pizza for this ingredient.")
    stock: int = Field(..., ge=0, description="Current stock count.")
    threshold: int = Field(10, ge=0, description="Minimum stock level before an alert is triggered.")
    unit: str = Field("servings", description="Stock unit (pieces, servings, kg).")
    is_active: bool = Field(True, description="Whether the ingredient can be ordered.")
    image_url: Optional[str] = None


class CatalogItemUpdate(BaseModel):
    """Partial update; only provided fields are written."""
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[IngredientCategory] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    threshold: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    is_active: Optional[bool] = None
    image_url: Optional[str] = None


class CatalogItemResponse(BaseModel):
    id: uuid.UUID
    name: str
    category: IngredientCategory
    description: str
    price: Decimal
    stock: int
    threshold: int
    unit: str
    is_active: bool
    image_url: Optional[str] = None

    @classmethod
    def from_item(cls, item) -> "CatalogItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            category=item.category,
            description=item.description,
            price=item.price,
            stock=item.stock,
            threshold=item.threshold,
            unit=item.unit,
            is_active=item.is_active,
            image_url=item.image_url,
        )


class StockDecrement(BaseModel):
    id: uuid.UUID
    quantity: int = Field(..., gt=0)


class StockUpdateRequest(BaseModel):
    items: List[StockDecrement] = Field(..., min_length=1)
