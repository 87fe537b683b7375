"""
Product data models for Catalog Service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field


def compute_final_price(price: int, discount: int) -> int:
    """Discounted price rounded half-up, e.g. 1005 at 10% -> 905."""
    discounted = Decimal(price) * (Decimal(100) - Decimal(discount)) / Decimal(100)
    return int(discounted.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ProductVariant(BaseModel):
    """Variant of a product (size, colour, ...)."""
    variant_name: str
    sku: str
    price_modifier: int = 0
    inventory: int = 0


class WarehouseStock(BaseModel):
    """Stock held at one warehouse."""
    warehouse: str
    quantity: int = 0
    reserved: int = 0


class RatingSummary(BaseModel):
    """Aggregate of product reviews."""
    average: float = 0.0
    count: int = 0


class PricePoint(BaseModel):
    """Historic price entry."""
    price: int
    discount: int = 0
    changed_at: Optional[datetime] = None


class Product(BaseModel):
    """Catalog entity addressed by SKU.

    ``finalPrice`` and ``savings`` are derived on every read and are not part
    of the stored record.
    """
    id: Optional[int] = None
    sku: str = Field(..., min_length=1)
    name: str
    price: int = Field(..., ge=0, description="Price in cents")
    discount: int = Field(0, ge=0, le=100, description="Discount percentage")
    inventory: int = 100
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    variants: List[ProductVariant] = Field(default_factory=list)
    warehouse_stock: List[WarehouseStock] = Field(default_factory=list)
    rating: Optional[RatingSummary] = None
    price_history: List[PricePoint] = Field(default_factory=list)

    @computed_field(alias="finalPrice")
    @property
    def final_price(self) -> int:
        return compute_final_price(self.price, self.discount)

    @computed_field
    @property
    def savings(self) -> int:
        return self.price - self.final_price

    def to_cache(self) -> str:
        """Serialize the stored fields for the cache."""
        return self.model_dump_json(exclude={"final_price", "savings"})

    @classmethod
    def from_cache(cls, payload: Any) -> "Product":
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return cls.model_validate_json(payload)

    def to_response(self, cached: bool) -> Dict[str, Any]:
        """Response body: stored fields, derived pricing and the cache flag."""
        body = self.model_dump(mode="json", by_alias=True)
        body["cached"] = cached
        return body


@dataclass
class ReadResult:
    """Outcome of a cache-aside read."""
    product: Product
    cached: bool


class LoadRequest(BaseModel):
    """Request model for load simulation."""
    count: int = Field(10, ge=0, description="Number of concurrent reads to issue")


@dataclass
class LoadSummary:
    """Summary of one load burst."""
    requested: int
    succeeded: int = 0
    cached: int = 0
    not_found: int = 0
    failed: int = 0
    duration_ms: float = 0.0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requested": self.requested,
            "succeeded": self.succeeded,
            "cached": self.cached,
            "not_found": self.not_found,
            "failed": self.failed,
            "duration_ms": round(self.duration_ms, 2),
            "errors": self.errors[:10],
        }
