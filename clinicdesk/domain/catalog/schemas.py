"""Catalog schemas - the clinic's price list"""

from typing import Optional

from pydantic import BaseModel, field_validator


class ServiceCreate(BaseModel):
    name: str
    price: float = 0
    isActive: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Service name is required")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Price cannot be negative")
        return round(v, 2)


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    isActive: Optional[bool] = None

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative")
        return round(v, 2) if v is not None else v


class ServiceResponse(BaseModel):
    id: int
    name: str
    price: float
    isActive: bool
