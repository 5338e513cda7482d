# storefront/schemas/sales.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


class Sale(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    total: float = 0.0
    category_summary: Optional[str] = None
    customer_name: Optional[str] = None
    created_at: datetime

    @field_validator("total", mode="before")
    @classmethod
    def none_to_zero(cls, v):
        return v or 0.0


class SalesHistoryPoint(BaseModel):
    date: str
    amount: float


class CategoryTotal(BaseModel):
    name: str
    total: float


class DashboardTotals(BaseModel):
    sales: float
    users: int
    products: int


class DashboardStats(BaseModel):
    sales_history: List[SalesHistoryPoint] = Field(default_factory=list)
    category_stats: List[CategoryTotal] = Field(default_factory=list)
    totals: DashboardTotals
