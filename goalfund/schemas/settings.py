# goalfund/schemas/settings.py
from typing import Optional
from pydantic import BaseModel, Field
from decimal import Decimal
import uuid

class BudgetSettingsRead(BaseModel):
    user_id: uuid.UUID
    expenses_percentage: float
    savings_percentage: float
    goals_percentage: float
    currency: str

    class Config:
        from_attributes = True

class BudgetSettingsUpdate(BaseModel):
    expenses_percentage: Decimal = Field(..., description="Share of income for expenses")
    savings_percentage: Decimal = Field(..., description="Share of income for general savings")
    goals_percentage: Decimal = Field(..., description="Share of income split across savings goals")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)

class BudgetBreakdownRead(BaseModel):
    amount: float
    expenses: float
    savings: float
    goals: float
