# goalfund/schemas/transaction.py
from typing import Optional, Literal
from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
import uuid
from goalfund.models.transaction import TransactionType

class TransactionBase(BaseModel):
    description: Optional[str] = Field(None, description="E.g. Monthly salary")
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    transaction_date: date = Field(..., description="ISO 8601 date of the transaction")

class TransactionCreate(TransactionBase):
    type: Literal["income", "expense"] = "income"

class IncomeCreate(TransactionBase):
    # Optional manual override: send exactly this amount to one goal
    override_goal_id: Optional[uuid.UUID] = None
    override_amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)

class TransactionRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    description: Optional[str] = None
    amount: float
    type: TransactionType
    transaction_date: date
    is_allocated: bool

    class Config:
        from_attributes = True
