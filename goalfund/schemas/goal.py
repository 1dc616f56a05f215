# goalfund/schemas/goal.py
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
import uuid
from goalfund.models.goal import GoalStatus
from goalfund.models.allocation import AllocationType

class GoalCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    target_amount: Decimal = Field(..., description="Amount to save; must be greater than zero")
    target_date: Optional[date] = None
    # Leave empty to receive an equal share of the goals percentage
    percentage_allocation: Optional[Decimal] = Field(None, ge=0, le=100)

class GoalPercentageUpdate(BaseModel):
    # None goes back to the equal share
    percentage_allocation: Optional[Decimal] = Field(None, ge=0, le=100)

class GoalRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    target_amount: float
    target_date: Optional[date] = None
    percentage_allocation: float
    is_custom_percentage: bool
    status: GoalStatus
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class GoalProgressResponse(BaseModel):
    goal: GoalRead
    funded_amount: float
    remaining_amount: float
    progress_percentage: float
    is_completed: bool

class AllocationRead(BaseModel):
    id: uuid.UUID
    goal_id: uuid.UUID
    transaction_id: uuid.UUID
    amount: float
    allocation_type: AllocationType
    allocation_date: date
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class GoalAllocationHistory(BaseModel):
    goal_id: uuid.UUID
    funded_amount: float
    allocations: List[AllocationRead]

class DuplicateCheckResponse(BaseModel):
    title: str
    is_duplicate: bool
    existing_goal_id: Optional[uuid.UUID] = None
