# goalfund/schemas/allocation.py
from typing import List
from pydantic import BaseModel
import uuid
from goalfund.schemas.goal import AllocationRead
from goalfund.schemas.settings import BudgetBreakdownRead

class AllocationResultRead(BaseModel):
    transaction_id: uuid.UUID
    breakdown: BudgetBreakdownRead
    allocations: List[AllocationRead]
    allocated_amount: float
    unallocated_amount: float
    completed_goal_ids: List[uuid.UUID]
    already_allocated: bool = False
