# goalfund/schemas/intent.py
"""
Structured records emitted by the natural-language intent parser.

The parser turns chat text ("got my $1000 salary, put $200 in the vacation
fund") into these; the core never sees free text.
"""
from typing import Optional, List, Literal, Union, Any, Dict
from pydantic import BaseModel, Field
import datetime
from decimal import Decimal
import uuid
from goalfund.schemas.goal import GoalRead
from goalfund.schemas.allocation import AllocationResultRead

class FundingOverrideIntent(BaseModel):
    goal_title: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)

class IncomeTransactionIntent(BaseModel):
    type: Literal["income"] = "income"
    amount: Decimal = Field(..., gt=0)
    date: Optional[datetime.date] = None
    description: Optional[str] = None
    override: Optional[FundingOverrideIntent] = None

class GoalCreationIntent(BaseModel):
    type: Literal["goal"] = "goal"
    title: str = Field(..., min_length=1, max_length=150)
    target_amount: Optional[Decimal] = None
    target_date: Optional[datetime.date] = None

ParsedIntent = Union[IncomeTransactionIntent, GoalCreationIntent]

class CommandRequest(BaseModel):
    command: str = Field(..., description="Natural language message from the user")

class GoalIntentResult(BaseModel):
    status: Literal["created", "insufficient_information", "duplicate"]
    message: str
    goal: Optional[GoalRead] = None
    existing_goal_id: Optional[uuid.UUID] = None
    options: List[str] = []
    missing_fields: List[str] = []

class IncomeIntentResult(BaseModel):
    status: Literal["allocated"] = "allocated"
    allocation: AllocationResultRead

class CommandResponse(BaseModel):
    intents: List[Dict[str, Any]]
    results: List[Union[GoalIntentResult, IncomeIntentResult]]
