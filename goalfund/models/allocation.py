# goalfund/models/allocation.py
import uuid
import enum
from sqlalchemy import Column, String, Numeric, Date, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from goalfund.core.database import Base, utcnow

class AllocationType(str, enum.Enum):
    auto = "auto"
    manual = "manual"

class GoalAllocation(Base):
    """Money moved from one income transaction into one goal. Never updated."""

    __tablename__ = "goal_allocations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_goal_allocations_amount_positive"),
    )

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(PG_UUID(as_uuid=True), nullable=False, index=True)
    goal_id = Column(PG_UUID(as_uuid=True), ForeignKey("goals.id", ondelete="RESTRICT"), nullable=False, index=True)
    # Reference into the transaction ledger
    transaction_id = Column(PG_UUID(as_uuid=True), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    allocation_type = Column(Enum(AllocationType), nullable=False, default=AllocationType.auto)
    allocation_date = Column(Date, nullable=False)
    notes = Column(String(length=255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<GoalAllocation goal_id={self.goal_id} amount={self.amount} type={self.allocation_type}>"
