# goalfund/models/goal.py
import uuid
import enum
from sqlalchemy import Column, String, Numeric, Date, DateTime, Boolean, Enum, Index
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from goalfund.core.database import Base, utcnow

class GoalStatus(str, enum.Enum):
    active = "active"
    completed = "completed"

class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (
        Index("idx_goals_user_status", "user_id", "status"),
    )

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Users live in the external auth service, so no FK here
    user_id = Column(PG_UUID(as_uuid=True), nullable=False, index=True)
    title = Column(String(length=150), nullable=False)
    target_amount = Column(Numeric(12, 2), nullable=False)
    target_date = Column(Date, nullable=True)
    # Share (0-100) of the income that goes to this goal, carved out of goals_percentage
    percentage_allocation = Column(Numeric(5, 2), nullable=False, default=0)
    # True when the user picked the percentage; excluded from equal rebalancing
    is_custom_percentage = Column(Boolean, nullable=False, default=False)
    status = Column(Enum(GoalStatus), nullable=False, default=GoalStatus.active)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)
    # Soft delete keeps historical allocations pointing at a real row
    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == GoalStatus.active and self.deleted_at is None

    def __repr__(self):
        return f"<Goal title={self.title} target={self.target_amount} status={self.status} user_id={self.user_id}>"
