# goalfund/models/settings.py
import uuid
from sqlalchemy import Column, String, Numeric, DateTime, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from goalfund.core.database import Base, utcnow

class BudgetSettings(Base):
    __tablename__ = "budget_settings"
    __table_args__ = (
        CheckConstraint("expenses_percentage >= 0 AND expenses_percentage <= 100", name="ck_budget_settings_expenses"),
        CheckConstraint("savings_percentage >= 0 AND savings_percentage <= 100", name="ck_budget_settings_savings"),
        CheckConstraint("goals_percentage >= 0 AND goals_percentage <= 100", name="ck_budget_settings_goals"),
    )

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(PG_UUID(as_uuid=True), nullable=False, unique=True, index=True)
    # The three percentages always sum to 100 (checked in crud.settings)
    expenses_percentage = Column(Numeric(5, 2), nullable=False, default=50)
    savings_percentage = Column(Numeric(5, 2), nullable=False, default=30)
    goals_percentage = Column(Numeric(5, 2), nullable=False, default=20)
    currency = Column(String(length=3), nullable=False, default="INR")

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    def __repr__(self):
        return (
            f"<BudgetSettings user_id={self.user_id} "
            f"{self.expenses_percentage}/{self.savings_percentage}/{self.goals_percentage}>"
        )
