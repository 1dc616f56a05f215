# goalfund/models/transaction.py
import uuid
import enum
from sqlalchemy import Column, String, Numeric, DateTime, Date, Boolean, Enum
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from goalfund.core.database import Base, utcnow

class TransactionType(str, enum.Enum):
    income = "income"
    expense = "expense"

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(PG_UUID(as_uuid=True), nullable=False, index=True)
    description = Column(String(length=255), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(Enum(TransactionType), nullable=False)
    transaction_date = Column(Date, nullable=False)
    # Set once the goals bucket of an income has been distributed
    is_allocated = Column(Boolean, nullable=False, default=False)
    # Buckets the income was split into when it was allocated
    expenses_amount = Column(Numeric(12, 2), nullable=True)
    savings_amount = Column(Numeric(12, 2), nullable=True)
    goals_amount = Column(Numeric(12, 2), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Transaction amount={self.amount} type={self.type} date={self.transaction_date} user_id={self.user_id}>"
