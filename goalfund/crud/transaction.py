# goalfund/crud/transaction.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc
from goalfund.models.transaction import Transaction, TransactionType
from goalfund.schemas.transaction import TransactionCreate
from goalfund.utils.budgeting import to_money
from typing import List, Optional
import uuid

async def get_transactions_for_user(user_id: uuid.UUID, db: AsyncSession, limit: int = 100) -> List[Transaction]:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.user_id == user_id)
        .order_by(desc(Transaction.transaction_date), desc(Transaction.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())

async def get_transaction_by_id(transaction_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[Transaction]:
    result = await db.execute(
        select(Transaction).where(Transaction.id == transaction_id, Transaction.user_id == user_id)
    )
    return result.scalar_one_or_none()

async def create_transaction_for_user(user_id: uuid.UUID, tx_in: TransactionCreate, db: AsyncSession) -> Transaction:
    new_tx = Transaction(
        user_id=user_id,
        description=tx_in.description,
        amount=to_money(tx_in.amount),
        type=TransactionType(tx_in.type),
        transaction_date=tx_in.transaction_date,
    )
    db.add(new_tx)
    await db.commit()
    await db.refresh(new_tx)
    return new_tx

async def mark_allocated(tx: Transaction, db: AsyncSession, breakdown=None) -> None:
    tx.is_allocated = True
    if breakdown is not None:
        tx.expenses_amount = breakdown.expenses
        tx.savings_amount = breakdown.savings
        tx.goals_amount = breakdown.goals
    db.add(tx)
    await db.flush()
