# goalfund/utils/duplicates.py
import re
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.core.exceptions import DuplicateGoalConflict
from goalfund.crud.goal import list_active_goals
from goalfund.models.goal import Goal

_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str) -> str:
    """Case-fold, trim and collapse whitespace: "  Vacation   FUND " -> "vacation fund"."""
    return _WHITESPACE.sub(" ", (title or "").strip()).casefold()


async def find_duplicate_goal(user_id: uuid.UUID, title: str, db: AsyncSession) -> Optional[Goal]:
    """Active goal whose normalized title equals ``title``'s, if any.

    Completed and deleted goals never count, so a finished goal's title can
    be reused.
    """
    wanted = normalize_title(title)
    for goal in await list_active_goals(user_id, db):
        if normalize_title(goal.title) == wanted:
            return goal
    return None


async def is_duplicate(user_id: uuid.UUID, title: str, db: AsyncSession) -> bool:
    return await find_duplicate_goal(user_id, title, db) is not None


async def check_goal_is_new(user_id: uuid.UUID, title: str, db: AsyncSession) -> None:
    """Raise DuplicateGoalConflict for the caller to disambiguate with the user."""
    existing = await find_duplicate_goal(user_id, title, db)
    if existing is not None:
        raise DuplicateGoalConflict(title, existing.id, existing.title)
