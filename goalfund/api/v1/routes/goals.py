# goalfund/api/v1/routes/goals.py
from typing import List
import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from goalfund.api.deps import get_current_user_id
from goalfund.core.database import get_async_session
from goalfund.crud.allocation import get_funded_amounts
from goalfund.crud.goal import get_goals_for_user
from goalfund.schemas.goal import (
    AllocationRead,
    DuplicateCheckResponse,
    GoalAllocationHistory,
    GoalCreate,
    GoalPercentageUpdate,
    GoalProgressResponse,
    GoalRead,
)
from goalfund.utils.duplicates import find_duplicate_goal
from goalfund.utils.goals import create_goal, delete_goal, get_goal, set_goal_percentage
from goalfund.utils.progress import (
    GoalProgress,
    build_goal_progress,
    get_goal_progress,
    list_goal_allocations,
    recompute,
)

router = APIRouter(prefix="/goals", tags=["goals"])


def _progress_response(progress: GoalProgress) -> GoalProgressResponse:
    return GoalProgressResponse(
        goal=GoalRead.model_validate(progress.goal),
        funded_amount=float(progress.funded_amount),
        remaining_amount=float(progress.remaining_amount),
        progress_percentage=float(progress.progress_percentage),
        is_completed=progress.is_completed,
    )


@router.get("", response_model=List[GoalProgressResponse])
async def read_goals(
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """Active and completed goals, most recent first, with funding progress."""
    goals = await get_goals_for_user(user_id, db)
    funded = await get_funded_amounts([g.id for g in goals], db)
    return [_progress_response(build_goal_progress(g, funded[g.id])) for g in goals]


@router.post("", response_model=GoalRead, status_code=status.HTTP_201_CREATED)
async def create_goal_endpoint(
    goal_in: GoalCreate,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    """
    Create a savings goal.

    - **percentage_allocation**: optional custom share of the goals bucket;
      leave empty to split equally with the other goals.

    Responds 409 with the existing goal and the options
    (modify_existing, rename, abort) when an active goal has the same title.
    """
    return await create_goal(
        user_id,
        goal_in.title,
        goal_in.target_amount,
        db,
        target_date=goal_in.target_date,
        percentage_allocation=goal_in.percentage_allocation,
    )


@router.get("/duplicates/check", response_model=DuplicateCheckResponse)
async def check_duplicate(
    title: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    existing = await find_duplicate_goal(user_id, title, db)
    return DuplicateCheckResponse(
        title=title,
        is_duplicate=existing is not None,
        existing_goal_id=existing.id if existing else None,
    )


@router.get("/{goal_id}", response_model=GoalProgressResponse)
async def read_goal(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    goal = await get_goal(goal_id, user_id, db)
    return _progress_response(await get_goal_progress(goal, db))


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal_endpoint(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    goal = await get_goal(goal_id, user_id, db)
    await delete_goal(goal, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{goal_id}/percentage", response_model=GoalRead)
async def update_goal_percentage(
    goal_id: uuid.UUID,
    update_in: GoalPercentageUpdate,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    goal = await get_goal(goal_id, user_id, db)
    return await set_goal_percentage(goal, update_in.percentage_allocation, db)


@router.get("/{goal_id}/allocations", response_model=GoalAllocationHistory)
async def read_goal_allocations(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    goal = await get_goal(goal_id, user_id, db)
    progress = await get_goal_progress(goal, db)
    allocations = await list_goal_allocations(goal.id, db)
    return GoalAllocationHistory(
        goal_id=goal.id,
        funded_amount=float(progress.funded_amount),
        allocations=[AllocationRead.model_validate(a) for a in allocations],
    )


@router.post("/{goal_id}/recompute", response_model=GoalProgressResponse)
async def recompute_goal(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
):
    return _progress_response(await recompute(goal_id, user_id, db))
