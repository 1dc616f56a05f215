# goalfund/utils/budgeting.py
"""
Budget arithmetic for the goal funding engine.

Everything here is pure: no database, no clock. The allocation engine builds
snapshots from the store, asks plan_income_allocation() what to write, and
writes it. Amounts are Decimal quantized to cents; percentages are Decimal
quantized to hundredths.
"""
import math
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple, Union

from goalfund.core.exceptions import GoalNotFound, ValidationError
from goalfund.models.allocation import AllocationType

Number = Union[Decimal, float, int, str]

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


# ────────────────────────────────────────────────────────────────────────────────
# ROUNDING
# ────────────────────────────────────────────────────────────────────────────────
def to_money(value: Number) -> Decimal:
    """Quantize to cents, half up."""
    if not isinstance(value, Decimal):
        # str() keeps floats like 0.1 from dragging binary noise along
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_percent(value: Number) -> Decimal:
    return to_money(value)


def percentages_sum_to_100(expenses: Number, savings: Number, goals: Number,
                           tolerance: Number = Decimal("0.01")) -> bool:
    total = to_percent(expenses) + to_percent(savings) + to_percent(goals)
    return abs(total - HUNDRED) <= Decimal(str(tolerance))


def split_by_weights(total: Decimal, weights: Sequence[Number],
                     unit: Decimal = CENT) -> List[Decimal]:
    """
    Split ``total`` into len(weights) parts proportional to ``weights`` using
    largest-remainder rounding in multiples of ``unit``.

    The parts always sum to ``total`` exactly. Leftover units go to the
    largest fractional remainders; ties go to the earlier index. All-zero
    weights split equally.
    """
    if not weights:
        return []

    units_total = int((to_money(total) / unit).to_integral_value())
    fractions = [Fraction(Decimal(str(w))) for w in weights]
    if any(f < 0 for f in fractions):
        raise ValueError("weights must be non-negative")
    weight_sum = sum(fractions)
    if weight_sum == 0:
        fractions = [Fraction(1)] * len(weights)
        weight_sum = Fraction(len(weights))

    exact = [Fraction(units_total) * f / weight_sum for f in fractions]
    floors = [math.floor(x) for x in exact]
    leftover = units_total - sum(floors)

    by_remainder = sorted(range(len(exact)), key=lambda i: (-(exact[i] - floors[i]), i))
    for i in by_remainder[:leftover]:
        floors[i] += 1

    return [Decimal(units) * unit for units in floors]


def equal_split(total: Decimal, count: int) -> List[Decimal]:
    return split_by_weights(total, [1] * count)


# ────────────────────────────────────────────────────────────────────────────────
# SNAPSHOTS & PLANS
# ────────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class SettingsSnapshot:
    expenses_percentage: Decimal
    savings_percentage: Decimal
    goals_percentage: Decimal

    @classmethod
    def from_model(cls, budget_settings) -> "SettingsSnapshot":
        return cls(
            expenses_percentage=to_percent(budget_settings.expenses_percentage),
            savings_percentage=to_percent(budget_settings.savings_percentage),
            goals_percentage=to_percent(budget_settings.goals_percentage),
        )


@dataclass(frozen=True)
class GoalSnapshot:
    goal_id: uuid.UUID
    title: str
    target_amount: Decimal
    funded_amount: Decimal
    percentage_allocation: Decimal = Decimal("0")
    is_custom_percentage: bool = False

    @property
    def room(self) -> Decimal:
        return max(to_money(self.target_amount) - to_money(self.funded_amount), Decimal("0.00"))


@dataclass(frozen=True)
class AllocationOverride:
    """A user-directed amount for one goal, e.g. "$200 to vacation fund"."""
    goal_id: uuid.UUID
    amount: Decimal


@dataclass(frozen=True)
class PlannedAllocation:
    goal_id: uuid.UUID
    amount: Decimal
    allocation_type: AllocationType


@dataclass(frozen=True)
class BudgetBreakdown:
    amount: Decimal
    expenses: Decimal
    savings: Decimal
    goals: Decimal


@dataclass
class AllocationPlan:
    breakdown: BudgetBreakdown
    allocations: List[PlannedAllocation] = field(default_factory=list)
    unallocated: Decimal = Decimal("0.00")

    @property
    def goals_bucket(self) -> Decimal:
        return self.breakdown.goals

    @property
    def allocated(self) -> Decimal:
        return sum((a.amount for a in self.allocations), Decimal("0.00"))


# ────────────────────────────────────────────────────────────────────────────────
# BUCKETS
# ────────────────────────────────────────────────────────────────────────────────
def compute_buckets(amount: Number, settings: SettingsSnapshot) -> BudgetBreakdown:
    """Split an income into expenses / savings / goals buckets.

    Goals and savings are rounded to cents; expenses takes what is left so the
    three buckets add back up to the income.
    """
    amount = to_money(amount)
    goals = to_money(amount * settings.goals_percentage / HUNDRED)
    savings = to_money(amount * settings.savings_percentage / HUNDRED)
    expenses = amount - goals - savings
    return BudgetBreakdown(amount=amount, expenses=expenses, savings=savings, goals=goals)


# ────────────────────────────────────────────────────────────────────────────────
# DISTRIBUTION
# ────────────────────────────────────────────────────────────────────────────────
def _split_weights(goals: Sequence[GoalSnapshot], by_percentage: bool) -> List[Decimal]:
    # Without custom percentages every goal holds the same share, so split
    # equally rather than by the rounded percentages
    if not by_percentage:
        return [Decimal("1")] * len(goals)
    return [to_percent(g.percentage_allocation or 0) for g in goals]


def distribute_with_capacity(
    bucket: Decimal,
    goals: Sequence[GoalSnapshot],
    by_percentage: Optional[bool] = None,
    reserve: Number = Decimal("0"),
) -> Tuple[List[Decimal], Decimal]:
    """
    Distribute ``bucket`` across ``goals`` (in order) by their percentage
    weights, never past a goal's remaining room.

    With ``by_percentage`` (the default once any goal has a custom
    percentage) each goal is weighted by its percentage_allocation and
    ``reserve`` is the weight of the share no goal claims; that share stays
    unallocated. A goal at 0% receives nothing.

    Surplus from capped goals is redistributed once, by weight, across the
    goals that still have room. Returns (amount per goal, unallocated).
    """
    bucket = to_money(bucket)
    zeros = [Decimal("0.00")] * len(goals)
    if not goals or bucket <= 0:
        return zeros, bucket if bucket > 0 else Decimal("0.00")

    if by_percentage is None:
        by_percentage = any(g.is_custom_percentage for g in goals)
    weights = _split_weights(goals, by_percentage)
    reserve = max(to_percent(reserve), Decimal("0.00")) if by_percentage else Decimal("0.00")
    if sum(weights) + reserve <= 0:
        return zeros, bucket

    shares = split_by_weights(bucket, weights + [reserve])[:-1]
    amounts = [min(share, goal.room) for share, goal in zip(shares, goals)]

    capped = sum(share - amount for share, amount in zip(shares, amounts))
    if capped > 0:
        eligible = [i for i, goal in enumerate(goals) if weights[i] > 0 and goal.room - amounts[i] > 0]
        if eligible:
            extra = split_by_weights(capped, [weights[i] for i in eligible])
            for i, share in zip(eligible, extra):
                amounts[i] += min(share, goals[i].room - amounts[i])

    unallocated = bucket - sum(amounts)
    return amounts, unallocated


def plan_income_allocation(
    amount: Number,
    settings: SettingsSnapshot,
    goals: Sequence[GoalSnapshot],
    override: Optional[AllocationOverride] = None,
) -> AllocationPlan:
    """
    Work out which goals an income funds and by how much.

    ``goals`` must be the user's active goals in registry order (most recently
    created first); that order decides rounding ties and the order of the
    resulting allocations. A manual override is capped at the goals bucket and
    at the goal's room; the rest of the bucket is split across the other goals.

    Once any goal has a custom percentage, each goal gets its own percentage
    of the income and the unclaimed part of the bucket is left unallocated.
    """
    breakdown = compute_buckets(amount, settings)
    plan = AllocationPlan(breakdown=breakdown, unallocated=breakdown.goals)

    target: Optional[GoalSnapshot] = None
    if override is not None:
        requested = to_money(override.amount)
        if requested <= 0:
            raise ValidationError("Manual allocation amount must be greater than zero")
        target = next((g for g in goals if g.goal_id == override.goal_id), None)
        if target is None:
            raise GoalNotFound(f"Goal {override.goal_id} is not an active goal")

    if breakdown.goals <= 0 or not goals:
        return plan

    manual_amount = Decimal("0.00")
    auto_goals: List[GoalSnapshot] = list(goals)
    if target is not None:
        manual_amount = min(requested, breakdown.goals, target.room)
        auto_goals = [g for g in goals if g.goal_id != override.goal_id]

    # A custom percentage is the goal's share of each income; whatever the
    # goals' percentages leave of goals_percentage is not claimed by anyone
    by_percentage = any(g.is_custom_percentage for g in goals)
    reserve = Decimal("0.00")
    if by_percentage:
        claimed = sum((to_percent(g.percentage_allocation or 0) for g in goals), Decimal("0.00"))
        reserve = max(settings.goals_percentage - claimed, Decimal("0.00"))

    residual = breakdown.goals - manual_amount
    auto_amounts, _ = distribute_with_capacity(residual, auto_goals, by_percentage=by_percentage, reserve=reserve)
    auto_by_goal = {g.goal_id: a for g, a in zip(auto_goals, auto_amounts)}

    for goal in goals:
        if override is not None and goal.goal_id == override.goal_id:
            if manual_amount > 0:
                plan.allocations.append(PlannedAllocation(goal.goal_id, manual_amount, AllocationType.manual))
            continue
        share = auto_by_goal.get(goal.goal_id, Decimal("0.00"))
        if share > 0:
            plan.allocations.append(PlannedAllocation(goal.goal_id, share, AllocationType.auto))

    plan.unallocated = breakdown.goals - plan.allocated
    return plan


# ────────────────────────────────────────────────────────────────────────────────
# PERCENTAGE REBALANCE
# ────────────────────────────────────────────────────────────────────────────────
def compute_goal_percentages(goals_percentage: Number,
                             entries: Sequence[Tuple[bool, Number]]) -> List[Decimal]:
    """
    New percentage_allocation for each active goal, given
    ``(is_custom, current_percentage)`` pairs in registry order.

    Custom percentages are kept and the rest of ``goals_percentage`` is shared
    equally by the other goals. Custom percentages that no longer fit (the
    user lowered goals_percentage) are scaled down to fill it exactly.
    """
    goals_percentage = to_percent(goals_percentage)
    result = [Decimal("0.00")] * len(entries)
    custom_idx = [i for i, (is_custom, _) in enumerate(entries) if is_custom]
    equal_idx = [i for i, (is_custom, _) in enumerate(entries) if not is_custom]

    custom_total = sum((to_percent(entries[i][1]) for i in custom_idx), Decimal("0.00"))
    if custom_total > goals_percentage:
        scaled = split_by_weights(goals_percentage, [to_percent(entries[i][1]) for i in custom_idx])
        for i, pct in zip(custom_idx, scaled):
            result[i] = pct
        return result

    for i in custom_idx:
        result[i] = to_percent(entries[i][1])
    remainder = goals_percentage - custom_total
    for i, pct in zip(equal_idx, equal_split(remainder, len(equal_idx))):
        result[i] = pct
    return result
