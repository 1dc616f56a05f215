import uuid
from decimal import Decimal

import pytest

from goalfund.core.exceptions import GoalNotFound, ValidationError
from goalfund.models.allocation import AllocationType
from goalfund.utils.budgeting import (
    AllocationOverride,
    GoalSnapshot,
    SettingsSnapshot,
    compute_buckets,
    compute_goal_percentages,
    distribute_with_capacity,
    equal_split,
    percentages_sum_to_100,
    plan_income_allocation,
    split_by_weights,
    to_money,
)

D = Decimal
DEFAULT_SETTINGS = SettingsSnapshot(D("50"), D("30"), D("20"))


def goal(target, funded="0", pct="0", custom=False, title="goal"):
    return GoalSnapshot(
        goal_id=uuid.uuid4(),
        title=title,
        target_amount=D(str(target)),
        funded_amount=D(str(funded)),
        percentage_allocation=D(str(pct)),
        is_custom_percentage=custom,
    )


def test_to_money_rounds_half_up():
    assert to_money("2.675") == D("2.68")
    assert to_money(0.1) == D("0.10")
    assert to_money(D("-1.005")) == D("-1.01")


def test_percentages_sum_tolerance():
    assert percentages_sum_to_100(50, 30, 20)
    assert percentages_sum_to_100("33.33", "33.33", "33.34")
    assert percentages_sum_to_100("50", "30", "20.01")
    assert not percentages_sum_to_100(50, 30, 21)


def test_split_by_weights_ties_go_to_earlier_index():
    assert split_by_weights(D("100.00"), [1, 1, 1]) == [D("33.34"), D("33.33"), D("33.33")]
    assert split_by_weights(D("0.02"), [1, 1, 1]) == [D("0.01"), D("0.01"), D("0.00")]


def test_split_by_weights_always_sums_to_total():
    for total in ("0.01", "1.00", "99.99", "1234.57"):
        parts = split_by_weights(D(total), [D("3"), D("7"), D("11.5"), D("0.25")])
        assert sum(parts) == D(total)


def test_split_by_weights_all_zero_weights_split_equally():
    assert split_by_weights(D("10.00"), [0, 0]) == [D("5.00"), D("5.00")]
    assert split_by_weights(D("10.00"), []) == []


def test_equal_split_hundredths():
    assert equal_split(D("20.00"), 3) == [D("6.67"), D("6.67"), D("6.66")]


def test_compute_buckets_default_rule():
    b = compute_buckets(1000, DEFAULT_SETTINGS)
    assert (b.expenses, b.savings, b.goals) == (D("500.00"), D("300.00"), D("200.00"))


def test_compute_buckets_add_back_to_amount():
    b = compute_buckets(D("333.33"), DEFAULT_SETTINGS)
    assert b.goals == D("66.67")
    assert b.savings == D("100.00")
    assert b.expenses + b.savings + b.goals == D("333.33")


def test_single_goal_receives_whole_bucket():
    g = goal(1000)
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, [g])
    assert [(a.goal_id, a.amount, a.allocation_type) for a in plan.allocations] == [
        (g.goal_id, D("200.00"), AllocationType.auto)
    ]
    assert plan.unallocated == D("0.00")


def test_allocation_capped_at_remaining_room():
    g = goal(1000, funded=950)
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, [g])
    assert plan.allocations[0].amount == D("50.00")
    assert plan.unallocated == D("150.00")


def test_two_goals_split_equally():
    goals = [goal(1000, pct="10"), goal(1000, pct="10")]
    plan = plan_income_allocation(500, DEFAULT_SETTINGS, goals)
    assert [a.amount for a in plan.allocations] == [D("50.00"), D("50.00")]


def test_odd_cent_goes_to_most_recent_goal():
    newest, middle, oldest = goal(1000), goal(1000), goal(1000)
    plan = plan_income_allocation(D("500.00"), DEFAULT_SETTINGS, [newest, middle, oldest])
    assert [a.amount for a in plan.allocations] == [D("33.34"), D("33.33"), D("33.33")]


def test_manual_override_capped_at_bucket():
    vacation, other = goal(5000, title="Vacation"), goal(5000, title="Laptop")
    plan = plan_income_allocation(
        1000, DEFAULT_SETTINGS, [vacation, other], AllocationOverride(vacation.goal_id, D("300")),
    )
    assert len(plan.allocations) == 1
    assert plan.allocations[0].goal_id == vacation.goal_id
    assert plan.allocations[0].amount == D("200.00")
    assert plan.allocations[0].allocation_type == AllocationType.manual
    assert plan.unallocated == D("0.00")


def test_manual_override_residual_goes_to_other_goals():
    vacation, laptop, bike = goal(5000), goal(5000), goal(5000)
    plan = plan_income_allocation(
        1000, DEFAULT_SETTINGS, [vacation, laptop, bike], AllocationOverride(vacation.goal_id, D("120")),
    )
    amounts = {a.goal_id: (a.amount, a.allocation_type) for a in plan.allocations}
    assert amounts[vacation.goal_id] == (D("120.00"), AllocationType.manual)
    assert amounts[laptop.goal_id] == (D("40.00"), AllocationType.auto)
    assert amounts[bike.goal_id] == (D("40.00"), AllocationType.auto)


def test_manual_override_capped_at_room():
    g = goal(1000, funded=980)
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, [g], AllocationOverride(g.goal_id, D("150")))
    assert plan.allocations[0].amount == D("20.00")
    assert plan.unallocated == D("180.00")


def test_manual_override_validation():
    g = goal(1000)
    with pytest.raises(ValidationError):
        plan_income_allocation(1000, DEFAULT_SETTINGS, [g], AllocationOverride(g.goal_id, D("0")))
    with pytest.raises(GoalNotFound):
        plan_income_allocation(1000, DEFAULT_SETTINGS, [g], AllocationOverride(uuid.uuid4(), D("10")))
    with pytest.raises(GoalNotFound):
        plan_income_allocation(1000, DEFAULT_SETTINGS, [], AllocationOverride(uuid.uuid4(), D("10")))


def test_no_goals_leaves_bucket_unallocated():
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, [])
    assert plan.allocations == []
    assert plan.unallocated == D("200.00")


def test_zero_goals_percentage_allocates_nothing():
    plan = plan_income_allocation(1000, SettingsSnapshot(D("70"), D("30"), D("0")), [goal(1000)])
    assert plan.allocations == []
    assert plan.unallocated == D("0.00")


def test_surplus_redistributed_once_to_goals_with_room():
    small, big = goal(10), goal(1000)
    amounts, unallocated = distribute_with_capacity(D("100.00"), [small, big])
    assert amounts == [D("10.00"), D("90.00")]
    assert unallocated == D("0.00")


def test_surplus_left_unallocated_when_every_goal_is_full():
    amounts, unallocated = distribute_with_capacity(D("100.00"), [goal(10), goal(20)])
    assert amounts == [D("10.00"), D("20.00")]
    assert unallocated == D("70.00")


def test_custom_percentages_weight_the_split():
    goals = [goal(5000, pct="15", custom=True), goal(5000, pct="5")]
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, goals)
    assert [a.amount for a in plan.allocations] == [D("150.00"), D("50.00")]


def test_custom_zero_percent_goals_get_nothing():
    goals = [goal(5000, pct="0", custom=True), goal(5000, pct="0", custom=True)]
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, goals)
    assert plan.allocations == []
    assert plan.unallocated == D("200.00")


def test_single_custom_goal_gets_only_its_percentage():
    g = goal(5000, pct="5", custom=True)
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, [g])
    assert [(a.goal_id, a.amount) for a in plan.allocations] == [(g.goal_id, D("50.00"))]
    assert plan.unallocated == D("150.00")


def test_custom_zero_percent_goal_takes_no_surplus():
    full, zero = goal(10, pct="20", custom=True), goal(5000, pct="0", custom=True)
    amounts, unallocated = distribute_with_capacity(D("200.00"), [full, zero])
    assert amounts == [D("10.00"), D("0.00")]
    assert unallocated == D("190.00")


def test_surplus_from_capped_custom_goal_goes_to_other_custom_goals():
    small, big = goal(10, pct="10", custom=True), goal(5000, pct="5", custom=True)
    plan = plan_income_allocation(1000, DEFAULT_SETTINGS, [small, big])
    # big: 50 of its own share plus the 90 small could not take; 5% stays unclaimed
    assert [a.amount for a in plan.allocations] == [D("10.00"), D("140.00")]
    assert plan.unallocated == D("50.00")


def test_goal_percentages_equal_share():
    assert compute_goal_percentages(20, [(False, 0)] * 3) == [D("6.67"), D("6.67"), D("6.66")]
    assert compute_goal_percentages(20, [(False, 0), (False, 0)]) == [D("10.00"), D("10.00")]


def test_goal_percentages_keep_custom():
    assert compute_goal_percentages(20, [(True, 15), (False, 0), (False, 3)]) == [
        D("15.00"), D("2.50"), D("2.50"),
    ]


def test_goal_percentages_scale_custom_down_when_over_budget():
    assert compute_goal_percentages(10, [(True, 15), (True, 5), (False, 2)]) == [
        D("7.50"), D("2.50"), D("0.00"),
    ]


def test_goal_percentages_idempotent():
    first = compute_goal_percentages(20, [(True, 12), (False, 0), (False, 0), (False, 0)])
    entries = [(i == 0, pct) for i, pct in enumerate(first)]
    assert compute_goal_percentages(20, entries) == first
