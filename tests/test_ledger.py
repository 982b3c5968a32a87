"""Tests for the sqlite ledger services."""

from datetime import datetime

from ledger import budgets, expenses, incomes, investments
from ledger.groups import (
    add_member, ensure_member, get_group, get_members, is_member, remove_member, upsert_group,
)
from ledger.users import create_placeholder_user, get_or_create_user, get_user, get_user_by_phone
from utils.dates import month_range


def test_get_or_create_user_is_idempotent_and_refreshes_name():
    first = get_or_create_user("5511911112222")
    second = get_or_create_user("5511911112222", "Teo")

    assert first["id"] == second["id"]
    assert first["name"] is None
    assert get_user(first["id"])["name"] == "Teo"
    assert get_user_by_phone("5511911112222")["is_placeholder"] == 0


def test_placeholder_users_get_unique_fake_phones():
    a = create_placeholder_user("Ana Maria")
    b = create_placeholder_user("Ana Maria")

    assert a["phone"].startswith("virtual_ana_maria_")
    assert a["phone"] != b["phone"]
    assert a["is_placeholder"] == 1


def test_group_membership():
    user = get_or_create_user("5511911112222", "Teo")
    ensure_member("g1@g.us", user["id"], "Band")
    ensure_member("g1@g.us", user["id"])

    assert get_group("g1@g.us")["name"] == "Band"
    assert is_member("g1@g.us", user["id"])

    remove_member("g1@g.us", user["id"])
    assert not is_member("g1@g.us", user["id"])


def test_upsert_group_keeps_name_when_none_given():
    upsert_group("g2@g.us", "Old")
    upsert_group("g2@g.us")
    assert get_group("g2@g.us")["name"] == "Old"

    upsert_group("g2@g.us", "New")
    assert get_group("g2@g.us")["name"] == "New"


def test_add_member_updates_role():
    user = get_or_create_user("5511911112222", "Teo")
    add_member("g3@g.us", user["id"])
    add_member("g3@g.us", user["id"], role="admin")
    assert [m["role"] for m in get_members("g3@g.us")] == ["admin"]


def test_description_lookup_prefers_most_recent():
    user = get_or_create_user("5511911112222", "Teo")
    expenses.add_expense(user["id"], "Electricity March", 100, "housing", date=datetime(2025, 3, 5))
    expenses.add_expense(user["id"], "Electricity April", 110, "housing", date=datetime(2025, 4, 5))

    found = expenses.find_expense_by_description(user["id"], "electricity")
    assert found["description"] == "Electricity April"


def test_month_filters():
    user = get_or_create_user("5511911112222", "Teo")
    incomes.add_income(user["id"], "old salary", 4000, "salary", date=datetime(2020, 1, 10))
    incomes.add_income(user["id"], "salary", 5000, "salary")

    assert incomes.get_total_income(user["id"]) == 5000
    assert incomes.get_total_income(user["id"], month=1, year=2020) == 4000


def test_month_range_bounds():
    start, end, month, year = month_range(2, 2024)
    assert (start.day, end.day, month, year) == (1, 29, 2, 2024)
    assert end.hour == 23 and end.microsecond == 999999


def test_budget_upsert():
    user = get_or_create_user("5511911112222", "Teo")
    budgets.set_budget(user["id"], "food", 300)
    budgets.set_budget(user["id"], "food", 400)

    rows = budgets.get_budgets(user["id"])
    assert len(rows) == 1
    assert rows[0]["limit_amount"] == 400


def test_investment_summary_tracks_current_value():
    user = get_or_create_user("5511911112222", "Teo")
    inv = investments.add_investment(user["id"], "PETR4", "stocks", 1000)
    investments.update_investment_value(inv["id"], 1100)

    summary = investments.get_investment_summary(user["id"])
    assert summary["total_return"] == 100
    assert round(summary["return_percentage"], 2) == 10.0
    assert summary["by_type"]["stocks"]["current_value"] == 1100
