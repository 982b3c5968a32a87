"""Tests for the tool dispatcher against a real sqlite ledger."""

import pytest

from agents.common.enforcement import GROUP_ONLY_MESSAGE
from agents.finance.dispatcher import ToolDispatcher
from agents.finance.results import ResultKind
from ledger import expenses, incomes
from ledger.groups import ensure_member, get_members
from ledger.users import get_or_create_user
from session.context import MessageContext

GROUP = "house@g.us"


@pytest.fixture
def user():
    return get_or_create_user("5511988887777", "Rafa")


@pytest.fixture
def private(user):
    return MessageContext(user_id=user["id"])


@pytest.fixture
def group(user):
    ensure_member(GROUP, user["id"], "House")
    return MessageContext(user_id=user["id"], group_id=GROUP, is_group=True)


@pytest.fixture
def dispatcher():
    return ToolDispatcher()


@pytest.mark.asyncio
async def test_add_expense(dispatcher, private, user):
    result = await dispatcher.execute(
        "add_expense",
        {"description": "light", "amount": 200, "category": "housing", "paid": True},
        private,
    )

    assert result.kind == ResultKind.CREATED
    assert result.text == "Expense registered: light - R$ 200.00 (housing) ✅"
    stored = expenses.get_expenses(user["id"])
    assert stored[0]["paid"] is True
    assert stored[0]["group_id"] is None


@pytest.mark.asyncio
async def test_add_expense_for_named_member_in_group(dispatcher, group):
    result = await dispatcher.execute(
        "add_expense",
        {"description": "market", "amount": 50, "category": "food", "member_name": "Maria"},
        group,
    )

    assert result.text == "Expense registered: market - R$ 50.00 (food) (Maria)"
    members = {m["name"]: m for m in get_members(GROUP)}
    assert members["Maria"]["is_placeholder"] == 1
    rows = expenses.get_group_expenses(GROUP)
    assert rows[0]["user_name"] == "Maria"


@pytest.mark.asyncio
async def test_member_name_is_ignored_in_private_chat(dispatcher, private, user):
    result = await dispatcher.execute(
        "add_income",
        {"description": "salary", "amount": 5000, "source": "salary", "member_name": "Laura"},
        private,
    )

    assert result.text == "Income registered: salary - R$ 5000.00 (salary)"
    assert incomes.get_incomes(user["id"])[0]["description"] == "salary"


@pytest.mark.asyncio
async def test_blank_member_name_records_for_sender(dispatcher, group, user):
    await dispatcher.execute(
        "add_expense",
        {"description": "gas", "amount": 80, "category": "housing", "member_name": "  "},
        group,
    )
    assert expenses.get_group_expenses(GROUP)[0]["user_id"] == user["id"]
    assert len(get_members(GROUP)) == 1


@pytest.mark.asyncio
async def test_delete_unknown_expense_is_not_found(dispatcher, private):
    result = await dispatcher.execute("delete_expense", {"description": "gym"}, private)

    assert result.kind == ResultKind.NOT_FOUND
    assert result.text == 'Expense "gym" not found.'


@pytest.mark.asyncio
async def test_delete_expense_matches_partial_description(dispatcher, private, user):
    expenses.add_expense(user["id"], "Nubank card bill", 700, "cards")

    result = await dispatcher.execute("delete_expense", {"description": "nubank"}, private)

    assert result.kind == ResultKind.DELETED
    assert result.text == '🗑️ Expense "Nubank card bill" (R$ 700.00) removed!'
    assert expenses.get_expenses(user["id"]) == []


@pytest.mark.asyncio
async def test_mark_paid_and_unpaid(dispatcher, private, user):
    expenses.add_expense(user["id"], "rent", 1500, "housing")

    paid = await dispatcher.execute("mark_expense_paid", {"description": "rent"}, private)
    assert paid.kind == ResultKind.STATUS_CHANGED
    assert paid.text == '✅ Expense "rent" marked as paid!'
    assert expenses.find_expense_by_description(user["id"], "rent")["paid"] is True

    pending = await dispatcher.execute("mark_expense_unpaid", {"description": "rent"}, private)
    assert pending.text == '⏳ Expense "rent" marked as pending.'
    assert expenses.find_expense_by_description(user["id"], "rent")["paid"] is False


@pytest.mark.asyncio
async def test_mark_paid_in_group_reports_group_scope(dispatcher, group):
    result = await dispatcher.execute("mark_expense_paid", {"description": "rent"}, group)
    assert result.text == 'Expense "rent" not found in the group.'


@pytest.mark.asyncio
async def test_edit_expense(dispatcher, private, user):
    expenses.add_expense(user["id"], "rent", 1400, "housing")

    result = await dispatcher.execute(
        "edit_expense", {"description": "rent", "new_amount": 1500}, private
    )

    assert result.kind == ResultKind.EDITED
    assert result.text == "✏️ Expense updated: rent - R$ 1500.00 (housing)"


@pytest.mark.asyncio
async def test_edit_without_changes(dispatcher, private):
    result = await dispatcher.execute("edit_income", {"description": "salary"}, private)
    assert result.kind == ResultKind.NOT_FOUND
    assert result.text == "No changes given."


@pytest.mark.asyncio
async def test_clear_all(dispatcher, private, user):
    expenses.add_expense(user["id"], "a", 1, "other")
    expenses.add_expense(user["id"], "b", 2, "other")
    incomes.add_income(user["id"], "c", 3, "other")

    result = await dispatcher.execute("clear_all", {}, private)

    assert result.kind == ResultKind.DELETED
    assert result.text == "🗑️ Everything removed! 2 expense(s) and 1 income(s) deleted."

    again = await dispatcher.execute("clear_all", {}, private)
    assert again.text == "No transactions to remove."


@pytest.mark.asyncio
async def test_clear_all_expenses_only_touches_private_records(dispatcher, private, group, user):
    expenses.add_expense(user["id"], "private", 10, "other")
    expenses.add_expense(user["id"], "shared", 20, "other", group_id=GROUP)

    result = await dispatcher.execute("clear_all_expenses", {}, private)

    assert result.text == "🗑️ 1 expense(s) removed!"
    assert [e["description"] for e in expenses.get_group_expenses(GROUP)] == ["shared"]


@pytest.mark.asyncio
async def test_balance(dispatcher, private, user):
    incomes.add_income(user["id"], "salary", 5000, "salary")
    expenses.add_expense(user["id"], "rent", 1500, "housing")

    result = await dispatcher.execute("get_balance", {}, private)

    assert result.text == (
        "Income: R$ 5000.00\n"
        "Expenses: R$ 1500.00\n"
        "Balance: R$ 3500.00 (positive)"
    )


@pytest.mark.asyncio
async def test_budget_status(dispatcher, private, user):
    empty = await dispatcher.execute("get_budget_status", {}, private)
    assert empty.kind == ResultKind.NOT_FOUND

    await dispatcher.execute("set_budget", {"category": "food", "limit": 100}, private)
    expenses.add_expense(user["id"], "market", 150, "food")

    result = await dispatcher.execute("get_budget_status", {}, private)
    assert result.text == "• food: R$ 150.00 / R$ 100.00 (150%) ⚠️ OVER BUDGET"


@pytest.mark.asyncio
async def test_investments(dispatcher, private):
    empty = await dispatcher.execute("get_investment_summary", {}, private)
    assert empty.text == "No investments registered."

    added = await dispatcher.execute(
        "add_investment", {"name": "Bitcoin", "type": "crypto", "amount": 1000}, private
    )
    assert added.text == "Investment registered: Bitcoin - R$ 1000.00 (crypto)"

    summary = await dispatcher.execute("get_investment_summary", {}, private)
    assert summary.text.startswith("Total invested: R$ 1000.00")


@pytest.mark.asyncio
async def test_list_expenses_in_group_shows_owner(dispatcher, group, user):
    expenses.add_expense(user["id"], "pizza", 60, "food", group_id=GROUP)

    result = await dispatcher.execute("list_expenses", {}, group)
    assert result.text == "• pizza: R$ 60.00 (food) - Rafa"


@pytest.mark.asyncio
async def test_summary_by_category(dispatcher, private, user):
    expenses.add_expense(user["id"], "uber", 20, "transport")
    expenses.add_expense(user["id"], "lunch", 30, "food")

    result = await dispatcher.execute("get_expenses_summary", {}, private)
    assert result.text == "• food: R$ 30.00\n• transport: R$ 20.00\n\nTotal: R$ 50.00"


@pytest.mark.asyncio
async def test_group_tools_refuse_private_scope(dispatcher, private):
    for name in ("get_group_report", "get_group_split", "list_group_members"):
        result = await dispatcher.execute(name, {}, private)
        assert result.text == GROUP_ONLY_MESSAGE


@pytest.mark.asyncio
async def test_list_group_members(dispatcher, group):
    result = await dispatcher.execute("list_group_members", {}, group)
    assert result.text == "• Rafa (member)"


@pytest.mark.asyncio
async def test_unknown_tool(dispatcher, private):
    result = await dispatcher.execute("transfer_money", {}, private)
    assert result.kind == ResultKind.OTHER
    assert result.text == "Unknown tool: transfer_money"
