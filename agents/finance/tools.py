from google.genai import types

from ledger.expenses import EXPENSE_CATEGORIES
from ledger.incomes import INCOME_SOURCES
from ledger.investments import INVESTMENT_TYPES


def _string(description, enum=None):
    schema = {"type": "STRING", "description": description}
    if enum:
        schema["enum"] = list(enum)
    return schema


def _number(description):
    return {"type": "NUMBER", "description": description}


def _boolean(description):
    return {"type": "BOOLEAN", "description": description}


def declare(name, description, properties=None, required=None):
    """
    Build a Gemini function declaration. Tools without arguments get no
    parameter schema at all.
    """
    if not properties:
        return types.FunctionDeclaration(name=name, description=description)

    parameters = {"type": "OBJECT", "properties": properties}
    if required:
        parameters["required"] = list(required)
    return types.FunctionDeclaration(name=name, description=description, parameters=parameters)


MEMBER_NAME = _string("Name of the group member this record belongs to (optional, groups only)")


# -------------------------------------------------
# Available in private and group chats
# -------------------------------------------------

TOOLS = [
    declare(
        "add_expense",
        "Records a new expense. In groups, use member_name to record it for another member.",
        {
            "description": _string("What the expense was (e.g. lunch, uber, groceries)"),
            "amount": _number("Amount spent"),
            "category": _string("Expense category", EXPENSE_CATEGORIES),
            "paid": _boolean("Whether the expense is already paid (optional, default false)"),
            "member_name": MEMBER_NAME,
        },
        required=["description", "amount", "category"],
    ),
    declare(
        "list_expenses",
        "Lists the user's expenses",
        {
            "category": _string("Filter by category (optional)"),
            "limit": _number("Maximum number of results"),
        },
    ),
    declare("get_expenses_summary", "Shows this month's expenses grouped by category"),
    declare(
        "add_investment",
        "Records a new investment",
        {
            "name": _string("Investment name (e.g. Bitcoin, PETR4, Tesouro Selic)"),
            "type": _string("Investment type", INVESTMENT_TYPES),
            "amount": _number("Amount invested"),
        },
        required=["name", "type", "amount"],
    ),
    declare("get_investment_summary", "Shows a summary of the user's investments"),
    declare(
        "set_budget",
        "Sets a monthly spending limit for a category",
        {
            "category": _string("Budget category"),
            "limit": _number("Spending limit"),
        },
        required=["category", "limit"],
    ),
    declare("get_budget_status", "Shows budget status: spent versus limit"),
    declare(
        "add_income",
        "Records a new income. In groups, use member_name to record it for another member.",
        {
            "description": _string("What the income was (e.g. December salary, website freelance)"),
            "amount": _number("Amount received"),
            "source": _string("Income source", INCOME_SOURCES),
            "member_name": MEMBER_NAME,
        },
        required=["description", "amount", "source"],
    ),
    declare(
        "list_incomes",
        "Lists the user's incomes",
        {
            "source": _string("Filter by source (optional)"),
            "limit": _number("Maximum number of results"),
        },
    ),
    declare("get_income_summary", "Shows this month's incomes grouped by source"),
    declare("get_balance", "Shows the month's balance (income minus expenses)"),
    declare("get_full_report", "Builds the full formatted month report with incomes, expenses and balance"),
    declare(
        "mark_expense_paid",
        "Marks an expense as paid",
        {"description": _string("Description of the expense to mark as paid")},
        required=["description"],
    ),
    declare(
        "mark_expense_unpaid",
        "Marks an expense as not paid (pending)",
        {"description": _string("Description of the expense to mark as pending")},
        required=["description"],
    ),
    declare(
        "delete_expense",
        "Removes an expense by name",
        {"description": _string("Description of the expense to remove")},
        required=["description"],
    ),
    declare("clear_all_expenses", "Removes ALL expenses at once"),
    declare(
        "edit_expense",
        "Edits an existing expense",
        {
            "description": _string("Description of the expense to edit (used to find it)"),
            "new_description": _string("New description (optional)"),
            "new_amount": _number("New amount (optional)"),
            "new_category": _string("New category (optional)", EXPENSE_CATEGORIES),
        },
        required=["description"],
    ),
    declare(
        "delete_income",
        "Removes an income by name",
        {"description": _string("Description of the income to remove")},
        required=["description"],
    ),
    declare("clear_all_incomes", "Removes ALL incomes at once"),
    declare("clear_all", "Removes ALL expenses AND incomes at once (wipes everything)"),
    declare(
        "edit_income",
        "Edits an existing income",
        {
            "description": _string("Description of the income to edit (used to find it)"),
            "new_description": _string("New description (optional)"),
            "new_amount": _number("New amount (optional)"),
            "new_source": _string("New source (optional)", INCOME_SOURCES),
        },
        required=["description"],
    ),
]


# -------------------------------------------------
# Group chats only
# -------------------------------------------------

GROUP_TOOLS = [
    declare("get_group_report", "Builds the full group report with every member's expenses and incomes"),
    declare("get_group_split", "Splits the group's expenses: shows who owes how much to whom"),
    declare("list_group_members", "Lists every registered member of the group"),
]

TOOL_NAMES = frozenset(t.name for t in TOOLS)
GROUP_TOOL_NAMES = frozenset(t.name for t in GROUP_TOOLS)


def tools_for(policy):
    """
    Declarations offered to the model under a scope policy.
    """
    if policy.allow_group_tools:
        return TOOLS + GROUP_TOOLS
    return list(TOOLS)
