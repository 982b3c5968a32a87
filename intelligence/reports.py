# intelligence/reports.py

from collections import OrderedDict

from ledger.expenses import get_month_expenses
from ledger.groups import calculate_split, get_group
from ledger.incomes import get_month_incomes
from utils.money import format_amount, format_money_br

CATEGORY_EMOJIS = {
    "housing": "🏠",
    "food": "🍽️",
    "transport": "🚗",
    "health": "💊",
    "leisure": "🎉",
    "education": "📚",
    "clothing": "👕",
    "cards": "💳",
    "loan": "💸",
    "other": "📦",
}

SOURCE_EMOJIS = {
    "salary": "💰",
    "freelance": "💻",
    "investments": "📈",
    "gift": "🎁",
    "other": "📦",
}

SEPARATOR = "⸻\n\n"


def _group_by(rows, key):
    groups = OrderedDict()
    for row in rows:
        groups.setdefault(row[key], []).append(row)
    return groups


def _owner_label(row):
    return row.get("user_name") or (row.get("user_phone") or "")[-4:]


def _income_section(incomes, show_owner):
    lines = ["📥 *INCOME*\n\n"]

    for source, items in _group_by(incomes, "source").items():
        emoji = SOURCE_EMOJIS.get(source, "📦")
        subtotal = sum(i["amount"] for i in items)

        lines.append(f"{emoji} *{source.capitalize()}*\n")
        for item in items:
            owner = f" ({_owner_label(item)})" if show_owner else ""
            lines.append(f"    • {item['description']}: {format_amount(item['amount'])}{owner}\n")
        lines.append(f"\n_Subtotal: {format_money_br(subtotal)}_\n\n")

    total = sum(i["amount"] for i in incomes)
    lines.append(f"💰 *Total income: {format_money_br(total)}*\n\n")
    lines.append(SEPARATOR)
    return "".join(lines)


def _expense_section(expenses, show_owner):
    lines = ["📤 *EXPENSES*\n\n"]

    for category, items in _group_by(expenses, "category").items():
        emoji = CATEGORY_EMOJIS.get(category, "📦")
        subtotal = sum(e["amount"] for e in items)

        lines.append(f"{emoji} *{category.capitalize()}*\n")
        for item in items:
            owner = f" ({_owner_label(item)})" if show_owner else ""
            paid_mark = " ✅" if item["paid"] else ""
            lines.append(
                f"    • {item['description']}: {format_amount(item['amount'])}{owner}{paid_mark}\n"
            )
        lines.append(f"\n_Subtotal: {format_money_br(subtotal)}_\n\n")

    total = sum(e["amount"] for e in expenses)
    total_paid = sum(e["amount"] for e in expenses if e["paid"])
    total_pending = total - total_paid

    lines.append(f"💸 *Total expenses: {format_money_br(total)}*\n")
    if total_paid > 0:
        lines.append(f"✅ Paid: {format_money_br(total_paid)}\n")
    if total_pending > 0:
        lines.append(f"⏳ Pending: {format_money_br(total_pending)}\n")
    lines.append("\n" + SEPARATOR)
    return "".join(lines)


def _balance_footer(incomes, expenses, title):
    balance = sum(i["amount"] for i in incomes) - sum(e["amount"] for e in expenses)
    emoji = "🟢" if balance >= 0 else "🔴"
    return f"🔢 *{title}*\n\n{emoji} *{format_money_br(balance)}*"


def build_full_report(user_id, month=None, year=None):
    """
    Month report for one user: income by source, expenses by category,
    paid/pending totals and the month balance.
    """
    expenses = get_month_expenses("user_id", user_id, month, year)
    incomes = get_month_incomes("user_id", user_id, month, year)

    if not expenses and not incomes:
        return "No transactions found for this period."

    report = "✅ *Financial Summary*\n\n"
    if incomes:
        report += _income_section(incomes, show_owner=False)
    if expenses:
        report += _expense_section(expenses, show_owner=False)
    report += _balance_footer(incomes, expenses, "MONTH BALANCE")
    return report


def build_group_report(group_id, month=None, year=None):
    group = get_group(group_id)
    if not group:
        return "Group not found."

    group_name = group["name"] or "Group"
    expenses = get_month_expenses("group_id", group_id, month, year)
    incomes = get_month_incomes("group_id", group_id, month, year)

    if not expenses and not incomes:
        return f"👥 *{group_name}*\n\nNo transactions found for this period."

    report = f"👥 *{group_name} report*\n\n"
    if incomes:
        report += _income_section(incomes, show_owner=True)
    if expenses:
        report += _expense_section(expenses, show_owner=True)
    report += _balance_footer(incomes, expenses, "GROUP BALANCE")
    return report


def build_group_split_report(group_id, month=None, year=None):
    """
    Who spent what, each member's equal share, and who owes whom.
    """
    group = get_group(group_id)
    if not group:
        return "Group not found."

    group_name = group["name"] or "Group"
    split = calculate_split(group_id, month, year)

    if split["total"] == 0:
        return f"👥 *{group_name}*\n\nNo expenses found for this period."

    report = f"💰 *Expense split - {group_name}*\n\n"
    report += f"📊 *Total spent:* {format_money_br(split['total'])}\n"
    report += f"👤 *Per person:* {format_money_br(split['per_person'])}\n\n"
    report += SEPARATOR
    report += "📋 *What each one spent:*\n\n"

    for b in split["balances"]:
        emoji = "🟢" if b["balance"] >= 0 else "🔴"
        status = "to receive" if b["balance"] >= 0 else "to pay"
        report += f"{emoji} *{b['name']}*\n"
        report += f"    Spent: {format_money_br(b['spent'])}\n"
        report += f"    {status}: {format_money_br(abs(b['balance']))}\n\n"

    if split["debts"]:
        report += SEPARATOR
        report += "💸 *Who owes whom:*\n\n"
        for debt in split["debts"]:
            report += (
                f"• *{debt['from_name']}* owes *{format_money_br(debt['amount'])}*"
                f" to *{debt['to_name']}*\n"
            )

    return report
