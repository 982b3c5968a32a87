import asyncio
import logging

from agents.common.enforcement import enforce_group_scope
from agents.common.subjects import SubjectResolver
from agents.finance import results as r
from intelligence.reports import build_full_report, build_group_report, build_group_split_report
from ledger import budgets, expenses, groups, incomes, investments
from utils.money import format_money

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 10


def _limit(args):
    try:
        return int(args.get("limit") or DEFAULT_LIST_LIMIT)
    except (TypeError, ValueError):
        return DEFAULT_LIST_LIMIT


def _summary_lines(rows, key, total_label):
    total = sum(row["total"] for row in rows)
    lines = "\n".join(f"• {row[key]}: {format_money(row['total'])}" for row in rows)
    return f"{lines}\n\n{total_label}: {format_money(total)}"


class ToolDispatcher:
    """
    Runs the tools the model asks for against the ledger.

    Every tool returns a ToolResult; "not found" is a normal result, not an
    error. Storage errors propagate to the caller.
    """

    def __init__(self, resolver=None):
        self.resolver = resolver or SubjectResolver()
        self._handlers = {
            "add_expense": self._add_expense,
            "list_expenses": self._list_expenses,
            "get_expenses_summary": self._get_expenses_summary,
            "add_investment": self._add_investment,
            "get_investment_summary": self._get_investment_summary,
            "set_budget": self._set_budget,
            "get_budget_status": self._get_budget_status,
            "add_income": self._add_income,
            "list_incomes": self._list_incomes,
            "get_income_summary": self._get_income_summary,
            "get_balance": self._get_balance,
            "get_full_report": self._get_full_report,
            "mark_expense_paid": lambda args, ctx: self._mark_expense(args, ctx, paid=True),
            "mark_expense_unpaid": lambda args, ctx: self._mark_expense(args, ctx, paid=False),
            "delete_expense": self._delete_expense,
            "clear_all_expenses": self._clear_all_expenses,
            "edit_expense": self._edit_expense,
            "delete_income": self._delete_income,
            "clear_all_incomes": self._clear_all_incomes,
            "clear_all": self._clear_all,
            "edit_income": self._edit_income,
            "get_group_report": self._get_group_report,
            "get_group_split": self._get_group_split,
            "list_group_members": self._list_group_members,
        }

    async def execute(self, name, args, ctx) -> r.ToolResult:
        args = dict(args or {})
        logger.info(
            "Executing tool %s args=%s user=%s group=%s",
            name, args, ctx.user_id, ctx.group_id,
        )

        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Unknown tool requested: %s", name)
            return r.other(f"Unknown tool: {name}")

        # ledger calls are blocking sqlite; keep them off the event loop
        result = await asyncio.to_thread(handler, args, ctx)
        logger.info("Tool %s executed: %s", name, result.text[:100])
        return result

    # -------------------------------------------------
    # Subject resolution
    # -------------------------------------------------

    def _resolve_target(self, args, ctx):
        """
        Returns (user_id, display_name or None).

        Only group chats may attribute a record to someone else.
        """
        member_name = (args.get("member_name") or "").strip()
        if not (ctx.is_group and ctx.group_id and member_name):
            return ctx.user_id, None

        subject = self.resolver.resolve_subject(ctx.group_id, member_name)
        return subject.id, subject.name or member_name

    # -------------------------------------------------
    # Expenses
    # -------------------------------------------------

    def _add_expense(self, args, ctx):
        target_id, member_name = self._resolve_target(args, ctx)

        expense = expenses.add_expense(
            target_id,
            args["description"],
            float(args["amount"]),
            args["category"],
            paid=bool(args.get("paid", False)),
            group_id=ctx.record_group_id,
        )

        paid_status = " ✅" if expense["paid"] else ""
        for_member = f" ({member_name})" if member_name else ""
        return r.created(
            f"Expense registered: {expense['description']} - "
            f"{format_money(expense['amount'])} ({expense['category']}){paid_status}{for_member}"
        )

    def _list_expenses(self, args, ctx):
        category = args.get("category")

        if ctx.is_group and ctx.group_id:
            rows = expenses.get_group_expenses(ctx.group_id, category=category, limit=_limit(args))
            if not rows:
                return r.not_found("No expenses found in the group.")
            return r.other("\n".join(
                f"• {e['description']}: {format_money(e['amount'])} ({e['category']}) - "
                f"{e['user_name'] or e['user_phone'][-4:]}"
                for e in rows
            ))

        rows = expenses.get_expenses(ctx.user_id, category=category, limit=_limit(args))
        if not rows:
            return r.not_found("No expenses found.")
        return r.other("\n".join(
            f"• {e['description']}: {format_money(e['amount'])} ({e['category']})" for e in rows
        ))

    def _get_expenses_summary(self, args, ctx):
        if ctx.is_group and ctx.group_id:
            rows = expenses.get_group_expenses_by_category(ctx.group_id)
            if not rows:
                return r.not_found("No group expenses this month.")
            return r.other(_summary_lines(rows, "category", "Group total"))

        rows = expenses.get_expenses_by_category(ctx.user_id)
        if not rows:
            return r.not_found("No expenses this month.")
        return r.other(_summary_lines(rows, "category", "Total"))

    def _mark_expense(self, args, ctx, paid):
        description = args["description"]

        if ctx.is_group and ctx.group_id:
            expense = expenses.find_group_expense_by_description(ctx.group_id, description)
        else:
            expense = expenses.find_expense_by_description(ctx.user_id, description)

        if expense is None:
            where = " in the group" if ctx.is_group else ""
            return r.not_found(f'Expense "{description}" not found{where}.')

        expenses.set_expense_paid(expense["id"], paid)
        if paid:
            return r.status_changed(f'✅ Expense "{expense["description"]}" marked as paid!')
        return r.status_changed(f'⏳ Expense "{expense["description"]}" marked as pending.')

    def _delete_expense(self, args, ctx):
        deleted = expenses.delete_expense_by_description(
            ctx.user_id, args["description"], ctx.record_group_id
        )
        if deleted is None:
            return r.not_found(f'Expense "{args["description"]}" not found.')
        return r.deleted(
            f'🗑️ Expense "{deleted["description"]}" ({format_money(deleted["amount"])}) removed!'
        )

    def _clear_all_expenses(self, args, ctx):
        count = expenses.delete_all_expenses(ctx.user_id, ctx.record_group_id)
        if count == 0:
            return r.not_found("No expenses to remove.")
        return r.deleted(f"🗑️ {count} expense(s) removed!")

    def _edit_expense(self, args, ctx):
        data = {}
        if args.get("new_description"):
            data["description"] = args["new_description"]
        if args.get("new_amount"):
            data["amount"] = float(args["new_amount"])
        if args.get("new_category"):
            data["category"] = args["new_category"]

        if not data:
            return r.not_found("No changes given.")

        updated = expenses.update_expense_by_description(
            ctx.user_id, args["description"], data, ctx.record_group_id
        )
        if updated is None:
            return r.not_found(f'Expense "{args["description"]}" not found.')
        return r.edited(
            f"✏️ Expense updated: {updated['description']} - "
            f"{format_money(updated['amount'])} ({updated['category']})"
        )

    # -------------------------------------------------
    # Incomes
    # -------------------------------------------------

    def _add_income(self, args, ctx):
        target_id, member_name = self._resolve_target(args, ctx)

        income = incomes.add_income(
            target_id,
            args["description"],
            float(args["amount"]),
            args["source"],
            group_id=ctx.record_group_id,
        )

        for_member = f" ({member_name})" if member_name else ""
        return r.created(
            f"Income registered: {income['description']} - "
            f"{format_money(income['amount'])} ({income['source']}){for_member}"
        )

    def _list_incomes(self, args, ctx):
        rows = incomes.get_incomes(ctx.user_id, source=args.get("source"), limit=_limit(args))
        if not rows:
            return r.not_found("No incomes found.")
        return r.other("\n".join(
            f"• {i['description']}: {format_money(i['amount'])} ({i['source']})" for i in rows
        ))

    def _get_income_summary(self, args, ctx):
        rows = incomes.get_incomes_by_source(ctx.user_id)
        if not rows:
            return r.not_found("No incomes this month.")
        return r.other(_summary_lines(rows, "source", "Total"))

    def _delete_income(self, args, ctx):
        deleted = incomes.delete_income_by_description(
            ctx.user_id, args["description"], ctx.record_group_id
        )
        if deleted is None:
            return r.not_found(f'Income "{args["description"]}" not found.')
        return r.deleted(
            f'🗑️ Income "{deleted["description"]}" ({format_money(deleted["amount"])}) removed!'
        )

    def _clear_all_incomes(self, args, ctx):
        count = incomes.delete_all_incomes(ctx.user_id, ctx.record_group_id)
        if count == 0:
            return r.not_found("No incomes to remove.")
        return r.deleted(f"🗑️ {count} income(s) removed!")

    def _edit_income(self, args, ctx):
        data = {}
        if args.get("new_description"):
            data["description"] = args["new_description"]
        if args.get("new_amount"):
            data["amount"] = float(args["new_amount"])
        if args.get("new_source"):
            data["source"] = args["new_source"]

        if not data:
            return r.not_found("No changes given.")

        updated = incomes.update_income_by_description(
            ctx.user_id, args["description"], data, ctx.record_group_id
        )
        if updated is None:
            return r.not_found(f'Income "{args["description"]}" not found.')
        return r.edited(
            f"✏️ Income updated: {updated['description']} - "
            f"{format_money(updated['amount'])} ({updated['source']})"
        )

    def _clear_all(self, args, ctx):
        expense_count = expenses.delete_all_expenses(ctx.user_id, ctx.record_group_id)
        income_count = incomes.delete_all_incomes(ctx.user_id, ctx.record_group_id)

        if expense_count + income_count == 0:
            return r.not_found("No transactions to remove.")
        return r.deleted(
            f"🗑️ Everything removed! {expense_count} expense(s) and "
            f"{income_count} income(s) deleted."
        )

    # -------------------------------------------------
    # Investments, budgets, balance
    # -------------------------------------------------

    def _add_investment(self, args, ctx):
        inv = investments.add_investment(
            ctx.user_id, args["name"], args["type"], float(args["amount"])
        )
        return r.created(
            f"Investment registered: {inv['name']} - {format_money(inv['amount'])} ({inv['type']})"
        )

    def _get_investment_summary(self, args, ctx):
        summary = investments.get_investment_summary(ctx.user_id)
        if summary["total_invested"] == 0:
            return r.not_found("No investments registered.")
        return r.other(
            f"Total invested: {format_money(summary['total_invested'])}\n"
            f"Current value: {format_money(summary['total_current_value'])}\n"
            f"Return: {format_money(summary['total_return'])} "
            f"({summary['return_percentage']:.2f}%)"
        )

    def _set_budget(self, args, ctx):
        limit = float(args["limit"])
        budgets.set_budget(ctx.user_id, args["category"], limit)
        return r.other(f"Budget set: {args['category']} - {format_money(limit)}/month")

    def _get_budget_status(self, args, ctx):
        status = budgets.get_budget_status(ctx.user_id)
        if not status:
            return r.not_found("No budget set.")
        return r.other("\n".join(
            f"• {s['category']}: {format_money(s['spent'])} / {format_money(s['limit'])} "
            f"({s['percent_used']:.0f}%){' ⚠️ OVER BUDGET' if s['is_over_budget'] else ''}"
            for s in status
        ))

    def _get_balance(self, args, ctx):
        total_income = incomes.get_total_income(ctx.user_id)
        total_expenses = sum(e["total"] for e in expenses.get_expenses_by_category(ctx.user_id))
        balance = total_income - total_expenses
        status = "positive" if balance >= 0 else "negative"
        return r.other(
            f"Income: {format_money(total_income)}\n"
            f"Expenses: {format_money(total_expenses)}\n"
            f"Balance: {format_money(balance)} ({status})"
        )

    # -------------------------------------------------
    # Reports
    # -------------------------------------------------

    def _get_full_report(self, args, ctx):
        if ctx.is_group and ctx.group_id:
            return r.other(build_group_report(ctx.group_id))
        return r.other(build_full_report(ctx.user_id))

    def _get_group_report(self, args, ctx):
        ok, message = enforce_group_scope(ctx)
        if not ok:
            return r.other(message)
        return r.other(build_group_report(ctx.group_id))

    def _get_group_split(self, args, ctx):
        ok, message = enforce_group_scope(ctx)
        if not ok:
            return r.other(message)
        return r.other(build_group_split_report(ctx.group_id))

    def _list_group_members(self, args, ctx):
        ok, message = enforce_group_scope(ctx)
        if not ok:
            return r.other(message)

        members = groups.get_members(ctx.group_id)
        if not members:
            return r.not_found("No members registered in the group.")
        return r.other("\n".join(
            f"• {m['name'] or m['phone']} ({m['role']})" for m in members
        ))
