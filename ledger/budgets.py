from agents.common.storage import connection
from ledger.expenses import get_expenses_by_category
from utils.dates import month_range


def set_budget(user_id, category, limit, month=None, year=None):
    _, _, month, year = month_range(month, year)

    with connection() as conn:
        conn.execute("""
            INSERT INTO budgets (user_id, category, limit_amount, month, year)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (user_id, category, month, year)
            DO UPDATE SET limit_amount = excluded.limit_amount
        """, (user_id, category, float(limit), month, year))


def get_budgets(user_id, month=None, year=None):
    _, _, month, year = month_range(month, year)

    with connection() as conn:
        rows = conn.execute("""
            SELECT * FROM budgets
            WHERE user_id = ? AND month = ? AND year = ?
            ORDER BY id
        """, (user_id, month, year)).fetchall()
        return [dict(r) for r in rows]


def get_budget_status(user_id, month=None, year=None):
    budgets = get_budgets(user_id, month, year)
    spent_by_category = {
        e["category"]: e["total"] for e in get_expenses_by_category(user_id, month, year)
    }

    status = []
    for budget in budgets:
        limit = budget["limit_amount"]
        spent = spent_by_category.get(budget["category"], 0.0)
        status.append({
            "category": budget["category"],
            "limit": limit,
            "spent": spent,
            "remaining": limit - spent,
            "percent_used": (spent / limit) * 100 if limit else 0.0,
            "is_over_budget": spent > limit,
        })
    return status
