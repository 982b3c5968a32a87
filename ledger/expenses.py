import uuid
from datetime import datetime

from agents.common.storage import connection, row_to_dict
from utils.dates import month_range

EXPENSE_CATEGORIES = [
    "food",
    "transport",
    "housing",
    "health",
    "leisure",
    "education",
    "clothing",
    "cards",
    "loan",
    "other",
]


# -------------------------------------------------
# Write
# -------------------------------------------------

def add_expense(user_id, description, amount, category, paid=False, group_id=None, date=None):
    now = datetime.now()

    with connection() as conn:
        cur = conn.execute("""
            INSERT INTO expenses
            (uuid, user_id, group_id, description, amount, category, paid, date, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            str(uuid.uuid4()),
            user_id,
            group_id,
            description,
            float(amount),
            category,
            1 if paid else 0,
            (date or now).isoformat(),
            now.isoformat(),
        ))
        row = conn.execute("SELECT * FROM expenses WHERE id = ?", (cur.lastrowid,)).fetchone()
        return _to_expense(row)


def set_expense_paid(expense_id, paid):
    with connection() as conn:
        conn.execute("UPDATE expenses SET paid = ? WHERE id = ?", (1 if paid else 0, expense_id))
        row = conn.execute("SELECT * FROM expenses WHERE id = ?", (expense_id,)).fetchone()
        return _to_expense(row)


def delete_expense_by_description(user_id, description, group_id=None):
    """
    Delete the most recent matching expense. Returns it, or None.
    """
    with connection() as conn:
        row = _find_by_description(conn, user_id, description, group_id)
        if row is None:
            return None
        conn.execute("DELETE FROM expenses WHERE id = ?", (row["id"],))
        return _to_expense(row)


def update_expense_by_description(user_id, description, data, group_id=None):
    fields = {k: v for k, v in data.items() if k in ("description", "amount", "category", "paid")}

    with connection() as conn:
        row = _find_by_description(conn, user_id, description, group_id)
        if row is None:
            return None
        if fields:
            assignments = ", ".join(f"{k} = ?" for k in fields)
            conn.execute(
                f"UPDATE expenses SET {assignments} WHERE id = ?",
                (*fields.values(), row["id"]),
            )
        row = conn.execute("SELECT * FROM expenses WHERE id = ?", (row["id"],)).fetchone()
        return _to_expense(row)


def delete_all_expenses(user_id, group_id=None):
    with connection() as conn:
        if group_id:
            cur = conn.execute("DELETE FROM expenses WHERE group_id = ?", (group_id,))
        else:
            cur = conn.execute(
                "DELETE FROM expenses WHERE user_id = ? AND group_id IS NULL", (user_id,)
            )
        return cur.rowcount


# -------------------------------------------------
# Read
# -------------------------------------------------

def get_expenses(user_id, category=None, limit=None, start=None, end=None):
    query = "SELECT * FROM expenses WHERE user_id = ?"
    params = [user_id]
    return _select(query, params, category, limit, start, end)


def get_group_expenses(group_id, category=None, limit=None, start=None, end=None):
    query = """
        SELECT e.*, u.name AS user_name, u.phone AS user_phone
        FROM expenses e JOIN users u ON u.id = e.user_id
        WHERE e.group_id = ?
    """
    params = [group_id]
    return _select(query, params, category, limit, start, end, prefix="e.")


def get_expenses_by_category(user_id, month=None, year=None):
    return _sum_by_category("user_id", user_id, month, year)


def get_group_expenses_by_category(group_id, month=None, year=None):
    return _sum_by_category("group_id", group_id, month, year)


def get_month_expenses(owner_column, owner_id, month=None, year=None):
    """
    Month's expenses for a user (owner_column='user_id') or a group, with
    owner names, ordered for report rendering.
    """
    start, end, _, _ = month_range(month, year)
    with connection() as conn:
        rows = conn.execute(f"""
            SELECT e.*, u.name AS user_name, u.phone AS user_phone
            FROM expenses e JOIN users u ON u.id = e.user_id
            WHERE e.{owner_column} = ? AND e.date >= ? AND e.date <= ?
            ORDER BY e.category ASC, e.id ASC
        """, (owner_id, start.isoformat(), end.isoformat())).fetchall()
        return [_to_expense(r) for r in rows]


def find_expense_by_description(user_id, description, group_id=None):
    with connection() as conn:
        row = _find_by_description(conn, user_id, description, group_id)
        return _to_expense(row)


def find_group_expense_by_description(group_id, description):
    with connection() as conn:
        row = conn.execute("""
            SELECT * FROM expenses
            WHERE group_id = ? AND instr(lower(description), lower(?)) > 0
            ORDER BY date DESC, id DESC
            LIMIT 1
        """, (group_id, description)).fetchone()
        return _to_expense(row)


# -------------------------------------------------
# Helpers
# -------------------------------------------------

def _find_by_description(conn, user_id, description, group_id):
    """
    Case-insensitive "contains" lookup, most recent first.
    Group scope: any member's record in that group.
    Private scope: the user's own records outside any group.
    """
    if group_id:
        where, params = "group_id = ?", [group_id]
    else:
        where, params = "user_id = ? AND group_id IS NULL", [user_id]

    return conn.execute(f"""
        SELECT * FROM expenses
        WHERE {where} AND instr(lower(description), lower(?)) > 0
        ORDER BY date DESC, id DESC
        LIMIT 1
    """, (*params, description)).fetchone()


def _select(query, params, category, limit, start, end, prefix=""):
    if category:
        query += f" AND {prefix}category = ?"
        params.append(category)
    if start:
        query += f" AND {prefix}date >= ?"
        params.append(start.isoformat())
    if end:
        query += f" AND {prefix}date <= ?"
        params.append(end.isoformat())

    query += f" ORDER BY {prefix}date DESC, {prefix}id DESC"

    if limit:
        query += " LIMIT ?"
        params.append(int(limit))

    with connection() as conn:
        rows = conn.execute(query, params).fetchall()
        return [_to_expense(r) for r in rows]


def _sum_by_category(owner_column, owner_id, month, year):
    start, end, _, _ = month_range(month, year)
    with connection() as conn:
        rows = conn.execute(f"""
            SELECT category, SUM(amount) AS total
            FROM expenses
            WHERE {owner_column} = ? AND date >= ? AND date <= ?
            GROUP BY category
            ORDER BY category
        """, (owner_id, start.isoformat(), end.isoformat())).fetchall()
        return [{"category": r["category"], "total": r["total"] or 0.0} for r in rows]


def _to_expense(row):
    expense = row_to_dict(row)
    if expense is not None:
        expense["paid"] = bool(expense["paid"])
    return expense
