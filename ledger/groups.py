from datetime import datetime

from agents.common.storage import connection, row_to_dict
from utils.dates import month_range

MEMBER_QUERY = """
    SELECT m.user_id, m.role, m.joined_at, u.name, u.phone, u.is_placeholder
    FROM group_members m
    JOIN users u ON u.id = m.user_id
    WHERE m.group_id = ?
    ORDER BY m.id
"""


def _now():
    return datetime.now().isoformat()


def _upsert_group(conn, group_id, name=None):
    row = conn.execute("SELECT id FROM groups WHERE id = ?", (group_id,)).fetchone()
    if row is None:
        conn.execute(
            "INSERT INTO groups (id, name, created_at) VALUES (?, ?, ?)",
            (group_id, name, _now()),
        )
    elif name:
        conn.execute("UPDATE groups SET name = ? WHERE id = ?", (name, group_id))


def upsert_group(group_id, name=None):
    with connection() as conn:
        _upsert_group(conn, group_id, name)


def get_group(group_id):
    with connection() as conn:
        row = conn.execute("SELECT * FROM groups WHERE id = ?", (group_id,)).fetchone()
        return row_to_dict(row)


def add_member(group_id, user_id, role="member"):
    with connection() as conn:
        _upsert_group(conn, group_id)
        conn.execute("""
            INSERT INTO group_members (group_id, user_id, role, joined_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (group_id, user_id) DO UPDATE SET role = excluded.role
        """, (group_id, user_id, role, _now()))


def ensure_member(group_id, user_id, group_name=None):
    """
    Auto-registration: whoever writes in a group becomes a member of it.
    """
    with connection() as conn:
        _upsert_group(conn, group_id, group_name)
        conn.execute("""
            INSERT OR IGNORE INTO group_members (group_id, user_id, role, joined_at)
            VALUES (?, ?, 'member', ?)
        """, (group_id, user_id, _now()))


def remove_member(group_id, user_id):
    with connection() as conn:
        conn.execute(
            "DELETE FROM group_members WHERE group_id = ? AND user_id = ?",
            (group_id, user_id),
        )


def is_member(group_id, user_id) -> bool:
    with connection() as conn:
        row = conn.execute(
            "SELECT 1 FROM group_members WHERE group_id = ? AND user_id = ?",
            (group_id, user_id),
        ).fetchone()
        return row is not None


def get_members(group_id):
    with connection() as conn:
        rows = conn.execute(MEMBER_QUERY, (group_id,)).fetchall()
        return [dict(r) for r in rows]


def calculate_split(group_id, month=None, year=None):
    """
    Equal split of the month's group expenses among current members.

    balance > 0: paid more than their share (should receive)
    balance < 0: owes
    Debts are settled greedily, debtors in member order against creditors
    in member order.
    """
    start, end, _, _ = month_range(month, year)

    with connection() as conn:
        expenses = conn.execute("""
            SELECT user_id, amount FROM expenses
            WHERE group_id = ? AND date >= ? AND date <= ?
        """, (group_id, start.isoformat(), end.isoformat())).fetchall()
        members = conn.execute(MEMBER_QUERY, (group_id,)).fetchall()

    if not members:
        return {"total": 0, "per_person": 0, "balances": [], "debts": []}

    total = sum(e["amount"] for e in expenses)
    per_person = total / len(members)

    spent_by_user = {
        m["user_id"]: {"spent": 0.0, "name": m["name"] or m["phone"]}
        for m in members
    }
    for e in expenses:
        if e["user_id"] in spent_by_user:
            spent_by_user[e["user_id"]]["spent"] += e["amount"]

    balances = [
        {
            "user_id": user_id,
            "name": data["name"],
            "spent": data["spent"],
            "balance": data["spent"] - per_person,
        }
        for user_id, data in spent_by_user.items()
    ]

    debtors = [dict(b, balance=abs(b["balance"])) for b in balances if b["balance"] < 0]
    creditors = [dict(b) for b in balances if b["balance"] > 0]

    debts = []
    for debtor in debtors:
        remaining = debtor["balance"]

        for creditor in creditors:
            if remaining <= 0.01:
                break
            if creditor["balance"] <= 0.01:
                continue

            amount = min(remaining, creditor["balance"])
            if amount > 0.01:
                debts.append({
                    "from": debtor["user_id"],
                    "from_name": debtor["name"],
                    "to": creditor["user_id"],
                    "to_name": creditor["name"],
                    "amount": round(amount, 2),
                })
                remaining -= amount
                creditor["balance"] -= amount

    return {
        "total": round(total, 2),
        "per_person": round(per_person, 2),
        "balances": balances,
        "debts": debts,
    }
