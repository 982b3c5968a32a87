import uuid
from datetime import datetime

from agents.common.storage import connection, row_to_dict

INVESTMENT_TYPES = ["stocks", "crypto", "fixed_income", "funds", "other"]


def add_investment(user_id, name, type, amount, current_value=None, purchase_date=None):
    now = datetime.now()

    with connection() as conn:
        cur = conn.execute("""
            INSERT INTO investments
            (uuid, user_id, name, type, amount, current_value, purchase_date, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            str(uuid.uuid4()),
            user_id,
            name,
            type,
            float(amount),
            float(current_value if current_value is not None else amount),
            (purchase_date or now).isoformat(),
            now.isoformat(),
        ))
        row = conn.execute("SELECT * FROM investments WHERE id = ?", (cur.lastrowid,)).fetchone()
        return row_to_dict(row)


def get_investments(user_id, type=None):
    query = "SELECT * FROM investments WHERE user_id = ?"
    params = [user_id]
    if type:
        query += " AND type = ?"
        params.append(type)
    query += " ORDER BY created_at DESC, id DESC"

    with connection() as conn:
        return [dict(r) for r in conn.execute(query, params).fetchall()]


def update_investment_value(investment_id, current_value):
    with connection() as conn:
        conn.execute(
            "UPDATE investments SET current_value = ? WHERE id = ?",
            (float(current_value), investment_id),
        )


def get_investment_summary(user_id):
    investments = get_investments(user_id)

    total_invested = sum(i["amount"] for i in investments)
    total_current = sum(i["current_value"] for i in investments)
    total_return = total_current - total_invested
    return_pct = (total_return / total_invested) * 100 if total_invested > 0 else 0.0

    by_type = {}
    for inv in investments:
        bucket = by_type.setdefault(inv["type"], {"invested": 0.0, "current_value": 0.0})
        bucket["invested"] += inv["amount"]
        bucket["current_value"] += inv["current_value"]

    return {
        "total_invested": total_invested,
        "total_current_value": total_current,
        "total_return": total_return,
        "return_percentage": return_pct,
        "by_type": by_type,
    }
