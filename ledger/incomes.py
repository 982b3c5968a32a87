import uuid
from datetime import datetime

from agents.common.storage import connection, row_to_dict
from utils.dates import month_range

INCOME_SOURCES = ["salary", "freelance", "investments", "gift", "other"]


def add_income(user_id, description, amount, source, group_id=None, date=None):
    now = datetime.now()

    with connection() as conn:
        cur = conn.execute("""
            INSERT INTO incomes
            (uuid, user_id, group_id, description, amount, source, date, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            str(uuid.uuid4()),
            user_id,
            group_id,
            description,
            float(amount),
            source,
            (date or now).isoformat(),
            now.isoformat(),
        ))
        row = conn.execute("SELECT * FROM incomes WHERE id = ?", (cur.lastrowid,)).fetchone()
        return row_to_dict(row)


def get_incomes(user_id, source=None, limit=None):
    query = "SELECT * FROM incomes WHERE user_id = ?"
    params = [user_id]

    if source:
        query += " AND source = ?"
        params.append(source)

    query += " ORDER BY date DESC, id DESC"

    if limit:
        query += " LIMIT ?"
        params.append(int(limit))

    with connection() as conn:
        return [dict(r) for r in conn.execute(query, params).fetchall()]


def get_incomes_by_source(user_id, month=None, year=None):
    start, end, _, _ = month_range(month, year)
    with connection() as conn:
        rows = conn.execute("""
            SELECT source, SUM(amount) AS total
            FROM incomes
            WHERE user_id = ? AND date >= ? AND date <= ?
            GROUP BY source
            ORDER BY source
        """, (user_id, start.isoformat(), end.isoformat())).fetchall()
        return [{"source": r["source"], "total": r["total"] or 0.0} for r in rows]


def get_total_income(user_id, month=None, year=None):
    start, end, _, _ = month_range(month, year)
    with connection() as conn:
        row = conn.execute("""
            SELECT SUM(amount) AS total FROM incomes
            WHERE user_id = ? AND date >= ? AND date <= ?
        """, (user_id, start.isoformat(), end.isoformat())).fetchone()
        return row["total"] or 0.0


def get_month_incomes(owner_column, owner_id, month=None, year=None):
    start, end, _, _ = month_range(month, year)
    with connection() as conn:
        rows = conn.execute(f"""
            SELECT i.*, u.name AS user_name, u.phone AS user_phone
            FROM incomes i JOIN users u ON u.id = i.user_id
            WHERE i.{owner_column} = ? AND i.date >= ? AND i.date <= ?
            ORDER BY i.source ASC, i.id ASC
        """, (owner_id, start.isoformat(), end.isoformat())).fetchall()
        return [dict(r) for r in rows]


def delete_income_by_description(user_id, description, group_id=None):
    with connection() as conn:
        row = _find_by_description(conn, user_id, description, group_id)
        if row is None:
            return None
        conn.execute("DELETE FROM incomes WHERE id = ?", (row["id"],))
        return row_to_dict(row)


def update_income_by_description(user_id, description, data, group_id=None):
    fields = {k: v for k, v in data.items() if k in ("description", "amount", "source")}

    with connection() as conn:
        row = _find_by_description(conn, user_id, description, group_id)
        if row is None:
            return None
        if fields:
            assignments = ", ".join(f"{k} = ?" for k in fields)
            conn.execute(
                f"UPDATE incomes SET {assignments} WHERE id = ?",
                (*fields.values(), row["id"]),
            )
        row = conn.execute("SELECT * FROM incomes WHERE id = ?", (row["id"],)).fetchone()
        return row_to_dict(row)


def delete_all_incomes(user_id, group_id=None):
    with connection() as conn:
        if group_id:
            cur = conn.execute("DELETE FROM incomes WHERE group_id = ?", (group_id,))
        else:
            cur = conn.execute(
                "DELETE FROM incomes WHERE user_id = ? AND group_id IS NULL", (user_id,)
            )
        return cur.rowcount


def _find_by_description(conn, user_id, description, group_id):
    if group_id:
        where, params = "group_id = ?", [group_id]
    else:
        where, params = "user_id = ? AND group_id IS NULL", [user_id]

    return conn.execute(f"""
        SELECT * FROM incomes
        WHERE {where} AND instr(lower(description), lower(?)) > 0
        ORDER BY date DESC, id DESC
        LIMIT 1
    """, (*params, description)).fetchone()
