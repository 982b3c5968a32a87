import re
import uuid
from datetime import datetime

from agents.common.storage import connection, row_to_dict


def _now():
    return datetime.now().isoformat()


def get_or_create_user(phone, name=None):
    """
    Upsert by phone. A non-empty name refreshes the stored one.
    """
    with connection() as conn:
        row = conn.execute("SELECT * FROM users WHERE phone = ?", (phone,)).fetchone()

        if row is None:
            user_id = uuid.uuid4().hex
            conn.execute("""
                INSERT INTO users (id, phone, name, is_placeholder, created_at)
                VALUES (?, ?, ?, 0, ?)
            """, (user_id, phone, name, _now()))
        else:
            user_id = row["id"]
            if name:
                conn.execute("UPDATE users SET name = ? WHERE id = ?", (name, user_id))

        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return row_to_dict(row)


def get_user(user_id):
    with connection() as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return row_to_dict(row)


def get_user_by_phone(phone):
    with connection() as conn:
        row = conn.execute("SELECT * FROM users WHERE phone = ?", (phone,)).fetchone()
        return row_to_dict(row)


def create_placeholder_user(name):
    """
    A user for someone who was named in a message but never wrote to us.
    The phone column gets a synthetic, unique value.
    """
    slug = re.sub(r"\s+", "_", name.strip().lower())
    fake_phone = f"virtual_{slug}_{uuid.uuid4().hex[:12]}"
    user_id = uuid.uuid4().hex

    with connection() as conn:
        conn.execute("""
            INSERT INTO users (id, phone, name, is_placeholder, created_at)
            VALUES (?, ?, ?, 1, ?)
        """, (user_id, fake_phone, name.strip(), _now()))
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return row_to_dict(row)
