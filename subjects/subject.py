from dataclasses import dataclass
from typing import Literal, Optional

@dataclass(frozen=True)
class Subject:
    """
    WHO owns a financial record.

    bound:       a participant we have actually seen on the chat transport
    placeholder: someone only named in a message ("Laura got paid 1500"),
                 provisioned so their records have an owner
    """
    id: str
    name: Optional[str]
    phone: str
    kind: Literal["bound", "placeholder"]

    @classmethod
    def from_row(cls, row) -> "Subject":
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            kind="placeholder" if row["is_placeholder"] else "bound",
        )
