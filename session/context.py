from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MessageContext:
    """
    Who is talking, and where.

    Private chat: the history and the records belong to the sender.
    Group chat:   the history is shared by the whole group, records are
                  attributed to the sender unless a message names someone else.
    """
    user_id: str
    group_id: Optional[str] = None
    is_group: bool = False

    @property
    def scope_key(self) -> str:
        if self.is_group and self.group_id:
            return self.group_id
        return self.user_id

    @property
    def record_group_id(self) -> Optional[str]:
        return self.group_id if self.is_group else None
