import logging

from ledger.groups import add_member, get_members
from ledger.users import create_placeholder_user
from subjects.subject import Subject

logger = logging.getLogger(__name__)


def _member_subject(member) -> Subject:
    return Subject(
        id=member["user_id"],
        name=member["name"],
        phone=member["phone"],
        kind="placeholder" if member["is_placeholder"] else "bound",
    )


def match_member(members, name):
    """
    Pick the member a free-text name refers to, or None.

    Rules:
    1. Case-insensitive exact match on the display name wins.
    2. Otherwise the first member (in join order) whose display name
       contains the search term.
    """
    search = name.strip().lower()
    if not search:
        return None

    for m in members:
        if (m["name"] or "").lower() == search:
            return m

    for m in members:
        if search in (m["name"] or "").lower():
            return m

    return None


class SubjectResolver:
    """
    Maps a name mentioned in a group chat to the user who owns the record.

    Resolution never fails: an unknown name gets a placeholder user that
    joins the group, and later mentions of the same name find it again.
    Placeholders are never merged into real users.
    """

    def resolve_subject(self, group_id: str, name: str) -> Subject:
        members = get_members(group_id)
        member = match_member(members, name)
        if member is not None:
            return _member_subject(member)

        user = create_placeholder_user(name)
        add_member(group_id, user["id"])
        logger.info("Created placeholder member %r in group %s", user["name"], group_id)
        return Subject.from_row(user)

    def resolve(self, group_id: str, name: str) -> str:
        return self.resolve_subject(group_id, name).id
