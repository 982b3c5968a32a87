GROUP_ONLY_MESSAGE = "This command only works in groups."


def enforce_group_scope(ctx):
    """
    Group-only operations need a group chat.
    Returns (ok: bool, message: str | None)
    """
    if ctx.is_group and ctx.group_id:
        return True, None
    return False, GROUP_ONLY_MESSAGE
