from agents.finance.results import ResultKind, ToolResult

COLLAPSE_OVER = 3
NOT_FOUND_LIMIT = 3

# bucket order in the final reply
BUCKET_ORDER = (
    ResultKind.CREATED,
    ResultKind.DELETED,
    ResultKind.EDITED,
    ResultKind.STATUS_CHANGED,
    ResultKind.NOT_FOUND,
    ResultKind.OTHER,
)

# marker substrings for untagged text, tested in this order
TEXT_MARKERS = (
    (ResultKind.CREATED, ("registered", "Registered", "created")),
    (ResultKind.DELETED, ("🗑️", "removed")),
    (ResultKind.EDITED, ("✏️", "updated")),
    (ResultKind.STATUS_CHANGED, ("✅", "⏳")),
    (ResultKind.NOT_FOUND, ("not found", "No ", "Nothing")),
)

COLLAPSED_TEMPLATES = {
    ResultKind.CREATED: "✅ {count} items registered!",
    ResultKind.DELETED: "🗑️ {count} items removed!",
}


def classify_text(text: str) -> ResultKind:
    for kind, markers in TEXT_MARKERS:
        if any(m in text for m in markers):
            return kind
    return ResultKind.OTHER


def _as_result(item) -> ToolResult:
    if isinstance(item, ToolResult):
        return item
    text = str(item)
    return ToolResult(classify_text(text), text)


def aggregate(results) -> str:
    """
    Merge the outcomes of one tool round into a single reply.

    A lone result is returned as is. Otherwise results are bucketed by kind
    (keeping their order inside each bucket) and the buckets are joined in a
    fixed order. Long created/deleted buckets become a count line; a long
    not-found bucket is dropped.
    """
    items = [_as_result(item) for item in results]
    if not items:
        return ""
    if len(items) == 1:
        return items[0].text

    buckets = {kind: [] for kind in BUCKET_ORDER}
    for item in items:
        buckets[item.kind].append(item.text)

    parts = []
    for kind in BUCKET_ORDER:
        texts = buckets[kind]
        if not texts:
            continue

        if kind in COLLAPSED_TEMPLATES and len(texts) > COLLAPSE_OVER:
            parts.append(COLLAPSED_TEMPLATES[kind].format(count=len(texts)))
        elif kind == ResultKind.NOT_FOUND and len(texts) > NOT_FOUND_LIMIT:
            continue
        else:
            parts.append("\n".join(texts))

    reply = "\n\n".join(parts)
    if not reply.strip():
        return "\n".join(item.text for item in items)
    return reply
