"""Edit-context store: which users are currently editing which entity."""

from threatgraph.core.schemas import AuthenticatedUser


class EditContextStore:
    """In-process presence tracking keyed by entity id, then by user name."""

    def __init__(self) -> None:
        self._contexts: dict[int, dict[str, str | None]] = {}

    def set_context(
        self, user: AuthenticatedUser, entity_id: int, focus_on: str | None
    ) -> None:
        self._contexts.setdefault(entity_id, {})[user.name] = focus_on

    def delete_context(self, user: AuthenticatedUser, entity_id: int) -> None:
        contexts = self._contexts.get(entity_id)
        if contexts is None:
            return
        _ = contexts.pop(user.name, None)
        if not contexts:
            del self._contexts[entity_id]

    def get_contexts(self, entity_id: int) -> dict[str, str | None]:
        return dict(self._contexts.get(entity_id, {}))


_edit_context_store: EditContextStore | None = None


def get_edit_context_store() -> EditContextStore:
    global _edit_context_store
    if _edit_context_store is None:
        _edit_context_store = EditContextStore()
    return _edit_context_store
