"""Form field binding between stored file ids and draft item ids.

A form field holding attachments goes through two conversions:

- ``to_draft`` when the form is rendered: permanent file ids become draft item
  ids the browser widget can work with (copying files into the draft area or
  creating empty placeholders).
- ``from_draft`` when the form is submitted: draft item ids are promoted into
  the field's permanent area and replaced by file ids; files that were removed
  from the field are deleted.

Forms may render the same field more than once per request, so ``to_draft``
recognises values that are already draft ids and existing draft copies, and
never creates a second draft for them.
"""
import json
import logging
import re
from typing import Any, Callable, List, Optional, Union

from ..errors import BindingError
from .lifecycle import DraftLifecycleManager
from .schemas import DEFAULT_CONTEXT_ID

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[,;\s]+")

FieldValue = Union[None, str, List[str]]


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == 0 or value == "0"


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def normalize_ids(value: Any) -> List[int]:
    """Turn a field value into a list of non-zero integer ids.

    Accepts lists, JSON arrays, strings separated by commas, semicolons or
    whitespace, and single numbers.
    """
    if isinstance(value, (list, tuple)):
        return [i for i in (_to_int(v) for v in value) if i]

    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            decoded = None
        if isinstance(decoded, list):
            return [i for i in (_to_int(v) for v in decoded) if i]
        parts = [p for p in _SEPARATORS.split(value) if p]
        return [i for i in (_to_int(p) for p in parts) if i]

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [int(value)] if int(value) else []
    return []


class DraftFieldBinder:
    """Binds one form field to a permanent (component, filearea).

    Args:
        manager: Lifecycle manager used for all record changes.
        component, filearea: Permanent area the field's files belong to.
        item_id: Owning entity id; 0 means "ask item_id_resolver on submit".
        context_id: Context files are promoted into.
        user_id: User whose drafts the field may see.
        max_files: 1 for a single-file field (string values), more for lists.
        item_id_resolver: Returns the owning entity id at submit time, for
            entities that only get an id once saved.
    """

    def __init__(
        self,
        manager: DraftLifecycleManager,
        component: str,
        filearea: str,
        item_id: int = 0,
        context_id: int = DEFAULT_CONTEXT_ID,
        user_id: Optional[int] = None,
        max_files: int = 1,
        item_id_resolver: Optional[Callable[[], Optional[int]]] = None,
    ) -> None:
        self.manager = manager
        self.component = component
        self.filearea = filearea
        self.item_id = item_id
        self.context_id = context_id
        self.user_id = user_id
        self.max_files = max_files
        self.item_id_resolver = item_id_resolver
        self.original_value: Any = None

    def _result(self, ids: List[str]) -> FieldValue:
        if self.max_files == 1:
            return ids[0] if ids else None
        return ids or None

    def _new_placeholder(self) -> str:
        draft_item_id = self.manager.new_draft_item_id()
        self.manager.create_empty_draft_file(draft_item_id, self.user_id)
        logger.debug("Created empty draft %s", draft_item_id)
        return str(draft_item_id)

    # -----------------------------------------------------------------------
    # Render: file ids -> draft item ids
    # -----------------------------------------------------------------------

    def to_draft(self, value: Any, original_value: Any = None) -> FieldValue:
        """Convert the stored field value into draft item ids for the widget."""
        self.original_value = original_value if original_value is not None else value

        if _is_empty(value):
            return None

        file_ids = normalize_ids(value)
        if file_ids and self.manager.find_draft(file_ids[0], user_id=self.user_id) is not None:
            logger.debug("Value %s already holds draft ids", file_ids)
            return self._result([str(i) for i in file_ids])

        if not file_ids:
            return self._result([self._new_placeholder()])

        draft_ids = []
        for file_id in file_ids:
            existing = self.manager.find_draft_copy(file_id, user_id=self.user_id)
            if existing is not None:
                draft_ids.append(str(existing.item_id))
                continue

            draft = self.manager.copy_to_draft(file_id, self.manager.new_draft_item_id())
            if draft is not None:
                draft_ids.append(str(draft.item_id))
            else:
                logger.debug("File %s not found, using an empty draft", file_id)
                draft_ids.append(self._new_placeholder())

        return self._result(draft_ids)

    # -----------------------------------------------------------------------
    # Submit: draft item ids -> file ids
    # -----------------------------------------------------------------------

    def from_draft(self, value: Any) -> FieldValue:
        """Promote submitted draft ids and return the field's new file ids."""
        draft_item_ids = [] if _is_empty(value) else normalize_ids(value)
        if not draft_item_ids:
            self._delete_original_files()
            return None

        file_ids = []
        for draft_item_id in draft_item_ids:
            if self.manager.find_draft(draft_item_id, user_id=self.user_id) is None:
                file_ids.append(str(draft_item_id))
                continue
            promoted = self._promote(draft_item_id)
            if promoted is not None:
                file_ids.append(str(promoted))

        kept = {int(i) for i in file_ids}
        for removed in normalize_ids(self.original_value):
            if removed not in kept:
                self.manager.delete_file(removed)

        return self._result(file_ids)

    def _resolve_item_id(self) -> int:
        if self.item_id == 0 and self.item_id_resolver is not None:
            return self.item_id_resolver() or 0
        return self.item_id

    def _promote(self, draft_item_id: int) -> Optional[int]:
        try:
            record = self.manager.promote(
                draft_item_id,
                self.component,
                self.filearea,
                self._resolve_item_id(),
                self.context_id,
            )
        except Exception as e:
            logger.error("Failed to move draft %s: %s", draft_item_id, e)
            raise BindingError(f"Failed to move file from draft: {e}") from e
        return record.id if record is not None else None

    def _delete_original_files(self) -> None:
        """Delete the files the field held before, if they belong to this field's area."""
        if _is_empty(self.original_value):
            return
        for file_id in normalize_ids(self.original_value):
            record = self.manager.repository.find_one_by(
                id=file_id, component=self.component, filearea=self.filearea
            )
            if record is not None:
                self.manager.delete_file(file_id)
