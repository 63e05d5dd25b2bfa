# services/worksheet_editor.py
import logging
import time
import uuid
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

import config
from models.question import (
    QUESTION_TYPES,
    TRUE_FALSE_ANSWERS,
    GoogleEmbedQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    TrueFalseQuestion,
    parse_question,
)
from models.worksheet import METADATA_FIELDS, Worksheet
from services.errors import EditorBusy, NotFound, PortalError, ValidationError

logger = logging.getLogger(__name__)


class EditorState(str, Enum):
    DRAFT = "draft"
    SUBMITTING = "submitting"
    SAVED = "saved"


def _new_question_id(existing) -> str:
    stamp = int(time.time() * 1000)
    while f"q{stamp}" in existing:
        stamp += 1
    return f"q{stamp}"


def _field_name(question, field: str) -> Optional[str]:
    """Resolve a Python field name or its wire alias on the question's variant."""
    fields = type(question).model_fields
    if field in fields:
        return field
    for name, info in fields.items():
        if info.alias == field:
            return name
    return None


def _is_blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def _question_errors(index: int, question) -> List[Tuple[str, str]]:
    path = f"questions[{index}]"
    number = index + 1
    errors = []
    if isinstance(question, GoogleEmbedQuestion):
        return errors
    if _is_blank(question.prompt):
        errors.append((f"{path}.question", f"Question {number}: question text is required"))
    if question.points <= 0:
        errors.append((f"{path}.points", f"Question {number}: points must be greater than 0"))
    if isinstance(question, MultipleChoiceQuestion):
        if _is_blank(question.correctAnswer):
            errors.append((f"{path}.correctAnswer", f"Question {number}: select the correct answer"))
        elif question.correctAnswer not in question.options:
            errors.append((f"{path}.correctAnswer", f"Question {number}: the correct answer must be one of the options"))
    elif isinstance(question, TrueFalseQuestion):
        if question.correctAnswer not in TRUE_FALSE_ANSWERS:
            errors.append((f"{path}.correctAnswer", f"Question {number}: answer must be true or false"))
    elif isinstance(question, MatchingQuestion):
        pass  # pairs are not authored yet
    return errors


class WorksheetEditor:
    """Authoring state for one worksheet being created or edited.

    Question edits are silent no-ops on bad input; validate() is the single
    gate before anything is sent to the backend.
    """

    def __init__(self, worksheet: Optional[Worksheet] = None):
        self.worksheet = worksheet.model_copy(deep=True) if worksheet else Worksheet()
        self.state = EditorState.DRAFT
        self.last_error: Optional[str] = None

    @classmethod
    def from_worksheet(cls, worksheet: Worksheet) -> "WorksheetEditor":
        return cls(worksheet)

    @property
    def worksheet_id(self) -> Optional[str]:
        return self.worksheet.id

    @property
    def questions(self) -> list:
        return self.worksheet.questions

    def _touch(self) -> None:
        if self.state == EditorState.SAVED:
            self.state = EditorState.DRAFT

    def _index_of(self, question_id: str) -> Optional[int]:
        for i, q in enumerate(self.worksheet.questions):
            if q.id == question_id:
                return i
        return None

    def get_question(self, question_id: str):
        index = self._index_of(question_id)
        return None if index is None else self.worksheet.questions[index]

    # --- Metadata ---

    def set_metadata(self, **fields: Any) -> Worksheet:
        unknown = [name for name in fields if name not in METADATA_FIELDS]
        if unknown:
            raise ValidationError([(name, f"Unknown field '{name}'") for name in unknown])
        data = self.worksheet.model_dump()
        data.update(fields)
        try:
            updated = Worksheet.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                [(".".join(str(p) for p in err["loc"]), err["msg"]) for err in e.errors()]
            )
        self.worksheet = updated
        self._touch()
        return updated

    # --- Questions ---

    def add_question(self):
        existing = {q.id for q in self.worksheet.questions}
        question = MultipleChoiceQuestion(id=_new_question_id(existing))
        self.worksheet.questions.append(question)
        self._touch()
        return question

    def update_question(self, question_id: str, field: str, value: Any) -> None:
        index = self._index_of(question_id)
        if index is None:
            logger.debug(f"update_question: no question {question_id}")
            return
        question = self.worksheet.questions[index]

        if field == "type":
            replacement = self._convert(question, value)
            if replacement is None:
                return
        else:
            name = _field_name(question, field)
            if name is None or name == "id":
                logger.debug(f"update_question: {question.type} has no field {field}")
                return
            if name == "options":
                logger.debug("update_question: options are edited one at a time with update_option")
                return
            data = question.model_dump()
            data[name] = value
            try:
                replacement = type(question).model_validate(data)
            except PydanticValidationError:
                logger.debug(f"update_question: rejected value for {field}")
                return

        self.worksheet.questions[index] = replacement
        self._touch()

    def _convert(self, question, new_type: str):
        if new_type == question.type:
            return None
        if new_type not in QUESTION_TYPES:
            logger.debug(f"update_question: unknown question type {new_type}")
            return None
        data = {
            "id": question.id,
            "type": new_type,
            "question": question.prompt,
            "points": question.points,
            "explanation": question.explanation,
        }
        if hasattr(question, "correctAnswer") and new_type != "matching":
            data["correctAnswer"] = question.correctAnswer
        return parse_question(data)

    def update_option(self, question_id: str, index: int, value: str) -> None:
        question = self.get_question(question_id)
        if not isinstance(question, MultipleChoiceQuestion):
            return
        if not 0 <= index < len(question.options):
            return
        # correctAnswer is not synced here; validate() reports a stale reference
        question.options[index] = value
        self._touch()

    def remove_question(self, question_id: str) -> None:
        index = self._index_of(question_id)
        if index is None:
            return
        del self.worksheet.questions[index]
        self._touch()

    # --- Validation & submit ---

    def validate(self) -> None:
        errors = []
        if _is_blank(self.worksheet.title):
            errors.append(("title", "Title is required"))
        if not self.worksheet.questions:
            errors.append(("questions", "Please add at least one question"))
        for i, question in enumerate(self.worksheet.questions):
            errors.extend(_question_errors(i, question))
        if errors:
            raise ValidationError(errors)

    async def submit(self, api) -> Worksheet:
        """Validate, then create or update the worksheet on the backend.

        On failure the editor returns to DRAFT with every edit intact so the
        caller can retry.
        """
        if self.state == EditorState.SUBMITTING:
            raise EditorBusy()
        self.validate()

        payload = self.worksheet.to_payload()
        worksheet_id = self.worksheet.id
        self.state = EditorState.SUBMITTING
        self.last_error = None
        try:
            if worksheet_id:
                saved = await api.update_worksheet(worksheet_id, payload)
            else:
                saved = await api.create_worksheet(payload)
        except PortalError as e:
            self.state = EditorState.DRAFT
            self.last_error = e.message
            logger.warning(f"Saving worksheet '{self.worksheet.title}' failed: {e.message}")
            raise
        except BaseException:
            self.state = EditorState.DRAFT
            raise

        if saved is not None and saved.id:
            self.worksheet.id = saved.id
            if saved.teacherId:
                self.worksheet.teacherId = saved.teacherId
        if self.worksheet.to_payload() != payload:
            # edited while the request was in flight
            self.state = EditorState.DRAFT
            logger.info(f"Worksheet saved: {self.worksheet.id}, newer edits still unsaved")
            return self.worksheet
        self.state = EditorState.SAVED
        logger.info(f"Worksheet saved: {self.worksheet.id}")
        return self.worksheet


class DraftRegistry:
    """Open editors keyed by draft id, each visible only to its author.

    Drafts idle for longer than `ttl` seconds are dropped, and an owner keeps
    at most `max_per_owner` drafts; opening one more evicts their least
    recently used draft.
    """

    def __init__(self, ttl: Optional[float] = None, max_per_owner: Optional[int] = None, clock=time.monotonic):
        self.ttl = ttl if ttl is not None else config.DRAFT_TTL_MINUTES * 60
        self.max_per_owner = max_per_owner or config.MAX_DRAFTS_PER_OWNER
        self._clock = clock
        self._drafts = {}

    def _evict_expired(self) -> None:
        cutoff = self._clock() - self.ttl
        expired = [draft_id for draft_id, entry in self._drafts.items() if entry["touched"] < cutoff]
        for draft_id in expired:
            logger.info(f"Draft {draft_id} expired")
            del self._drafts[draft_id]

    def _evict_over_cap(self, owner_id: str) -> None:
        owned = sorted(
            (entry["touched"], draft_id) for draft_id, entry in self._drafts.items() if entry["owner"] == owner_id
        )
        while len(owned) >= self.max_per_owner:
            _, draft_id = owned.pop(0)
            logger.info(f"Draft {draft_id} evicted, {owner_id} has too many open drafts")
            del self._drafts[draft_id]

    def open(self, owner_id: str, editor: WorksheetEditor) -> str:
        self._evict_expired()
        self._evict_over_cap(owner_id)
        draft_id = uuid.uuid4().hex
        self._drafts[draft_id] = {"owner": owner_id, "editor": editor, "touched": self._clock()}
        logger.info(f"Draft {draft_id} opened by {owner_id}")
        return draft_id

    def get(self, draft_id: str, owner_id: str) -> WorksheetEditor:
        self._evict_expired()
        entry = self._drafts.get(draft_id)
        if entry is None or entry["owner"] != owner_id:
            raise NotFound("Draft not found")
        entry["touched"] = self._clock()
        return entry["editor"]

    def discard(self, draft_id: str, owner_id: str) -> None:
        self.get(draft_id, owner_id)
        del self._drafts[draft_id]

    def __contains__(self, draft_id):
        return draft_id in self._drafts

    def __len__(self):
        return len(self._drafts)
