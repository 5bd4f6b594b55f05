"""
Data model shared by the web and PDF fill engines.

Questions come from the grant record and are never mutated by a fill run;
FieldDescriptors are rebuilt on every page visit and thrown away afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union

from .errors import GrantRecordError

Answer = Union[str, List[str]]


class QuestionType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    YES_NO = "yes_no"
    NUMBER = "number"
    DATE = "date"
    OTHER = "other"


class ControlKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DATE = "date"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    SELECT_ONE = "select-one"
    SELECT_MULTIPLE = "select-multiple"
    CONTENTEDITABLE = "contenteditable"
    UNSUPPORTED = "unsupported"


TEXT_LIKE_TYPES = ("text", "email", "tel", "url", "search")
YES_NO_OPTIONS = ["Yes", "No"]


def control_kind(dom_type: str) -> ControlKind:
    """Collapse a native DOM control type into the closed set of kinds we know how to write."""
    t = (dom_type or "").lower()
    if t in TEXT_LIKE_TYPES:
        return ControlKind.TEXT
    try:
        return ControlKind(t)
    except ValueError:
        return ControlKind.UNSUPPORTED


@dataclass
class Question:
    question_id: str
    question_text: str
    type: QuestionType = QuestionType.TEXTAREA
    options: List[str] = field(default_factory=list)
    answer: Answer = ""
    required: bool = False
    char_limit: Optional[int] = None
    depends_on: Optional[str] = None
    depends_value: Optional[Answer] = None
    reviewed: bool = False
    needs_manual_input: bool = False

    def __post_init__(self):
        try:
            self.type = QuestionType(self.type)
        except ValueError as e:
            raise GrantRecordError(f"unknown question type {self.type!r} for {self.question_id}") from e
        if self.answer is None:
            self.answer = [] if self.type is QuestionType.MULTI_CHOICE else ""
        if self.type is QuestionType.MULTI_CHOICE:
            if isinstance(self.answer, str):
                self.answer = [self.answer] if self.answer.strip() else []
            else:
                self.answer = [str(a) for a in self.answer]
        elif isinstance(self.answer, (list, tuple)):
            raise GrantRecordError(
                f"question {self.question_id} is {self.type.value} but its answer is a list"
            )
        else:
            self.answer = str(self.answer)
        self.options = [str(o) for o in (self.options or [])]

    @property
    def effective_type(self) -> QuestionType:
        return QuestionType.TEXT if self.type is QuestionType.OTHER else self.type

    @property
    def choice_options(self) -> List[str]:
        if self.type is QuestionType.YES_NO:
            return list(YES_NO_OPTIONS)
        return list(self.options)

    @property
    def has_answer(self) -> bool:
        if isinstance(self.answer, list):
            return any(str(a).strip() for a in self.answer)
        return bool(self.answer.strip())

    @property
    def answer_values(self) -> List[str]:
        if isinstance(self.answer, list):
            return [a for a in self.answer if a.strip()]
        return [self.answer] if self.answer.strip() else []

    @property
    def answer_text(self) -> str:
        if isinstance(self.answer, list):
            return "; ".join(self.answer_values)
        return self.answer

    @property
    def answer_length(self) -> int:
        return len(self.answer) if isinstance(self.answer, str) else 0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Question":
        if not isinstance(raw, dict):
            raise GrantRecordError(f"question must be an object, got {type(raw).__name__}")
        if not raw.get("question_id") or not raw.get("question_text"):
            raise GrantRecordError("question needs question_id and question_text")
        char_limit = raw.get("char_limit")
        return cls(
            question_id=str(raw["question_id"]),
            question_text=str(raw["question_text"]),
            type=raw.get("type") or QuestionType.TEXTAREA,
            options=raw.get("options") or [],
            answer=raw.get("answer"),
            required=bool(raw.get("required", False)),
            char_limit=int(char_limit) if char_limit else None,
            depends_on=raw.get("depends_on"),
            depends_value=raw.get("depends_value"),
            reviewed=bool(raw.get("reviewed", False)),
            needs_manual_input=bool(raw.get("needs_manual_input", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "type": self.type.value,
            "answer": self.answer,
            "required": self.required,
            "reviewed": self.reviewed,
        }
        if self.options:
            out["options"] = self.options
        if self.char_limit:
            out["char_limit"] = self.char_limit
        if self.depends_on:
            out["depends_on"] = self.depends_on
            out["depends_value"] = self.depends_value
        if self.needs_manual_input:
            out["needs_manual_input"] = True
        return out


@dataclass
class FieldDescriptor:
    """One control discovered during a single extraction pass over one page state."""
    index: str
    type: str
    id: str = ""
    name: str = ""
    label_text: str = ""
    helper_text: str = ""
    group_label: str = ""
    placeholder: str = ""
    aria_label: str = ""
    value: str = ""
    required: bool = False
    in_iframe: bool = False
    frame_index: Optional[int] = None
    used: bool = False

    @property
    def kind(self) -> ControlKind:
        return control_kind(self.type)

    @property
    def label_bundle(self) -> str:
        parts = [self.label_text, self.helper_text, self.group_label, self.id,
                 self.name, self.placeholder, self.aria_label]
        return " ".join(p for p in parts if p)

    @classmethod
    def from_dom(cls, raw: Dict[str, Any]) -> "FieldDescriptor":
        return cls(
            index=str(raw.get("index", "")),
            type=(raw.get("type") or "").lower(),
            id=raw.get("id") or "",
            name=raw.get("name") or "",
            label_text=raw.get("labelText") or "",
            helper_text=(raw.get("helperText") or "").strip(),
            group_label=raw.get("groupLabel") or "",
            placeholder=raw.get("placeholder") or "",
            aria_label=raw.get("ariaLabel") or "",
            value=raw.get("value") or "",
            required=bool(raw.get("required")),
            in_iframe=bool(raw.get("isIframe")),
            frame_index=raw.get("frameIndex"),
        )


@dataclass
class MatchCandidate:
    field: FieldDescriptor
    score: float


@dataclass(frozen=True)
class FillMapping:
    question_text: str
    answer: Answer
    selector: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question_text,
            "answer": self.answer,
            "selector": self.selector,
            "confidence": round(self.confidence, 3),
        }


@dataclass
class FillReport:
    fields_filled: int = 0
    fields_skipped: int = 0
    mappings: List[FillMapping] = field(default_factory=list)
    pages_visited: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields_filled": self.fields_filled,
            "fields_skipped": self.fields_skipped,
            "pages_visited": self.pages_visited,
            "mappings": [m.to_dict() for m in self.mappings],
        }


@dataclass
class FillRun:
    """Mutable state owned by exactly one fill run."""
    satisfied: Set[str] = field(default_factory=set)
    mappings: List[FillMapping] = field(default_factory=list)

    def is_satisfied(self, question: Question) -> bool:
        return question.question_id in self.satisfied

    def record(self, question: Question, mapping: FillMapping):
        self.satisfied.add(question.question_id)
        self.mappings.append(mapping)

    def report(self, questions: List[Question], pages_visited: int) -> FillReport:
        filled = len(self.mappings)
        return FillReport(
            fields_filled=filled,
            fields_skipped=len(questions) - filled,
            mappings=list(self.mappings),
            pages_visited=pages_visited,
        )


@dataclass
class PdfFillResult:
    filled: bool
    data: bytes
    fields_filled: int = 0
    fields_total: int = 0
    mappings: List[FillMapping] = field(default_factory=list)
