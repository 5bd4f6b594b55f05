import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import GrantRecordError
from .models import Question

logger = logging.getLogger(__name__)

STATUSES = ("draft", "ready", "filled", "submitted")
SOURCE_TYPES = ("pdf", "web", "docx")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class GrantApplication:
    grant_id: str
    grant_name: str
    grant_url: str = ""
    portal_url: Optional[str] = None
    status: str = "draft"
    source_type: Optional[str] = None
    source_file: Optional[str] = None
    responses: List[Question] = field(default_factory=list)
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    def __post_init__(self):
        if self.status not in STATUSES:
            raise GrantRecordError(f"unknown grant status {self.status!r}")
        if self.source_type and self.source_type not in SOURCE_TYPES:
            raise GrantRecordError(f"unknown source type {self.source_type!r}")

    def fill_target(self) -> str:
        """The URL a web fill should open: the portal if one is set, else the grant URL."""
        target = (self.portal_url or "").strip() or (self.grant_url or "").strip()
        if not target:
            raise GrantRecordError(f"grant {self.grant_id} has no grant_url or portal_url")
        return target

    def question(self, question_id: str) -> Optional[Question]:
        for q in self.responses:
            if q.question_id == question_id:
                return q
        return None

    def touch(self):
        self.updated_at = _now()

    @classmethod
    def new(cls, grant_name: str, grant_url: str = "", **kw) -> "GrantApplication":
        return cls(grant_id=str(uuid.uuid4()), grant_name=grant_name, grant_url=grant_url, **kw)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "GrantApplication":
        if not isinstance(raw, dict):
            raise GrantRecordError("grant record must be a JSON object")
        responses = raw.get("responses", [])
        if not isinstance(responses, list):
            raise GrantRecordError("grant record 'responses' must be a list")
        return cls(
            grant_id=str(raw.get("grant_id") or uuid.uuid4()),
            grant_name=raw.get("grant_name") or "",
            grant_url=raw.get("grant_url") or "",
            portal_url=raw.get("portal_url") or None,
            status=raw.get("status") or "draft",
            source_type=raw.get("source_type") or None,
            source_file=raw.get("source_file") or raw.get("source_file_key") or None,
            responses=[Question.from_dict(r) for r in responses],
            created_at=raw.get("created_at") or _now(),
            updated_at=raw.get("updated_at") or _now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "grant_id": self.grant_id,
            "grant_name": self.grant_name,
            "grant_url": self.grant_url,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "responses": [q.to_dict() for q in self.responses],
        }
        if self.portal_url:
            out["portal_url"] = self.portal_url
        if self.source_type:
            out["source_type"] = self.source_type
        if self.source_file:
            out["source_file"] = self.source_file
        return out


def load_grant(path: str) -> GrantApplication:
    if not os.path.exists(path):
        raise FileNotFoundError(f"grant record not found: {path}")
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise GrantRecordError(f"grant record is not valid JSON: {path}") from e
    grant = GrantApplication.from_dict(raw)
    logger.debug(f"[grant] loaded {grant.grant_id} with {len(grant.responses)} question(s)")
    return grant


def save_grant(grant: GrantApplication, path: str):
    grant.touch()
    Path(path).write_text(json.dumps(grant.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"[grant] saved {path}")
