import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .config import PROFILE_SECTION_LIMIT
from .errors import GrantRecordError


@dataclass
class ExtraSection:
    title: str
    content: str
    id: str = ""


@dataclass
class OrganizationProfile:
    org_id: str
    legal_name: str
    mission_short: str = ""
    mission_long: str = ""
    address: str = ""
    extra_sections: List[ExtraSection] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "OrganizationProfile":
        if not isinstance(raw, dict):
            raise GrantRecordError("organization profile must be a JSON object")
        if not raw.get("legal_name"):
            raise GrantRecordError("organization profile needs a legal_name")
        sections = []
        for s in raw.get("extra_sections") or []:
            if isinstance(s, dict) and (s.get("title") or s.get("content")):
                sections.append(ExtraSection(title=s.get("title") or "", content=s.get("content") or "",
                                             id=str(s.get("id") or "")))
        return cls(
            org_id=str(raw.get("org_id") or "default"),
            legal_name=raw["legal_name"],
            mission_short=raw.get("mission_short") or "",
            mission_long=raw.get("mission_long") or "",
            address=raw.get("address") or "",
            extra_sections=sections,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "org_id": self.org_id,
            "legal_name": self.legal_name,
            "mission_short": self.mission_short,
            "mission_long": self.mission_long,
            "address": self.address,
            "extra_sections": [{"id": s.id, "title": s.title, "content": s.content}
                               for s in self.extra_sections],
        }

    def as_prompt_text(self, section_limit: int = PROFILE_SECTION_LIMIT) -> str:
        """Plain-text profile for the drafting prompt; long extra sections are cut."""
        lines = [
            f"Legal Name: {self.legal_name}",
            f"Mission (short): {self.mission_short}",
            f"Mission (long): {self.mission_long}",
            f"Address: {self.address}",
        ]
        for s in self.extra_sections:
            content = s.content if len(s.content) <= section_limit else s.content[:section_limit] + "..."
            lines.append(f"{s.title}: {content}")
        return "\n".join(lines)


def load_profile(path: str) -> OrganizationProfile:
    if not os.path.exists(path):
        raise FileNotFoundError(f"organization profile not found: {path}")
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise GrantRecordError(f"organization profile is not valid JSON: {path}") from e
    return OrganizationProfile.from_dict(raw)
