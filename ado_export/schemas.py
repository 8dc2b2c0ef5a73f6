import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AdoConfig(BaseModel):
    """Triplet de connexion Azure DevOps. Jamais persisté par l'export."""

    model_config = ConfigDict(frozen=True)

    org_url: str = Field(..., description="ex : https://dev.azure.com/mon-organisation")
    project: str
    pat: str = Field(..., repr=False, description="Personal Access Token")

    @field_validator("org_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("org_url", "project", "pat")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("valeur obligatoire")
        return v

    @classmethod
    def from_env(
        cls,
        org_url: str | None = None,
        project: str | None = None,
        pat: str | None = None,
    ) -> "AdoConfig":
        load_dotenv()
        return cls(
            org_url=org_url or os.getenv("ADO_ORG_URL", ""),
            project=project or os.getenv("ADO_PROJECT", ""),
            pat=pat or os.getenv("ADO_PAT", ""),
        )


class RemoteWorkItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    url: str


class WorkItemDetails(BaseModel):
    description: Optional[str] = None
    acceptance_criteria: Optional[List[str]] = None
    business_value: Optional[str] = None  # High | Medium | Low
    risk_impact: Optional[str] = None


class StoryWorkItemMap:
    """
    Table story id → RemoteWorkItem, créée pour un seul export.
    Écrite par la phase hiérarchie, lue par la phase dépendances.
    """

    def __init__(self) -> None:
        self._items: Dict[str, RemoteWorkItem] = {}

    def register(self, story_id: str, item: RemoteWorkItem) -> None:
        if story_id in self._items:
            print(f"⚠️  Story id en double : {story_id} (le dernier work item créé est conservé)")
        self._items[story_id] = item

    def get(self, story_id: str) -> Optional[RemoteWorkItem]:
        return self._items.get(story_id)

    def __contains__(self, story_id: object) -> bool:
        return story_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def as_dict(self) -> Dict[str, RemoteWorkItem]:
        return dict(self._items)


@dataclass
class LinkFailure:
    story_id: str
    depends_on: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.story_id} -> {self.depends_on} : {self.error}"


@dataclass
class ExportReport:
    epics: int = 0
    features: int = 0
    user_stories: int = 0
    parent_links: int = 0
    dependency_links: int = 0
    failed_links: List[LinkFailure] = field(default_factory=list)
    work_items: Dict[str, RemoteWorkItem] = field(default_factory=dict)

    @property
    def created(self) -> int:
        return self.epics + self.features + self.user_stories

    @property
    def linked_dependencies(self) -> int:
        return self.dependency_links - len(self.failed_links)
