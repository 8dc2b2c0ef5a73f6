from typing import Dict, Iterator, List

from pydantic import BaseModel, Field, RootModel, field_validator


LEVELS = ("High", "Medium", "Low")


def _normalize_level(v):
    # "high" / " MEDIUM " -> "High" / "Medium"
    if isinstance(v, str):
        return {level.lower(): level for level in LEVELS}.get(v.strip().lower(), v)
    return v


class UserStory(BaseModel):
    id: str = Field(..., description="Code unique de la story, sert aussi de clé de dépendance")
    story: str = Field(..., description="En tant que ..., je veux ... afin de ...")
    acceptance_criteria: List[str] = Field(default_factory=list)
    business_value: str  # High | Medium | Low
    risk_impact: str     # High | Medium | Low
    dependencies: List[str] = Field(default_factory=list)

    @field_validator("business_value", "risk_impact", mode="before")
    @classmethod
    def normalize_level(cls, v):
        return _normalize_level(v)

    @field_validator("business_value", "risk_impact")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v not in LEVELS:
            raise ValueError(f"doit être High | Medium | Low, reçu : {v}")
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def ensure_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


class Feature(BaseModel):
    feature: str
    feature_description: str = ""
    user_stories: List[UserStory] = Field(default_factory=list)


class Epic(BaseModel):
    epic: str
    epic_description: str = ""
    features: List[Feature] = Field(default_factory=list)


class BacklogGraph(RootModel[List[Epic]]):
    """
    Backlog complet : liste ordonnée d'Epics.
    Le JSON correspondant est un simple tableau d'epics.
    """

    @property
    def epics(self) -> List[Epic]:
        return self.root

    def iter_features(self) -> Iterator[Feature]:
        for epic in self.root:
            yield from epic.features

    def iter_stories(self) -> Iterator[UserStory]:
        for feature in self.iter_features():
            yield from feature.user_stories

    def counts(self) -> Dict[str, int]:
        return {
            "epics": len(self.root),
            "features": sum(1 for _ in self.iter_features()),
            "user_stories": sum(1 for _ in self.iter_stories()),
        }

    def __len__(self) -> int:
        return len(self.root)
