"""Skill schemas — reconciler write record and read API responses."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SkillUpsert(BaseModel):
    """Column values the reconciler writes for one manifest."""

    id: str
    repo_id: str
    name: str
    description: str = ""
    path: str
    github_url: str
    raw_url: str
    license: str | None = None
    category: str | None = None
    compatibility: str | None = None
    metadata_json: str | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SkillLocation(_CamelModel):
    owner: str
    repo: str
    path: str
    branch: str
    github_url: str
    raw_skill_md_url: str


class SkillResponse(_CamelModel):
    id: str
    name: str
    description: str
    license: str | None = None
    compatibility: str | None = None
    metadata: dict | None = None
    source: SkillLocation
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    repo_stars: int = 0
    repo_description: str | None = None
    updated_at: str
    install_command: str
    curl_command: str


class SkillPage(_CamelModel):
    skills: list[SkillResponse]
    next_cursor: str | None = None


class SkillStats(_CamelModel):
    total_skills: int
    total_repos: int
    category_counts: dict[str, int]


class CategoryCount(_CamelModel):
    id: str
    label: str
    count: int


class SkillContentResponse(_CamelModel):
    id: str
    content: str
    etag: str | None = None
    body: str
