from datetime import datetime
from typing import List, Literal, Optional

import pydantic


class Model(pydantic.BaseModel):
    pass


class User(Model):
    login: str
    avatar_url: Optional[str] = None


class Repository(Model):
    name: str
    owner: User
    full_name: Optional[str] = None
    html_url: Optional[str] = None


class Label(Model):
    name: str


class PrConnection(Model):
    ref: str
    repo: Optional[Repository] = None


class PullRequest(Model):
    node_id: str
    number: int
    title: str
    user: User
    state: Literal["open", "closed"]
    merged: Optional[bool] = False
    merged_at: Optional[datetime] = None
    created_at: datetime
    head: PrConnection
    base: PrConnection
    labels: List[Label] = pydantic.Field(default_factory=list)
    requested_reviewers: List[User] = pydantic.Field(default_factory=list)
    html_url: str

    @pydantic.field_validator("labels", "requested_reviewers", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value

    @property
    def is_merged(self) -> bool:
        return bool(self.merged) or self.merged_at is not None

    @property
    def label_names(self) -> List[str]:
        return [label.name for label in self.labels]

    @property
    def reviewer_logins(self) -> List[str]:
        return [user.login for user in self.requested_reviewers]

    def __str__(self) -> str:
        name = self.base.repo.full_name if self.base.repo is not None else None
        return f"PR({name or self.base.ref}#{self.number})"


class Installation(Model):
    id: int


class PullRequestEvent(Model):
    action: str
    repository: Repository
    pull_request: PullRequest
    installation: Optional[Installation] = None


class ProjectAssociation(Model):
    model_config = pydantic.ConfigDict(frozen=True)

    title: str
    status: Optional[str] = None

    def __str__(self) -> str:
        if self.status is None:
            return self.title
        return f"{self.title} ({self.status})"


class ProjectRef(Model):
    title: Optional[str] = None


class FieldValue(Model):
    name: Optional[str] = None


class ProjectItem(Model):
    project: Optional[ProjectRef] = None
    status: Optional[FieldValue] = pydantic.Field(None, alias="fieldValueByName")

    def to_association(self) -> Optional[ProjectAssociation]:
        if self.project is None or not self.project.title:
            return None
        status = self.status.name if self.status is not None else None
        return ProjectAssociation(title=self.project.title, status=status or None)


class ProjectItemConnection(Model):
    nodes: List[Optional[ProjectItem]] = pydantic.Field(default_factory=list)
