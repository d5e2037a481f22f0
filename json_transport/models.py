"""Data models exchanged with a remote JSON server."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .codec import UtcDateTime


@dataclass(frozen=True)
class Credentials:
    """Optional username and secret used for HTTP Basic authentication."""

    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    def is_present(self) -> bool:
        """Return ``True`` when both the username and the secret are non-empty."""

        return bool(self.username) and bool(self.password)

    def authorization_header(self) -> str:
        """Return the ``Basic`` authorization value for these credentials."""

        token = f"{self.username}:{self.password}".encode("utf-8")
        return "Basic " + base64.b64encode(token).decode("ascii")

    def headers(self) -> Dict[str, str]:
        if not self.is_present():
            return {}
        return {"Authorization": self.authorization_header()}


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RepositoryModel(_WireModel):
    """A repository as listed by the server."""

    name: str
    description: str = ""
    owner: str = ""
    last_change: Optional[UtcDateTime] = None
    has_commits: bool = False
    show_remote_branches: bool = False
    use_tickets: bool = False
    is_frozen: bool = False
    access_restriction: str = "NONE"


class UserModel(_WireModel):
    """A user account together with the repositories it may access."""

    username: str
    password: str = ""
    can_admin: bool = False
    exclude_from_federation: bool = False
    repositories: List[str] = Field(default_factory=list)
    created: Optional[UtcDateTime] = None


# Shape descriptors for the common collection payloads.
REPOSITORIES_TYPE = Dict[str, RepositoryModel]
USERS_TYPE = List[UserModel]

__all__ = [
    "Credentials",
    "REPOSITORIES_TYPE",
    "RepositoryModel",
    "USERS_TYPE",
    "UserModel",
]
