"""Pydantic models for content-repository records touched by the repair pipeline.

Only the parts of the management API payloads the pipeline reads are typed.
Asset ``fields`` stay raw JSON so that locale FileRefs (``url`` / ``upload`` /
``details`` / ``fileName`` / ``contentType`` ...) round-trip untouched apart
from the keys the URL rewrite deliberately changes.

FileRef shapes inside ``fields["file"][locale]``:
  - ``{"url": ...}``     finalized file, URL is canonical
  - ``{"upload": ...}``  pending; the server will ingest ``upload`` on processing
  - ``None``             locale has no file
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

FileRef = dict[str, Any] | None


def _link_id(sys: dict, key: str) -> str:
    """Return ``sys[key].sys.id`` or an empty string when the link is absent."""
    link = sys.get(key) or {}
    return (link.get("sys") or {}).get("id", "")


class Collection(BaseModel, Generic[T]):
    """One page of a cursor-paged listing."""

    skip: int = 0
    limit: int = 0
    items: list[T] = Field(default_factory=list)
    total: int | None = None
    """Informational only; never used to decide when paging stops."""


class Space(BaseModel):
    id: str
    name: str = ""

    @classmethod
    def from_api(cls, payload: dict) -> "Space":
        return cls(id=payload["sys"]["id"], name=payload.get("name", ""))


class Environment(BaseModel):
    id: str
    space_id: str
    name: str = ""

    aliased_environment_id: str | None = None
    """Set when this environment is only an alias pointing at another one."""

    @property
    def is_alias(self) -> bool:
        return self.aliased_environment_id is not None

    @classmethod
    def from_api(cls, payload: dict) -> "Environment":
        sys = payload["sys"]
        aliased = None
        if "aliasedEnvironment" in sys:
            aliased = _link_id(sys, "aliasedEnvironment") or sys["id"]
        return cls(
            id=sys["id"],
            space_id=_link_id(sys, "space"),
            name=payload.get("name", ""),
            aliased_environment_id=aliased,
        )


class AssetSys(BaseModel):
    id: str
    space_id: str
    environment_id: str = "master"
    version: int = 1

    published_version: int | None = None
    """Absent when the asset has never been published."""

    archived_version: int | None = None
    """Present while the asset is archived."""


class Asset(BaseModel):
    """A transient local copy of a remote asset record."""

    sys: AssetSys
    fields: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def file(self) -> dict[str, FileRef]:
        """Locale → FileRef map, mutable in place; empty when the asset has no file field."""
        return self.fields.get("file") or {}

    def is_draft(self) -> bool:
        return self.sys.published_version is None

    def is_published(self) -> bool:
        return not self.is_draft()

    def is_updated(self) -> bool:
        """True when a published asset carries draft changes beyond its last publish.

        Publishing bumps the version once, so a freshly published asset sits
        exactly one version ahead of ``published_version``.  Never-published
        drafts are not "updated".
        """
        if self.sys.published_version is None:
            return False
        return self.sys.version - self.sys.published_version > 1

    def is_archived(self) -> bool:
        return self.sys.archived_version is not None

    @classmethod
    def from_api(cls, payload: dict) -> "Asset":
        sys = payload["sys"]
        return cls(
            sys=AssetSys(
                id=sys["id"],
                space_id=_link_id(sys, "space"),
                environment_id=_link_id(sys, "environment") or "master",
                version=sys.get("version", 1),
                published_version=sys.get("publishedVersion"),
                archived_version=sys.get("archivedVersion"),
            ),
            fields=payload.get("fields") or {},
        )

    def to_update_payload(self) -> dict:
        """Body for a field update; ``sys`` travels in headers, not the body."""
        return {"fields": self.fields}
