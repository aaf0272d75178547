"""In-memory content service used by the repair pipeline tests.

Mirrors the server rules the pipeline relies on:
  - every mutation is version-checked and bumps the version
  - archived assets cannot be updated, processed or published
  - published assets cannot be archived
  - publishing fails while any locale is still pending (``upload`` / no ``url``)
  - republishing fails when the published asset has no changes since its last publish
  - processing turns ``upload`` into an asset-owned ``url``

Every read returns a deep copy, like a real remote would.
"""

import pytest

from app.models.options import AssetProcessingOptions
from app.utils.cancellation import CancellationToken
from clients.errors import ContentClientError, NotFoundError, VersionMismatchError
from models.content import Asset, AssetSys, Collection, Environment, Space

HOST = "images.example.net"


def file_url(space_id: str, asset_id: str, name: str = "file.png") -> str:
    return f"//{HOST}/{space_id}/{asset_id}/nonce/{name}"


class FakeContentService:
    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self.spaces: dict[str, Space] = {}
        self.environments: dict[tuple[str, str], Environment] = {}
        self.assets: dict[tuple[str, str, str], Asset] = {}
        self.calls: list[tuple[str, str]] = []
        self._failures: dict[tuple[str, str], list[Exception]] = {}

    # ------------------------------------------------------------------
    # Fixture setup
    # ------------------------------------------------------------------

    def add_space(self, space_id: str) -> Space:
        space = Space(id=space_id)
        self.spaces[space_id] = space
        return space

    def add_environment(
        self, space_id: str, env_id: str, aliased_environment_id: str | None = None
    ) -> Environment:
        if space_id not in self.spaces:
            self.add_space(space_id)
        env = Environment(
            id=env_id, space_id=space_id, aliased_environment_id=aliased_environment_id
        )
        self.environments[(space_id, env_id)] = env
        return env

    def add_asset(
        self,
        asset_id: str,
        file: dict,
        space_id: str = "space",
        env_id: str = "master",
        version: int = 1,
        published_version: int | None = None,
        archived_version: int | None = None,
    ) -> Asset:
        if (space_id, env_id) not in self.environments:
            self.add_environment(space_id, env_id)
        asset = Asset(
            sys=AssetSys(
                id=asset_id,
                space_id=space_id,
                environment_id=env_id,
                version=version,
                published_version=published_version,
                archived_version=archived_version,
            ),
            fields={"file": file},
        )
        self.assets[(space_id, env_id, asset_id)] = asset
        return asset.model_copy(deep=True)

    def stored(self, asset_id: str, space_id: str = "space", env_id: str = "master") -> Asset:
        return self.assets[(space_id, env_id, asset_id)].model_copy(deep=True)

    def fail_next(self, operation: str, asset_id: str, *errors: Exception) -> None:
        """Make the next ``len(errors)`` calls of *operation* on *asset_id* raise."""
        self._failures.setdefault((operation, asset_id), []).extend(errors)

    def touch(self, asset_id: str, space_id: str = "space", env_id: str = "master") -> None:
        """Simulate an edit made by someone else (bumps the stored version)."""
        self.assets[(space_id, env_id, asset_id)].sys.version += 1

    def mutations(self, asset_id: str) -> list[str]:
        return [op for op, aid in self.calls if aid == asset_id and op != "get_asset"]

    # ------------------------------------------------------------------
    # ContentClient
    # ------------------------------------------------------------------

    def get_spaces(self, *, skip: int = 0, limit: int | None = None) -> Collection[Space]:
        return self._page(list(self.spaces.values()), skip, limit)

    def get_space(self, space_id: str) -> Space:
        if space_id not in self.spaces:
            raise NotFoundError(f"space {space_id} not found", status_code=404)
        return self.spaces[space_id]

    def get_environments(
        self, space_id: str, *, skip: int = 0, limit: int | None = None
    ) -> Collection[Environment]:
        envs = [e for (sid, _), e in self.environments.items() if sid == space_id]
        return self._page(envs, skip, limit)

    def get_environment(self, space_id: str, environment_id: str) -> Environment:
        key = (space_id, environment_id)
        if key not in self.environments:
            raise NotFoundError(f"environment {environment_id} not found", status_code=404)
        return self.environments[key]

    def get_assets(
        self,
        space_id: str,
        environment_id: str,
        *,
        skip: int = 0,
        limit: int | None = None,
    ) -> Collection[Asset]:
        assets = [
            a.model_copy(deep=True)
            for (sid, eid, _), a in self.assets.items()
            if sid == space_id and eid == environment_id
        ]
        return self._page(assets, skip, limit)

    def get_asset(self, space_id: str, environment_id: str, asset_id: str) -> Asset:
        self.calls.append(("get_asset", asset_id))
        key = (space_id, environment_id, asset_id)
        if key not in self.assets:
            raise NotFoundError(f"asset {asset_id} not found", status_code=404)
        return self.assets[key].model_copy(deep=True)

    def update_asset(self, asset: Asset) -> Asset:
        stored = self._begin("update", asset)
        if stored.is_archived():
            raise ContentClientError("Cannot update archived asset")
        stored.fields = asset.model_copy(deep=True).fields
        return self._commit(stored)

    def archive_asset(self, asset: Asset) -> Asset:
        stored = self._begin("archive", asset)
        if stored.is_published():
            raise ContentClientError("Cannot archive a published asset")
        stored.sys.archived_version = stored.sys.version
        return self._commit(stored)

    def unarchive_asset(self, asset: Asset) -> Asset:
        stored = self._begin("unarchive", asset)
        if not stored.is_archived():
            raise ContentClientError("Cannot unarchive a non-archived asset")
        stored.sys.archived_version = None
        return self._commit(stored)

    def publish_asset(self, asset: Asset) -> Asset:
        stored = self._begin("publish", asset)
        if stored.is_archived():
            raise ContentClientError("Cannot publish archived asset")
        if stored.is_published() and not stored.is_updated():
            raise ContentClientError("Nothing to publish")
        for file in stored.file.values():
            if file and (file.get("upload") or not file.get("url")):
                raise ContentClientError("Cannot publish a file with non-processed assets")
        stored.sys.published_version = stored.sys.version
        return self._commit(stored)

    def process_asset_for_locale(self, asset: Asset, locale: str) -> Asset:
        stored = self._begin("process:" + locale, asset)
        if stored.is_archived():
            raise ContentClientError("Cannot process archived asset")
        file = stored.file.get(locale)
        if not file:
            raise ContentClientError("Missing locale")
        if not file.get("upload"):
            raise ContentClientError("Nothing to process")
        file["url"] = file_url(stored.sys.space_id, stored.sys.id)
        del file["upload"]
        return self._commit(stored)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _page(self, items: list, skip: int, limit: int | None) -> Collection:
        size = min(limit or self.page_size, self.page_size)
        return Collection(
            skip=skip, limit=size, items=items[skip:skip + size], total=len(items)
        )

    def _begin(self, operation: str, asset: Asset) -> Asset:
        self.calls.append((operation, asset.sys.id))
        pending = self._failures.get((operation, asset.sys.id))
        if pending:
            raise pending.pop(0)
        stored = self.assets[(asset.sys.space_id, asset.sys.environment_id, asset.sys.id)]
        if stored.sys.version != asset.sys.version:
            raise VersionMismatchError(
                f"version {asset.sys.version} != {stored.sys.version}", status_code=409
            )
        return stored

    def _commit(self, stored: Asset) -> Asset:
        stored.sys.version += 1
        return stored.model_copy(deep=True)


@pytest.fixture
def service() -> FakeContentService:
    return FakeContentService()


@pytest.fixture
def cancel_token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def options() -> AssetProcessingOptions:
    return AssetProcessingOptions(processing_attempts=3, retry_interval_ms=0)
