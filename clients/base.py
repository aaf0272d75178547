"""The remote operations the repair pipeline depends on.

Every mutation is version-checked against ``asset.sys.version`` and returns
the record as the server now has it; callers must continue with the returned
asset, never the one they passed in.
"""

from typing import Protocol

from models.content import Asset, Collection, Environment, Space


class ContentClient(Protocol):
    def get_spaces(self, *, skip: int = 0, limit: int | None = None) -> Collection[Space]: ...

    def get_space(self, space_id: str) -> Space: ...

    def get_environments(
        self, space_id: str, *, skip: int = 0, limit: int | None = None
    ) -> Collection[Environment]: ...

    def get_environment(self, space_id: str, environment_id: str) -> Environment: ...

    def get_assets(
        self,
        space_id: str,
        environment_id: str,
        *,
        skip: int = 0,
        limit: int | None = None,
    ) -> Collection[Asset]: ...

    def get_asset(self, space_id: str, environment_id: str, asset_id: str) -> Asset: ...

    def update_asset(self, asset: Asset) -> Asset: ...

    def archive_asset(self, asset: Asset) -> Asset: ...

    def unarchive_asset(self, asset: Asset) -> Asset: ...

    def publish_asset(self, asset: Asset) -> Asset: ...

    def process_asset_for_locale(self, asset: Asset, locale: str) -> Asset: ...
