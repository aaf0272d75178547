"""ManagementClient: content management HTTP API over ``requests``.

Endpoints used (all relative to ``base_url``):
  GET    /spaces                                       list spaces
  GET    /spaces/{space}                               one space
  GET    /spaces/{space}/environments                  list environments
  GET    /spaces/{space}/environments/{env}            one environment
  GET    /spaces/{space}/environments/{env}/assets     list assets
  GET    .../assets/{asset}                            one asset
  PUT    .../assets/{asset}                            update fields
  PUT    .../assets/{asset}/files/{locale}/process     start processing
  PUT    .../assets/{asset}/published                  publish
  PUT    .../assets/{asset}/archived                   archive
  DELETE .../assets/{asset}/archived                   unarchive

Mutations send the local ``sys.version`` in ``X-Contentful-Version``; a 409
means somebody else got there first and is raised as VersionMismatchError.
"""

import time

import requests

from app.utils.logging import get_logger
from clients.errors import (
    AssetProcessingTimeoutError,
    ContentClientError,
    NotFoundError,
    VersionMismatchError,
)
from models.content import Asset, Collection, Environment, Space

DEFAULT_BASE_URL = "https://api.contentful.com"

_CONTENT_TYPE = "application/vnd.contentful.management.v1+json"


class ManagementClient:
    """Content management API client.

    Args:
        access_token: Management API token (sent as a bearer token).
        base_url: API root; defaults to the public management endpoint.
        timeout: Per-request timeout in seconds.
        processing_check_retries: How many times to re-read an asset after
            asking the server to process one of its locales.
        processing_check_wait: Seconds between those re-reads.
        session: Optional pre-built ``requests.Session`` (tests).
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        processing_check_retries: int = 5,
        processing_check_wait: float = 0.5,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.processing_check_retries = processing_check_retries
        self.processing_check_wait = processing_check_wait
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": _CONTENT_TYPE,
            }
        )
        self._log = get_logger("clients.management")

    # ------------------------------------------------------------------
    # Spaces / environments
    # ------------------------------------------------------------------

    def get_spaces(self, *, skip: int = 0, limit: int | None = None) -> Collection[Space]:
        data = self._request("GET", "/spaces", params=_page(skip, limit))
        return _parse(_collection, data, Space.from_api)

    def get_space(self, space_id: str) -> Space:
        return _parse(Space.from_api, self._request("GET", f"/spaces/{space_id}"))

    def get_environments(
        self, space_id: str, *, skip: int = 0, limit: int | None = None
    ) -> Collection[Environment]:
        data = self._request(
            "GET", f"/spaces/{space_id}/environments", params=_page(skip, limit)
        )
        return _parse(_collection, data, Environment.from_api)

    def get_environment(self, space_id: str, environment_id: str) -> Environment:
        return _parse(
            Environment.from_api,
            self._request("GET", f"/spaces/{space_id}/environments/{environment_id}"),
        )

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def get_assets(
        self,
        space_id: str,
        environment_id: str,
        *,
        skip: int = 0,
        limit: int | None = None,
    ) -> Collection[Asset]:
        data = self._request(
            "GET",
            f"/spaces/{space_id}/environments/{environment_id}/assets",
            params=_page(skip, limit),
        )
        return _parse(_collection, data, Asset.from_api)

    def get_asset(self, space_id: str, environment_id: str, asset_id: str) -> Asset:
        return _parse(
            Asset.from_api,
            self._request("GET", _asset_path(space_id, environment_id, asset_id)),
        )

    def update_asset(self, asset: Asset) -> Asset:
        return self._mutate("PUT", asset, "", json=asset.to_update_payload())

    def archive_asset(self, asset: Asset) -> Asset:
        return self._mutate("PUT", asset, "/archived")

    def unarchive_asset(self, asset: Asset) -> Asset:
        return self._mutate("DELETE", asset, "/archived")

    def publish_asset(self, asset: Asset) -> Asset:
        return self._mutate("PUT", asset, "/published")

    def process_asset_for_locale(self, asset: Asset, locale: str) -> Asset:
        """Ask the server to ingest ``upload`` for *locale*, then wait for the url.

        Processing runs asynchronously on the server; the asset is re-read
        until the locale carries a finalized ``url``.
        """
        self._request(
            "PUT",
            _asset_path(asset.sys.space_id, asset.sys.environment_id, asset.sys.id)
            + f"/files/{locale}/process",
            headers={"X-Contentful-Version": str(asset.sys.version)},
        )

        for check in range(1, self.processing_check_retries + 1):
            if self.processing_check_wait > 0:
                time.sleep(self.processing_check_wait)
            current = self.get_asset(
                asset.sys.space_id, asset.sys.environment_id, asset.sys.id
            )
            file = current.file.get(locale) or {}
            if file.get("url") and not file.get("upload"):
                return current
            self._log.debug(
                "asset_processing_pending",
                asset_id=asset.sys.id,
                locale=locale,
                check=check,
            )

        raise AssetProcessingTimeoutError(
            f"asset {asset.sys.id} locale {locale} not processed after "
            f"{self.processing_check_retries} checks"
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _mutate(self, method: str, asset: Asset, suffix: str, json: dict | None = None) -> Asset:
        path = _asset_path(asset.sys.space_id, asset.sys.environment_id, asset.sys.id)
        data = self._request(
            method,
            path + suffix,
            json=json,
            headers={"X-Contentful-Version": str(asset.sys.version)},
        )
        return _parse(Asset.from_api, data)

    def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
        headers: dict | None = None,
    ) -> dict:
        url = f"{self.base_url}{path}"
        try:
            r = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ContentClientError(f"{method} {path} failed: {exc}") from exc

        if r.status_code == 404:
            raise NotFoundError(f"{method} {path} not found", status_code=404)
        if r.status_code == 409:
            raise VersionMismatchError(
                f"{method} {path} version mismatch: {r.text}", status_code=409
            )
        if r.status_code >= 400:
            raise ContentClientError(
                f"{method} {path} failed: {r.status_code} {r.text}",
                status_code=r.status_code,
            )
        if r.status_code == 204 or not r.content:
            return {}
        try:
            return r.json()
        except ValueError as exc:
            raise ContentClientError(
                f"{method} {path} returned a non-JSON body", status_code=r.status_code
            ) from exc


def _asset_path(space_id: str, environment_id: str, asset_id: str) -> str:
    return f"/spaces/{space_id}/environments/{environment_id}/assets/{asset_id}"


def _page(skip: int, limit: int | None) -> dict:
    params = {"skip": skip}
    if limit is not None:
        params["limit"] = limit
    return params


def _parse(parse, data, *args):
    """Build a model from a response body; a malformed body is a client error."""
    try:
        return parse(data, *args)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ContentClientError(f"unexpected response payload: {exc}") from exc


def _collection(data: dict, parse) -> Collection:
    return Collection(
        skip=data.get("skip", 0),
        limit=data.get("limit", 0),
        items=[parse(item) for item in data.get("items", [])],
        total=data.get("total"),
    )
