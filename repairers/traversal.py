"""Walk account → space → environment → asset and repair every asset in scope.

Scopes are processed one at a time.  Explicitly requested spaces and
environments are fetched lazily, one per iteration; one that cannot be
fetched is logged and skipped.  Without an explicit list, every child visible
to the credentials is enumerated page by page (alias environments excluded,
they share their target's assets).

The cancellation token is polled before and after every asset, environment
and space; a cancelled run raises OperationCancelledError out of all loops.
"""

from collections.abc import Iterable, Iterator
from functools import partial

from app.models.options import AssetErrorPolicy, AssetProcessingOptions
from app.utils.cancellation import CancellationToken, OperationCancelledError
from app.utils.logging import get_logger
from app.utils.pagination import iterate_paginated
from clients.base import ContentClient
from clients.errors import ContentClientError
from models.content import Environment, Space
from models.results import AccountResult, EnvironmentResult, SpaceResult
from repairers.asset import process_asset

logger = get_logger("repairers.traversal")


class AssetRepairError(Exception):
    """An asset could not be repaired within the configured number of attempts."""

    def __init__(self, space_id: str, environment_id: str, asset_id: str) -> None:
        super().__init__(
            f"asset {asset_id} in space {space_id} environment {environment_id} "
            "could not be repaired"
        )
        self.space_id = space_id
        self.environment_id = environment_id
        self.asset_id = asset_id


def process_environment_assets(
    client: ContentClient,
    environment: Environment,
    options: AssetProcessingOptions,
    cancel_token: CancellationToken,
    log=None,
) -> EnvironmentResult:
    log = (log or logger).bind(environment_id=environment.id)
    log.info("processing_environment_assets")

    space_id = environment.space_id
    env_id = environment.id
    policy = options.retry_policy
    result = EnvironmentResult()

    assets = iterate_paginated(partial(client.get_assets, space_id, env_id))
    for listed in assets:
        cancel_token.throw_if_cancelled()
        asset_id = listed.sys.id
        asset_log = log.bind(asset_id=asset_id)

        def attempt(n: int, listed=listed, asset_id=asset_id, asset_log=asset_log):
            asset = listed
            if n > 1:
                asset_log.debug("reloading_asset", attempt=n)
                asset = client.get_asset(space_id, env_id, asset_id)
            return process_asset(
                client, asset, options, asset_log, was_archived=listed.is_archived()
            )

        try:
            outcome = policy.run(attempt)
        except OperationCancelledError:
            raise
        except Exception as exc:
            if options.on_asset_error is AssetErrorPolicy.RECORD:
                asset_log.error(
                    "asset_repair_failed",
                    attempts=policy.attempts,
                    error=repr(exc),
                )
                result.record_failure(asset_id)
                cancel_token.throw_if_cancelled()
                continue
            raise AssetRepairError(space_id, env_id, asset_id) from exc

        result.record(asset_id, outcome)
        cancel_token.throw_if_cancelled()

    log.info(
        "processing_environment_assets_complete",
        checked=len(result.checked),
        updated=len(result.updated),
        published=len(result.published),
        failed=len(result.failed),
    )
    return result


def process_space_assets(
    client: ContentClient,
    space: Space,
    env_ids: list[str] | None,
    options: AssetProcessingOptions,
    cancel_token: CancellationToken,
    log=None,
) -> SpaceResult:
    log = (log or logger).bind(space_id=space.id)
    log.info("processing_space_assets")

    if env_ids is None:
        environments: Iterable[Environment] = (
            env
            for env in iterate_paginated(partial(client.get_environments, space.id))
            if not env.is_alias
        )
    else:
        environments = _fetch_each(
            env_ids,
            partial(client.get_environment, space.id),
            log,
            "environment_fetch_failed",
            "environment_id",
        )

    result: SpaceResult = {}
    for environment in environments:
        cancel_token.throw_if_cancelled()
        result[environment.id] = process_environment_assets(
            client, environment, options, cancel_token, log
        )
        cancel_token.throw_if_cancelled()

    log.info("processing_space_assets_complete", environments=len(result))
    return result


def process_assets(
    client: ContentClient,
    space_ids: list[str] | None,
    env_ids: list[str] | None,
    options: AssetProcessingOptions,
    cancel_token: CancellationToken,
    log=None,
) -> AccountResult:
    """Repair every asset in the requested spaces and environments.

    Args:
        space_ids: Spaces to process; ``None`` means every space the
            credentials can see.
        env_ids: Environments to process in each space; ``None`` means every
            non-alias environment.
    """
    log = log or logger
    log.info("processing_assets", dry_run=options.dry_run)

    if space_ids is None:
        log.debug("fetching_all_spaces")
        spaces: Iterable[Space] = iterate_paginated(client.get_spaces)
    else:
        spaces = _fetch_each(space_ids, client.get_space, log, "space_fetch_failed", "space_id")

    result: AccountResult = {}
    for space in spaces:
        cancel_token.throw_if_cancelled()
        result[space.id] = process_space_assets(
            client, space, env_ids, options, cancel_token, log
        )
        cancel_token.throw_if_cancelled()

    log.info("processing_assets_complete", spaces=len(result))
    return result


def _fetch_each(ids: list[str], fetch, log, event: str, id_key: str) -> Iterator:
    """Fetch each id lazily, logging and skipping the ones that fail."""
    for item_id in ids:
        try:
            yield fetch(item_id)
        except ContentClientError as exc:
            log.warning(event, error=repr(exc), **{id_key: item_id})
