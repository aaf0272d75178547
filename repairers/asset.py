"""Repair one asset: rewrite cross-referenced URLs, reprocess, and republish.

Sequence for an asset with at least one cross-referenced locale:

  unarchive?  →  update  →  process(locale₁) … process(localeₙ)  →  publish?  →  rearchive?

Each step is version-checked by the server and bumps the version, so the
steps run strictly in this order and each one continues with the asset the
previous step returned.  Under ``dry_run`` no step is sent, but every branch
decision is still taken so the returned result is what a real run would do.

An asset that was unarchived is archived again even when a later step fails.
"""

from collections.abc import Callable

from app.models.options import AssetProcessingOptions
from app.utils.logging import get_logger, trace_enabled
from app.utils.retry import with_tries
from clients.base import ContentClient
from models.content import Asset
from models.results import ProcessResult
from repairers.url_rewrite import rewrite_asset_urls

# Every single mutation gets one extra try for transient transport failures.
MUTATION_ATTEMPTS = 2

logger = get_logger("repairers.asset")


def process_asset(
    client: ContentClient,
    asset: Asset,
    options: AssetProcessingOptions,
    log=None,
    *,
    was_archived: bool = False,
) -> ProcessResult:
    """Repair *asset* if any of its file URLs is a cross-reference.

    Args:
        was_archived: The asset was archived when it was first listed.  A
            retry that receives it unarchived (an earlier attempt unarchived
            it and could not put it back) archives it again at the end.

    Returns:
        ``NO_CHANGE`` when nothing needed fixing (or the asset is archived and
        ``skip_archived`` is set), ``UPDATED_ONLY`` when the asset was repaired
        but left unpublished, ``UPDATED_AND_PUBLISHED`` when it was also
        republished.

    Raises:
        Whatever the client raises once a mutation has failed twice.  An
        asset this call unarchived is archived again before the error
        propagates.
    """
    log = log or logger
    dry_run = options.dry_run
    interval = options.retry_interval_ms / 1000

    def mutate(operation: Callable[..., Asset], current: Asset, *args) -> Asset:
        if dry_run:
            return current
        return with_tries(
            MUTATION_ATTEMPTS, lambda _n: operation(current, *args), interval=interval
        )

    log.info(
        "processing_asset",
        dry_run=dry_run,
        force_republish=options.force_republish,
        skip_archived=options.skip_archived,
        is_draft=asset.is_draft(),
        is_published=asset.is_published(),
        is_updated=asset.is_updated(),
        is_archived=asset.is_archived(),
    )
    if trace_enabled():
        log.debug("original_asset", asset=asset.model_dump())

    # Owed by an earlier attempt that unarchived the asset and then failed.
    rearchive = was_archived and not asset.is_archived()
    if rearchive:
        log.warning("asset_left_unarchived")

    locales = rewrite_asset_urls(asset, log)
    if not locales and not rearchive:
        log.debug("asset_update_not_required")
        log.info("processing_asset_complete", result=ProcessResult.NO_CHANGE.value)
        return ProcessResult.NO_CHANGE

    if asset.is_archived() and options.skip_archived:
        log.info("skipping_archived_asset", locales=locales)
        return ProcessResult.NO_CHANGE

    result = ProcessResult.NO_CHANGE
    try:
        if asset.is_archived():
            log.debug("unarchiving_asset")
            rearchive = True
            if not dry_run:
                asset = mutate(client.unarchive_asset, asset)
                # The unarchived record comes back from the server without
                # the local rewrite, so detection runs again on it.
                locales = rewrite_asset_urls(asset, log)
                if not locales:
                    log.warning("unarchived_asset_needs_no_update")

        # Decided from the state before the repair: an asset with unrelated
        # pending edits is only republished on request.
        publish_after_update = asset.is_published() and (
            options.force_republish or not asset.is_updated()
        )

        if locales:
            log.debug("updating_asset", locales=locales)
            asset = mutate(client.update_asset, asset)
            result = ProcessResult.UPDATED_ONLY
            log.debug("updating_asset_complete", version=asset.sys.version)

            for locale in locales:
                log.debug("processing_locale", locale=locale)
                asset = mutate(client.process_asset_for_locale, asset, locale)
                log.debug(
                    "processing_locale_complete", locale=locale, version=asset.sys.version
                )

            if publish_after_update:
                log.debug("publishing_asset")
                asset = mutate(client.publish_asset, asset)
                result = ProcessResult.UPDATED_AND_PUBLISHED
                log.debug("publishing_asset_complete", version=asset.sys.version)
            else:
                log.debug("not_publishing_asset", is_published=asset.is_published())

        if rearchive:
            log.debug("rearchiving_asset")
            asset = mutate(client.archive_asset, asset)
    except Exception:
        if rearchive and not dry_run:
            _restore_archive(client, asset, interval, log)
        raise

    if trace_enabled():
        log.debug("final_asset", asset=asset.model_dump())
    log.info("processing_asset_complete", result=result.value)
    return result


def _restore_archive(client: ContentClient, asset: Asset, interval: float, log) -> None:
    """Archive *asset* again after a failed repair, from a fresh copy.

    The error that interrupted the repair is the one the caller re-raises;
    a failure here is only logged, and the next attempt (``was_archived``)
    picks up the archive that is still owed.
    """
    sys = asset.sys
    try:
        current = client.get_asset(sys.space_id, sys.environment_id, sys.id)
        if current.is_archived():
            return
        with_tries(
            MUTATION_ATTEMPTS, lambda _n: client.archive_asset(current), interval=interval
        )
        log.warning("asset_rearchived_after_failure")
    except Exception as exc:
        log.error("asset_rearchive_failed", error=repr(exc))
