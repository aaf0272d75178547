"""Detect file URLs that point at another asset's storage path.

A finalized file URL has the shape::

    [scheme:]//<host>/<space_id>/<asset_id>/<token>/<filename>

When ``<space_id>/<asset_id>`` is not the asset's own identity the file is a
cross-reference left behind by a copy.  The fix is to hand the URL back to the
server as an ``upload`` so that processing re-ingests it under the right
asset.
"""

import re

from app.utils.logging import get_logger, trace_enabled
from models.content import Asset

URL_PATH_RE = re.compile(r"^(https?:)?//[^/]+/([^/]+)/([^/]+)/[^/]+/[^/]+$", re.IGNORECASE)

logger = get_logger("repairers.url_rewrite")


def rewrite_asset_urls(asset: Asset, log=None) -> list[str]:
    """Move cross-referenced file URLs into ``upload`` for reprocessing.

    Mutates ``asset.fields["file"]`` in place:
      - ``details`` is dropped from every FileRef (the server rejects it on update).
      - FileRefs without a ``url`` (already pending) are left alone.
      - Malformed URLs are logged and left alone.
      - Foreign URLs become ``upload``; protocol-relative ones get ``https:``.

    Returns:
        Rewritten locale codes in the order they appear on the asset.
    """
    log = log or logger
    space_id = asset.sys.space_id
    asset_id = asset.sys.id
    rewritten: list[str] = []

    for locale, file in asset.file.items():
        if not file:
            _trace(log, "file_not_set", locale=locale)
            continue

        file.pop("details", None)

        url = file.get("url")
        if not url:
            _trace(log, "file_url_not_set", locale=locale)
            continue

        match = URL_PATH_RE.match(url)
        if match is None:
            log.warning("asset_url_malformed", locale=locale, url=url)
            continue

        scheme, url_space_id, url_asset_id = match.groups()
        if url_space_id == space_id and url_asset_id == asset_id:
            _trace(log, "file_url_ok", locale=locale, url=url)
            continue

        file["upload"] = url if scheme else "https:" + url
        del file["url"]
        _trace(log, "file_url_moved_to_upload", locale=locale, upload=file["upload"])
        rewritten.append(locale)

    return rewritten


def _trace(log, event: str, **kw) -> None:
    if trace_enabled():
        log.debug(event, **kw)
