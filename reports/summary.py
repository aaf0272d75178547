"""Run report envelope for a repair run.

The nested per-scope result is wrapped with totals and run flags, then
validated against ``schemas/RepairReport.v1.json`` (package data of this
package) before anyone writes it.
"""

import json
from pathlib import Path

import jsonschema

from app.models.options import AssetProcessingOptions
from models.results import AccountResult

_SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "RepairReport.v1.json"
_SCHEMA = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))

_BUCKETS = ("checked", "updated", "published", "failed")


def summarize(result: AccountResult) -> dict[str, int]:
    """Count asset ids per bucket across every space and environment."""
    totals = dict.fromkeys(_BUCKETS, 0)
    for environments in result.values():
        for env_result in environments.values():
            for bucket in _BUCKETS:
                totals[bucket] += len(getattr(env_result, bucket))
    return totals


def build_report(result: AccountResult, options: AssetProcessingOptions) -> dict:
    """Return the report envelope for *result*.

    Raises:
        jsonschema.ValidationError: If the envelope does not match the schema.
    """
    report = {
        "schema_id": "RepairReport",
        "schema_version": "1.0.0",
        "producer": "scripts/repair_assets.py",
        "dry_run": options.dry_run,
        "force_republish": options.force_republish,
        "skip_archived": options.skip_archived,
        "totals": summarize(result),
        "spaces": {
            space_id: {
                env_id: env_result.model_dump()
                for env_id, env_result in environments.items()
            }
            for space_id, environments in result.items()
        },
    }
    jsonschema.validate(instance=report, schema=_SCHEMA)
    return report


def write_report(report: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2), encoding="utf-8")
