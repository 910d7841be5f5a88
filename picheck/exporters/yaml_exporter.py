"""
PiCheck YAML Exporter - write a system snapshot to a YAML file.

Human-readable alternative to the JSON export, convenient for diffing two
snapshots of the same host.
"""

import logging
from pathlib import Path

import yaml

from picheck.exporters.json_exporter import ExportResult, build_document
from picheck.remote.snapshot import SystemSnapshot

logger = logging.getLogger(__name__)


def export_snapshot_yaml(snapshot: SystemSnapshot, output_path: Path) -> ExportResult:
    """Export a snapshot to YAML. Keys keep the snapshot's field order."""
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            yaml.safe_dump(
                build_document(snapshot),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

        logger.info(f"Exported snapshot of {snapshot.hostname} to {output_path}")
        return ExportResult(
            success=True,
            output_path=output_path,
            stats={"file_size": output_path.stat().st_size},
        )

    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to export YAML: {e}")
        return ExportResult(success=False, error=str(e))
