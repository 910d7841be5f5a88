"""
PiCheck JSON Exporter - write a system snapshot to a JSON file.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from picheck import __version__
from picheck.remote.snapshot import SystemSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Result of an export operation."""
    success: bool
    output_path: Optional[Path] = None
    error: Optional[str] = None
    stats: Dict[str, Any] = field(default_factory=dict)


def build_document(snapshot: SystemSnapshot) -> Dict[str, Any]:
    """Wrap the snapshot with export metadata."""
    return {
        "picheck_version": __version__,
        "snapshot": snapshot.to_dict(),
    }


def export_snapshot_json(snapshot: SystemSnapshot, output_path: Path, indent: int = 2) -> ExportResult:
    """
    Export a snapshot to JSON.

    Args:
        snapshot: Collected SystemSnapshot
        output_path: Path to output file
        indent: JSON indentation

    Returns:
        ExportResult
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(build_document(snapshot), f, indent=indent, default=str)

        logger.info(f"Exported snapshot of {snapshot.hostname} to {output_path}")
        return ExportResult(
            success=True,
            output_path=output_path,
            stats={
                "file_size": output_path.stat().st_size,
                "failed_queries": len(snapshot.errors),
            },
        )

    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to export JSON: {e}")
        return ExportResult(success=False, error=str(e))
