"""
PiCheck Exporters - write snapshots to disk

Available exporters:
- json_exporter.py - Export a snapshot as JSON
- yaml_exporter.py - Export a snapshot as YAML
"""

from picheck.exporters.json_exporter import (
    ExportResult,
    export_snapshot_json,
)
from picheck.exporters.yaml_exporter import export_snapshot_yaml

__all__ = [
    "ExportResult",
    "export_snapshot_json",
    "export_snapshot_yaml",
]
