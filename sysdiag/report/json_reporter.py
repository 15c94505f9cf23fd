"""Write the report as JSON."""

import json
from pathlib import Path

from ..models.schema import DiagnosticReport


def write_json(report: DiagnosticReport, output_path: Path, pretty: bool = True) -> None:
    """Serialise report to JSON and write to output_path.

    Raises:
        OSError: if the file cannot be written.
    """
    indent = 2 if pretty else None
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(report.model_dump(mode="json"), indent=indent, ensure_ascii=False, default=str),
        encoding="utf-8",
    )
