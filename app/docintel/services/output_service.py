"""
Persistence of extraction results as JSON files.
"""

import json
import logging
import time
from pathlib import Path

from ..models import ExtractionResult

logger = logging.getLogger(__name__)


class OutputPersistenceError(Exception):
    """Raised when an extraction result cannot be written."""

    pass


class OutputWriter:
    """Writes one JSON file per processed document."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    @staticmethod
    def build_output_name(original_name: str, timestamp_ms: int | None = None) -> str:
        """
        Name of the artifact for an uploaded file.

        Only the final path component of the original name is used, so the
        file always lands inside the output directory.

        Example: extracted_1718000000000_order.pdf.json
        """
        if timestamp_ms is None:
            timestamp_ms = time.time_ns() // 1_000_000
        safe_name = Path(original_name).name or "document"
        return f"extracted_{timestamp_ms}_{safe_name}.json"

    def save(self, result: ExtractionResult, original_name: str) -> str:
        """
        Write an extraction result to the output directory.

        Sets ``result.output_file`` before writing so the artifact names itself.

        Args:
            result: The result to persist.
            original_name: Uploaded filename.

        Returns:
            The artifact's filename (not the full path).

        Raises:
            OutputPersistenceError: If the file cannot be written.
        """
        output_name = self.build_output_name(original_name)
        result.output_file = output_name
        output_path = self.output_dir / output_name

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            payload = result.model_dump(mode="json", by_alias=True)
            output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write extraction output %s: %s", output_path, e)
            raise OutputPersistenceError(f"Could not save extraction output: {e}") from e

        logger.info("Saved extraction output: %s", output_path)
        return output_name
