"""Local file transport for error reports.

This module provides a transport that saves reports as JSON files
to the local filesystem, for development and for hosts without a
reporting backend.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

from ..exceptions import PermanentTransportError
from ..models import DeliveryResult
from . import register_transport
from .base import BaseTransport

if TYPE_CHECKING:
    from ..models import Report

logger = logging.getLogger(__name__)

REPORTS_DIRNAME = "errnotifier_reports"


@register_transport("local")
class LocalTransport(BaseTransport):
    """Transport that saves reports to local files.

    Files are named using the pattern:
    {timestamp}_{fault_type_safe}_{short_id}.json

    Attributes:
        output_dir: Directory under which the reports directory is created.

    Example:
        transport = LocalTransport(output_dir="/var/log/myapp")
        transport.deliver(report)
    """

    def __init__(self, output_dir: Optional[str] = None, **kwargs: Any) -> None:
        """Initialize the local transport.

        Args:
            output_dir: Base directory for saved reports. Defaults to /tmp.
            **kwargs: Additional configuration options (ignored).
        """
        super().__init__(output_dir=output_dir)
        self.output_dir = output_dir or "/tmp"

    @property
    def reports_dir(self) -> Path:
        return Path(self.output_dir) / REPORTS_DIRNAME

    def deliver(self, report: "Report", timeout: Optional[float] = None) -> DeliveryResult:
        """Save a report to a JSON file.

        Creates the reports directory if it doesn't exist.

        Args:
            report: The report to save.
            timeout: Unused; local writes are not time-limited.

        Returns:
            A successful DeliveryResult.

        Raises:
            PermanentTransportError: If the file cannot be written.
        """
        try:
            self._ensure_directory()
            filepath = self.reports_dir / self._generate_filename(report)
            filepath.write_text(report.to_json(), encoding="utf-8")
        except OSError as e:
            raise PermanentTransportError(
                f"Failed to save report to {self.reports_dir}", cause=e
            ) from e

        logger.info(f"Error report saved to: {filepath}")
        return DeliveryResult.delivered()

    def validate_config(self) -> bool:
        """Validate the transport configuration.

        Checks that the output directory can be written to.

        Returns:
            True if configuration is valid, False otherwise.
        """
        path = Path(self.output_dir)
        if path.exists():
            return path.is_dir() and os.access(path, os.W_OK)
        parent = path.parent
        return parent.exists() and os.access(parent, os.W_OK)

    def _ensure_directory(self) -> None:
        """Ensure the reports directory exists.

        Raises:
            OSError: If directory creation fails.
        """
        path = self.reports_dir
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Created reports directory: {path}")

    def _generate_filename(self, report: "Report") -> str:
        """Generate a filename for a report.

        Args:
            report: The report being saved.

        Returns:
            Filename with .json extension.
        """
        timestamp = report.timestamp.strftime("%Y%m%d_%H%M%S")
        safe_type = re.sub(r"[^A-Za-z0-9_.-]", "_", report.fault_type)[:50] or "unknown"
        return f"{timestamp}_{safe_type}_{report.id[:8]}.json"
