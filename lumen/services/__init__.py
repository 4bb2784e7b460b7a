"""Services package."""

from lumen.services.log_config import configure_logging
from lumen.services.metrics import get_metrics_text

__all__ = ["configure_logging", "get_metrics_text"]
