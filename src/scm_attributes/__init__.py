from __future__ import annotations

from .attributes import to_span
from .config import Settings, load_settings
from .contributor import contribute_attributes, run_contribution

__all__ = ["Settings", "contribute_attributes", "load_settings", "run_contribution", "to_span"]
