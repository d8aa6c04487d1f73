"""
Configuration settings for DSS sessions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Environment variable naming the HEC-DSS shared library
HECDSS_LIB_ENV = "HECDSS_LIB"


def _library_path_from_env() -> Optional[Path]:
    value = os.environ.get(HECDSS_LIB_ENV)
    return Path(value) if value else None


class DSSSettings(BaseModel):
    """Settings for reading and writing DSS records."""

    library_path: Optional[Path] = Field(
        default_factory=_library_path_from_env,
        description="Path to the HEC-DSS shared library",
    )
    retrieve_flag: int = Field(
        default=-1, description="Time series retrieve flag (-1 trims missing values, 0 as stored)"
    )
    retrieve_all_times: bool = Field(
        default=False, description="Retrieve all times of a regular series, ignoring the D part"
    )
    read_doubles: bool = Field(default=False, description="Read values in double precision")
    storage_flag: int = Field(
        default=0, description="Time series storage flag (0 replaces all values)"
    )
    default_granularity: Literal[1, 60, 3600, 86400] = Field(
        default=60, description="Granularity of times in seconds when none is given"
    )

    model_config = {"extra": "forbid"}

    @classmethod
    def from_env(cls) -> "DSSSettings":
        """Build settings from the environment (currently the library path only)."""
        settings = cls(library_path=_library_path_from_env())
        logger.debug("DSS settings from environment: %s", settings)
        return settings
