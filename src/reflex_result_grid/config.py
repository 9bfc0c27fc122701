"""Settings for reflex-result-grid using pydantic-settings.

Every value can be overridden from the environment with the
``RESULT_GRID_`` prefix, e.g. ``RESULT_GRID_ROW_HEIGHT=24`` or
``RESULT_GRID_DEFAULT_TABLE_NAME=Orders``.  Explicit function arguments
always win over settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GridSettings(BaseSettings):
    """Defaults for virtualization, layout and export.

    Environment prefix: ``RESULT_GRID_``
    """

    model_config = SettingsConfigDict(
        env_prefix="RESULT_GRID_",
        extra="ignore",
    )

    row_height: int = Field(default=30, gt=0, description="Fixed row height in pixels")
    overscan: int = Field(default=5, ge=0, description="Rows rendered beyond the viewport on each side")
    default_column_width: int = Field(default=150, gt=0)
    default_table_name: str = "TableName"
    export_include_headers: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_settings() -> GridSettings:
    """Get the global settings instance (cached).

    Call :func:`clear_settings` to reload from the environment.
    """
    return GridSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()
