"""Application configuration: settings schema and tagdoc.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


CONFIG_FILE = "tagdoc.yaml"


class Settings(BaseModel):
    nav_page:        str = Field(default="_nav",     description="Page reference whose @page tags list the nav roots")
    markdown_preset: str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    reserved_tags:   list[str] = Field(default_factory=list, description="@tag names kept as prose, without the @")
    source_base_dir: Optional[str] = Field(default=None, description="Base dir for source_path values; cwd if unset")
    log_level:       str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR)$")

    @field_validator("reserved_tags", mode="before")
    @classmethod
    def _split_reserved(cls, value: Any) -> Any:
        # env vars arrive as "Decorator,Override"
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from tagdoc.yaml, then TAGDOC_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"TAGDOC_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
