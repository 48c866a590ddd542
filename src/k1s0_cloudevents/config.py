"""Decoder configuration (pydantic BaseModel) and YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import CloudEventsError, CloudEventsErrorCodes


class DecoderConfig(BaseModel):
    """Request decoder settings."""

    # "reject": an attribute header carrying several values is an error.
    # "last_wins": the last value is applied.
    duplicate_header_policy: Literal["reject", "last_wins"] = "reject"
    max_body_bytes: int | None = Field(default=None, ge=1)


def load_config(path: Path) -> DecoderConfig:
    """Read a DecoderConfig from YAML.

    The settings may sit under a top-level ``cloudevents`` key or at the top
    level of the file.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CloudEventsError(
            code=CloudEventsErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data: dict[str, Any] = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise CloudEventsError(
            code=CloudEventsErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if isinstance(data, dict) and "cloudevents" in data:
        data = data["cloudevents"] or {}
    try:
        return DecoderConfig.model_validate(data)
    except ValidationError as e:
        raise CloudEventsError(
            code=CloudEventsErrorCodes.VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
