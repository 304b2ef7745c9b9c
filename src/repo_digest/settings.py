from __future__ import annotations

from pathlib import Path
from typing import Literal

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from repo_digest.config import DEFAULT_MAX_SIZE, DEFAULT_MAX_TOKEN_ESTIMATE

ENV_FILE = find_dotenv(usecwd=True)
ENV_PREFIX = "REPO_DIGEST_"


def env_default(key: str, fallback: str = "") -> str:
    """Read a default value from the project's `.env` file.

    Args:
        key: Variable name without the `REPO_DIGEST_` prefix.
        fallback: Value returned when the variable is absent.

    Returns:
        str: The raw value found in `.env`, or `fallback`.
    """
    values = dotenv_values(ENV_FILE) if ENV_FILE else {}
    return values.get(f"{ENV_PREFIX}{key}") or fallback


def split_csv(values: str | list[str] | None) -> list[str]:
    """Split comma-separated entries and drop blanks.

    Args:
        values: A single string or a list of strings, each possibly holding
            several comma-separated entries.

    Returns:
        list[str]: The stripped, non-empty entries in their original order.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    out: list[str] = []
    for value in values:
        out.extend(part.strip() for part in value.split(",") if part.strip())
    return out


class Settings(BaseModel):
    """Configuration settings for the repo_digest module."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: Path = Field(default_factory=Path.cwd, description="Directory to analyze.")
    output: Path | None = Field(default=None, description="Output file; stdout when omitted.")
    format: Literal["", "md", "xml"] = Field(default="", description="Force format.")
    name: str = Field(default="", description="Title of the generated document.")
    log_file: str = Field(
        default_factory=lambda: env_default("LOG_FILE"),
        description="Log file path.",
    )

    include: list[str] = Field(default_factory=list, description="Include globs, files or directories.")
    exclude: list[str] = Field(default_factory=list, description="Exclude globs.")
    extension: list[str] = Field(default_factory=list, description="Extension allow-list.")
    find: list[str] = Field(default_factory=list, description="Keep files containing ANY term.")
    require: list[str] = Field(default_factory=list, description="Keep files containing ALL terms.")

    ignore: bool = Field(default=True, description="Respect .gitignore files.")
    skip_artifacts: bool = Field(default=True, description="Skip build artifacts and generated files.")
    svg: bool = Field(default=False, description="Include SVG file contents.")
    max_size: int = Field(
        default_factory=lambda: int(env_default("MAX_SIZE", str(DEFAULT_MAX_SIZE))),
        gt=0,
        description="Files above this many bytes are listed without content.",
    )
    max_tokens: int = Field(
        default_factory=lambda: int(env_default("MAX_TOKENS", str(DEFAULT_MAX_TOKEN_ESTIMATE))),
        gt=0,
        description="Estimated token ceiling for the gathered content.",
    )
    allow_large: bool = Field(default=False, description="Ignore the token ceiling.")
    debug: bool = Field(default=False, description="Enable debug logging.")

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _strip_globs(cls, value: str | list[str] | None) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [v.strip() for v in value if v.strip()]

    @field_validator("extension", "find", "require", mode="before")
    @classmethod
    def _split_lists(cls, value: str | list[str] | None) -> list[str]:
        return split_csv(value)
