"""Settings schema for tooldiff."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class AppearanceSettings(BaseModel):
    theme: str = Field(default="textual-dark", description="Textual theme name")


class DiffSettings(BaseModel):
    default_view_mode: Literal["unified", "split"] = Field(default="unified")
    show_line_numbers: bool = Field(default=True)
    wrap_lines: bool = Field(default=False)
    max_height: int | None = Field(default=None, ge=1, le=10000)
    variant: Literal["inline", "full"] = Field(default="full")
    confirm_actions: bool = Field(default=False)


class AppSettings(BaseModel):
    schema_version: int = Field(default=1)
    appearance: AppearanceSettings = Field(default_factory=AppearanceSettings)
    diff: DiffSettings = Field(default_factory=DiffSettings)

    def setting_items(self) -> list[tuple[str, str]]:
        """Flatten key/value pairs for display."""

        result: list[tuple[str, str]] = []

        def walk(prefix: str, value: object) -> None:
            if isinstance(value, BaseModel):
                for key, nested in value.model_dump().items():
                    walk(f"{prefix}.{key}" if prefix else key, nested)
            elif isinstance(value, dict):
                for key, nested in value.items():
                    walk(f"{prefix}.{key}" if prefix else key, nested)
            else:
                result.append((prefix, str(value)))

        walk("", self)
        return result
