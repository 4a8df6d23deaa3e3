"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Routine metadata churn that dispatch routes skip unless they set their own field list.
DEFAULT_IGNORED_FIELDS: list[str] = [
    "Status",
    "Title",
    "Label",
    "Labels",
    "Assignee",
    "Assignees",
    "Milestone",
    "Milestones",
    "Reviewer",
    "Reviewers",
    "Development",
    "Repository",
    "Linked pull requests",
    "Tracked by",
    "Tracks",
    "Item Type",
]


class GitHubConfig(BaseModel):
    webhook_secret: str = ""
    token: str = ""
    api_url: str = "https://api.github.com"
    graphql_url: str = "https://api.github.com/graphql"
    # None keeps the HTTP client library default
    timeout: float | None = None


class SlackConfig(BaseModel):
    webhook_url: str = ""
    timeout: float | None = None


class ServerConfig(BaseModel):
    bind: str = "0.0.0.0"
    port: int = 8080


class RouteConfig(BaseModel):
    """One webhook endpoint and the filters/notifier behind it."""

    name: str
    path: str = "/api/webhook"
    notifier: Literal["slack", "dispatch"] = "slack"

    check_organization: bool = False
    target_organization: str = ""

    # Allow-list (single field) or deny-list; never both.
    target_field: str = ""
    ignored_fields: list[str] = Field(default_factory=list)
    target_values: list[str] = Field(default_factory=list)

    check_project: bool = False
    target_project_number: int | None = None

    include_queue_counts: bool = False
    member_review_status: str = "PR Member Review"
    tf_review_status: str = "PR TF Review"
    quote_title: bool = True

    dispatch_repository: str = ""
    dispatch_event_type: str = "project_field_updated"
    cleared_value: str = "blank"

    @field_validator("path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"

    @model_validator(mode="after")
    def _check_consistency(self) -> "RouteConfig":
        if self.check_organization and not self.target_organization:
            raise ValueError(f"route {self.name!r}: check_organization requires target_organization")
        if self.check_project and self.target_project_number is None:
            raise ValueError(f"route {self.name!r}: check_project requires target_project_number")
        if self.target_field and self.ignored_fields:
            raise ValueError(f"route {self.name!r}: set target_field or ignored_fields, not both")
        if self.notifier == "dispatch":
            owner, _, repo = self.dispatch_repository.partition("/")
            if not owner or not repo or "/" in repo:
                raise ValueError(
                    f"route {self.name!r}: dispatch_repository must look like 'owner/repo'"
                )
            if not self.target_field and "ignored_fields" not in self.model_fields_set:
                self.ignored_fields = list(DEFAULT_IGNORED_FIELDS)
        return self

    @property
    def field_mode(self) -> str:
        if self.target_field:
            return "allow"
        if self.ignored_fields:
            return "deny"
        return "any"

    @property
    def needs_enrichment(self) -> bool:
        # Slack messages need title/url; the project guard needs the project number.
        return self.notifier == "slack" or self.check_project


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FIELDRELAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    routes: list[RouteConfig] = Field(default_factory=list)
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment wins over values passed in (the YAML overlay).
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @model_validator(mode="after")
    def _unique_paths(self) -> "Settings":
        seen: set[str] = set()
        for route in self.routes:
            if route.path in seen:
                raise ValueError(f"duplicate route path {route.path!r}")
            seen.add(route.path)
        return self


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("FIELDRELAY_CONFIG")

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    return Settings(**yaml_data)
