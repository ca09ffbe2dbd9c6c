"""Configuration models and loading."""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "repo-gateway"
CONFIG_FILE = CONFIG_DIR / "config.json"

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ProxySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False


class RepositorySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str = "0Sycamores"
    repo: str = "nixos-config"
    branch: str = "main"
    web_base_url: str = "https://github.com"
    raw_base_url: str = "https://raw.githubusercontent.com"


class RoutingSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    routes: dict[str, str] = Field(
        default_factory=lambda: {"/install": "scripts/install.sh"}
    )
    # Empty means derive from the repository settings
    allowed_prefixes: list[str] = Field(default_factory=list)


class UpstreamSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    timeout: float = 60.0
    provider_marker: str = "github"
    referer: str = "https://github.com/"
    user_agent: str = DESKTOP_USER_AGENT
    cache_bust_param: str = "t"


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    repository: RepositorySettings = Field(default_factory=RepositorySettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)

    @property
    def repo_home_url(self) -> str:
        repo = self.repository
        return f"{repo.web_base_url}/{repo.owner}/{repo.repo}"

    @property
    def content_base_url(self) -> str:
        """Raw-content base URL of the configured branch."""
        repo = self.repository
        return f"{repo.raw_base_url}/{repo.owner}/{repo.repo}/{repo.branch}"

    @property
    def allow_list(self) -> tuple[str, ...]:
        if self.routing.allowed_prefixes:
            return tuple(self.routing.allowed_prefixes)
        repo = self.repository
        return (
            f"{repo.web_base_url}/{repo.owner}/{repo.repo}",
            f"{repo.raw_base_url}/{repo.owner}/{repo.repo}",
        )

    def route_target(self, script: str) -> str:
        """Upstream URL of a named route, without the cache-busting parameter."""
        return f"{self.content_base_url}/{script}"

    @model_validator(mode="after")
    def _check_routes(self) -> "Config":
        allow_list = self.allow_list
        for path, script in self.routing.routes.items():
            if not path.startswith("/"):
                raise ValueError(f"Route {path!r} must start with '/'")
            target = self.route_target(script)
            if not any(target.startswith(prefix) for prefix in allow_list):
                raise ValueError(
                    f"Route {path!r} resolves to {target}, which is outside the allow-list"
                )
        return self


def load_config(config_file: Path = CONFIG_FILE) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        data = json.loads(config_file.read_text())
    except json.JSONDecodeError:
        # Backup corrupted config and recreate default
        backup = config_file.with_suffix(".json.bak")
        config_file.rename(backup)
        default = Config()
        config_file.write_text(default.model_dump_json(indent=2))
        return default

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config {config_file}: {e}") from e
