# src/devile_deploy/config/settings.py
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Deployment descriptor shared by every environment.

    Configuration precedence:
    1. Environment variables prefixed with DEVILE_ (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from devile_deploy.config.settings import get_settings
        settings = get_settings()
        release_root = settings.deploy_to
    """

    # Application metadata
    application: str = Field(
        default="devile-project",
        description="Application name, also the last segment of deploy_to"
    )

    repo_url: str = Field(
        default="git@github.com:JamesYang76/devile-project.git",
        description="Git repository the releases are built from"
    )

    deploy_user: str = Field(
        default="deploy",
        description="Linux user owning the deployment on every host"
    )

    deploy_to: Optional[str] = Field(
        default=None,
        description="Remote deploy root (defaults to /home/<deploy_user>/<application>)"
    )

    # Files and directories shared between releases
    linked_files: List[str] = Field(
        default_factory=lambda: [".env"],
        description="Files symlinked from shared/ into every release"
    )

    linked_dirs: List[str] = Field(
        default_factory=lambda: [
            "config/keys", "log", "tmp/pids", "tmp/cache", "tmp/sockets", "public/system"
        ],
        description="Directories symlinked from shared/ into every release"
    )

    keep_releases: int = Field(
        default=5,
        ge=1,
        description="Number of releases kept on each host after cleanup"
    )

    # Remote execution
    default_path: str = Field(
        default="$HOME/.rbenv/shims:$HOME/bin:/snap/bin:$PATH",
        description="PATH exported before remote commands"
    )

    supervisor_unit: str = Field(
        default="puma",
        description="systemd unit running the application"
    )

    restart_wait: int = Field(
        default=5,
        ge=0,
        description="Seconds to wait between hosts during a rolling restart"
    )

    dotenv_update_command: str = Field(
        default="update-dotenv-file-from-secretsmanager",
        description="Script on the host (~deploy/bin) that rewrites .env from Secrets Manager"
    )

    # Ruby build
    rbenv_path: str = Field(
        default="/usr/lib/rbenv",
        description="System-wide rbenv root on the hosts"
    )

    rbenv_ruby: Optional[str] = Field(
        default=None,
        description="Ruby version for rbenv exec (defaults to the release's .ruby-version)"
    )

    rbenv_map_bins: List[str] = Field(
        default_factory=lambda: ["rake", "gem", "bundle", "ruby", "rails"],
        description="Commands run through rbenv exec"
    )

    bundle_without: str = Field(
        default="development test",
        description="Gem groups bundler skips on the hosts"
    )

    bundle_jobs: int = Field(
        default=4,
        ge=1,
        description="Parallel jobs for bundle install"
    )

    # AWS
    aws_region: str = Field(
        default="ap-southeast-2",
        description="Region the EC2 lookups run in"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator('deploy_to', 'rbenv_ruby', mode='before')
    @classmethod
    def blank_is_default(cls, v):
        """Treat an empty DEVILE_DEPLOY_TO or DEVILE_RBENV_RUBY as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one the logging module understands."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level = v.upper()
        if level not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return level

    @property
    def deploy_root(self) -> str:
        """Remote directory holding repo/, releases/, shared/ and current."""
        return self.deploy_to or f"/home/{self.deploy_user}/{self.application}"

    @property
    def releases_path(self) -> str:
        return f"{self.deploy_root}/releases"

    @property
    def shared_path(self) -> str:
        return f"{self.deploy_root}/shared"

    @property
    def repo_path(self) -> str:
        return f"{self.deploy_root}/repo"

    @property
    def current_path(self) -> str:
        return f"{self.deploy_root}/current"

    model_config = SettingsConfigDict(
        env_prefix="DEVILE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # .env also carries credentials read by the overlay
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
