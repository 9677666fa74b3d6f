"""Configuration passed explicitly into every arf component."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PREFIX_LENGTH = 8
DEFAULT_MAX_WRITE_ATTEMPTS = 100
DEFAULT_AGENT_ID = "unknown"


class ArfConfig(BaseModel):
    """Locations and tunables for one arf invocation.

    Nothing here is read from the environment; the CLI builds an instance
    and hands it down.
    """
    repo_root: Path
    worktree_dir: str = ".arf"
    records_dir: str = "records"
    specs_dir: str = "specs"
    branch: str = "arf"
    prefix_length: int = Field(DEFAULT_PREFIX_LENGTH, ge=4, le=40)
    max_write_attempts: int = Field(DEFAULT_MAX_WRITE_ATTEMPTS, ge=1)
    agent_id: str = DEFAULT_AGENT_ID

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("agent_id")
    @classmethod
    def validate_agent_id(cls, v: str) -> str:
        """Agent ids become part of filenames: no separators, not empty."""
        v = v.strip()
        if not v:
            raise ValueError("agent_id must not be empty")
        if "/" in v or "\\" in v or v.startswith("."):
            raise ValueError(f"agent_id '{v}' must be a plain filename component")
        return v

    @property
    def worktree_path(self) -> Path:
        return self.repo_root / self.worktree_dir

    @property
    def storage_root(self) -> Path:
        return self.worktree_path / self.records_dir

    @property
    def specs_root(self) -> Path:
        return self.worktree_path / self.specs_dir
