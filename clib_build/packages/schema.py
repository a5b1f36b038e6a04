"""Pydantic models for package manifest validation.

This module defines the Pydantic model for validating clib.json /
package.json data before it is turned into a PackageNode.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from clib_build.types import DependencyRef


class ManifestSchema(BaseModel):
    """Schema for a clib package manifest.

    Only the keys the build orchestrator consumes are modelled; other
    keys found in real manifests (src, keywords, license, ...) are ignored.

    Attributes:
        name: Package name (derived from repo when absent).
        version: Package version.
        repo: Repository slug, 'author/name'.
        makefile: Path to the makefile, relative to the package directory.
        prefix: Install prefix requested by the package.
        dependencies: Mapping 'author/name' -> version, in manifest order.
        development: Development dependencies, same shape.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, description="Package name")
    version: str | None = Field(default=None, description="Package version")
    repo: str | None = Field(default=None, description="Repository slug")
    makefile: str | None = Field(default=None, description="Build descriptor")
    prefix: str | None = Field(default=None, description="Install prefix")
    dependencies: dict[str, str] = Field(default_factory=dict)
    development: dict[str, str] = Field(default_factory=dict)

    @field_validator("makefile", "prefix")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat blank strings as absent."""
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def derive_name(self) -> "ManifestSchema":
        """Fall back to the repo's basename when no name is declared."""
        if not self.name:
            if not self.repo:
                raise ValueError("manifest must declare a name or a repo")
            self.name = self.repo.rsplit("/", 1)[-1]
        return self

    def dependency_refs(self) -> list[DependencyRef]:
        """Return dependencies as references, in manifest order."""
        return [
            DependencyRef.from_manifest_entry(repo, version)
            for repo, version in self.dependencies.items()
        ]

    def development_refs(self) -> list[DependencyRef]:
        """Return development dependencies as references, in manifest order."""
        return [
            DependencyRef.from_manifest_entry(repo, version)
            for repo, version in self.development.items()
        ]


__all__ = ["ManifestSchema"]
