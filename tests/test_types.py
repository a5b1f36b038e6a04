"""Tests for shared type definitions."""

from pathlib import Path

from clib_build.types import BuildOutcome, BuildSummary, DependencyRef


class TestBuildOutcome:
    """Tests for BuildOutcome enum."""

    def test_values(self):
        """Outcomes should serialize to plain strings."""
        assert BuildOutcome.BUILT.value == "built"
        assert BuildOutcome.SKIPPED.value == "skipped"
        assert BuildOutcome("built") is BuildOutcome.BUILT


class TestDependencyRef:
    """Tests for DependencyRef."""

    def test_slug(self):
        """Slug should be author/name@version."""
        ref = DependencyRef("clibs", "list", "0.2.0")
        assert ref.slug == "clibs/list@0.2.0"

    def test_install_path(self):
        """Install path should be output_dir/name."""
        ref = DependencyRef("stephenmathieson", "trim.c", "0.0.2")
        assert ref.install_path(Path("/deps")) == Path("/deps/trim.c")

    def test_from_manifest_entry(self):
        """Manifest entries should split author and name."""
        ref = DependencyRef.from_manifest_entry("clibs/buffer", "0.4.0")
        assert ref == DependencyRef("clibs", "buffer", "0.4.0")

    def test_from_manifest_entry_defaults(self):
        """Bare names and '*' versions should use defaults."""
        ref = DependencyRef.from_manifest_entry("buffer", "*")
        assert ref.author == "clibs"
        assert ref.version == "master"

    def test_is_hashable(self):
        """References should be usable as dict keys."""
        a = DependencyRef("clibs", "list", "1.0")
        b = DependencyRef("clibs", "list", "1.0")
        assert len({a, b}) == 1


class TestBuildSummary:
    """Tests for BuildSummary message."""

    def test_plural(self):
        assert BuildSummary(built=2, skipped=0).message == "built 2 packages"

    def test_singular(self):
        assert BuildSummary(built=1, skipped=3).message == "built 1 package"

    def test_zero(self):
        assert BuildSummary(built=0, skipped=1).message == "built 0 packages"
