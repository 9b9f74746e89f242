"""Tests for livespec package exports and metadata."""

import pytest

import livespec


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(livespec.__version__, str)
        assert livespec.__version__ == "1.0.0"

    def test_all_exports_resolvable(self) -> None:
        for name in livespec.__all__:
            assert getattr(livespec, name) is not None

    def test_lazy_exports_are_the_real_objects(self) -> None:
        from livespec.app import dev
        from livespec.session import ProjectSession

        assert livespec.ProjectSession is ProjectSession
        assert livespec.dev is dev

    def test_invalid_attribute_raises(self) -> None:
        with pytest.raises(AttributeError, match="no attribute"):
            livespec.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
