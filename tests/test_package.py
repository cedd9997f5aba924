"""Tests for resync package exports and metadata."""

import pytest

import resync


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(resync.__version__, str)
        assert "0.1.0" in resync.__version__

    def test_all_exports_resolvable(self) -> None:
        for name in resync.__all__:
            assert getattr(resync, name) is not None

    def test_lazy_exports_are_the_real_objects(self) -> None:
        from resync.config import ResyncConfig
        from resync.reconcile.engine import ReconciliationEngine

        assert resync.ResyncConfig is ResyncConfig
        assert resync.ReconciliationEngine is ReconciliationEngine

    def test_invalid_attribute_raises(self) -> None:
        with pytest.raises(AttributeError, match="no attribute"):
            resync.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018
