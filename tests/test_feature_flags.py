"""
Tests for the feature flag registry.
"""

from stem_lab.config.feature_flags import FeatureFlags


def test_feature_flag_defaults():
    """Corrected jump behavior is the default."""
    assert FeatureFlags.LEGACY_JUMP_CALLBACKS is False


def test_enable_disable_legacy_jump():
    FeatureFlags.enable_legacy_jump()
    assert FeatureFlags.LEGACY_JUMP_CALLBACKS is True
    FeatureFlags.disable_legacy_jump()
    assert FeatureFlags.LEGACY_JUMP_CALLBACKS is False


def test_legacy_mode_and_reset():
    FeatureFlags.legacy_mode()
    assert FeatureFlags.snapshot() == {"LEGACY_JUMP_CALLBACKS": True}
    FeatureFlags.reset_defaults()
    assert FeatureFlags.snapshot() == {"LEGACY_JUMP_CALLBACKS": False}
