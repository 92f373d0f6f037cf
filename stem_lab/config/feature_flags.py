"""
Feature Flag System for the STEM lab simulation.

Controls runtime behavior switches that differ from the historical lab behavior.
Default: corrected behavior; legacy_mode() restores the historical one.

Usage:
    from stem_lab.config.feature_flags import FeatureFlags

    if FeatureFlags.LEGACY_JUMP_CALLBACKS:
        # Historical jump: on_complete of the step just before the target
    else:
        # Corrected jump: on_complete of the step actually being left
"""


class FeatureFlags:
    """
    Global feature flag registry.

    Flags are toggleable at runtime for testing and for reproducing
    recorded sessions of the historical lab.
    """

    LEGACY_JUMP_CALLBACKS = False
    """
    Reproduce the historical jump_to() callback quirk.

    When False (default):
    - The step the learner is actually leaving fires on_complete
    - Skipped steps fire neither on_enter nor on_complete
    - The target step fires on_enter

    When True:
    - The run index is set to target - 1 and a single advance is performed,
      so on_complete fires for whatever step sits just before the target
      (possibly one the learner never entered)

    Default: False
    """

    # --- Static Methods for Safe Flag Management ---

    @classmethod
    def enable_legacy_jump(cls):
        cls.LEGACY_JUMP_CALLBACKS = True

    @classmethod
    def disable_legacy_jump(cls):
        cls.LEGACY_JUMP_CALLBACKS = False

    @classmethod
    def legacy_mode(cls):
        """Switch every flag to the historical lab behavior."""
        cls.LEGACY_JUMP_CALLBACKS = True

    @classmethod
    def reset_defaults(cls):
        """Reset all flags to their documented defaults."""
        cls.LEGACY_JUMP_CALLBACKS = False

    @classmethod
    def snapshot(cls) -> dict:
        """Current flag values, for logging and status output."""
        return {"LEGACY_JUMP_CALLBACKS": cls.LEGACY_JUMP_CALLBACKS}
