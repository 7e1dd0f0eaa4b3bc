"""Document rendering for onboarding packs."""

from onboardpack.render.renderer import OUTPUT_FILES, VALIDATION_FILE, PackRenderer

__all__ = ["PackRenderer", "OUTPUT_FILES", "VALIDATION_FILE"]
