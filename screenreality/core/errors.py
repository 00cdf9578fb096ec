"""
Error taxonomy.

NoDetection and DegenerateGeometry are per-frame and recovered locally by
keeping the last good pose/frustum. ConfigurationError is fatal at startup.
"""


class ScreenRealityError(Exception):
    pass


class NoDetection(ScreenRealityError):
    """The detector found no face in the current frame."""


class DegenerateGeometry(ScreenRealityError):
    """A depth denominator or eye-to-screen distance is zero or negative."""


class ConfigurationError(ScreenRealityError):
    """Detector model or capture device could not be set up."""
