"""Native platform builders."""

from .android import AndroidBuilder, AndroidBuildOptions, find_android_artifact  # noqa: F401
from .ios import IosBuilder, IosBuildOptions, detect_scheme  # noqa: F401

__all__ = [
    "AndroidBuildOptions",
    "AndroidBuilder",
    "IosBuildOptions",
    "IosBuilder",
    "detect_scheme",
    "find_android_artifact",
]
