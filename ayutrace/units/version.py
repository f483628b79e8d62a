"""
Version helpers for AyuTrace.

Versions are kept as ``(major, minor, micro, releaselevel, serial)`` tuples and
rendered as PEP 440 strings for packaging and for the API banner.
"""


def get_version(version: tuple[int, int, int, str, int]) -> str:
    """
    Return a PEP 440-compliant version string.

    Args:
        version: Version tuple (major, minor, micro, releaselevel, serial)

    Returns:
        Version string such as ``0.3.0.dev1`` or ``1.0.0rc2``
    """
    major, minor, micro, releaselevel, serial = version

    version_str = f"{major}.{minor}.{micro}"
    if releaselevel == "final":
        return version_str

    if releaselevel == "dev":
        version_str += ".dev"
    else:
        version_str += {"alpha": "a", "beta": "b", "rc": "rc"}.get(releaselevel, releaselevel)
    if serial > 0:
        version_str += str(serial)
    return version_str


def get_major_version(version: tuple[int, int, int, str, int]) -> str:
    """Return ``major.minor`` (used for the public API version label)."""
    major, minor, _, _, _ = version
    return f"{major}.{minor}"
