"""
Test suite for version helpers
"""

from ayutrace import VERSION, __version__
from ayutrace.units.version import get_major_version, get_version


def test_get_version_release_levels():
    assert get_version((1, 2, 3, "final", 0)) == "1.2.3"
    assert get_version((1, 2, 3, "dev", 1)) == "1.2.3.dev1"
    assert get_version((1, 2, 3, "alpha", 2)) == "1.2.3a2"
    assert get_version((1, 2, 3, "beta", 1)) == "1.2.3b1"
    assert get_version((1, 2, 3, "rc", 3)) == "1.2.3rc3"


def test_package_version():
    assert __version__ == get_version(VERSION)
    assert get_major_version(VERSION) == f"{VERSION[0]}.{VERSION[1]}"
