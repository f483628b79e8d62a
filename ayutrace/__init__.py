"""
AyuTrace
========

Supply-chain provenance ledger for botanical ingredients: harvest, laboratory
testing, processing and finished products are recorded as transactions, sealed
into hash-linked blocks and traced back from a single product code.
"""

from ayutrace.units.version import get_version

VERSION = (0, 3, 0, "dev", 1)

__version__ = get_version(VERSION)

__author__ = "AyuTrace Developers"

__all__ = ["VERSION", "__version__"]
