"""
AyuTrace: provenance ledger for Ayurvedic herbal supply chains

AyuTrace records every step of a herb's journey (harvest, laboratory testing,
processing, formulation) as rule-checked transactions in an append-only,
hash-linked ledger, and lets anyone holding a product's QR code trace it back
to the farms its ingredients came from.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh.readlines() if line.strip() and not line.startswith("#")]

# Get version from the package
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '.'))
from ayutrace.units.version import get_version
from ayutrace import VERSION

setup(
    name="AyuTrace",
    version=get_version(VERSION),
    author="AyuTrace Developers",
    description="A provenance ledger for Ayurvedic herbal supply chains",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['ayutrace', 'ayutrace.*'], exclude=['tests*']),
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-benchmark>=4.0",
            "hypothesis>=6.0",
            "httpx>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "ayt=ayutrace.cli:ayt",
        ],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 2 - Pre-Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Application Frameworks",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="provenance, traceability, supply chain, ayurveda, ledger",
)
