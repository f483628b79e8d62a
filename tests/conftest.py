"""
Pytest configuration for AyuTrace.

Ensures the project root is on sys.path so ``import ayutrace`` resolves during
collection, and selects the testing settings (cheap sealing, in-memory store)
before any ayutrace module reads its configuration.
"""

import os
import sys

import pytest

os.environ.setdefault("AYUTRACE_ENV", "testing")

# Compute project root (parent of this tests directory)
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from ayutrace.core.contracts import RulePolicy, new_collection_event  # noqa: E402
from ayutrace.core.ledger import Ledger  # noqa: E402
from ayutrace.core.transactions import ProcessingStep, QualityTest  # noqa: E402

# Inside the approved harvesting zone (Dehradun, Uttarakhand)
DEHRADUN = {"latitude": 30.3165, "longitude": 78.0322, "address": "Dehradun, Uttarakhand"}


@pytest.fixture
def policy():
    """Default policy, independent of environment variables"""
    return RulePolicy()


@pytest.fixture
def ledger():
    """Fresh ledger with cheap sealing"""
    return Ledger(difficulty=1, name="TestLedger")


@pytest.fixture
def make_harvest(policy):
    """Factory for valid collection events"""
    def _make(**overrides):
        fields = {
            "collector_id": "FARMER001",
            "species": "Withania somnifera",
            "location": DEHRADUN,
            "quantity": 30.0,
            "harvest_method": "hand-picked",
        }
        fields.update(overrides)
        return new_collection_event(policy=policy, **fields)
    return _make


@pytest.fixture
def make_quality_test():
    """Factory for laboratory tests against a batch"""
    def _make(batch_id, test_type="moisture", value=8.0, **overrides):
        fields = {
            "batch_id": batch_id,
            "lab_id": "LAB001",
            "test_type": test_type,
            "results": {"value": value, "unit": "%"},
            "certificate": "CERT-001",
            "passed": True,
        }
        fields.update(overrides)
        return QualityTest(**fields)
    return _make


@pytest.fixture
def make_processing_step():
    """Factory for processing steps on a batch"""
    def _make(batch_id, process_type="drying", temperature=45.0, **overrides):
        fields = {
            "batch_id": batch_id,
            "facility_id": "PROC001",
            "process_type": process_type,
            "temperature": temperature,
            "duration": 12.0,
            "output_quantity": 27.5,
        }
        fields.update(overrides)
        return ProcessingStep(**fields)
    return _make
