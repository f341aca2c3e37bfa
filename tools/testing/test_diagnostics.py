"""
Test the bounded diagnostic log.

Run: python -m pytest tools/testing/test_diagnostics.py
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from outreach_metrics.diagnostics import DiagnosticLog


def test_oldest_entries_are_dropped():
    log = DiagnosticLog(capacity=3)
    for i in range(5):
        log.record(f"event {i}", {"i": i})

    assert len(log) == 3
    assert log.messages() == ["event 2", "event 3", "event 4"]
    assert log.entries()[-1].to_dict()["data"] == {"i": 4}


def test_clear():
    log = DiagnosticLog()
    log.record("something")
    log.clear()
    assert len(log) == 0


def test_logs_are_independent():
    a = DiagnosticLog()
    b = DiagnosticLog()
    a.record("only in a")
    assert len(b) == 0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        DiagnosticLog(capacity=0)
