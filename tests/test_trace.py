"""
READONCE - Trace Property Tests

Run-level invariants over recorded tick traces.
"""

import numpy as np
import pytest

from readonce.orchestrator import CellGroupOrchestrator

RESET = {"*": {"reset": True}}
ARM = {"cell": {"init": True, "payload": {"secret": 0x3C, "basis": 1}}}
READ = {"cell": {"read": True, "credentials": {"basis": 1}}}


@pytest.fixture
def group():
    g = CellGroupOrchestrator("trace")
    g.add("cell", "basis")
    return g


class TestTraceArrays:
    def test_signal_dtypes(self, group):
        trace = group.run([RESET, ARM, READ])

        assert trace.signal("cell", "value_out").dtype == np.uint8
        assert trace.signal("cell", "pad_enable").dtype == bool
        assert trace.signal("cell", "value_out")[2] == 0x3C

    def test_disclosure_ticks(self, group):
        trace = group.run([RESET, ARM, READ, READ])

        assert trace.disclosure_ticks("cell") == [2]
        assert trace.collapse_tick("cell") == 2

    def test_no_collapse(self, group):
        trace = group.run([RESET, ARM])

        assert trace.collapse_tick("cell") is None


class TestProperties:
    @pytest.mark.property
    def test_read_once_and_kill(self, group):
        trace = group.run([RESET, ARM, READ, ARM, READ, READ])

        assert trace.check_read_once() == {"cell": True}
        assert trace.check_disclosure_then_kill() == {"cell": True}
        assert trace.disclosures("cell") == 1

    @pytest.mark.property
    def test_reset_starts_new_epoch(self, group):
        trace = group.run([RESET, ARM, READ, RESET, ARM, READ])

        assert trace.disclosures("cell") == 2
        assert trace.check_read_once() == {"cell": True}
        assert trace.check_disclosure_then_kill() == {"cell": True}

    @pytest.mark.property
    def test_fuse_dominance(self, group):
        """After fuse_blow no init brings the pad back, whatever the reader shows."""
        trace = group.run([RESET, ARM, {"cell": {"fuse_blow": True}}] + [ARM, READ] * 5)

        assert trace.signal("cell", "pad_enable")[3:].sum() == 0
        assert trace.signal("cell", "granted")[3:].any()

    def test_summary(self, group):
        summary = group.run([RESET, ARM, READ]).summary()

        assert summary["ticks"] == 3
        assert summary["disclosures"] == {"cell": 1}
        assert summary["read_once"] == True


class TestTraceRoot:
    def test_same_run_same_root(self):
        roots = []
        for _ in range(2):
            g = CellGroupOrchestrator("trace")
            g.add("cell", "basis")
            roots.append(g.run([RESET, ARM, READ]).root())

        assert roots[0] == roots[1]
        assert ":" in roots[0]

    def test_root_tracks_behaviour(self, group):
        before = group.run([RESET, ARM]).root()
        after = group.run([READ]).root()

        assert before != after

    def test_rows_omit_value_out(self, group):
        rows = group.run([RESET, ARM, READ]).rows()

        assert len(rows) == 3
        assert "value_out" not in rows[2]["cell"]
        assert rows[2]["cell"]["pad_enable"] == 1
        assert rows[2]["cell@latch"]["collapsed"] == True
