"""
READONCE - Tamper Controller Tests
"""

import pytest

from readonce.core import RULE_FUSE_BLOW, StopRule
from readonce.tamper import TamperController


class TestTamperController:
    def test_quiet_lines(self):
        edits = TamperController("c").evaluate(False, False, 0x11)

        assert edits == {"rule": None, "changes": {}, "scrub": False}

    def test_fuse_blow_latches(self):
        edits = TamperController("c").evaluate(True, False, 0x11)

        assert edits["rule"] == RULE_FUSE_BLOW
        assert edits["changes"]["fused"] == True
        assert edits["changes"]["collapsed"] == True
        assert edits["changes"]["secret"] == 0x11

    def test_fuse_blow_outranks_battery_drop(self):
        edits = TamperController("c", battery_drop_supported=True).evaluate(True, True, 0x22)

        assert edits["rule"] == RULE_FUSE_BLOW
        assert edits["scrub"] == False

    def test_battery_drop_scrub_only(self):
        edits = TamperController("c", battery_drop_supported=True).evaluate(False, True, 0x33)

        assert edits["rule"] is None
        assert edits["scrub"] == True
        assert edits["changes"] == {"secret": 0x33}

    def test_battery_drop_unsupported(self):
        with pytest.raises(StopRule):
            TamperController("c").evaluate(False, True, 0x33)

    def test_record_counts(self):
        tc = TamperController("c", battery_drop_supported=True)
        tc.record(True, False)
        tc.record(False, True)
        tc.record(False, True)

        assert tc.fuse_blow_count == 1
        assert tc.battery_drop_ticks == 2
