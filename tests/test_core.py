"""
READONCE - Core Tests

Receipts ledger, dual hash, merkle root and field validation.
"""

import os

import pytest

from readonce.core import (
    StopRule,
    check_field,
    dual_hash,
    emit_receipt,
    load_receipts,
    merkle,
)


class TestDualHash:
    """Tests for SHA256:BLAKE3 hashing."""

    def test_format(self):
        """Two 64-char hex digests joined by a colon."""
        h = dual_hash("readonce")
        sha, b3 = h.split(":")

        assert len(sha) == 64
        assert len(b3) == 64

    def test_str_and_bytes_agree(self):
        assert dual_hash("abc") == dual_hash(b"abc")

    def test_deterministic(self):
        assert dual_hash(b"x") == dual_hash(b"x")
        assert dual_hash(b"x") != dual_hash(b"y")


class TestEmitReceipt:
    """Tests for receipt emission."""

    def test_receipt_schema(self, clean_ledger):
        """Receipt carries type, ts, hash and the payload."""
        receipt = emit_receipt("cell_init", {"cell_id": "a", "tick": 1})

        assert receipt["type"] == "cell_init"
        assert receipt["cell_id"] == "a"
        assert "ts" in receipt
        assert ":" in receipt["hash"]

    def test_receipt_written_to_ledger(self, clean_ledger):
        emit_receipt("cell_reset", {"cell_id": "a"})
        emit_receipt("cell_init", {"cell_id": "a"})

        assert len(load_receipts()) == 2
        assert len(load_receipts("cell_init")) == 1

    def test_emit_disabled(self, clean_ledger, monkeypatch):
        """READONCE_EMIT=0 builds the receipt but writes nothing."""
        monkeypatch.setenv("READONCE_EMIT", "0")
        receipt = emit_receipt("cell_reset", {"cell_id": "a"})

        assert receipt["type"] == "cell_reset"
        assert load_receipts() == []

    def test_unwritable_ledger_raises_stoprule(self, tmp_path, monkeypatch):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        monkeypatch.setenv("READONCE_RECEIPTS", str(blocker / "receipts.jsonl"))

        with pytest.raises(StopRule) as exc:
            emit_receipt("cell_reset", {})

        assert exc.value.rule_name == "receipt_emission"

    def test_base_directory_override(self, tmp_path, monkeypatch):
        saved = os.environ.pop("READONCE_RECEIPTS")
        monkeypatch.setenv("READONCE_BASE", str(tmp_path))
        try:
            emit_receipt("cell_reset", {})
            assert (tmp_path / "receipts.jsonl").exists()
        finally:
            os.environ["READONCE_RECEIPTS"] = saved


class TestMerkle:
    def test_empty(self):
        assert merkle([]) == dual_hash(b"empty")

    def test_order_matters(self):
        assert merkle(["a", "b"]) != merkle(["b", "a"])

    def test_odd_count(self):
        assert merkle([{"x": 1}, {"y": 2}, {"z": 3}]).count(":") == 1


class TestCheckField:
    def test_in_range(self):
        assert check_field("basis", 3, 2) == 3

    def test_too_wide(self):
        with pytest.raises(ValueError):
            check_field("basis", 4, 2)

    def test_negative(self):
        with pytest.raises(ValueError):
            check_field("secret", -1, 8)
