"""
Tests for holder snapshot parsing.
"""

import pytest

from directed_stake.exceptions import MalformedSnapshotError
from directed_stake.reconcile import HoldingEntry, load_snapshot, parse_snapshot

from conftest import make_key

A1, A2 = make_key("holder-1"), make_key("holder-2")


class TestParseSnapshot:

    def test_valid(self):
        entries = parse_snapshot(f"wallet,balance\n{A1},100\n{A2},50\n")
        assert entries == [HoldingEntry(A1, 100), HoldingEntry(A2, 50)]

    def test_header_only(self):
        assert parse_snapshot("wallet,balance\n") == []

    def test_whitespace_and_blank_lines(self):
        entries = parse_snapshot(f"wallet, balance\r\n {A1} , 7 \r\n\r\n,\n")
        assert entries == [HoldingEntry(A1, 7)]

    def test_byte_order_mark(self):
        assert parse_snapshot(f"\ufeffwallet,balance\n{A1},1\n") == [HoldingEntry(A1, 1)]

    def test_large_balance_stays_exact(self):
        big = 2 ** 64 + 1
        assert parse_snapshot(f"wallet,balance\n{A1},{big}\n")[0].balance == big

    def test_lines_iterable(self):
        assert parse_snapshot(["wallet,balance", f"{A1},3"]) == [HoldingEntry(A1, 3)]

    @pytest.mark.parametrize("text, line", [
        ("", 1),
        ("address,amount\n", 1),
        ("wallet,balance\nnot-a-key,1\n", 2),
        (f"wallet,balance\n{A1},12.5\n", 2),
        (f"wallet,balance\n{A1},-3\n", 2),
        (f"wallet,balance\n{A1},abc\n", 2),
        (f"wallet,balance\n{A1}\n", 2),
        (f"wallet,balance\n{A1},1,extra\n", 2),
        (f"wallet,balance\n{A1},1\n{A1},2\n", 3),
    ])
    def test_malformed(self, text, line):
        with pytest.raises(MalformedSnapshotError) as exc_info:
            parse_snapshot(text)
        assert exc_info.value.line_number == line

    def test_load_file(self, tmp_path):
        path = tmp_path / "snapshot.csv"
        path.write_text(f"wallet,balance\n{A1},5\n", encoding="utf-8")
        assert load_snapshot(path) == [HoldingEntry(A1, 5)]

    def test_load_file_with_byte_order_mark(self, tmp_path):
        path = tmp_path / "snapshot.csv"
        path.write_bytes(f"\ufeffwallet,balance\n{A1},5\n".encode("utf-8"))
        assert load_snapshot(path) == [HoldingEntry(A1, 5)]

    def test_file_not_utf8(self, tmp_path):
        path = tmp_path / "snapshot.csv"
        path.write_bytes(f"wallet,balance\n{A1},1\n".encode() + b"\xff\xfe,1\n")

        with pytest.raises(MalformedSnapshotError) as exc_info:
            load_snapshot(path)
        assert exc_info.value.line_number == 3
        assert "UTF-8" in exc_info.value.reason

    def test_oversized_field(self):
        text = "wallet,balance\n" + "1" * 200_000 + ",5\n"
        with pytest.raises(MalformedSnapshotError) as exc_info:
            parse_snapshot(text)
        assert exc_info.value.line_number == 2

    def test_undecodable_line_stream(self):
        def lines():
            yield "wallet,balance\n"
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        with pytest.raises(MalformedSnapshotError) as exc_info:
            parse_snapshot(lines())
        assert exc_info.value.line_number == 2


class TestHoldingEntry:

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            HoldingEntry(A1, -1)

    def test_non_integer_rejected(self):
        with pytest.raises(TypeError):
            HoldingEntry(A1, 1.5)
        with pytest.raises(TypeError):
            HoldingEntry(A1, True)
