"""
Unit tests for payload row counting and test-mode truncation
"""

from ingestion.transformers.payload import count_rows, truncate_payload


class TestCountRows:

    def test_counts_data_rows(self, tmp_path, payload_factory):
        path = tmp_path / "notes-00000.tsv"
        path.write_bytes(payload_factory(25))
        assert count_rows(path) == 25

    def test_last_row_without_newline(self, tmp_path, payload_factory):
        path = tmp_path / "notes-00000.tsv"
        path.write_bytes(payload_factory(3, trailing_newline=False))
        assert count_rows(path) == 3

    def test_header_only(self, tmp_path, payload_factory):
        path = tmp_path / "notes-00000.tsv"
        path.write_bytes(payload_factory(0))
        assert count_rows(path) == 0

    def test_empty_file(self, tmp_path):
        path = tmp_path / "notes-00000.tsv"
        path.write_bytes(b"")
        assert count_rows(path) == 0


class TestTruncatePayload:

    def test_keeps_header_and_first_rows(self, tmp_path, payload_factory):
        path = tmp_path / "notes-00000.tsv"
        path.write_bytes(payload_factory(1000))

        kept = truncate_payload(path, 10)

        assert kept == 10
        assert count_rows(path) == 10
        assert path.read_bytes() == payload_factory(10)
        assert not (tmp_path / "notes-00000.tsv.tmp").exists()

    def test_limit_above_row_count(self, tmp_path, payload_factory):
        path = tmp_path / "notes-00000.tsv"
        path.write_bytes(payload_factory(4))

        assert truncate_payload(path, 10) == 4
        assert path.read_bytes() == payload_factory(4)

    def test_non_positive_limit_is_a_no_op(self, tmp_path, payload_factory):
        path = tmp_path / "notes-00000.tsv"
        path.write_bytes(payload_factory(6))

        assert truncate_payload(path, 0) == 6
        assert path.read_bytes() == payload_factory(6)
