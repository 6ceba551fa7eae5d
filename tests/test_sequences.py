"""Tests for FASTA reading."""

import gzip

import pytest

from kmerscope.core.sequences import iter_fasta, normalize_sequence, read_fasta

FASTA_TEXT = """>seq1 first record
ATGCAT
GC

>seq2
AAAA
>seq3 empty
"""


@pytest.fixture
def fasta_path(tmp_path):
    path = tmp_path / "records.fa"
    path.write_text(FASTA_TEXT)
    return path


class TestIterFasta:
    def test_records(self, fasta_path):
        records = list(iter_fasta(fasta_path))
        assert records == [("seq1", "ATGCATGC"), ("seq2", "AAAA"), ("seq3", "")]

    def test_gzip(self, tmp_path):
        path = tmp_path / "records.fa.gz"
        with gzip.open(path, "wt") as fh:
            fh.write(FASTA_TEXT)
        assert [name for name, _ in iter_fasta(path)] == ["seq1", "seq2", "seq3"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(iter_fasta(tmp_path / "nope.fa"))

    def test_data_before_header(self, tmp_path):
        path = tmp_path / "bad.fa"
        path.write_text("ACGT\n>seq1\nACGT\n")
        with pytest.raises(ValueError, match="before first FASTA header"):
            list(iter_fasta(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.fa"
        path.write_text("")
        assert list(iter_fasta(path)) == []


class TestReadFasta:
    def test_dict(self, fasta_path):
        seqs = read_fasta(str(fasta_path))
        assert seqs == {"seq1": "ATGCATGC", "seq2": "AAAA", "seq3": ""}

    def test_duplicate_names_keep_last(self, tmp_path, caplog):
        path = tmp_path / "dup.fa"
        path.write_text(">a\nAC\n>a\nGT\n")
        seqs = read_fasta(path)
        assert seqs == {"a": "GT"}
        assert "Duplicate FASTA record" in caplog.text


class TestNormalizeSequence:
    def test_default_unchanged(self):
        assert normalize_sequence("acGT") == "acGT"

    def test_uppercase(self):
        assert normalize_sequence("acGT", uppercase=True) == "ACGT"
