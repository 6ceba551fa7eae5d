"""Tests for count mode."""

import io

import pandas as pd
import pytest

from kmerscope.core.kmers import InvalidArgumentError
from kmerscope.modes.count import (
    run_count,
    run_count_fasta,
    safe_filename,
    stream_count,
)


@pytest.fixture
def sequences():
    return {
        "plasmid": "ATGCATGC",
        "polyA": "AAAA",
        "short": "AC",
    }


class TestRunCount:
    def test_result_keys(self, sequences):
        result = run_count(sequences, 4)
        assert set(result) == {"emissions", "tables", "summary", "k"}
        assert result["k"] == 4

    def test_emissions(self, sequences):
        result = run_count(sequences, 2)
        assert result["emissions"]["polyA"] == [("AA", 3)] * 3
        assert len(result["emissions"]["plasmid"]) == 7
        assert result["emissions"]["short"] == [("AC", 1)]

    def test_short_record_is_empty(self, sequences):
        result = run_count(sequences, 4)
        assert result["emissions"]["short"] == []
        assert len(result["tables"]["short"]) == 0

    def test_summary(self, sequences):
        summary = run_count(sequences, 4)["summary"].set_index("record")
        assert list(summary.columns) == ["length", "n_windows", "n_distinct", "max_count"]
        assert summary.loc["plasmid", "n_windows"] == 5
        assert summary.loc["plasmid", "n_distinct"] == 4
        assert summary.loc["plasmid", "max_count"] == 2
        assert summary.loc["polyA", "max_count"] == 1
        assert summary.loc["short", "n_windows"] == 0
        assert summary.loc["short", "max_count"] == 0

    def test_distinct_and_scan(self, sequences):
        result = run_count(sequences, "4", distinct=True, method="scan")
        assert result["emissions"]["plasmid"] == [
            ("ATGC", 2), ("TGCA", 1), ("GCAT", 1), ("CATG", 1),
        ]

    def test_uppercase(self):
        result = run_count({"r": "atgcATGC"}, 4, uppercase=True)
        assert result["emissions"]["r"][0] == ("ATGC", 2)

    def test_invalid_k(self, sequences):
        with pytest.raises(InvalidArgumentError):
            run_count(sequences, "abc")

    def test_empty_input(self):
        result = run_count({}, 3)
        assert result["emissions"] == {}
        assert len(result["summary"]) == 0

    def test_output_files(self, sequences, tmp_path):
        out = tmp_path / "out"
        run_count(sequences, 4, output_dir=out)
        assert (out / "summary.tsv").exists()
        text = (out / "plasmid.kmers.txt").read_text()
        assert text.splitlines() == [
            "ATGC\t2", "TGCA\t1", "GCAT\t1", "CATG\t1", "ATGC\t2",
        ]
        assert (out / "short.kmers.txt").read_text() == ""

        table = pd.read_csv(out / "plasmid.kmer_table.tsv", sep="\t")
        assert list(table["kmer"]) == ["ATGC", "TGCA", "GCAT", "CATG"]
        assert list(table["count"]) == [2, 1, 1, 1]

        summary = pd.read_csv(out / "summary.tsv", sep="\t")
        assert list(summary["record"]) == ["plasmid", "polyA", "short"]

    def test_output_name_collisions(self, tmp_path):
        run_count({"a/b": "ACGT", "a_b": "TTTT"}, 2, output_dir=tmp_path)
        assert (tmp_path / "a_b.kmers.txt").read_text().startswith("AC\t1")
        assert (tmp_path / "a_b_2.kmers.txt").read_text().startswith("TT\t3")


class TestRunCountFasta:
    def test_fasta(self, tmp_path):
        path = tmp_path / "in.fa"
        path.write_text(">r1\nATGC\nATGC\n>r2\nAAAA\n")
        result = run_count_fasta(path, 4, distinct=True)
        assert result["emissions"]["r1"][0] == ("ATGC", 2)
        assert result["emissions"]["r2"] == [("AAAA", 1)]


class TestSafeFilename:
    def test_cleans(self):
        assert safe_filename("chr1:100-200|x") == "chr1_100-200_x"

    def test_empty_fallback(self):
        assert safe_filename("..") == "record"


class TestTableSort:
    def test_count_sort(self):
        result = run_count({"r": "TTGATTGA"}, 2, sort="count")
        assert list(result["tables"]["r"]["kmer"]) == ["GA", "TG", "TT", "AT"]


class TestStreamCount:
    def test_writes_each_record(self):
        buf = io.StringIO()
        records = iter([("r1", "AAA"), ("r2", "ACAC")])
        summary = stream_count(records, 2, buf, with_headers=True)
        assert buf.getvalue().splitlines() == [
            ">r1", "AA\t2", "AA\t2",
            ">r2", "AC\t2", "CA\t1", "AC\t2",
        ]
        assert list(summary["record"]) == ["r1", "r2"]
        assert list(summary["n_windows"]) == [2, 3]

    def test_consumes_records_lazily(self):
        """Each record's lines are written before the next record is read."""
        buf = io.StringIO()
        seen_output = []

        def records():
            yield "r1", "ACGT"
            seen_output.append(buf.getvalue())
            yield "r2", "TTTT"

        stream_count(records(), 4, buf)
        assert seen_output == ["ACGT\t1\n"]

    def test_no_headers(self):
        buf = io.StringIO()
        stream_count([("r", "AAAA")], 2, buf, distinct=True)
        assert buf.getvalue() == "AA\t3\n"

    def test_output_dir(self, tmp_path):
        buf = io.StringIO()
        stream_count([("a", "ACGT"), ("a", "TTTT")], 2, buf, output_dir=tmp_path)
        assert (tmp_path / "a.kmers.txt").exists()
        assert (tmp_path / "a_2.kmers.txt").exists()
        summary = pd.read_csv(tmp_path / "summary.tsv", sep="\t")
        assert len(summary) == 2

    def test_invalid_k(self):
        with pytest.raises(InvalidArgumentError):
            stream_count([("r", "ACGT")], "-3", io.StringIO())
