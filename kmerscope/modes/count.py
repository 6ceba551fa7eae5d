"""Count mode: per-record k-mer enumeration with table output.

Runs the k-mer enumerator over each sequence of a set of records, and
collects the positional emission stream plus a distinct k-mer table per
record.  ``stream_count`` handles one record at a time and writes as it
goes, so FASTA files never have to be held in memory.
"""

import logging
import re
from pathlib import Path
from typing import IO, Iterable, Iterator

import pandas as pd
from tqdm import tqdm

from kmerscope.core.kmers import (
    coerce_window_length,
    enumerate_kmers,
    kmer_table,
    write_emissions,
)
from kmerscope.core.sequences import normalize_sequence, read_fasta

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ["record", "length", "n_windows", "n_distinct", "max_count"]

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


def count_records(
    records: Iterable[tuple[str, str]],
    k,
    distinct: bool = False,
    method: str = "table",
    uppercase: bool = False,
    sort: str = "position",
    show_progress: bool = False,
) -> Iterator[tuple[str, list[tuple[str, int]], pd.DataFrame, dict]]:
    """Lazily enumerate k-mers record by record.

    Yields:
        (record_name, emissions, kmer_table, summary_row) per record.
    """
    k = coerce_window_length(k)
    for name, seq in tqdm(records, desc="Records", disable=not show_progress):
        seq = normalize_sequence(seq, uppercase=uppercase)
        if len(seq) < k:
            logger.debug("Record %s (length %d) is shorter than k=%d", name, len(seq), k)

        emissions = enumerate_kmers(seq, k, distinct=distinct, method=method)
        table = kmer_table(seq, k, sort=sort)
        row = {
            "record": name,
            "length": len(seq),
            "n_windows": int(table["count"].sum()),
            "n_distinct": len(table),
            "max_count": int(table["count"].max()) if len(table) else 0,
        }
        yield name, emissions, table, row


def run_count(
    sequences: dict[str, str],
    k,
    distinct: bool = False,
    method: str = "table",
    uppercase: bool = False,
    sort: str = "position",
    output_dir: str | Path | None = None,
    show_progress: bool = False,
) -> dict:
    """Enumerate k-mers for every record.

    Args:
        sequences: {record_name: sequence} dict.
        k: Window length (int or integer string, >= 0).
        distinct: Emit only the first occurrence of each k-mer.
        method: "table" (pre-aggregated) or "scan" (whole-range rescan).
        uppercase: Upper-case sequences before enumeration.
        sort: Row order of the k-mer tables, "position" or "count".
        output_dir: Directory for output files. None = no file output.
        show_progress: Show a tqdm progress bar over records.

    Returns:
        dict with keys:
            "emissions": {record: [(kmer, count), ...]}
            "tables": {record: DataFrame (kmer, count, frequency, first_position)}
            "summary": DataFrame (record, length, n_windows, n_distinct, max_count)
            "k": int
    """
    k = coerce_window_length(k)
    out = _prepare_output_dir(output_dir)

    emissions: dict[str, list[tuple[str, int]]] = {}
    tables: dict[str, pd.DataFrame] = {}
    rows = []
    used_stems: set[str] = set()

    for name, pairs, table, row in count_records(
        sequences.items(), k, distinct=distinct, method=method,
        uppercase=uppercase, sort=sort, show_progress=show_progress,
    ):
        emissions[name] = pairs
        tables[name] = table
        rows.append(row)
        if out is not None:
            _write_record(out, _unique_stem(name, used_stems), pairs, table)

    summary = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    logger.info("Enumerated %d-mers for %d records", k, len(summary))
    if out is not None:
        _write_summary(out, summary)

    return {
        "emissions": emissions,
        "tables": tables,
        "summary": summary,
        "k": k,
    }


def stream_count(
    records: Iterable[tuple[str, str]],
    k,
    fh: IO[str],
    with_headers: bool = False,
    distinct: bool = False,
    method: str = "table",
    uppercase: bool = False,
    sort: str = "position",
    output_dir: str | Path | None = None,
    show_progress: bool = False,
) -> pd.DataFrame:
    """Enumerate and write k-mers one record at a time.

    Each record's "<kmer>\\t<count>" lines are written to fh as soon as the
    record is processed, preceded by a ">name" line when with_headers is
    set.  Only the summary rows are kept.

    Returns:
        Summary DataFrame (record, length, n_windows, n_distinct, max_count).
    """
    k = coerce_window_length(k)
    out = _prepare_output_dir(output_dir)

    rows = []
    used_stems: set[str] = set()
    for name, pairs, table, row in count_records(
        records, k, distinct=distinct, method=method,
        uppercase=uppercase, sort=sort, show_progress=show_progress,
    ):
        if with_headers:
            fh.write(f">{name}\n")
        write_emissions(pairs, fh)
        rows.append(row)
        if out is not None:
            _write_record(out, _unique_stem(name, used_stems), pairs, table)

    summary = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    logger.info(
        "Enumerated %d-mers for %d records (%d windows)",
        k, len(summary), int(summary["n_windows"].sum()),
    )
    if out is not None:
        _write_summary(out, summary)
    return summary


def run_count_fasta(path: str | Path, k, **kwargs) -> dict:
    """Read a FASTA file and run count mode over all of its records."""
    sequences = read_fasta(path)
    if not sequences:
        logger.warning("No FASTA records found in %s", path)
    return run_count(sequences, k, **kwargs)


def safe_filename(name: str) -> str:
    """Make a record name usable as a file name stem."""
    cleaned = _UNSAFE_CHARS_RE.sub("_", name).strip("._")
    return cleaned or "record"


def _unique_stem(name: str, used: set[str]) -> str:
    stem = base = safe_filename(name)
    n = 1
    while stem in used:
        n += 1
        stem = f"{base}_{n}"
    used.add(stem)
    return stem


def _prepare_output_dir(output_dir: str | Path | None) -> Path | None:
    if output_dir is None:
        return None
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    return out


def _write_record(
    output_dir: Path,
    stem: str,
    pairs: list[tuple[str, int]],
    table: pd.DataFrame,
) -> None:
    """Write one record's raw emission stream and k-mer table."""
    with open(output_dir / f"{stem}.kmers.txt", "w") as fh:
        write_emissions(pairs, fh)
    table.to_csv(
        output_dir / f"{stem}.kmer_table.tsv",
        sep="\t", index=False, float_format="%.6g",
    )


def _write_summary(output_dir: Path, summary: pd.DataFrame) -> None:
    summary_path = output_dir / "summary.tsv"
    summary.to_csv(summary_path, sep="\t", index=False)
    logger.info("Results written to %s", output_dir)
