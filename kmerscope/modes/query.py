"""Query mode: count a fixed set of k-mers across sequence records.

The query k-mers come from a FASTA file with one k-mer per record.  Every
window of every sequence record is checked against the set, and the
result is ranked by count (descending) then k-mer, with unmatched
k-mers left out.
"""

import logging
from pathlib import Path
from typing import Iterable

from tqdm import tqdm

from kmerscope.core.kmers import (
    coerce_window_length,
    kmer_counts,
    ranked_counts,
    write_emissions,
)
from kmerscope.core.sequences import iter_fasta, normalize_sequence

logger = logging.getLogger(__name__)


def load_query_kmers(path: str | Path, k, uppercase: bool = False) -> list[str]:
    """Read query k-mers from a FASTA file.

    Returns:
        Distinct k-mers in file order.

    Raises:
        ValueError: If a record's sequence length is not k.
    """
    k = coerce_window_length(k)
    kmers: dict[str, None] = {}
    for name, seq in iter_fasta(path):
        seq = normalize_sequence(seq, uppercase=uppercase)
        if len(seq) != k:
            raise ValueError(
                f"K-mer record {name!r} has length {len(seq)}, "
                f"different from given k ({k})"
            )
        kmers[seq] = None
    return list(kmers)


def count_query_kmers(
    queries: Iterable[str],
    records: Iterable[tuple[str, str]],
    k,
    uppercase: bool = False,
    show_progress: bool = False,
) -> dict[str, int]:
    """Total occurrences of each query k-mer over all records.

    Returns:
        {kmer: count} for every query k-mer, zero counts included.
    """
    k = coerce_window_length(k)
    totals = dict.fromkeys(queries, 0)
    for _, seq in tqdm(records, desc="Counting matches", disable=not show_progress):
        seq = normalize_sequence(seq, uppercase=uppercase)
        for kmer, count in kmer_counts(seq, k).items():
            if kmer in totals:
                totals[kmer] += count
    return totals


def run_query(
    kmer_path: str | Path,
    seq_path: str | Path,
    k,
    uppercase: bool = False,
    output_path: str | Path | None = None,
    show_progress: bool = False,
) -> dict:
    """Count query k-mers from kmer_path across the records of seq_path.

    Args:
        kmer_path: FASTA file with one k-mer of length k per record.
        seq_path: FASTA file with the sequences to search.
        k: Window length (int or integer string, >= 0).
        uppercase: Upper-case both k-mers and sequences first.
        output_path: Write "<kmer>\\t<count>" lines here.  None = no file.
        show_progress: Show a tqdm progress bar over sequence records.

    Returns:
        dict with keys:
            "results": DataFrame (kmer, count), ranked, zero counts dropped
            "n_unique": number of distinct query k-mers
            "n_matching": number of query k-mers seen at least once
            "total_matches": sum of counts
            "k": int
    """
    k = coerce_window_length(k)

    logger.info("Reading kmer file %s", kmer_path)
    queries = load_query_kmers(kmer_path, k, uppercase=uppercase)
    logger.info("Unique kmers:      %d", len(queries))

    logger.info("Reading sequence file %s", seq_path)
    totals = count_query_kmers(
        queries, iter_fasta(seq_path), k,
        uppercase=uppercase, show_progress=show_progress,
    )

    results = ranked_counts(totals)
    n_matching = len(results)
    total_matches = int(results["count"].sum())
    logger.info("Matching kmers:    %d", n_matching)
    logger.info("Total matches:     %d", total_matches)

    if output_path is not None:
        with open(output_path, "w") as fh:
            write_emissions(results.itertuples(index=False, name=None), fh)
        logger.info("Results written to %s", output_path)

    return {
        "results": results,
        "n_unique": len(queries),
        "n_matching": n_matching,
        "total_matches": total_matches,
        "k": k,
    }
