"""Sliding-window k-mer enumeration with per-k-mer occurrence counts."""

import logging
import re
from typing import IO, Iterable, Iterator

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

METHODS = ("table", "scan")
SORT_ORDERS = ("position", "count")

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


class InvalidArgumentError(ValueError):
    """Window length cannot be read as a non-negative integer."""


def coerce_window_length(k) -> int:
    """Convert a window length to a non-negative int.

    Accepts ints (including numpy integers) and strings holding a base-10
    integer.  Booleans, floats, None and anything else are rejected.

    Raises:
        InvalidArgumentError: If k is not a non-negative integer.
    """
    if isinstance(k, (bool, np.bool_)):
        raise InvalidArgumentError(f"Window length must be an integer, got {k!r}")
    if isinstance(k, (int, np.integer)):
        value = int(k)
    elif isinstance(k, str) and _INTEGER_RE.match(k.strip()):
        value = int(k.strip())
    else:
        raise InvalidArgumentError(f"Window length must be an integer, got {k!r}")
    if value < 0:
        raise InvalidArgumentError(f"Window length must be >= 0, got {value}")
    return value


def _windows(sequence: str, k: int) -> Iterator[str]:
    for i in range(len(sequence) - k + 1):
        yield sequence[i : i + k]


def _tally(windows: Iterable[str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for kmer in windows:
        counts[kmer] = counts.get(kmer, 0) + 1
    return counts


def iter_kmers(sequence: str, k) -> Iterator[str]:
    """Yield every length-k window of sequence in position order.

    For a sequence of length N there are max(0, N-k+1) windows.  With k=0
    every window is the empty string.
    """
    return _windows(sequence, coerce_window_length(k))


def kmer_counts(sequence: str, k) -> dict[str, int]:
    """Count occurrences of each distinct k-mer in one pass.

    Returns:
        Dict mapping k-mer string to number of window positions, in order
        of first occurrence.
    """
    return _tally(iter_kmers(sequence, k))


def _scan_count(windows: list[str], kmer: str) -> int:
    return sum(1 for other in windows if other == kmer)


def enumerate_kmers(
    sequence: str,
    k,
    distinct: bool = False,
    method: str = "table",
) -> list[tuple[str, int]]:
    """Enumerate k-mers by window position with their total counts.

    Args:
        sequence: Any character sequence.  No alphabet validation.
        k: Window length (int or integer string, >= 0).
        distinct: If True, emit only the first occurrence of each k-mer.
            By default every window position is emitted, so a k-mer seen
            at m positions appears m times, each with count m.
        method: "table" pre-aggregates counts in one pass (O(n*k)).
            "scan" rescans every window for each emission (quadratic).
            Both give identical output.

    Returns:
        List of (kmer, count) pairs in increasing position order.

    Raises:
        InvalidArgumentError: If k is not a non-negative integer.
        ValueError: If method is unknown.
    """
    if method not in METHODS:
        raise ValueError(f"method must be one of {METHODS}, got {method!r}")
    k = coerce_window_length(k)

    windows = list(_windows(sequence, k))
    if not windows:
        logger.debug("Window length %d exceeds sequence length %d", k, len(sequence))
        return []

    counts = _tally(windows) if method == "table" else None

    emissions: list[tuple[str, int]] = []
    seen: set[str] = set()
    for kmer in windows:
        if distinct:
            if kmer in seen:
                continue
            seen.add(kmer)
        count = counts[kmer] if counts is not None else _scan_count(windows, kmer)
        emissions.append((kmer, count))
    return emissions


def kmer_table(sequence: str, k, sort: str = "position") -> pd.DataFrame:
    """Distinct k-mer frequency table for a sequence.

    Args:
        sequence: Any character sequence.
        k: Window length (int or integer string, >= 0).
        sort: "position" orders rows by first occurrence.  "count" orders
            by count descending, ties broken by k-mer.

    Returns:
        DataFrame with columns kmer, count, frequency, first_position,
        one row per distinct k-mer.  frequency is count divided by the
        number of windows.
    """
    if sort not in SORT_ORDERS:
        raise ValueError(f"sort must be one of {SORT_ORDERS}, got {sort!r}")
    k = coerce_window_length(k)
    first_position: dict[str, int] = {}
    counts: dict[str, int] = {}
    for i, kmer in enumerate(_windows(sequence, k)):
        if kmer not in counts:
            first_position[kmer] = i
            counts[kmer] = 0
        counts[kmer] += 1

    count_arr = np.fromiter(counts.values(), dtype=np.int64, count=len(counts))
    total = count_arr.sum()
    freq = count_arr / total if total > 0 else np.zeros(0, dtype=np.float64)
    df = pd.DataFrame({
        "kmer": pd.Series(list(counts.keys()), dtype=object),
        "count": count_arr,
        "frequency": freq,
        "first_position": np.fromiter(
            first_position.values(), dtype=np.int64, count=len(first_position)
        ),
    })
    if sort == "count":
        df = _sort_by_count(df)
    return df


def _sort_by_count(df: pd.DataFrame) -> pd.DataFrame:
    return df.sort_values(
        ["count", "kmer"], ascending=[False, True], kind="mergesort",
    ).reset_index(drop=True)


def ranked_counts(counts: dict[str, int], drop_zero: bool = True) -> pd.DataFrame:
    """Turn a {kmer: count} mapping into a ranked table.

    Rows are ordered by count descending, then by k-mer.  Zero-count
    k-mers are dropped unless drop_zero is False.

    Returns:
        DataFrame with columns kmer, count.
    """
    df = pd.DataFrame({
        "kmer": pd.Series(list(counts.keys()), dtype=object),
        "count": np.fromiter(counts.values(), dtype=np.int64, count=len(counts)),
    })
    if drop_zero:
        df = df[df["count"] > 0]
    return _sort_by_count(df)


def format_emissions(emissions: Iterable[tuple[str, int]]) -> Iterator[str]:
    """Render emissions as "<kmer>\\t<count>" lines (no trailing newline)."""
    for kmer, count in emissions:
        yield f"{kmer}\t{count}"


def write_emissions(emissions: Iterable[tuple[str, int]], fh: IO[str]) -> int:
    """Write one "<kmer>\\t<count>" line per emission.  Returns lines written."""
    n = 0
    for line in format_emissions(emissions):
        fh.write(line + "\n")
        n += 1
    return n
