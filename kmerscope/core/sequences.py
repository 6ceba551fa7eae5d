"""FASTA record reading for k-mer enumeration."""

import gzip
import logging
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


def _open_text(path: Path):
    if path.suffix == ".gz":
        return gzip.open(path, "rt")
    return open(path)


def iter_fasta(path: str | Path) -> Iterator[tuple[str, str]]:
    """Stream (name, sequence) records from a FASTA file.

    The record name is the first whitespace-delimited token of the header.
    Sequence lines are stripped and concatenated.  Files ending in .gz are
    decompressed on the fly.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If sequence data appears before the first header.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"FASTA file not found: {path}")

    current_name: str | None = None
    current_parts: list[str] = []

    with _open_text(path) as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            if line.startswith(">"):
                if current_name is not None:
                    yield current_name, "".join(current_parts)
                header = line[1:].split()
                current_name = header[0] if header else ""
                current_parts = []
            else:
                if current_name is None:
                    raise ValueError(
                        f"{path}:{lineno}: sequence data before first FASTA header"
                    )
                current_parts.append(line)
        if current_name is not None:
            yield current_name, "".join(current_parts)


def read_fasta(path: str | Path) -> dict[str, str]:
    """Load all FASTA records into a {name: sequence} dict.

    Duplicate names are logged and the later record wins.
    """
    sequences: dict[str, str] = {}
    for name, seq in iter_fasta(path):
        if name in sequences:
            logger.warning("Duplicate FASTA record %r in %s; keeping the last one", name, path)
        sequences[name] = seq
    logger.debug("Read %d records from %s", len(sequences), path)
    return sequences


def normalize_sequence(sequence: str, uppercase: bool = False) -> str:
    """Optionally upper-case a sequence.  No alphabet validation is done."""
    return sequence.upper() if uppercase else sequence
