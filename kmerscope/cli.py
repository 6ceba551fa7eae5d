"""kmerscope CLI entry point."""

import argparse
import logging
import sys
from contextlib import contextmanager
from pathlib import Path

from kmerscope import __version__

LOG_FORMAT = "%(levelname)s: %(message)s"


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="kmerscope",
        description="kmerscope: sliding-window k-mer enumeration and counting",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )
    parser.add_argument(
        "-l", "--log", type=str, default=None,
        help="Write log messages to this file instead of stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ── count ─────────────────────────────────────────────────────────────
    count_parser = subparsers.add_parser(
        "count", help="Enumerate k-mers with their occurrence counts"
    )
    source = count_parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--sequence", type=str, default=None,
        help="Sequence given directly on the command line",
    )
    source.add_argument(
        "--fasta", type=str, default=None,
        help="Path to a FASTA file (optionally .gz); records are processed one at a time",
    )
    count_parser.add_argument(
        "-k", "--kmer", required=True,
        help="Window length (non-negative integer)",
    )
    count_parser.add_argument(
        "--distinct", action="store_true",
        help="Emit each distinct k-mer once instead of once per window position",
    )
    count_parser.add_argument(
        "--method", default="table", choices=["table", "scan"],
        help="Counting method: one-pass table or whole-range rescan (default: table)",
    )
    count_parser.add_argument(
        "--sort", default="position", choices=["position", "count"],
        help="Row order of the k-mer tables in --output-dir (default: position)",
    )
    count_parser.add_argument(
        "--uppercase", action="store_true",
        help="Upper-case sequences before counting",
    )
    count_parser.add_argument(
        "-o", "--output", type=str, default=None,
        help="Write the k-mer/count stream to this file instead of stdout",
    )
    count_parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Also write per-record tables and a summary TSV here",
    )
    count_parser.add_argument(
        "--progress", action="store_true",
        help="Show a progress bar over FASTA records",
    )

    # ── query ─────────────────────────────────────────────────────────────
    query_parser = subparsers.add_parser(
        "query", help="Count a set of k-mers across the records of a FASTA file"
    )
    query_parser.add_argument(
        "--kmers", required=True,
        help="FASTA file with one k-mer of length k per record",
    )
    query_parser.add_argument(
        "--fasta", required=True,
        help="FASTA file (optionally .gz) with the sequences to search",
    )
    query_parser.add_argument(
        "-k", "--kmer", required=True,
        help="Window length (non-negative integer)",
    )
    query_parser.add_argument(
        "--uppercase", action="store_true",
        help="Upper-case k-mers and sequences before counting",
    )
    query_parser.add_argument(
        "-o", "--output", type=str, default=None,
        help="Write ranked k-mer/count lines to this file instead of stdout",
    )
    query_parser.add_argument(
        "--progress", action="store_true",
        help="Show a progress bar over sequence records",
    )

    args = parser.parse_args(argv)

    # Set up logging
    level = logging.DEBUG if args.verbose else logging.INFO
    root = logging.getLogger()
    log_handler = None
    if args.log:
        try:
            log_handler = logging.FileHandler(args.log)
        except OSError as exc:
            logging.basicConfig(format=LOG_FORMAT)
            logging.error("Unable to open log file %s: %s", args.log, exc)
            return 1
        log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(log_handler)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    root.setLevel(level)

    try:
        if args.command == "count":
            return _cmd_count(args)
        elif args.command == "query":
            return _cmd_query(args)
        else:
            parser.print_help()
            return 1
    finally:
        if log_handler is not None:
            root.removeHandler(log_handler)
            log_handler.close()


# ═══════════════════════════════════════════════════════════════════════════════
# Command handlers
# ═══════════════════════════════════════════════════════════════════════════════

def _cmd_count(args: argparse.Namespace) -> int:
    """Handle the count subcommand."""
    from kmerscope.core.kmers import InvalidArgumentError, coerce_window_length
    from kmerscope.core.sequences import iter_fasta
    from kmerscope.modes.count import stream_count

    try:
        k = coerce_window_length(args.kmer)
    except InvalidArgumentError as exc:
        logging.error("Invalid window length: %s", exc)
        return 1

    if args.fasta is not None:
        records = iter_fasta(args.fasta)
    else:
        records = [("sequence", args.sequence)]

    try:
        with _open_output(args.output) as fh:
            stream_count(
                records,
                k,
                fh,
                with_headers=args.fasta is not None,
                distinct=args.distinct,
                method=args.method,
                uppercase=args.uppercase,
                sort=args.sort,
                output_dir=args.output_dir,
                show_progress=args.progress,
            )
    except (OSError, EOFError, ValueError) as exc:
        logging.error("%s", exc)
        return 1

    if args.output:
        logging.info("K-mer stream written to %s", Path(args.output))
    return 0


def _cmd_query(args: argparse.Namespace) -> int:
    """Handle the query subcommand."""
    from kmerscope.core.kmers import InvalidArgumentError, write_emissions
    from kmerscope.modes.query import run_query

    try:
        result = run_query(
            args.kmers,
            args.fasta,
            args.kmer,
            uppercase=args.uppercase,
            output_path=args.output,
            show_progress=args.progress,
        )
    except InvalidArgumentError as exc:
        logging.error("Invalid window length: %s", exc)
        return 1
    except (OSError, EOFError, ValueError) as exc:
        logging.error("%s", exc)
        return 1

    if args.output is None:
        write_emissions(
            result["results"].itertuples(index=False, name=None), sys.stdout
        )
    return 0


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════

@contextmanager
def _open_output(path: str | None):
    """Yield an output file opened for writing, or stdout when path is None."""
    if not path:
        yield sys.stdout
        return
    with open(path, "w") as fh:
        yield fh


if __name__ == "__main__":
    sys.exit(main())
