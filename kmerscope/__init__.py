"""kmerscope: sliding-window k-mer enumeration and counting."""

__version__ = "0.1.0"
