"""Filesystem access for captured CS2 server logs.

Log captures are newline-delimited JSON envelopes, either plain or
gzip-compressed::

    logs/
      cs2-2025-08-01.log
      cs2-2025-07-31.log.gz
"""

import gzip
from pathlib import Path

LOG_SUFFIXES = (".log", ".json", ".jsonl", ".gz")


def read_log_lines(path: str | Path) -> list[str]:
    """Load a log capture into memory as a list of raw lines.

    ``.gz`` files are decompressed transparently. Lines are split on
    line feeds only, with a trailing carriage return dropped; other Unicode
    line breaks such as U+0085 can appear inside player names and stay in
    the line.
    Blank lines are kept so indices match the file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"No log file at {file_path}")

    if file_path.suffix == ".gz":
        text = gzip.decompress(file_path.read_bytes()).decode("utf-8", errors="replace")
    else:
        text = file_path.read_text(encoding="utf-8", errors="replace")
    lines = [line.removesuffix("\r") for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def find_log_files(paths: list[str | Path]) -> list[Path]:
    """Expand a mix of files and directories into log files.

    Directories contribute every file with a known log suffix, sorted by
    name. Files are returned as given, in order.

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    found: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found.extend(
                sorted(p for p in path.iterdir() if p.is_file() and p.suffix in LOG_SUFFIXES)
            )
        elif path.exists():
            found.append(path)
        else:
            raise FileNotFoundError(f"No log file or directory at {path}")
    return found
