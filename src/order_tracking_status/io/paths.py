from __future__ import annotations

from pathlib import Path
from typing import Tuple

PROCESSED_SUFFIX = "_processed.xlsx"


def derive_output_paths(input_file: Path) -> Tuple[Path, Path]:
    """
    Return (processed_xlsx_path, log_path) next to the input workbook.

    Raises FileNotFoundError when the input is missing so the CLI can exit early.
    """
    p = Path(input_file)
    if not p.exists():
        raise FileNotFoundError(p)
    return p.with_name(f"{p.stem}{PROCESSED_SUFFIX}"), p.with_suffix(".log")
