from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple


def _mtime(p: Path) -> float:
    try:
        return p.stat().st_mtime
    except OSError:
        return 0.0


@dataclass
class OutputRepository:
    """
    Repository pattern: encapsulates enumerating package artifacts in an output folder.
    """
    package_extension: str = ".intunewin"
    max_files: int = 5

    def list_packages(self, output_folder: Path) -> Tuple[Path, ...]:
        if not output_folder.is_dir():
            return ()
        ext = self.package_extension.lower()
        candidates = [p for p in output_folder.iterdir() if p.is_file() and p.suffix.lower() == ext]
        candidates.sort(key=_mtime, reverse=True)
        return tuple(candidates[: self.max_files])
