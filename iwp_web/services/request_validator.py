from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from iwp_web.domain.errors import ValidationError, ValidationReason
from iwp_web.domain.models import PackagingRequest

RawPath = Union[str, Path, None]

SUPPORTED_SETUP_EXTENSIONS = frozenset({".exe", ".msi"})


def normalize_path(raw: RawPath) -> Optional[Path]:
    """
    Turns raw user input into an absolute path.
    Strips whitespace and surrounding quotes (pasted Windows paths), expands ~ and env vars.
    Returns None when nothing usable is left.
    """
    s = str(raw) if raw is not None else ""
    s = s.strip().strip('"').strip()
    if not s:
        return None
    s = os.path.expandvars(os.path.expanduser(s))
    try:
        return Path(os.path.abspath(s))
    except (OSError, ValueError):
        return None


def _compare_key(p: Path) -> str:
    return os.path.normcase(os.path.normpath(str(p))).casefold()


def is_path_descendant(child: Path, parent: Path) -> bool:
    """
    Case-insensitive containment check on normalized absolute paths.
    The parent is anchored at a separator so C:\\pkgfoo is not inside C:\\pkg.
    """
    c = _compare_key(child)
    p = _compare_key(parent)
    prefix = p if p.endswith(os.sep) else p + os.sep
    return c.startswith(prefix)


@dataclass(frozen=True)
class RequestValidator:
    supported_extensions: frozenset = SUPPORTED_SETUP_EXTENSIONS

    def validate(
        self,
        raw_source_folder: RawPath,
        raw_setup_path: RawPath,
        raw_output_folder: RawPath,
        tool_path: RawPath,
        *,
        detected_setup: RawPath = None,
    ) -> PackagingRequest:
        source = normalize_path(raw_source_folder)
        if source is None or not source.is_dir():
            raise ValidationError(
                ValidationReason.SOURCE_FOLDER_INVALID,
                f"Source folder does not exist: {raw_source_folder or '(empty)'}",
            )

        # An explicitly chosen file wins over the auto-detected one.
        setup = normalize_path(raw_setup_path) or normalize_path(detected_setup)
        if setup is None or not setup.is_file():
            raise ValidationError(
                ValidationReason.SETUP_FILE_INVALID,
                f"Setup file does not exist: {raw_setup_path or detected_setup or '(empty)'}",
            )

        if not is_path_descendant(setup, source):
            raise ValidationError(
                ValidationReason.SETUP_OUTSIDE_SOURCE,
                f"Setup file {setup} is not inside source folder {source}",
            )

        if setup.suffix.lower() not in self.supported_extensions:
            allowed = ", ".join(sorted(self.supported_extensions))
            raise ValidationError(
                ValidationReason.UNSUPPORTED_EXTENSION,
                f"Setup file must be one of {allowed}: {setup.name}",
            )

        output = normalize_path(raw_output_folder)
        if output is None:
            raise ValidationError(ValidationReason.OUTPUT_FOLDER_UNAVAILABLE, "Output folder is required.")
        try:
            output.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            raise ValidationError(
                ValidationReason.OUTPUT_FOLDER_UNAVAILABLE,
                f"Cannot create output folder {output}: {e}",
            ) from e

        tool = normalize_path(tool_path)
        if tool is None or not tool.is_file():
            raise ValidationError(
                ValidationReason.TOOL_MISSING,
                f"Packaging tool not found: {tool_path or '(empty)'}",
            )

        return PackagingRequest(
            source_folder=source,
            setup_file=setup,
            output_folder=output,
            tool_path=tool,
        )
