"""Run settings consumed by the AVM."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TextIO

from .constants import DEFAULT_FS, DEFAULT_ORS, DEFAULT_OFS, DEFAULT_PROGRAM_NAME, DEFAULT_RS


@dataclass(frozen=True)
class AwkSettings:
    """Groups AVM execution configuration.

    ``variables`` holds ``-v`` assignments applied before BEGIN; ``operands``
    become ``ARGV[1]``..``ARGV[ARGC-1]`` (files and ``var=value``
    assignments); ``program_name`` is ``ARGV[0]``.
    """

    input: TextIO = field(default_factory=lambda: sys.stdin)
    output: TextIO = field(default_factory=lambda: sys.stdout)
    error: TextIO = field(default_factory=lambda: sys.stderr)
    field_separator: str = DEFAULT_FS
    record_separator: str = DEFAULT_RS
    output_field_separator: str = DEFAULT_OFS
    output_record_separator: str = DEFAULT_ORS
    variables: dict[str, str] = field(default_factory=dict)
    operands: list[str] = field(default_factory=list)
    program_name: str = DEFAULT_PROGRAM_NAME
