"""Record input, redirected output and command pipes for the AVM."""

from __future__ import annotations

import io
import logging
import re
import subprocess
from typing import Callable, Optional, TextIO

from .constants import (
    REDIRECT_APPEND,
    REDIRECT_NONE,
    REDIRECT_PIPE,
    STDERR_NAMES,
    STDIN_NAMES,
    STDOUT_NAMES,
)
from .regex import compile_regex

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK_RE = re.compile(r"\n\n+")
_ASSIGNMENT_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)=(.*)\Z", re.DOTALL)

FILE_ENCODING = "utf-8"


def parse_assignment(operand: str) -> Optional[tuple[str, str]]:
    """Split a ``var=value`` operand; None when *operand* is a file name."""
    m = _ASSIGNMENT_RE.match(operand)
    return (m.group(1), m.group(2)) if m else None


def open_text(path: str, mode: str = "r") -> TextIO:
    return open(path, mode, encoding=FILE_ENCODING, errors="surrogateescape", newline="")


# ── Record reading ───────────────────────────────────────────────


class RecordReader:
    """Reads records separated by ``RS`` from a text stream.

    ``RS`` is consulted on every read so that changing it mid-stream takes
    effect at the next record.
    """

    def __init__(self, stream: TextIO, name: str = ""):
        self.stream = stream
        self.name = name
        self._buffer = ""
        self._eof = False

    def _fill(self) -> None:
        chunk = self.stream.readline()
        if chunk == "":
            self._eof = True
        else:
            self._buffer += chunk

    def _take(self, end: int, resume: int) -> str:
        record = self._buffer[:end]
        self._buffer = self._buffer[resume:]
        return record

    def _take_rest(self) -> Optional[str]:
        if self._buffer == "":
            return None
        return self._take(len(self._buffer), len(self._buffer))

    def read_record(self, rs: str) -> Optional[str]:
        if rs == "":
            return self._read_paragraph()
        if len(rs) == 1:
            return self._read_until_char(rs)
        return self._read_until_regex(compile_regex(rs))

    def _read_until_char(self, separator: str) -> Optional[str]:
        while True:
            index = self._buffer.find(separator)
            if index >= 0:
                return self._take(index, index + 1)
            if self._eof:
                return self._take_rest()
            self._fill()

    def _first_match(self, pattern: re.Pattern) -> Optional[re.Match]:
        for m in pattern.finditer(self._buffer):
            if m.end() > m.start():
                return m
        return None

    def _read_until_regex(self, pattern: re.Pattern) -> Optional[str]:
        while True:
            m = self._first_match(pattern)
            # a match touching the buffer end might grow with more input
            if m is not None and (m.end() < len(self._buffer) or self._eof):
                return self._take(m.start(), m.end())
            if self._eof:
                return self._take_rest()
            self._fill()

    def _read_paragraph(self) -> Optional[str]:
        while True:
            self._buffer = self._buffer.lstrip("\n")
            m = self._first_match(_PARAGRAPH_BREAK_RE)
            if m is not None and (m.end() < len(self._buffer) or self._eof):
                return self._take(m.start(), m.end())
            if self._eof:
                self._buffer = self._buffer.rstrip("\n")
                return self._take_rest()
            self._fill()

    def close(self) -> None:
        if self.stream is not None and self.name and self.name not in STDIN_NAMES:
            self.stream.close()


class MainInput:
    """Main record source: the ARGV file operands, or the fallback stream.

    Operands are fetched through *operands* each time a new file is needed,
    so changes a BEGIN block makes to ARGV/ARGC are honoured. ``var=value``
    operands are handed to *assign* when they are reached.
    """

    def __init__(
        self,
        fallback: TextIO,
        operands: Callable[[], list[str]],
        assign: Callable[[str, str], None],
    ):
        self._fallback = fallback
        self._operands = operands
        self._assign = assign
        self._index = 0
        self._reader: Optional[RecordReader] = None
        self._opened_file = False
        self._exhausted = False
        self.filename = ""
        self.files_opened = 0

    def read_record(self, rs: str) -> Optional[str]:
        while not self._exhausted:
            if self._reader is None and not self._open_next():
                self._exhausted = True
                break
            record = self._reader.read_record(rs)
            if record is not None:
                return record
            self.skip_file()
        return None

    def _open_next(self) -> bool:
        operands = self._operands()
        while self._index < len(operands):
            operand = operands[self._index]
            self._index += 1
            if operand == "":
                continue
            assignment = parse_assignment(operand)
            if assignment is not None:
                self._assign(*assignment)
                continue
            self._opened_file = True
            if operand in STDIN_NAMES:
                self._reader = RecordReader(self._fallback)
            else:
                self._reader = RecordReader(open_text(operand), operand)
            self._begin_file(operand)
            return True
        if self._opened_file:
            return False
        self._opened_file = True
        self._reader = RecordReader(self._fallback)
        self._begin_file("")
        return True

    def _begin_file(self, name: str) -> None:
        self.filename = name
        self.files_opened += 1
        logger.debug("Reading input from %s", name or "<stdin>")

    def skip_file(self) -> None:
        """Abandon the current file (``nextfile``, or end of file)."""
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def close(self) -> None:
        self.skip_file()
        self._exhausted = True


# ── getline sources ──────────────────────────────────────────────


class InputManager:
    """Readers for ``getline < file`` and ``cmd | getline``, keyed by name."""

    def __init__(self, stdin: TextIO):
        self._stdin = stdin
        self._files: dict[str, RecordReader] = {}
        self._commands: dict[str, tuple[RecordReader, int]] = {}

    def file_reader(self, name: str) -> Optional[RecordReader]:
        """Reader for *name*, opened on first use; None when it cannot be opened."""
        if name not in self._files:
            if name in STDIN_NAMES:
                self._files[name] = RecordReader(self._stdin)
            else:
                try:
                    self._files[name] = RecordReader(open_text(name), name)
                except OSError as exc:
                    logger.debug("getline cannot open %s: %s", name, exc)
                    return None
        return self._files[name]

    def command_reader(self, command: str) -> RecordReader:
        if command not in self._commands:
            completed = subprocess.run(
                command,
                shell=True,
                stdout=subprocess.PIPE,
                text=True,
                errors="surrogateescape",
            )
            reader = RecordReader(io.StringIO(completed.stdout))
            self._commands[command] = (reader, completed.returncode)
        return self._commands[command][0]

    def close(self, name: str) -> Optional[int]:
        """Close an input source; None when no source has that name."""
        if name in self._files:
            self._files.pop(name).close()
            return 0
        if name in self._commands:
            _, status = self._commands.pop(name)
            return status
        return None

    def close_all(self) -> None:
        for reader in self._files.values():
            reader.close()
        self._files.clear()
        self._commands.clear()


# ── Output ───────────────────────────────────────────────────────


class PipeOutput:
    """``print | "cmd"``: text is collected and fed to the command on close.

    The command's standard output is forwarded to *sink*.
    """

    def __init__(self, command: str, sink: TextIO):
        self.command = command
        self.sink = sink
        self._buffer = io.StringIO()
        self.closed = False

    def write(self, text: str) -> None:
        self._buffer.write(text)

    def flush(self) -> None:
        pass

    def close(self) -> int:
        if self.closed:
            return 0
        self.closed = True
        self.sink.flush()
        completed = subprocess.run(
            self.command,
            shell=True,
            input=self._buffer.getvalue(),
            stdout=subprocess.PIPE,
            text=True,
            errors="surrogateescape",
        )
        self.sink.write(completed.stdout)
        self.sink.flush()
        return completed.returncode


class OutputManager:
    """Destinations for ``print``/``printf``, opened on first use and kept open."""

    def __init__(self, stdout: TextIO, stderr: TextIO):
        self.stdout = stdout
        self.stderr = stderr
        self._streams: dict[str, TextIO | PipeOutput] = {}

    def stream_for(self, redirect: str, name: str) -> TextIO | PipeOutput:
        if redirect == REDIRECT_NONE or name in STDOUT_NAMES:
            return self.stdout
        if name in STDERR_NAMES:
            return self.stderr
        if name not in self._streams:
            if redirect == REDIRECT_PIPE:
                self._streams[name] = PipeOutput(name, self.stdout)
            else:
                mode = "a" if redirect == REDIRECT_APPEND else "w"
                self._streams[name] = open_text(name, mode)
            logger.debug("Opened output %r (%s)", name, redirect)
        return self._streams[name]

    def write(self, redirect: str, name: str, text: str) -> None:
        self.stream_for(redirect, name).write(text)

    def flush(self, name: Optional[str] = None) -> int:
        if name is None:
            for stream in self._streams.values():
                stream.flush()
            self.stdout.flush()
            self.stderr.flush()
            return 0
        if name in STDOUT_NAMES:
            self.stdout.flush()
            return 0
        if name in STDERR_NAMES:
            self.stderr.flush()
            return 0
        if name not in self._streams:
            return -1
        self._streams[name].flush()
        return 0

    def close(self, name: str) -> Optional[int]:
        """Close an output; None when no output has that name."""
        if name not in self._streams:
            return None
        stream = self._streams.pop(name)
        result = stream.close()
        return result if isinstance(stream, PipeOutput) else 0

    def close_all(self) -> None:
        for name in list(self._streams):
            self.close(name)
        self.stdout.flush()

    def system(self, command: str) -> int:
        """Run *command* through the shell, forwarding its output to stdout."""
        self.flush()
        completed = subprocess.run(
            command,
            shell=True,
            stdout=subprocess.PIPE,
            text=True,
            errors="surrogateescape",
        )
        self.stdout.write(completed.stdout)
        self.stdout.flush()
        return completed.returncode
