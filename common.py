"""
Shared plumbing for the inspection scripts: consoles, logging, argument
errors and a portable view of a file on disk.
"""

from argparse import ArgumentParser
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import stat
import sys

from rich.console import Console
from rich.logging import RichHandler


console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

LOG_FORMAT = '%(message)s'


def setup_logging(verbose=False):
    """Route the root logger through rich. DEBUG if verbose, else WARNING."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def format_error(e: BaseException):
    ecls = e.__class__.__name__
    emsg = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
    if isinstance(e, OSError) and e.errno:
        return f'{ecls}: {emsg} (errno {e.errno})'
    return f'{ecls}: {emsg}'


def sizeof_fmt(num):
    """Human readable size, floored to whole units (512 B, 3 KB, 1 MB)."""
    for unit in ('B', 'KB', 'MB'):
        if num < 1024:
            return f'{num} {unit}'
        num //= 1024
    return f'{num} GB'


class UsageParser(ArgumentParser):
    """ArgumentParser whose usage errors exit with a configurable code.

    argparse exits with 2 on a bad command line, which the scripts reserve
    for missing files.
    """

    def __init__(self, *a, usage_exit_code=1, **kwargs):
        self.usage_exit_code = usage_exit_code
        super().__init__(*a, **kwargs)

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(self.usage_exit_code, f'{self.prog}: error: {message}\n')


@dataclass(frozen=True)
class FileInfo:
    name: str
    path: Path
    size: int
    is_file: bool
    read_only: bool = False
    hidden: bool = False

    @property
    def attributes(self) -> list[str]:
        attrs = []
        if self.read_only:
            attrs.append('read-only')
        if self.hidden:
            attrs.append('hidden')
        return attrs


def file_info(path) -> FileInfo:
    """Stat *path* (following symlinks). Raises OSError if it can't be stat'ed."""
    path = Path(path)
    st = os.stat(path)
    return FileInfo(
        name=path.name,
        path=path,
        size=st.st_size,
        is_file=stat.S_ISREG(st.st_mode),
        read_only=not st.st_mode & stat.S_IWUSR,
        hidden=path.name.startswith('.'),
    )
