"""
Search every file directly inside a folder for a string (ASCII case is
ignored) and summarise which files contain it. Subfolders are not entered.

usage: python3 batchscan.py <folder_path> [search_string] [--help]

After the scan you are asked whether to show the offsets of each hit and
whether to save a plain text report (arama_raporu.txt by default). Pass
--details/--no-details and --save/--no-save to answer up front.

exit codes: 0 done (hits or not), 1 no folder given, 2 folder missing,
            3 not a folder, 4 empty search string
"""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
import errno
from functools import partial
import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

import click  # pip install click
from rich.markup import escape
from rich.progress import Progress
from rich.table import Table

from chunkscan import InvalidArgument, ScanResult, needle_from_text, scan_file, validate_needle
from common import FileInfo, console, err_console, file_info, format_error, setup_logging, sizeof_fmt


logger = logging.getLogger(__name__)

BATCH_CHUNK_SIZE = 4096
DEFAULT_NEEDLE = 'MALWARE'
DEFAULT_REPORT = 'arama_raporu.txt'

# Offsets listed per file in the detailed view
DETAIL_LIMIT = 10

REPORT_TITLE = '=== FOLDER BATCH SEARCH REPORT ==='
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


class ExitCode(IntEnum):
    OK = 0
    USAGE = 1
    FOLDER_MISSING = 2
    NOT_A_DIRECTORY = 3
    EMPTY_NEEDLE = 4


class Category(Enum):
    EXECUTABLE = 'executable'
    TEXT = 'text'
    DOCUMENT = 'document'
    IMAGE = 'image'
    MEDIA = 'media'
    OTHER = 'other'


SUFFIX_CATEGORIES = {
    '.exe': Category.EXECUTABLE,
    '.dll': Category.EXECUTABLE,
    '.sys': Category.EXECUTABLE,
    '.txt': Category.TEXT,
    '.log': Category.TEXT,
    '.cfg': Category.TEXT,
    '.doc': Category.DOCUMENT,
    '.docx': Category.DOCUMENT,
    '.pdf': Category.DOCUMENT,
    '.jpg': Category.IMAGE,
    '.png': Category.IMAGE,
    '.bmp': Category.IMAGE,
    '.mp3': Category.MEDIA,
    '.wav': Category.MEDIA,
    '.mp4': Category.MEDIA,
}


def categorize(name: str) -> Category:
    return SUFFIX_CATEGORIES.get(Path(name).suffix.lower(), Category.OTHER)


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: Path
    size: int
    result: ScanResult = field(default_factory=ScanResult)
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.result.found

    @property
    def unreadable(self) -> bool:
        return self.error is not None

    @property
    def empty(self) -> bool:
        return not self.unreadable and self.size == 0

    @property
    def category(self) -> Category:
        return categorize(self.name)

    @property
    def status(self) -> str:
        return 'FOUND' if self.found else 'NOT FOUND'


@dataclass(frozen=True)
class BatchResult:
    folder: Path
    search: str
    entries: tuple = ()
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def total_files(self) -> int:
        return len(self.entries)

    @property
    def files_with_match(self) -> int:
        return sum(1 for e in self.entries if e.found)

    @property
    def files_without_match(self) -> int:
        return self.total_files - self.files_with_match

    @property
    def unreadable_files(self) -> int:
        return sum(1 for e in self.entries if e.unreadable)

    @property
    def category_counts(self) -> dict[Category, int]:
        counts = Counter(e.category for e in self.entries)
        return dict(sorted(counts.items(), key=lambda kv: kv[0].value))

    @property
    def total_size(self) -> int:
        return sum(e.size for e in self.entries)

    @property
    def total_bytes_scanned(self) -> int:
        return sum(e.result.total_bytes_scanned for e in self.entries)

    @property
    def match_rate(self) -> float:
        if not self.entries:
            return 0.0
        return self.files_with_match / self.total_files * 100

    @property
    def match_rate_text(self) -> str:
        return f'{self.match_rate:.1f}'


def list_files(folder) -> list[FileInfo]:
    """Regular files directly inside *folder*, ordered by name.

    Raises FileNotFoundError / NotADirectoryError before anything is read.
    """
    folder = Path(folder)
    if not folder.exists():
        raise FileNotFoundError(errno.ENOENT, 'folder not found', str(folder))
    if not folder.is_dir():
        raise NotADirectoryError(errno.ENOTDIR, 'not a folder', str(folder))

    files = []
    for path in sorted(folder.iterdir(), key=lambda p: p.name):
        try:
            info = file_info(path)
        except OSError as e:
            # dangling symlink or a file removed while listing
            logger.debug('skipping %s: %s', path, format_error(e))
            continue
        if info.is_file:
            files.append(info)

    logger.debug('%s: %d file(s)', folder, len(files))
    return files


def scan_entry(info: FileInfo, needle: bytes, chunk_size: int = BATCH_CHUNK_SIZE) -> FileEntry:
    """Scan one file. Read failures are recorded on the entry, never raised."""
    try:
        result = scan_file(info.path, needle, chunk_size)
    except OSError as e:
        logger.warning('cannot read %s: %s', info.path, format_error(e))
        return FileEntry(info.name, info.path, info.size, error=format_error(e))

    return FileEntry(info.name, info.path, info.size, result)


def run_batch(files: Iterable[FileInfo],
              needle: bytes,
              chunk_size: int = BATCH_CHUNK_SIZE,
              workers: int = 1,
              on_entry: Optional[Callable[[FileEntry], None]] = None) -> list[FileEntry]:
    """Scan *files* in order and return one FileEntry per file, same order.

    With workers > 1 the scans run on a thread pool; Executor.map keeps the
    input order so the output is identical to a sequential run.
    """
    validate_needle(needle)
    scan_one = partial(scan_entry, needle=needle, chunk_size=chunk_size)

    def collect(results):
        entries = []
        for entry in results:
            entries.append(entry)
            if on_entry:
                on_entry(entry)
        return entries

    if workers <= 1:
        return collect(map(scan_one, files))

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return collect(pool.map(scan_one, files))


def format_details(result: BatchResult, limit: int = DETAIL_LIMIT) -> str:
    lines = ['=== DETAILED RESULTS ===']

    for entry in result.entries:
        if not entry.found:
            continue

        offsets = ', '.join(f'0x{o:x}' for o in entry.result.offsets[:limit])
        extra = entry.result.match_count - limit
        if extra > 0:
            offsets += f' ... (+{extra} more)'

        lines += [
            '',
            f'File: {entry.name}',
            f'Path: {entry.path}',
            f'Matches: {entry.result.match_count}',
            f'Offsets: {offsets}',
        ]

    return '\n'.join(lines)


def format_report(result: BatchResult, generated: Optional[datetime] = None) -> str:
    generated = generated or datetime.now()
    lines = [
        REPORT_TITLE,
        f'Date: {generated.strftime(TIMESTAMP_FORMAT)}',
        f'Folder: {result.folder}',
        f'Search: {result.search}',
        '',
    ]

    for entry in result.entries:
        lines.append(f'File: {entry.name}')
        lines.append(f'Status: {entry.status}')
        if entry.found:
            lines.append(f'Count: {entry.result.match_count}')
        if entry.unreadable:
            lines.append(f'Error: {entry.error}')
        lines.append(f'Size: {sizeof_fmt(entry.size)}')
        lines.append('---')

    return '\n'.join(lines) + '\n'


def write_report(result: BatchResult, path, generated: Optional[datetime] = None) -> Path:
    path = Path(path)
    path.write_text(format_report(result, generated), encoding='utf-8')
    logger.debug('report written to %s', path)
    return path


def show_results(result: BatchResult):
    table = Table(title='SEARCH RESULTS', title_justify='left')
    table.add_column('File', max_width=40, overflow='ellipsis', no_wrap=True)
    table.add_column('Status')
    table.add_column('Count', justify='right')
    table.add_column('Size', justify='right')
    table.add_column('Type')

    for entry in result.entries:
        status = 'UNREADABLE' if entry.unreadable else entry.status
        count = str(entry.result.match_count) if entry.found else '-'
        table.add_row(escape(entry.name), status, count, sizeof_fmt(entry.size), entry.category.value)

    console.print(table)


def show_summary(result: BatchResult):
    search = escape(result.search)
    console.print('\n=== SUMMARY ===')
    console.print(f'Folder: {escape(str(result.folder))}')
    console.print(f'Search: {search}')
    console.print(f'Total files: {result.total_files}')
    console.print(f"Files containing '{search}': {result.files_with_match}")
    console.print(f'Files without it: {result.files_without_match}')
    if result.unreadable_files:
        console.print(f'Unreadable files: {result.unreadable_files}')

    console.print('\nFile types:')
    for category, count in result.category_counts.items():
        console.print(f'  {category.value}: {count} file(s)')

    console.print(f'Total size: {sizeof_fmt(result.total_size)}')
    console.print(f'Bytes scanned: {sizeof_fmt(result.total_bytes_scanned)}')
    console.print(f'Match rate: {result.match_rate_text}%')


def ask(question: str) -> bool:
    """y/n prompt; closed or interrupted stdin counts as no."""
    try:
        return click.confirm(question, default=False)
    except click.Abort:
        console.print()
        return False


class BatchCommand(click.Command):
    """Bad command lines exit with ExitCode.USAGE; click's 2 means a missing folder here."""

    def make_context(self, *a, **kwargs):
        try:
            return super().make_context(*a, **kwargs)
        except click.UsageError as e:
            e.exit_code = ExitCode.USAGE
            raise


@click.command(cls=BatchCommand, context_settings={'help_option_names': ['-h', '--help']})
@click.argument('folder', required=False, type=click.Path(path_type=Path))
@click.argument('search', required=False, default=DEFAULT_NEEDLE)
@click.option('--chunk-size', '-c', default=BATCH_CHUNK_SIZE, show_default=True,
              type=click.IntRange(min=1), help='read size per chunk in bytes')
@click.option('--workers', '-w', default=1, show_default=True,
              type=click.IntRange(min=1), help='files scanned in parallel')
@click.option('--report', '-r', default=DEFAULT_REPORT, show_default=True,
              type=click.Path(dir_okay=False, path_type=Path), help='where to save the report')
@click.option('--details/--no-details', default=None,
              help='show match offsets without asking')
@click.option('--save/--no-save', default=None,
              help='save the report without asking')
@click.option('--verbose', '-v', is_flag=True, help='enable debug logging')
@click.pass_context
def main(ctx, folder, search, chunk_size, workers, report, details, save, verbose):
    """Search every file in FOLDER for SEARCH (default: MALWARE)."""
    setup_logging(verbose)

    if folder is None:
        console.print(ctx.get_usage(), markup=False)
        err_console.print('Error: a folder path is required')
        ctx.exit(ExitCode.USAGE)

    try:
        files = list_files(folder)
    except NotADirectoryError:
        err_console.print(f"Error: '{escape(str(folder))}' is not a folder")
        ctx.exit(ExitCode.NOT_A_DIRECTORY)
    except OSError as e:
        err_console.print(f"Error: folder '{escape(str(folder))}' not found or not accessible ({format_error(e)})")
        ctx.exit(ExitCode.FOLDER_MISSING)

    try:
        needle = needle_from_text(search)
    except InvalidArgument as e:
        err_console.print(f'Error: {e}')
        ctx.exit(ExitCode.EMPTY_NEEDLE)

    console.print(f'Folder: {escape(str(folder))}')
    console.print(f'Search: {escape(search)}')
    console.print('Subfolders are not scanned.')
    console.rule()

    started = datetime.now()
    with Progress(console=console, transient=True) as progress:
        task = progress.add_task('Scanning...', total=len(files))
        entries = run_batch(files, needle, chunk_size, workers,
                            on_entry=lambda entry: progress.advance(task))

    result = BatchResult(folder=folder, search=search, entries=tuple(entries), started_at=started)

    if not result.entries:
        console.print('No files found in folder.')
        ctx.exit(ExitCode.OK)

    show_results(result)
    show_summary(result)

    if details is None:
        details = ask('\nShow detailed results?')
    if details:
        console.print()
        console.print(format_details(result), markup=False)

    if save is None:
        save = ask('\nSave results to a report file?')
    if save:
        try:
            write_report(result, report)
        except OSError as e:
            err_console.print(f"Error: could not write report '{escape(str(report))}' ({format_error(e)})")
        else:
            console.print(f"\nReport saved to '{escape(str(report))}'.")

    console.rule()
    console.print('Folder scan complete.')
    ctx.exit(ExitCode.OK)


if __name__ == '__main__':
    main()
