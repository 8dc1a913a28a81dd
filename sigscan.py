"""
Find every occurrence of a string in one file, ignoring ASCII case.

usage: python3 sigscan.py <file_path> <search_string> [--chunk-size N]

exit codes: 0 found, 4 not found, 2 file missing or unreadable,
            3 empty search string, 1 bad command line
"""

from enum import IntEnum

from rich.markup import escape
from rich.progress import Progress

from chunkscan import DEFAULT_CHUNK_SIZE, InvalidArgument, ScanRequest, iter_matches, needle_from_text
from common import UsageParser, console, err_console, file_info, format_error, setup_logging


# Files bigger than this get a progress bar
PROGRESS_THRESHOLD = 1024 * 1024


class ExitCode(IntEnum):
    FOUND = 0
    USAGE = 1
    FILE_ERROR = 2
    EMPTY_NEEDLE = 3
    NOT_FOUND = 4


def parse_args(argv=None):
    parser = UsageParser(
        description='Case-insensitive search for a string inside a file. '
                    'Every hit is reported with its hex and decimal offset.',
        usage_exit_code=ExitCode.USAGE,
    )

    parser.add_argument('file',
                        help='file to scan')

    parser.add_argument('needle',
                        metavar='search_string',
                        help='text to look for (compared case-insensitively)')

    parser.add_argument('-c', '--chunk-size',
                        type=int,
                        default=DEFAULT_CHUNK_SIZE,
                        metavar='BYTES',
                        help=f'read size per chunk; default: {DEFAULT_CHUNK_SIZE}')

    parser.add_argument('-v', '--verbose',
                        action='store_true',
                        help='enable debug logging')

    return parser.parse_args(argv)


def show_file_info(info):
    console.print('\n=== FILE INFO ===')
    console.print(f'Name: {escape(info.name)}')
    console.print(f'Size: {info.size} bytes')
    console.print(f"Attributes: {', '.join(info.attributes) or '-'}")


def scan_and_report(info, needle: bytes, label: str, chunk_size: int) -> int:
    """Print each hit as it is found; returns the number of hits."""
    count = 0
    progress = Progress(console=console,
                        transient=True,
                        disable=info.size <= PROGRESS_THRESHOLD)
    task = progress.add_task('Scanning...', total=info.size)

    with progress, open(info.path, 'rb') as fp:
        request = ScanRequest(fp, needle, chunk_size)
        for match in iter_matches(request, on_progress=lambda n: progress.update(task, completed=n)):
            progress.console.print(f"FOUND: '{label}' at 0x{match.offset:X} ({match.offset})")
            count += 1

    return count


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        info = file_info(args.file)
    except OSError as e:
        err_console.print(f"Error: '{escape(args.file)}' not found or not accessible ({format_error(e)})")
        return ExitCode.FILE_ERROR

    if not info.is_file:
        err_console.print(f"Error: '{escape(args.file)}' is not a regular file")
        return ExitCode.FILE_ERROR

    try:
        needle = needle_from_text(args.needle)
    except InvalidArgument as e:
        err_console.print(f'Error: {e}')
        return ExitCode.EMPTY_NEEDLE

    label = escape(args.needle)
    show_file_info(info)

    console.print(f'\nFile: {escape(str(info.path))}')
    console.print(f'Search: {label}')
    if info.size == 0:
        console.print('File is empty, nothing to scan.')
    console.print()

    try:
        count = scan_and_report(info, needle, label, args.chunk_size)
    except InvalidArgument as e:
        err_console.print(f'Error: {e}')
        return ExitCode.USAGE
    except OSError as e:
        err_console.print(f"Error: failed reading '{escape(args.file)}' ({format_error(e)})")
        return ExitCode.FILE_ERROR

    console.print('\nSearch complete.')
    if count:
        console.print(f"Found {count} occurrence(s) of '{label}'.")
        return ExitCode.FOUND

    console.print(f"'{label}' not found.")
    return ExitCode.NOT_FOUND


if __name__ == '__main__':
    raise SystemExit(main())
