"""
Show the first two bytes of a file as ASCII, hex and decimal, and guess the
file type from its magic number.

usage: python3 headsniff.py <file_path>
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
import logging
from typing import Optional

from rich.markup import escape

from common import UsageParser, console, err_console, format_error, setup_logging


logger = logging.getLogger(__name__)

HEADER_SIZE = 2


class ExitCode(IntEnum):
    OK = 0
    FAILURE = 1


class FileKind(Enum):
    PE = 'PE Executable'
    JPEG = 'JPEG'
    PNG = 'PNG'
    ZIP = 'ZIP'
    GZIP = 'GZIP'
    BMP = 'BMP'
    GIF = 'GIF'
    PDF = 'PDF'
    RAR = 'RAR'
    UNKNOWN = 'Unknown'

    @property
    def description(self) -> str:
        return _DESCRIPTIONS.get(self, '')


_DESCRIPTIONS = {
    FileKind.PE: '.exe, .dll',
    FileKind.JPEG: 'image',
    FileKind.PNG: 'image',
    FileKind.ZIP: 'archive or Office document',
    FileKind.GZIP: 'archive',
    FileKind.BMP: 'image',
    FileKind.GIF: 'image',
    FileKind.PDF: 'document',
    FileKind.RAR: 'archive',
}

# Checked top to bottom, first hit wins
MAGIC_TABLE = (
    (b'\x4D\x5A', FileKind.PE),     # MZ
    (b'\xFF\xD8', FileKind.JPEG),
    (b'\x89\x50', FileKind.PNG),    # .P
    (b'\x50\x4B', FileKind.ZIP),    # PK
    (b'\x1F\x8B', FileKind.GZIP),
    (b'\x42\x4D', FileKind.BMP),    # BM
    (b'\x47\x49', FileKind.GIF),    # GI
    (b'\x25\x50', FileKind.PDF),    # %P
    (b'\x52\x61', FileKind.RAR),    # Ra
)


def classify(prefix: bytes) -> FileKind:
    """Match the leading bytes against MAGIC_TABLE.

    A prefix shorter than a magic number never matches it, so a one byte
    file is always UNKNOWN.
    """
    for magic, kind in MAGIC_TABLE:
        if prefix.startswith(magic):
            return kind
    return FileKind.UNKNOWN


@dataclass(frozen=True)
class HeaderInfo:
    first_bytes: bytes
    kind: Optional[FileKind]

    @property
    def empty(self) -> bool:
        return not self.first_bytes

    @property
    def ascii(self) -> str:
        return ''.join(chr(b) if 32 <= b <= 126 else '.' for b in self.first_bytes)

    @property
    def hex(self) -> str:
        return ' '.join(f'{b:02X}' for b in self.first_bytes)

    @property
    def decimal(self) -> str:
        return ' '.join(str(b) for b in self.first_bytes)

    @property
    def label(self) -> str:
        if self.kind is None:
            return 'empty'
        if self.kind.description:
            return f'{self.kind.value} ({self.kind.description})'
        return self.kind.value


def read_header(path, size=HEADER_SIZE) -> bytes:
    with open(path, 'rb') as f:
        return f.read(size)


def sniff(path) -> HeaderInfo:
    """Read and classify the header of *path*. OSError propagates."""
    head = read_header(path)
    logger.debug('%s: header %r', path, head)
    if not head:
        return HeaderInfo(first_bytes=b'', kind=None)
    return HeaderInfo(first_bytes=head, kind=classify(head))


def parse_args(argv=None):
    parser = UsageParser(
        description='Read the first two bytes of a file, print them as ASCII, '
                    'hex and decimal, and guess the file type.',
        usage_exit_code=ExitCode.FAILURE,
    )

    parser.add_argument('file',
                        help='file to inspect')

    parser.add_argument('-v', '--verbose',
                        action='store_true',
                        help='enable debug logging')

    return parser.parse_args(argv)


def show(path, info: HeaderInfo):
    console.print('\n=== FILE HEADER READER ===')
    console.print(f'File: {escape(str(path))}')
    console.print(f'Bytes read: {len(info.first_bytes)}')
    console.print(f'\nFirst bytes: {escape(info.ascii)}')
    console.print(f'Hex: {info.hex}')
    console.print(f'Decimal: {info.decimal}')
    console.print(f'\nPredicted type: {info.label}')


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if not args.file:
        err_console.print('Error: invalid file path')
        return ExitCode.FAILURE

    try:
        info = sniff(args.file)
    except OSError as e:
        err_console.print(f"Error: could not read '{escape(args.file)}' ({format_error(e)})")
        return ExitCode.FAILURE

    if info.empty:
        console.print(f"Warning: '{escape(args.file)}' is empty.")
    else:
        show(args.file, info)

    console.print('\nDone.')
    return ExitCode.OK


if __name__ == '__main__':
    raise SystemExit(main())
