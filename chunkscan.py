"""
Chunked, case-insensitive substring search over a byte stream.

The source is read `chunk_size` bytes at a time. The last len(needle) - 1
bytes of every window are carried over in memory and prepended to the next
read, so a match straddling a chunk boundary is still seen and the source
never has to be seekable.

usage:
    with open(path, 'rb') as fp:
        result = scan(ScanRequest(fp, b'needle'))
    print(result.offsets)
"""

from collections import namedtuple
from dataclasses import dataclass
import logging
import os
from typing import BinaryIO, Callable, Generator, Optional


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8192

Match = namedtuple('Match', 'offset')

ProgressCallback = Callable[[int], None]


class InvalidArgument(ValueError):
    pass


def validate_needle(needle):
    if not isinstance(needle, (bytes, bytearray)):
        raise InvalidArgument(f'needle must be bytes, not {type(needle).__name__}')
    if not needle:
        raise InvalidArgument('search string must not be empty')


def needle_from_text(text: str) -> bytes:
    """Encode a command line search string the way the OS handed it to us."""
    needle = os.fsencode(text)
    validate_needle(needle)
    return needle


def fold(data: bytes) -> bytes:
    # bytes.lower() only touches A-Z, everything else compares by raw value
    return bytes(data).lower()


@dataclass(frozen=True)
class ScanRequest:
    source: BinaryIO
    needle: bytes
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        validate_needle(self.needle)
        if self.chunk_size < 1:
            raise InvalidArgument(f'chunk size must be positive, got {self.chunk_size}')


@dataclass(frozen=True)
class ScanResult:
    total_bytes_scanned: int = 0
    matches: tuple = ()

    @property
    def match_count(self) -> int:
        return len(self.matches)

    @property
    def found(self) -> bool:
        return bool(self.matches)

    @property
    def offsets(self) -> list[int]:
        return [m.offset for m in self.matches]


def read_windows(fp, chunk_size: int, overlap: int) -> Generator[tuple[bytes, int], None, None]:
    """Yield (window, offset) pairs, offset being the window's absolute start.

    Each window is the freshly read chunk prefixed by up to `overlap` bytes
    of the previous window.
    """
    tail = b''
    pos = 0

    while True:
        chunk = fp.read(chunk_size)
        if not chunk:
            return

        window = tail + chunk
        yield window, pos - len(tail)

        pos += len(chunk)
        tail = window[-overlap:] if overlap else b''


def iter_matches(request: ScanRequest,
                 on_progress: Optional[ProgressCallback] = None) -> Generator[Match, None, None]:
    """Yield every Match in ascending offset order, overlapping hits included.

    on_progress, if given, receives the running total of bytes read after
    each chunk has been searched.
    """
    needle = fold(request.needle)
    overlap = len(needle) - 1

    for window, offset in read_windows(request.source, request.chunk_size, overlap):
        haystack = fold(window)

        found = haystack.find(needle)
        while found > -1:
            yield Match(offset + found)
            found = haystack.find(needle, found + 1)

        if on_progress:
            on_progress(offset + len(window))


def scan(request: ScanRequest, on_progress: Optional[ProgressCallback] = None) -> ScanResult:
    scanned = 0

    def track(nbytes):
        nonlocal scanned
        scanned = nbytes
        if on_progress:
            on_progress(nbytes)

    matches = tuple(iter_matches(request, on_progress=track))
    return ScanResult(total_bytes_scanned=scanned, matches=matches)


def scan_file(path, needle: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE,
              on_progress: Optional[ProgressCallback] = None) -> ScanResult:
    """Scan the file at *path*. OSError from open/read propagates unchanged."""
    validate_needle(needle)

    logger.debug('scanning %s for %r (chunk size %d)', path, needle, chunk_size)
    with open(path, 'rb') as fp:
        result = scan(ScanRequest(fp, needle, chunk_size), on_progress=on_progress)

    logger.debug('%s: %d match(es) in %d bytes', path, result.match_count, result.total_bytes_scanned)
    return result
