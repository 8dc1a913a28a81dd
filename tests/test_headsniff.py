"""
Tests for headsniff
===================
Run with:  pytest tests/test_headsniff.py -v
"""

import pytest

from headsniff import ExitCode, FileKind, HeaderInfo, MAGIC_TABLE, classify, main, read_header, sniff


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------

class TestClassify:
    @pytest.mark.parametrize('prefix, label', [
        (b'\x4D\x5A', 'PE Executable'),
        (b'\xFF\xD8', 'JPEG'),
        (b'\x89\x50', 'PNG'),
        (b'\x50\x4B', 'ZIP'),
        (b'\x1F\x8B', 'GZIP'),
        (b'\x42\x4D', 'BMP'),
        (b'\x47\x49', 'GIF'),
        (b'\x25\x50', 'PDF'),
        (b'\x52\x61', 'RAR'),
        (b'\x00\x00', 'Unknown'),
        (b'\x5A\x4D', 'Unknown'),
    ])
    def test_known_prefixes(self, prefix, label):
        assert classify(prefix).value == label

    def test_single_byte_is_unknown(self):
        assert classify(b'\x4D') is FileKind.UNKNOWN

    def test_only_first_two_bytes_matter(self):
        assert classify(b'MZ\x90\x00') is FileKind.PE

    def test_table_covers_every_kind_but_unknown(self):
        kinds = {kind for _, kind in MAGIC_TABLE}
        assert kinds == set(FileKind) - {FileKind.UNKNOWN}


# ---------------------------------------------------------------------------
# HeaderInfo
# ---------------------------------------------------------------------------

class TestHeaderInfo:
    def test_renderings(self):
        info = HeaderInfo(first_bytes=b'\x89P', kind=FileKind.PNG)
        assert info.ascii == '.P'
        assert info.hex == '89 50'
        assert info.decimal == '137 80'

    def test_hex_is_uppercase_and_padded(self):
        info = HeaderInfo(first_bytes=b'\x0a\xff', kind=FileKind.UNKNOWN)
        assert info.hex == '0A FF'

    def test_label_with_description(self):
        info = HeaderInfo(first_bytes=b'MZ', kind=FileKind.PE)
        assert info.label == 'PE Executable (.exe, .dll)'

    def test_label_unknown(self):
        assert HeaderInfo(first_bytes=b'??', kind=FileKind.UNKNOWN).label == 'Unknown'

    def test_empty(self):
        info = HeaderInfo(first_bytes=b'', kind=None)
        assert info.empty
        assert info.label == 'empty'


# ---------------------------------------------------------------------------
# sniff
# ---------------------------------------------------------------------------

class TestSniff:
    def test_reads_two_bytes(self, tmp_path):
        path = tmp_path / 'app.exe'
        path.write_bytes(b'MZ\x90\x00\x03')
        assert read_header(path) == b'MZ'
        info = sniff(path)
        assert info.first_bytes == b'MZ'
        assert info.kind is FileKind.PE

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty'
        path.write_bytes(b'')
        info = sniff(path)
        assert info.empty
        assert info.kind is None

    def test_one_byte_file(self, tmp_path):
        path = tmp_path / 'one'
        path.write_bytes(b'\xFF')
        info = sniff(path)
        assert info.first_bytes == b'\xFF'
        assert info.kind is FileKind.UNKNOWN

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            sniff(tmp_path / 'missing')


# ---------------------------------------------------------------------------
# command line
# ---------------------------------------------------------------------------

class TestMain:
    def test_success(self, tmp_path, capsys):
        path = tmp_path / 'pic.jpg'
        path.write_bytes(b'\xFF\xD8\xFF\xE0')
        assert main([str(path)]) == ExitCode.OK
        out = capsys.readouterr().out
        assert 'Hex: FF D8' in out
        assert 'Decimal: 255 216' in out
        assert 'Predicted type: JPEG' in out

    def test_empty_file_is_success(self, tmp_path, capsys):
        path = tmp_path / 'empty.txt'
        path.write_bytes(b'')
        assert main([str(path)]) == ExitCode.OK
        assert 'is empty' in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert main([str(tmp_path / 'missing.bin')]) == ExitCode.FAILURE

    def test_directory_is_failure(self, tmp_path):
        assert main([str(tmp_path)]) == ExitCode.FAILURE

    def test_blank_path(self):
        assert main(['']) == ExitCode.FAILURE

    def test_missing_argument_exits_1(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1
