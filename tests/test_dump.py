"""Tests for the dump command line tool."""

import json

import pytest

from nrbf_records.dump import collect_inputs, decode_file, main
from nrbf_records.errors import TruncatedInput

from stream_builder import simple_stream


@pytest.fixture
def save_dir(tmp_path):
    """A directory with two good streams, one broken stream and one excluded file."""
    (tmp_path / "a.dat").write_bytes(simple_stream(1))
    (tmp_path / "b.dat").write_bytes(simple_stream(2))
    (tmp_path / "broken.dat").write_bytes(simple_stream(3)[:12])
    (tmp_path / "versionCheck.dat").write_bytes(b"\x01")
    (tmp_path / "notes.txt").write_text("not a stream")
    return tmp_path


class TestDecodeFile:
    """Tests for decoding files from disk."""

    def test_decode_file(self, tmp_path):
        """Test decoding a stream file."""
        path = tmp_path / "one.dat"
        path.write_bytes(simple_stream(9))
        result = decode_file(path)
        assert result.records[2].member_values == [9]

    def test_decode_truncated_file(self, tmp_path):
        """Test that a truncated file raises TruncatedInput."""
        path = tmp_path / "cut.dat"
        path.write_bytes(simple_stream()[:5])
        with pytest.raises(TruncatedInput):
            decode_file(str(path))


class TestCollectInputs:
    """Tests for expanding input paths."""

    def test_directory_pattern(self, save_dir):
        """Test that directories expand to matching files in name order."""
        inputs = collect_inputs([save_dir])
        assert [p.name for p in inputs] == ["a.dat", "b.dat", "broken.dat", "versionCheck.dat"]

    def test_exclude(self, save_dir):
        """Test excluding files by name."""
        inputs = collect_inputs([save_dir], exclude=["versionCheck.dat", "broken.dat"])
        assert [p.name for p in inputs] == ["a.dat", "b.dat"]

    def test_explicit_file(self, save_dir):
        """Test that an explicit file is kept regardless of the pattern."""
        inputs = collect_inputs([save_dir / "notes.txt"])
        assert inputs == [save_dir / "notes.txt"]


class TestMain:
    """Tests for the dump entry point."""

    def test_text_listing(self, save_dir, capsys):
        """Test the text listing of one file."""
        assert main([str(save_dir / "a.dat")]) == 0

        out = capsys.readouterr().out
        assert "Records: 4" in out
        assert "[2] ClassWithMembersAndTypes" in out
        assert "Name: 'C'" in out
        assert "X: 1" in out

    def test_json_output(self, save_dir, capsys):
        """Test JSON output of one file."""
        assert main(["-j", str(save_dir / "b.dat")]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["data"]["records"][2]["Members"] == {"X": 2}

    def test_batch_failure_isolated(self, save_dir, capsys):
        """Test that one broken file is reported without stopping the others."""
        out_dir = save_dir / "_JSON_DUMP"
        code = main([str(save_dir), "--exclude", "versionCheck.dat", "-o", str(out_dir)])

        assert code == 1
        assert (out_dir / "a.dat.json").exists()
        assert (out_dir / "b.dat.json").exists()
        assert not (out_dir / "broken.dat.json").exists()
        data = json.loads((out_dir / "b.dat.json").read_text())
        assert data["records"][2]["Members"] == {"X": 2}
        err = capsys.readouterr().err
        assert "broken.dat" in err
        assert "1 of 3 files failed" in err

    def test_query(self, save_dir, capsys):
        """Test running a query over a file."""
        code = main(["-q", "from ClassWithMembersAndTypes select Name, Members.X", str(save_dir / "a.dat")])

        assert code == 0
        out = capsys.readouterr().out
        assert "Rows: 1" in out
        assert "Members.X: 1" in out

    def test_query_json(self, save_dir, capsys):
        """Test query results as JSON."""
        code = main(["-j", "-q", "from BinaryLibrary", str(save_dir / "a.dat")])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["data"] == [{"_index": 1, "RecordType": "BinaryLibrary", "LibraryId": 1, "Name": "Lib"}]

    def test_invalid_query(self, save_dir, capsys):
        """Test that a malformed query fails before decoding."""
        assert main(["-q", "select", str(save_dir / "a.dat")]) == 1
        assert "Invalid query" in capsys.readouterr().err

    def test_limit(self, save_dir, capsys):
        """Test limiting the number of records shown."""
        assert main(["-n", "1", str(save_dir / "a.dat")]) == 0

        out = capsys.readouterr().out
        assert "[0] StreamHeader" in out
        assert "[1]" not in out

    def test_missing_file(self, tmp_path, capsys):
        """Test that a missing file is reported as a failure."""
        assert main([str(tmp_path / "nope.dat")]) == 1
        assert "nope.dat" in capsys.readouterr().err

    def test_no_inputs(self, tmp_path, capsys):
        """Test that an empty directory is an error."""
        assert main([str(tmp_path)]) == 1
        assert "No input files" in capsys.readouterr().err

    def test_unknown_encoding(self, save_dir, capsys):
        """Test that an unknown string encoding is reported before decoding."""
        assert main(["--encoding", "no-such-codec", str(save_dir / "a.dat")]) == 1

        captured = capsys.readouterr()
        assert "Unknown encoding: no-such-codec" in captured.err
        assert captured.out == ""
