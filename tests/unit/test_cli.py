"""Tests for the bos-driver command-line interface."""

import io
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from bos_driver.cli import format_size, main
from bos_driver.exceptions import PathNotFoundError, UnsupportedMethodError
from bos_driver.storage_driver import FileInfo, StorageDriver


def _fake_driver():
    driver = MagicMock(spec=StorageDriver)
    driver.name.return_value = "bos"
    return driver


class TestMainCommands:
    """Test suite for top-level CLI behaviour."""

    def test_version_command(self):
        """Test version command displays version information."""
        result = CliRunner().invoke(main, ["version"])

        assert result.exit_code == 0
        assert "bos-driver version 0.1.0" in result.output

    def test_main_help_lists_commands(self):
        """Test main help shows the driver operations."""
        result = CliRunner().invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("cat", "put", "stat", "ls", "mv", "rm", "url"):
            assert command in result.output

    def test_missing_config_file_fails(self, tmp_path):
        """Test that a missing config file exits with an error."""
        result = CliRunner().invoke(
            main, ["--config", str(tmp_path / "missing.yml"), "stat", "a"]
        )

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_driver_built_from_config(self, tmp_path):
        """Test that the storage section of the config selects the driver."""
        config_file = tmp_path / "config.yml"
        config_file.write_text(
            "storage:\n  bos:\n    accesskeyid: ak\n    accesskeysecret: sk\n    bucket: registry\n"
        )
        fake = _fake_driver()
        fake.list.return_value = ["b.txt"]

        with patch("bos_driver.cli.default_registry") as mock_registry:
            mock_registry.return_value.create.return_value = fake
            result = CliRunner().invoke(main, ["--config", str(config_file), "ls", "a"])

        assert result.exit_code == 0
        mock_registry.return_value.create.assert_called_once_with(
            "bos", {"accesskeyid": "ak", "accesskeysecret": "sk", "bucket": "registry"}
        )
        assert result.output.strip() == "b.txt"

    def test_missing_parameter_in_config(self, tmp_path):
        """Test that a missing required parameter is reported by name."""
        config_file = tmp_path / "config.yml"
        config_file.write_text("storage:\n  bos:\n    accesskeyid: ak\n    bucket: registry\n")

        result = CliRunner().invoke(main, ["--config", str(config_file), "ls", "a"])

        assert result.exit_code == 1
        assert "No accesskeysecret parameter provided" in result.output


class TestDriverCommands:
    """Test suite for commands that run driver operations."""

    def test_cat_writes_content(self):
        """Test that cat streams the object to stdout and closes the stream."""
        driver = _fake_driver()
        stream = MagicMock(wraps=io.BytesIO(b"layer-bytes"))
        driver.reader.return_value = stream

        result = CliRunner().invoke(main, ["cat", "a/b.txt"], obj={"DRIVER": driver})

        assert result.exit_code == 0
        assert result.stdout_bytes == b"layer-bytes"
        driver.reader.assert_called_once_with("a/b.txt", 0)
        stream.close.assert_called_once()

    def test_cat_emits_no_deprecation_warning(self, recwarn):
        """Test that cat writes binary output without deprecated click helpers."""
        driver = _fake_driver()
        driver.reader.return_value = io.BytesIO(b"blob")

        result = CliRunner().invoke(main, ["cat", "a/b.txt"], obj={"DRIVER": driver})

        assert result.exit_code == 0
        assert result.stdout_bytes == b"blob"
        assert not [
            w
            for w in recwarn
            if issubclass(w.category, DeprecationWarning) and "click" in str(w.message).lower()
        ]

    def test_cat_missing_path(self):
        """Test that cat reports a missing object and exits 1."""
        driver = _fake_driver()
        driver.reader.side_effect = PathNotFoundError("a/b.txt")

        result = CliRunner().invoke(main, ["cat", "a/b.txt"], obj={"DRIVER": driver})

        assert result.exit_code == 1
        assert "Path not found: a/b.txt" in result.output

    def test_put_from_stdin(self):
        """Test that put streams stdin through write_stream."""
        driver = _fake_driver()
        driver.write_stream.return_value = 10

        result = CliRunner().invoke(
            main, ["put", "a/b.txt"], input=b"0123456789", obj={"DRIVER": driver}
        )

        assert result.exit_code == 0
        path, offset, source = driver.write_stream.call_args[0]
        assert (path, offset) == ("a/b.txt", 0)
        assert "Wrote 10 B to a/b.txt" in result.output

    def test_put_from_file(self, tmp_path):
        """Test that put reads the named file."""
        driver = _fake_driver()
        driver.write_stream.side_effect = lambda path, offset, source: len(source.read())
        source_file = tmp_path / "blob"
        source_file.write_bytes(b"x" * 2048)

        result = CliRunner().invoke(
            main, ["put", "big/blob", str(source_file)], obj={"DRIVER": driver}
        )

        assert result.exit_code == 0
        assert "Wrote 2.0 KiB to big/blob" in result.output

    def test_stat_file_and_directory(self):
        """Test stat output for files and directories."""
        driver = _fake_driver()
        driver.stat.side_effect = [
            FileInfo(path="a/b.txt", size=10, is_dir=False),
            FileInfo(path="a", size=None, is_dir=True),
        ]
        runner = CliRunner()

        file_result = runner.invoke(main, ["stat", "a/b.txt"], obj={"DRIVER": driver})
        dir_result = runner.invoke(main, ["stat", "a"], obj={"DRIVER": driver})

        assert file_result.output.strip() == "a/b.txt\tfile\t10"
        assert dir_result.output.strip() == "a\tdirectory"

    def test_ls_prints_children(self):
        """Test that ls prints one child per line."""
        driver = _fake_driver()
        driver.list.return_value = ["README", "_layers", "_manifests"]

        result = CliRunner().invoke(main, ["ls", "repo"], obj={"DRIVER": driver})

        assert result.exit_code == 0
        assert result.output.splitlines() == ["README", "_layers", "_manifests"]

    def test_mv(self):
        """Test that mv calls move."""
        driver = _fake_driver()

        result = CliRunner().invoke(main, ["-q", "mv", "src", "dst"], obj={"DRIVER": driver})

        assert result.exit_code == 0
        driver.move.assert_called_once_with("src", "dst")

    def test_rm_requires_confirmation(self):
        """Test that rm aborts unless confirmed."""
        driver = _fake_driver()

        result = CliRunner().invoke(main, ["rm", "tree"], input="n\n", obj={"DRIVER": driver})

        assert result.exit_code == 1
        driver.delete.assert_not_called()

    def test_rm_with_yes(self):
        """Test that rm --yes deletes without prompting."""
        driver = _fake_driver()

        result = CliRunner().invoke(main, ["rm", "--yes", "tree"], obj={"DRIVER": driver})

        assert result.exit_code == 0
        driver.delete.assert_called_once_with("tree")

    def test_url_unsupported(self):
        """Test that url reports the unsupported method."""
        driver = _fake_driver()
        driver.url_for.side_effect = UnsupportedMethodError("url_for")

        result = CliRunner().invoke(main, ["url", "a/b.txt"], obj={"DRIVER": driver})

        assert result.exit_code == 1
        assert "unsupported method: url_for" in result.output


class TestFormatSize:
    """Test suite for format_size helper."""

    def test_format_size(self):
        """Test human-readable byte counts."""
        assert format_size(10) == "10 B"
        assert format_size(2048) == "2.0 KiB"
        assert format_size(6 * 1024 * 1024) == "6.0 MiB"
