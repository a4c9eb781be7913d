"""Unit tests for the kvguard command-line interface."""

from __future__ import annotations

from pathlib import Path

import pytest

from kvguard.cli.main import build_arg_parser, main


@pytest.fixture
def root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Provide an isolated cache directory and working directory."""
    for name in ("KVGUARD_LOG_LEVEL", "KVGUARD_STORE_BACKEND", "KVGUARD_STORE_ROOT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path / "cache"


def run(root: Path, *args: str) -> int:
    return main(["--root", str(root), *args])


class TestArgParser:
    """Tests for argument parsing."""

    def test_scope_is_case_insensitive(self):
        """Test scope names are lower-cased before validation."""
        args = build_arg_parser().parse_args(["get", "p", "--scope", "USER"])
        assert args.scope == "user"

    def test_unknown_scope_rejected(self):
        """Test unknown scopes are rejected by the parser."""
        with pytest.raises(SystemExit):
            build_arg_parser().parse_args(["get", "p", "--scope", "galaxy"])

    def test_command_required(self):
        """Test a subcommand is mandatory."""
        with pytest.raises(SystemExit):
            build_arg_parser().parse_args([])


class TestCommands:
    """Tests for the get/put/check/clear/clean commands."""

    def test_put_then_get(self, root: Path, capsys):
        """Test a stored value is printed back as JSON."""
        assert run(root, "put", "reports/q3", '{"total": 42}') == 0
        capsys.readouterr()

        assert run(root, "get", "reports/q3") == 0
        assert '"total": 42' in capsys.readouterr().out

    def test_files_land_in_scope_directory(self, root: Path):
        """Test entries are written under the scope sub-directory."""
        run(root, "put", "p", "1", "--scope", "user")
        assert any((root / "user").iterdir())

    def test_get_cached_null(self, root: Path, capsys):
        """Test a cached JSON null is printed rather than reported missing."""
        assert run(root, "put", "p", "null") == 0
        capsys.readouterr()

        assert run(root, "get", "p") == 0
        out = capsys.readouterr().out
        assert "null" in out
        assert "No valid cache entry" not in out

    def test_get_missing(self, root: Path, capsys):
        """Test a miss exits 1."""
        assert run(root, "get", "nothing") == 1
        assert "No valid cache entry" in capsys.readouterr().out

    def test_put_invalid_json(self, root: Path, capsys):
        """Test non-JSON values are rejected."""
        assert run(root, "put", "p", "{oops") == 1
        assert "not valid JSON" in capsys.readouterr().out

    def test_put_invalid_expiration(self, root: Path, capsys):
        """Test malformed expirations are reported."""
        assert run(root, "put", "p", "1", "--expiration", "soon") == 1
        assert "Invalid duration format" in capsys.readouterr().out

    def test_check_respects_content(self, root: Path):
        """Test check validates against content."""
        run(root, "put", "p", "[1, 2]", "--content", "v1")

        assert run(root, "check", "p", "--content", "v1") == 0
        assert run(root, "check", "p", "--content", "v2") == 1

    def test_scopes_are_separate(self, root: Path):
        """Test an entry in one scope is invisible in another."""
        run(root, "put", "p", "1", "--scope", "script")

        assert run(root, "check", "p", "--scope", "script") == 0
        assert run(root, "check", "p", "--scope", "document") == 1

    def test_clear(self, root: Path):
        """Test clear removes the entry."""
        run(root, "put", "p", "1")
        assert run(root, "clear", "p") == 0
        assert run(root, "check", "p") == 1

    def test_clean_reports_counts(self, root: Path, capsys):
        """Test clean reports how many paths were checked."""
        run(root, "put", "a", "1")
        capsys.readouterr()

        assert run(root, "clean", "a", "b") == 0
        assert "Checked 2 path(s), removed 0" in capsys.readouterr().out

    def test_missing_config_file(self, root: Path, capsys):
        """Test an explicit missing config exits 1."""
        assert main(["--config", "missing.yaml", "get", "p"]) == 1
        assert "Could not load config" in capsys.readouterr().out

    def test_root_from_config(self, tmp_path: Path, root: Path):
        """Test store.root from the config file is used without --root."""
        config_path = tmp_path / "kvguard.yaml"
        config_path.write_text(f"store:\n  root: {tmp_path / 'from_config'}\n", encoding="utf-8")

        assert main(["put", "p", "1"]) == 0
        assert (tmp_path / "from_config" / "document").is_dir()
