"""
Tests for the command line entry point.
"""

import logging

import pytest

from filecabinet.batch import OperationKind
from filecabinet.ledger.checksum import ChecksumLedger
from filecabinet.main import (
    PASSWORD_ENV,
    build_parser,
    load_password,
    main,
    parse_operation,
)
from filecabinet.utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    """Keep handlers installed by main() from outliving the test's streams."""
    monkeypatch.delenv(PASSWORD_ENV, raising=False)
    yield
    logging.getLogger("filecabinet").handlers.clear()


@pytest.fixture
def password_file(tmp_path):
    path = tmp_path / "password.txt"
    path.write_text("hunter2\n", encoding="utf-8")
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_one_operation_required(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([])

        assert exc_info.value.code == 2

    def test_operations_are_exclusive(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--verify", ".", "--serve"])

        assert exc_info.value.code == 2

    @pytest.mark.parametrize("argv,kind", [
        (["--verify", "docs"], OperationKind.VERIFY),
        (["-e", "a.pdf", "b.pdf"], OperationKind.ENCRYPT),
        (["-D", "a.pdf.vault"], OperationKind.DECRYPT),
        (["-n", "a.pdf"], OperationKind.NORMALIZE),
        (["-w"], OperationKind.SERVE),
    ])
    def test_parse_operation(self, argv, kind):
        operation = parse_operation(build_parser().parse_args(argv))

        assert operation.kind is kind

    def test_paths_keep_order(self):
        operation = parse_operation(build_parser().parse_args(["-e", "b.pdf", "a.pdf"]))

        assert [p.name for p in operation.paths] == ["b.pdf", "a.pdf"]


class TestLoadPassword:
    """Tests for password loading."""

    def test_strips_one_trailing_newline(self, tmp_path):
        path = tmp_path / "pw"
        path.write_text("secret\n\n", encoding="utf-8")

        assert load_password(path) == "secret\n"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "pw"
        path.write_text("\n", encoding="utf-8")

        assert load_password(path) is None

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv(PASSWORD_ENV, "from-env")

        assert load_password() == "from-env"

    def test_no_password(self):
        assert load_password() is None

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_password(tmp_path / "missing")


class TestMain:
    """End-to-end runs of main()."""

    def test_encrypt_without_password(self, tmp_path, capsys):
        """Test a missing password stops the run before any file is touched."""
        source = tmp_path / "a.pdf"
        source.write_bytes(b"data")

        assert main(["-e", str(source)]) == 1

        assert "password" in capsys.readouterr().err
        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.pdf"]

    def test_empty_password_file(self, tmp_path, capsys):
        source = tmp_path / "a.pdf"
        source.write_bytes(b"data")
        empty = tmp_path / "empty"
        empty.write_text("", encoding="utf-8")

        assert main(["-D", str(source) + ".vault", "-p", str(empty)]) == 1

    def test_encrypt_then_decrypt(self, tmp_path, capsys, password_file, fast_config_file):
        source = tmp_path / "a.pdf"
        source.write_bytes(b"data")
        args = ["-p", str(password_file), "-c", str(fast_config_file)]

        assert main(["-e", str(source)] + args) == 0

        container = tmp_path / "a.pdf.vault"
        assert container.exists()
        assert (tmp_path / "a.pdf.vault.sha256").exists()

        source.unlink()
        assert main(["-D", str(container)] + args) == 0
        assert source.read_bytes() == b"data"

        out = capsys.readouterr().out
        assert "encrypt complete: 1 succeeded, 0 failed" in out
        assert "decrypt complete: 1 succeeded, 0 failed" in out

    def test_password_from_environment(self, tmp_path, monkeypatch, fast_config_file):
        monkeypatch.setenv(PASSWORD_ENV, "from-env")
        source = tmp_path / "a.pdf"
        source.write_bytes(b"data")

        assert main(["-e", str(source), "-c", str(fast_config_file)]) == 0
        assert (tmp_path / "a.pdf.vault").exists()

    def test_wrong_password_still_exits_zero(self, tmp_path, capsys, fast_config_file):
        """Test per-target failures are reported but do not change the exit status."""
        source = tmp_path / "a.pdf"
        source.write_bytes(b"data")
        right = tmp_path / "right"
        right.write_text("right", encoding="utf-8")
        wrong = tmp_path / "wrong"
        wrong.write_text("wrong", encoding="utf-8")
        main(["-e", str(source), "-p", str(right), "-c", str(fast_config_file)])
        source.unlink()

        code = main([
            "-D", str(tmp_path / "a.pdf.vault"),
            "-p", str(wrong), "-c", str(fast_config_file)
        ])

        assert code == 0
        assert "decrypt complete: 0 succeeded, 1 failed" in capsys.readouterr().out
        assert not source.exists()

    def test_verify_needs_no_password(self, tmp_path, capsys, fast_config_file):
        subject = tmp_path / "a.pdf"
        subject.write_bytes(b"before")
        ChecksumLedger().generate(subject)
        subject.write_bytes(b"after")
        (tmp_path / "b.pdf").write_bytes(b"unchecked")

        assert main(["--verify", str(tmp_path), "-c", str(fast_config_file)]) == 0

        out = capsys.readouterr().out
        assert "verify complete: 0 succeeded, 1 failed" in out
        assert "Missing checksum: 1 file(s)" in out

    def test_verify_missing_directory(self, tmp_path, capsys, fast_config_file):
        code = main(["--verify", str(tmp_path / "nope"), "-c", str(fast_config_file)])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_normalize_needs_no_password(self, tmp_path, fast_config_file):
        source = tmp_path / "20200403_BankA_Statement_pg2.pdf"
        source.write_bytes(b"data")

        assert main(["-n", str(source), "-c", str(fast_config_file)]) == 0
        assert (tmp_path / "2020-04-03_BankA_Statement_2.pdf").exists()

    def test_serve_without_password(self, capsys):
        assert main(["--serve"]) == 1

    def test_bad_config(self, tmp_path, capsys, password_file):
        config = tmp_path / "bad.yaml"
        config.write_text("security: [\n", encoding="utf-8")

        assert main(["-e", "a.pdf", "-p", str(password_file), "-c", str(config)]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_config_is_directory(self, tmp_path, capsys):
        assert main(["--verify", str(tmp_path), "-c", str(tmp_path)]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_config_section_not_a_mapping(self, tmp_path, capsys):
        config = tmp_path / "bad.yaml"
        config.write_text("security: [1, 2]\n", encoding="utf-8")

        assert main(["--verify", str(tmp_path), "-c", str(config)]) == 1
        assert "security" in capsys.readouterr().err

    def test_negative_worker_count(self, tmp_path, capsys):
        """Test a bad pool size stops the run before any file is renamed."""
        config = tmp_path / "bad.yaml"
        config.write_text("batch:\n  max_workers: -2\n", encoding="utf-8")
        first = tmp_path / "20200403_BankA_Statement_1.pdf"
        second = tmp_path / "20200404_BankA_Statement_1.pdf"
        first.write_bytes(b"a")
        second.write_bytes(b"b")

        assert main(["-n", str(first), str(second), "-c", str(config)]) == 1
        assert "batch.max_workers" in capsys.readouterr().err
        assert first.exists() and second.exists()

    def test_unusable_log_directory(self, tmp_path, capsys):
        blocker = tmp_path / "not-a-directory"
        blocker.write_bytes(b"")
        config = tmp_path / "logging.yaml"
        config.write_text(
            "logging:\n"
            "  file_output: true\n"
            f"  log_dir: {blocker / 'logs'}\n",
            encoding="utf-8"
        )

        assert main(["--verify", str(tmp_path), "-c", str(config)]) == 1
        assert "Cannot open log file" in capsys.readouterr().err
