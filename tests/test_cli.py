import pytest

from docserver import cli
from docserver.errors import BindError, DirectoryNotFound


@pytest.fixture
def served(monkeypatch):
    """Replace the server loop, recording what it was asked to serve."""
    calls = []

    def fake_serve(app, config):
        calls.append((app, config))
        return 0

    monkeypatch.setattr(cli, "serve", fake_serve)
    monkeypatch.setattr(cli, "configure_logging", lambda: None)
    return calls


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_help_goes_to_stderr(flag, served, capsys):
    assert cli.main([flag]) == 1
    captured = capsys.readouterr()
    assert "usage: docserver" in captured.err
    assert captured.out == ""
    assert served == []


def test_missing_directory(tmp_path, served, capsys):
    assert cli.main([str(tmp_path / "missing")]) == 1
    assert "Directory not found" in capsys.readouterr().err
    assert served == []


def test_bad_option_exits_1(served, capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--port", "abc"])
    assert exc.value.code == 1
    assert "usage:" in capsys.readouterr().err


def test_serves_directory(docs, served):
    assert cli.main([str(docs), "--no-browser", "--port", "8123"]) == 0
    app, config = served[0]
    assert app.config["DOC_DIR"] == docs.resolve()
    assert config.open_browser is False
    assert config.port == 8123


def test_defaults_to_cwd(docs, served, monkeypatch):
    monkeypatch.chdir(docs)
    assert cli.main([]) == 0
    app, config = served[0]
    assert app.config["DOC_DIR"] == docs.resolve()
    assert config.open_browser is True
    assert config.port is None


def test_tilde_expands_to_home(tmp_path, monkeypatch):
    (tmp_path / "notes").mkdir()
    monkeypatch.setenv("HOME", str(tmp_path))
    assert cli.resolve_directory("~/notes") == (tmp_path / "notes").resolve()
    assert cli.resolve_directory("  ~/notes ") == (tmp_path / "notes").resolve()


def test_file_is_not_a_directory(docs):
    with pytest.raises(DirectoryNotFound):
        cli.resolve_directory(str(docs / "notes.txt"))


def test_bind_error_reported(docs, monkeypatch, capsys):
    def failing(app, config):
        raise BindError("Error starting server on port 1: Permission denied")

    monkeypatch.setattr(cli, "serve", failing)
    monkeypatch.setattr(cli, "configure_logging", lambda: None)
    assert cli.main([str(docs)]) == 1
    assert "Permission denied" in capsys.readouterr().err
