import pytest

from docserver import create_app

MARKDOWN = b"# Guide\n\nSee [the recording](demo.cast).\n"


@pytest.fixture
def docs(tmp_path):
    """A served root with one directory per index situation."""
    root = tmp_path / "docs"
    root.mkdir()
    (root / "README.md").write_bytes(b"# Readme\n\nHello.\n")
    (root / "notes.txt").write_text("plain notes\n")
    (root / "blob.xyz123").write_bytes(bytes(range(256)))

    guide = root / "guide"
    guide.mkdir()
    (guide / "INDEX.md").write_bytes(MARKDOWN)
    (guide / "index.html").write_text("<p>not me</p>")

    site = root / "site"
    site.mkdir()
    (site / "index.html").write_text("<h1>site</h1>")

    lower = root / "lower"
    lower.mkdir()
    (lower / "Index.MD").write_text("# Lower\n")

    empty = root / "empty"
    empty.mkdir()
    (empty / "other.txt").write_text("x")

    (tmp_path / "secret.txt").write_text("outside the root")
    return root


@pytest.fixture
def app(docs):
    return create_app(docs)


@pytest.fixture
def client(app):
    return app.test_client()
