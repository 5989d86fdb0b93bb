"""Request path resolution for the documentation server.

A request path resolves to exactly one file to stream back: a file under the
served root, a file bundled with the server, or the HTML shell that renders
Markdown in the browser.  Resolution keeps no state between requests.
"""

import enum
import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Tuple

from werkzeug.security import safe_join

IndexCandidate = Callable[[str], object]

# Checked in order; the first candidate any directory entry matches wins.
INDEX_CANDIDATES: Tuple[IndexCandidate, ...] = (
    "INDEX.md".__eq__,
    "index.html".__eq__,
    re.compile(r"index\.md", re.IGNORECASE).fullmatch,
    re.compile(r"index\.html", re.IGNORECASE).fullmatch,
)


class Outcome(enum.Enum):
    DIRECTORY_INDEX = "directory-index"
    MARKDOWN_SHELL = "markdown-shell"
    SOURCE = "source-passthrough"
    SERVER_ASSET = "server-asset"
    DIRECT_FILE = "direct-file"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class Resolution:
    outcome: Outcome
    # File to stream back. None only for NOT_FOUND.
    path: Optional[Path] = None
    # Markdown document behind a MARKDOWN_SHELL outcome.
    document: Optional[Path] = None


NOT_FOUND = Resolution(Outcome.NOT_FOUND)


def pick_index(
    entries: Iterable[str], candidates: Sequence[IndexCandidate] = INDEX_CANDIDATES
) -> Optional[str]:
    """Return the entry matching the highest priority candidate, or None."""
    names = list(entries)
    for matches in candidates:
        for name in names:
            if matches(name):
                return name
    return None


def list_files(directory: Path) -> list:
    """Names of the regular files in a directory, sorted."""
    with os.scandir(directory) as it:
        return sorted(entry.name for entry in it if entry.is_file())


def join_under(root: Path, relative: str) -> Optional[Path]:
    """Join a request path onto root, or None if it would escape root.

    Leading slashes are dropped: ``src:/a.md`` and ``src:a.md`` name the
    same file.
    """
    joined = safe_join(str(root), relative.lstrip("/"))
    if joined is None:
        return None
    return Path(joined)


@dataclass(frozen=True)
class Router:
    """Resolves request paths against a served root and the bundled assets."""

    doc_dir: Path
    asset_dir: Path
    shell_asset: str = "index.html"
    source_prefix: str = "src:"
    asset_prefix: str = "_/"
    markdown_suffixes: Tuple[str, ...] = (".md", ".markdown")
    index_candidates: Tuple[IndexCandidate, ...] = INDEX_CANDIDATES

    @property
    def shell(self) -> Path:
        return self.asset_dir / self.shell_asset

    def is_markdown(self, name) -> bool:
        return str(name).lower().endswith(self.markdown_suffixes)

    def resolve(self, request_path: str) -> Resolution:
        """Resolve a decoded request path.

        Missing entries resolve to NOT_FOUND.  Any other ``OSError`` raised
        while inspecting the file system propagates to the caller.
        """
        path = request_path[1:] if request_path.startswith("/") else request_path

        if path.startswith(self.source_prefix):
            target, _ = self.locate(path[len(self.source_prefix):])
            if target is None:
                return NOT_FOUND
            return Resolution(Outcome.SOURCE, target)

        if path.startswith(self.asset_prefix):
            target = join_under(self.asset_dir, path[len(self.asset_prefix):])
            if target is None or not _is_file(target):
                return NOT_FOUND
            return Resolution(Outcome.SERVER_ASSET, target)

        # Markdown paths always get the shell; the shell reports missing
        # documents itself after fetching the source.
        if self.is_markdown(path):
            return Resolution(
                Outcome.MARKDOWN_SHELL, self.shell, join_under(self.doc_dir, path)
            )

        target, indexed = self.locate(path)
        if target is None:
            return NOT_FOUND
        if self.is_markdown(target.name):
            return Resolution(Outcome.MARKDOWN_SHELL, self.shell, target)
        if indexed:
            return Resolution(Outcome.DIRECTORY_INDEX, target)
        return Resolution(Outcome.DIRECT_FILE, target)

    def locate(self, relative: str) -> Tuple[Optional[Path], bool]:
        """Find the file a path names under the served root.

        A directory is replaced by its index candidate, which the second item
        of the result flags.  The path is None when nothing matches.
        """
        target = join_under(self.doc_dir, relative)
        if target is None:
            return None, False
        try:
            st = os.stat(target)
        except (FileNotFoundError, NotADirectoryError):
            return None, False
        if not stat.S_ISDIR(st.st_mode):
            return target, False
        index = pick_index(list_files(target), self.index_candidates)
        if index is None:
            return None, False
        return target / index, True


def _is_file(path: Path) -> bool:
    try:
        return stat.S_ISREG(os.stat(path).st_mode)
    except (FileNotFoundError, NotADirectoryError):
        return False
