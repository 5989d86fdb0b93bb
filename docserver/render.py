"""Server-side Markdown rendering for the ``html:`` fallback pages."""

import re
from pathlib import Path
from urllib.parse import urljoin

import markdown
from markdown.extensions import Extension
from markdown.extensions.codehilite import CodeHiliteExtension
from markdown.extensions.fenced_code import FencedCodeExtension
from markdown.extensions.tables import TableExtension
from markdown.extensions.toc import TocExtension
from markdown.treeprocessors import Treeprocessor


def slugify(value: str, separator: str = "-") -> str:
    """Heading ids, the same ones the browser renderer assigns."""
    value = re.sub(r"[^\w\s-]", "", value.lower(), flags=re.ASCII)
    return re.sub(r"\s+", separator, value)


class _ImageBase(Treeprocessor):
    def __init__(self, md, base):
        super().__init__(md)
        self.base = base

    def run(self, root):
        for img in root.iter("img"):
            src = img.get("src")
            if src:
                img.set("src", urljoin(self.base, src))


class ImageBaseExtension(Extension):
    """Resolve relative image sources against the document's URL."""

    def __init__(self, **kwargs):
        self.config = {"base": ["/", "URL relative image sources resolve against"]}
        super().__init__(**kwargs)

    def extendMarkdown(self, md):
        # After the inline processor (20), which creates the <img> elements.
        md.treeprocessors.register(_ImageBase(md, self.getConfig("base")), "image_base", 5)


def extensions(base_url: str = "/") -> list:
    return [
        FencedCodeExtension(),
        CodeHiliteExtension(css_class="highlight", guess_lang=False),
        TableExtension(),
        TocExtension(permalink=True, slugify=slugify),
        ImageBaseExtension(base=base_url),
    ]


def document_url(doc_dir: Path, filepath: Path) -> str:
    """URL path a document under the served root is browsed at."""
    return "/" + filepath.relative_to(doc_dir).as_posix()


def render_md(filepath: Path, base_url: str = "/") -> dict:
    """Render a markdown file, return {html, toc, title}."""
    text = filepath.read_text(encoding="utf-8")
    md = markdown.Markdown(extensions=extensions(base_url))
    html = md.convert(text)
    toc = getattr(md, "toc", "")
    # Title from the first H1, else the file name
    title = filepath.name
    for line in text.splitlines():
        if line.startswith("# "):
            title = line[2:].strip()
            break
    md.reset()
    return {"html": html, "toc": toc, "title": title}
