"""docserver — serve a directory tree, rendering Markdown in the browser."""

import logging
from datetime import datetime, timezone
from pathlib import Path

from flask import Blueprint, Flask, Response, current_app, render_template, request, send_file

from .render import document_url, render_md
from .router import Outcome, Router

# Bundled browser assets: the HTML shell and its scripts
ASSET_DIR = Path(__file__).parent / "web"

NOT_FOUND_BODY = "404 - File not found"
SERVER_ERROR_BODY = "500 - Server error"

access_log = logging.getLogger("docserver.access")

bp = Blueprint("docs", __name__)


def create_app(doc_dir, test_config=None) -> Flask:
    """Build the app serving ``doc_dir``."""
    app = Flask("docserver", static_folder=None)
    app.config.from_mapping(
        DOC_DIR=Path(doc_dir).resolve(),
        ASSET_DIR=ASSET_DIR,
        SHELL_ASSET="index.html",
        SOURCE_PREFIX="src:",
        ASSET_PREFIX="_/",
        RENDER_PREFIX="html:",
        MARKDOWN_SUFFIXES=(".md", ".markdown"),
        SEND_FILE_MAX_AGE_DEFAULT=0,
    )
    if test_config is not None:
        app.config.from_mapping(test_config)

    app.extensions["docserver"] = Router(
        doc_dir=Path(app.config["DOC_DIR"]),
        asset_dir=Path(app.config["ASSET_DIR"]),
        shell_asset=app.config["SHELL_ASSET"],
        source_prefix=app.config["SOURCE_PREFIX"],
        asset_prefix=app.config["ASSET_PREFIX"],
        markdown_suffixes=tuple(app.config["MARKDOWN_SUFFIXES"]),
    )
    app.register_blueprint(bp)
    return app


def get_router() -> Router:
    return current_app.extensions["docserver"]


def not_found() -> Response:
    return Response(NOT_FOUND_BODY, status=404, mimetype="text/plain")


def server_error() -> Response:
    return Response(SERVER_ERROR_BODY, status=500, mimetype="text/plain")


def request_uri() -> str:
    if request.query_string:
        return f"{request.path}?{request.query_string.decode('latin-1')}"
    return request.path


# ── Routes ────────────────────────────────────────────────────────


@bp.route("/", defaults={"path": ""})
@bp.route("/<path:path>")
def serve(path):
    """Stream the file a request path resolves to."""
    router = get_router()
    request_path = request.path
    try:
        render_prefix = current_app.config["RENDER_PREFIX"]
        if request_path.lstrip("/").startswith(render_prefix):
            return render_page(request_path.lstrip("/")[len(render_prefix):])

        resolution = router.resolve(request_path)
        if resolution.outcome is Outcome.NOT_FOUND:
            return not_found()
        # Always the whole file: no 304 or 206 responses
        return send_file(resolution.path, conditional=False, etag=False)
    except (FileNotFoundError, NotADirectoryError):
        return not_found()
    except (OSError, UnicodeDecodeError) as e:
        current_app.logger.error("Error: %s for request path: %s", e, request_uri())
        return server_error()


def render_page(relative: str):
    """Render a Markdown document on the server, for clients without scripts."""
    router = get_router()
    target, _ = router.locate(relative)
    if target is None or not router.is_markdown(target.name):
        return not_found()
    url = document_url(router.doc_dir, target)
    doc = render_md(target, base_url=url)
    return render_template(
        "doc_page.html",
        doc=doc,
        doc_url=url,
        source_url="/" + router.source_prefix + url.lstrip("/"),
        asset_prefix="/" + router.asset_prefix,
    )


@bp.after_app_request
def log_response(response):
    """One common-log line per response."""
    length = response.content_length
    access_log.info(
        '%s - - [%s] "%s %s %s" %s %s',
        request.remote_addr or "-",
        datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z"),
        request.method,
        request_uri(),
        request.environ.get("SERVER_PROTOCOL", "HTTP/1.1"),
        response.status_code,
        "-" if length is None else length,
    )
    return response
