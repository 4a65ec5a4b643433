"""
Views and fixed responses for the file server.
"""

import html
import logging

from fastapi import Request, Response

from storage import (
    FileOpenError,
    FileReadError,
    is_safe_path,
    list_files,
    mime_type,
    read_file,
)

logger = logging.getLogger(__name__)

INDEX_HEAD = """
<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8">
    <title>index</title>
  </head>
  <body>
    <h3>Welcome</h3>
<ul>
"""
INDEX_TAIL = "</ul></body></html>"


def not_found() -> Response:
    return Response(content="not found\r\n", status_code=404)


def forbidden() -> Response:
    return Response(content="forbidden\r\n", status_code=403)


def trouble() -> Response:
    return Response(content="sad bear is sad\r\n", status_code=500)


def file_response(path: str, body: bytes) -> Response:
    # Content-type is passed as a header so no charset gets appended
    return Response(content=body, status_code=200, headers={"Content-type": mime_type(path)})


def render_index(names, escape_names: bool = False) -> str:
    items = []
    for name in names:
        if escape_names:
            name = html.escape(name)
        items.append(f'<li><a href="{name}">{name}</a></li>')
    return INDEX_HEAD + "".join(items) + INDEX_TAIL


async def index_view(request: Request) -> Response:
    """
    Listing of the files in the document root. A root that cannot be
    read gives an empty list rather than an error.
    """
    config = request.app.state.config
    try:
        names = await list_files(config.root)
    except OSError as e:
        logger.warning(f"Could not list {config.root}: {e}")
        names = []
    body = render_index(names, escape_names=config.escape_names)
    return Response(content=body, status_code=200, headers={"Content-type": "text/html"})


async def file_view(request: Request) -> Response:
    """
    Serve one file from the document root.

    The path loses its leading "/" and is checked for traversal (403),
    then opened (404 on failure) and read whole (500 on failure).
    """
    config = request.app.state.config
    # decoded path straight from the scope, request.url would reparse "?" and "#"
    candidate = request.scope["path"][1:]
    if not is_safe_path(candidate):
        return forbidden()
    try:
        body = await read_file(config.root, candidate)
    except FileOpenError:
        return not_found()
    except FileReadError as e:
        logger.error(f"Failed reading {candidate}: {e}")
        return trouble()
    return file_response(candidate, body)
