"""
Minimal HTTP file server.
Lists the files of its working directory at "/" and serves them by name.
"""

import os
import re
import sys
import socket
import logging
from datetime import datetime, timezone
from typing import Mapping, Optional
from urllib.parse import quote

from fastapi import FastAPI, Request
from pydantic import BaseModel, Field
import uvicorn

from views import file_view, index_view

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("fileserver.access")

DEFAULT_PORT = 3000
HOST = "127.0.0.1"
BACKLOG = 128
PORT_PATTERN = re.compile(r"\+?[0-9]+")

# Every method is routed, the file server does not look at it
METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class ServerConfig(BaseModel):
    host: str = HOST
    port: int = Field(DEFAULT_PORT, ge=0, le=65535)
    root: str = "."
    escape_names: bool = False


class AccessRecord(BaseModel):
    timestamp: datetime
    path: str
    status: int
    method: str
    version: str
    user_agent: str = "-"

    def line(self) -> str:
        return (
            f"{self.timestamp.isoformat()} {self.path} {self.status} "
            f"{self.method} HTTP/{self.version} {self.user_agent}"
        )


def resolve_port(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Port from the PORT environment variable, DEFAULT_PORT when it is
    unset or not an unsigned 16-bit number.
    """
    if environ is None:
        environ = os.environ
    raw = environ.get("PORT")
    if raw is None:
        return DEFAULT_PORT
    if PORT_PATTERN.fullmatch(raw):
        port = int(raw)
        if port <= 65535:
            return port
    logger.warning(f"Ignoring invalid PORT value {raw!r}, using {DEFAULT_PORT}")
    return DEFAULT_PORT


def user_agent(request: Request) -> str:
    agent = request.headers.get("user-agent")
    if agent is None or not agent.isascii() or not agent.isprintable():
        return "-"
    return agent


def request_target(scope) -> str:
    """
    Request target as the client sent it: still percent-encoded and
    with its query string, if any.
    """
    raw_path = scope.get("raw_path")
    if raw_path is None:
        raw_path = quote(scope["path"]).encode("ascii")
    # some transports put the query in raw_path too
    target = raw_path.split(b"?", 1)[0]
    query = scope.get("query_string", b"")
    if query:
        target += b"?" + query
    return target.decode("latin-1")


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    if config is None:
        config = ServerConfig()
    app = FastAPI(title="File Server", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config

    app.add_api_route("/", index_view, methods=METHODS, include_in_schema=False)
    app.add_api_route("/{path:path}", file_view, methods=METHODS, include_in_schema=False)

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        response = await call_next(request)
        record = AccessRecord(
            timestamp=datetime.now(timezone.utc),
            path=request_target(request.scope),
            status=response.status_code,
            method=request.method,
            version=request.scope.get("http_version", "1.1"),
            user_agent=user_agent(request),
        )
        access_logger.info(record.line())
        return response

    return app


def configure_logging():
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    # Access lines go to stdout, everything else to stderr
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    access_logger.addHandler(handler)
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False


def bind_socket(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(BACKLOG)
    except OSError:
        sock.close()
        raise
    return sock


def main():
    configure_logging()
    config = ServerConfig(host=HOST, port=resolve_port())
    print(
        f"starting server on {config.host}:{config.port}\n"
        "You can use PORT environment variable to change this.",
        flush=True,
    )
    app = create_app(config)
    try:
        sock = bind_socket(config.host, config.port)
        server = uvicorn.Server(uvicorn.Config(app, access_log=False))
        server.run(sockets=[sock])
    except Exception as e:
        logger.error(f"server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
