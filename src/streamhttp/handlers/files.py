"""
=============================================================================
FILE TRANSFER HANDLERS
=============================================================================

Download and upload files under the configured root directory without ever
holding a whole file in memory.

=============================================================================
DOWNLOAD:  GET /files/<name>
=============================================================================

    open(<root>/<name>, "rb")  ──►  StreamedPayload(file)
                                         │
                                         ▼
                      ResponseWriter drains it in copy_buffer_size chunks

    Headers:  Content-Length        (from fstat, omitted when 0)
              Content-Type          application/octet-stream
              Content-Disposition   attachment

=============================================================================
UPLOAD:  POST /files/<name>
=============================================================================

    Content-Length: N      ──► validated BEFORE the file is created
    body (socket reader)   ──► copy_bytes(reader, file, N, buffer_size)
                                   │
                                   ▼
                               201 Created

=============================================================================
ERROR MAPPING
=============================================================================

    ┌──────────────────────────────┬────────────────────────────────────┐
    │ Condition                    │ Response                           │
    ├──────────────────────────────┼────────────────────────────────────┤
    │ FileNotFoundError            │ 404 Not Found                      │
    │ PermissionError              │ 403 Forbidden                      │
    │ path resolves outside root   │ 403 Forbidden                      │
    │ any other OSError            │ 500 Internal Server Error          │
    │ Content-Length unparseable   │ 400 Bad Request        (upload)    │
    │ Content-Length / body absent │ 500 Internal Server Error (upload) │
    └──────────────────────────────┴────────────────────────────────────┘

A body that ends before N bytes raises IncompleteBodyError out of the
handler; the server logs it and answers 500.

=============================================================================
"""

import logging
import os
from pathlib import Path
from typing import Optional

from ..config import ServerConfig
from ..http.payload import StreamedPayload, copy_bytes
from ..http.request import HTTPRequest, InvalidContentLength
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,
    created,
    forbidden,
    internal_error,
    not_found,
)


logger = logging.getLogger(__name__)


def _safe_path(config: ServerConfig, relative: str) -> Optional[Path]:
    """
    Resolve `relative` under the root directory.

    Returns None when the resolved path escapes the root, e.g. for
    "../../etc/passwd". resolve() follows symlinks and collapses "..".
    """
    root = config.base_dir().resolve()
    full_path = config.resolve_path(relative).resolve()
    try:
        full_path.relative_to(root)
    except ValueError:
        logger.warning(f"Path traversal attempt: {relative!r}")
        return None
    return full_path


def _error_response(error: OSError, path: Path) -> HTTPResponse:
    """Map a filesystem error to the matching status."""
    if isinstance(error, FileNotFoundError):
        return not_found()
    if isinstance(error, PermissionError):
        return forbidden()
    logger.error(f"I/O error on {path}: {error}")
    return internal_error()


def handle_download_file(config: ServerConfig, request: HTTPRequest) -> HTTPResponse:
    """
    Stream a file from the root directory to the client.

    The open file is handed to the response as a StreamedPayload; the
    writer closes it once drained.
    """
    full_path = _safe_path(config, request.path)
    if full_path is None:
        return forbidden()

    try:
        source = open(full_path, "rb")
    except OSError as e:
        return _error_response(e, full_path)

    try:
        size = os.fstat(source.fileno()).st_size
    except OSError as e:
        source.close()
        return _error_response(e, full_path)

    logger.debug(f"Serving {full_path} ({size} bytes)")
    return (ResponseBuilder()
        .stream(source, length=size)
        .header("Content-Type", "application/octet-stream")
        .header("Content-Disposition", "attachment")
        .build())


def handle_upload_file(config: ServerConfig, request: HTTPRequest) -> HTTPResponse:
    """
    Store the request body under the root directory.

    Exactly Content-Length bytes are copied from the connection in
    chunks of at most config.copy_buffer_size.

    Raises:
        IncompleteBodyError: The client closed before sending every byte.
    """
    full_path = _safe_path(config, request.path)
    if full_path is None:
        return forbidden()

    # ─────────────────────────────────────────────────────────────────
    # Validate the declared length before touching the filesystem
    # ─────────────────────────────────────────────────────────────────
    try:
        length = request.content_length
    except InvalidContentLength as e:
        logger.info(str(e))
        return bad_request()

    body = request.take_body()
    if length is None or not isinstance(body, StreamedPayload):
        logger.info("Upload without Content-Length or streamed body")
        return internal_error()

    try:
        target = open(full_path, "wb")
    except OSError as e:
        return _error_response(e, full_path)

    with target:
        copied = copy_bytes(body.stream, target, length, config.copy_buffer_size)

    logger.debug(f"Stored {copied} bytes in {full_path}")
    return created()
