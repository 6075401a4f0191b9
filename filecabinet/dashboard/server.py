"""
Listing Server
==============

Small read-only web server listing the documents in the target directory.

Routes:
    GET /        HTML table of documents
    GET /health  200 with ``{"status": "ok"}``
    GET /files   JSON list of documents with decoded metadata
"""

import html
import json
import threading
from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import urlparse

from filecabinet.actions.file_operations import FileOperations
from filecabinet.codec.metadata import decode
from filecabinet.config.settings import ServerConfig, ENCRYPTED_SUFFIX
from filecabinet.ledger.checksum import sidecar_path
from filecabinet.security.encryption import decrypted_name, is_encrypted
from filecabinet.utils.logging_config import get_logger
from filecabinet.utils.exceptions import VaultError

logger = get_logger(__name__)


INDEX_TEMPLATE = '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>filecabinet</title>
    <style>
        body {{ font-family: system-ui, sans-serif; margin: 2rem; }}
        table {{ border-collapse: collapse; }}
        th, td {{ padding: 4px 12px; border-bottom: 1px solid #ddd; text-align: left; }}
    </style>
</head>
<body>
    <h1>filecabinet</h1>
    <p>{count} document(s) in {directory}</p>
    <table>
        <tr><th>File</th><th>Date</th><th>Institution</th><th>Title</th><th>Page</th><th>Encrypted</th><th>Checksum</th></tr>
{rows}
    </table>
</body>
</html>
'''

ROW_TEMPLATE = (
    "        <tr><td>{name}</td><td>{date}</td><td>{institution}</td>"
    "<td>{title}</td><td>{page}</td><td>{encrypted}</td><td>{checksum}</td></tr>"
)


def describe_documents(
    directory: Path,
    suffix: str = ENCRYPTED_SUFFIX,
    file_ops: Optional[FileOperations] = None
) -> List[dict]:
    """Build the JSON-friendly listing for a directory.

    Metadata of an encrypted container is decoded from its plaintext name.
    """
    file_ops = file_ops or FileOperations()
    documents = []
    for path in file_ops.list_documents(directory, suffix):
        encrypted = is_encrypted(path, suffix)
        plain_name = decrypted_name(path, suffix).name if encrypted else path.name
        metadata = decode(plain_name)
        documents.append({
            "name": path.name,
            "encrypted": encrypted,
            "has_checksum": sidecar_path(path).is_file(),
            "metadata": metadata.to_dict(),
            "missing": metadata.missing,
        })
    return documents


class ListingHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the document listing."""

    config: ServerConfig = ServerConfig()
    suffix: str = ENCRYPTED_SUFFIX

    def log_message(self, format, *args):
        """Route access logs through the application logger."""
        logger.debug(f"{self.address_string()} {format % args}")

    def do_GET(self):
        """Handle GET requests."""
        path = urlparse(self.path).path

        try:
            if path == "/":
                self._serve_index()
            elif path == "/health":
                self._send_json({"status": "ok"})
            elif path == "/files":
                self._serve_files()
            else:
                self._send_404()
        except VaultError as e:
            logger.error(f"Cannot list {self.config.target_directory}: {e}")
            self._send_json({"error": e.reason}, 500)

    def _documents(self) -> List[dict]:
        return describe_documents(self.config.target_directory, self.suffix)

    def _send_json(self, data: Any, status: int = 200):
        """Send JSON response."""
        body = json.dumps(data).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    def _send_html(self, text: str, status: int = 200):
        """Send HTML response."""
        body = text.encode()
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_404(self):
        """Send 404 response."""
        self._send_json({"error": "not found"}, 404)

    def _serve_files(self):
        self._send_json(self._documents())

    def _serve_index(self):
        documents = self._documents()
        rows = []
        for doc in documents:
            meta = doc["metadata"]
            rows.append(ROW_TEMPLATE.format(
                name=html.escape(doc["name"]),
                date=meta["date"] or "",
                institution=html.escape(meta["institution"] or ""),
                title=html.escape(meta["title"] or ""),
                page=meta["page"] or "",
                encrypted="yes" if doc["encrypted"] else "no",
                checksum="yes" if doc["has_checksum"] else "no",
            ))
        self._send_html(INDEX_TEMPLATE.format(
            count=len(documents),
            directory=html.escape(str(self.config.target_directory)),
            rows="\n".join(rows),
        ))


class ListingServer:
    """Web server for the document listing."""

    def __init__(self, config: Optional[ServerConfig] = None, suffix: str = ENCRYPTED_SUFFIX):
        """Initialize the listing server.

        Args:
            config: Host, port and target directory.
            suffix: Reserved suffix for encrypted containers.
        """
        self.config = config or ServerConfig()
        self.suffix = suffix
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def _build(self) -> ThreadingHTTPServer:
        handler = type(
            "BoundListingHandler",
            (ListingHandler,),
            {"config": self.config, "suffix": self.suffix},
        )
        return ThreadingHTTPServer((self.config.host, self.config.port), handler)

    def start(self) -> None:
        """Start serving on a background thread."""
        if self._server:
            return

        self._server = self._build()
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="ListingServer"
        )
        self._thread.start()
        logger.info(f"Listing server started at {self.url}")

    def serve_forever(self) -> None:
        """Serve on the calling thread until interrupted."""
        self._server = self._build()
        logger.info(f"Listing server started at {self.url}")
        try:
            self._server.serve_forever()
        finally:
            self._server.server_close()
            self._server = None

    def stop(self) -> None:
        """Stop the server."""
        if not self._server:
            return

        self._server.shutdown()
        self._server.server_close()
        self._server = None
        if self._thread:
            self._thread.join()
            self._thread = None

        logger.info("Listing server stopped")

    @property
    def url(self) -> str:
        """Get the server URL."""
        port = self._server.server_address[1] if self._server else self.config.port
        return f"http://{self.config.host}:{port}"
