"""
Scrape endpoint. Each GET on the metrics path runs one collection and
renders the registry; everything else is a bare 404.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Type

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from bitcoind_exporter.collector.bitcoind_collector import BitcoindCollector
from bitcoind_exporter.config import DEFAULT_METRICS_PATH

log = logging.getLogger(__name__)


def make_handler(
    collector: BitcoindCollector,
    metrics_path: str = DEFAULT_METRICS_PATH,
) -> Type[BaseHTTPRequestHandler]:
    """Create a request handler bound to this collector."""

    class ScrapeHandler(BaseHTTPRequestHandler):

        def do_GET(self):
            path = self.path.split("?", 1)[0]
            if path != metrics_path:
                self._not_found()
                return

            result = collector.collect()
            if result.ok:
                body = generate_latest(collector.metrics.registry)
                self._send(200, CONTENT_TYPE_LATEST, body)
            else:
                self._send(404, "text/plain", str(result.error).encode("utf-8"))

        def send_error(self, code, message=None, explain=None):
            # Methods without a do_* handler land here as 501
            if code == HTTPStatus.NOT_IMPLEMENTED:
                self._not_found()
                return
            super().send_error(code, message, explain)

        def _not_found(self):
            log.warning("  [%s] %s %s", self.client_address[0], self.command, self.path)
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def _send(self, status: int, content_type: str, body: bytes):
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            log.debug("%s - %s", self.address_string(), format % args)

    return ScrapeHandler


def serve(
    collector: BitcoindCollector,
    host: str,
    port: int,
    metrics_path: str = DEFAULT_METRICS_PATH,
):
    httpd = ThreadingHTTPServer((host, port), make_handler(collector, metrics_path))
    log.info("Serving metrics on http://%s:%d%s", host or "0.0.0.0", port, metrics_path)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        log.info("Shutting down...")
    finally:
        httpd.server_close()
