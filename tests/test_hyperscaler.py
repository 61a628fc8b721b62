import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from meshoperator.hyperscaler import AWS_METADATA_HOST, HyperscalerClient


def _serve(status):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            self.send_response(status)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def log_message(self, *args):
            pass

    server = HTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def server_factory():
    servers = []

    def make(status):
        server = _serve(status)
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}/"

    yield make
    for server in servers:
        server.shutdown()
        server.server_close()


def test_is_aws_when_metadata_answers_ok(server_factory):
    client = HyperscalerClient(metadata_host=server_factory(200))
    assert client.is_aws() is True


def test_not_aws_when_metadata_answers_not_found(server_factory):
    client = HyperscalerClient(metadata_host=server_factory(404))
    assert client.is_aws() is False


def test_not_aws_when_metadata_unreachable():
    sock = socket.socket()
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()

    client = HyperscalerClient(metadata_host=f"http://127.0.0.1:{port}/", timeout=0.5)
    assert client.is_aws() is False


def test_default_host_and_timeout():
    client = HyperscalerClient()
    assert client.metadata_host == AWS_METADATA_HOST
    assert client.timeout == 1.0