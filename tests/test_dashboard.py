"""
Tests for the listing server.
"""

import json
import urllib.error
import urllib.request

import pytest

from filecabinet.config.settings import ServerConfig
from filecabinet.dashboard import ListingServer, describe_documents
from filecabinet.ledger.checksum import ChecksumLedger
from filecabinet.utils.exceptions import VaultIOError
import filecabinet.dashboard.server as server_module


@pytest.fixture
def documents(tmp_path):
    statement = tmp_path / "2020-04-03_BankA_Statement_2.pdf"
    statement.write_bytes(b"statement")
    ChecksumLedger().generate(statement)
    (tmp_path / "2019_Clinic_Invoice_1.pdf.vault").write_bytes(b"container")
    (tmp_path / "notes.txt").write_bytes(b"ignored")
    return tmp_path


@pytest.fixture
def server(documents):
    listing = ListingServer(ServerConfig(port=0, target_directory=documents))
    listing.start()
    yield listing
    listing.stop()


def _get(url):
    with urllib.request.urlopen(url, timeout=5) as response:
        return response.status, response.read().decode()


class TestDescribeDocuments:
    """Tests for the listing data."""

    def test_listing(self, documents):
        listing = {doc["name"]: doc for doc in describe_documents(documents)}

        assert sorted(listing) == [
            "2019_Clinic_Invoice_1.pdf.vault",
            "2020-04-03_BankA_Statement_2.pdf",
        ]

        plain = listing["2020-04-03_BankA_Statement_2.pdf"]
        assert plain["encrypted"] is False
        assert plain["has_checksum"] is True
        assert plain["metadata"]["institution"] == "BankA"
        assert plain["missing"] == []

        container = listing["2019_Clinic_Invoice_1.pdf.vault"]
        assert container["encrypted"] is True
        assert container["has_checksum"] is False
        assert container["metadata"]["title"] == "Invoice"
        assert container["metadata"]["extension"] == "pdf"

    def test_missing_directory(self, tmp_path):
        assert describe_documents(tmp_path / "missing") == []


class TestListingServer:
    """Tests for the HTTP routes."""

    def test_health(self, server):
        status, body = _get(server.url + "/health")

        assert status == 200
        assert json.loads(body) == {"status": "ok"}

    def test_files(self, server):
        status, body = _get(server.url + "/files")

        assert status == 200
        assert len(json.loads(body)) == 2

    def test_index(self, server):
        status, body = _get(server.url + "/")

        assert status == 200
        assert "2020-04-03_BankA_Statement_2.pdf" in body
        assert "notes.txt" not in body

    def test_unknown_route(self, server):
        with pytest.raises(urllib.error.HTTPError) as exc_info:
            _get(server.url + "/nope")

        assert exc_info.value.code == 404

    def test_listing_failure_is_a_500(self, server, monkeypatch):
        """Test an unreadable directory yields an error response, not a dropped connection."""
        def unreadable(directory, suffix):
            raise VaultIOError("Cannot list directory: Permission denied", file_path=str(directory))

        monkeypatch.setattr(server_module, "describe_documents", unreadable)

        with pytest.raises(urllib.error.HTTPError) as exc_info:
            _get(server.url + "/files")

        assert exc_info.value.code == 500
        assert json.loads(exc_info.value.read()) == {
            "error": "Cannot list directory: Permission denied"
        }
