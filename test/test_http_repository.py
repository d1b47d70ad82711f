import logging
import threading

import pytest
import requests

from finrecon.config import EngineSettings
from finrecon.domain.errors import DataAccessError
from finrecon.domain.models import Currency
from finrecon.repositories.http_repo import HttpRepository
from finrecon.services.currency_service import CurrencyNormalizer
from finrecon.services.reporting_service import ReportingService


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, reason: str = "OK", invalid_json: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.reason = reason
        self.invalid_json = invalid_json

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self.invalid_json:
            raise ValueError("no json")
        return self.payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


CURRENCIES = {"columns": ["id", "name", "base", "rate"], "rows": [[1, "AFN", 1, 1.0], [2, "USD", 0, 70.0]]}


def test_query_posts_invoke_command_and_zips_rows():
    session = FakeSession(FakeResponse(CURRENCIES))
    repo = HttpRepository("http://books.local/", timeout=3, session=session)

    currencies = repo.list_currencies()

    assert [c.name for c in currencies] == ["AFN", "USD"]
    assert currencies[0].is_base
    call = session.calls[0]
    assert call["url"] == "http://books.local/api/invoke"
    assert call["timeout"] == 3.0
    assert call["json"]["cmd"] == "db_query"
    assert "FROM currencies" in call["json"]["sql"]
    assert call["json"]["params"] == []


def test_date_bounds_are_sent_as_params():
    session = FakeSession(FakeResponse({"columns": [], "rows": []}))
    repo = HttpRepository("http://books.local", session=session)

    assert repo.list_documents("sale", "2024-01-01", "2024-01-31", party_id=7) == []
    assert session.calls[0]["json"]["params"] == ["2024-01-01", "2024-01-31", 7]


def test_empty_id_list_makes_no_request():
    session = FakeSession()
    repo = HttpRepository("http://books.local", session=session)

    assert repo.list_payments_by_document_ids("sale", []) == []
    assert session.calls == []


def test_error_body_becomes_data_access_error(caplog):
    session = FakeSession(FakeResponse({"error": "Table 'sales' doesn't exist"}, status_code=500, reason="Server Error"))
    repo = HttpRepository("http://books.local", session=session)

    with caplog.at_level(logging.WARNING, logger="finrecon.data"):
        with pytest.raises(DataAccessError, match="doesn't exist"):
            repo.list_currencies()
    assert "data_request_failed" in caplog.text


def test_transport_failure_is_chained():
    session = FakeSession(requests.ConnectionError("refused"))
    repo = HttpRepository("http://books.local", session=session)

    with pytest.raises(DataAccessError) as exc:
        repo.list_currencies()
    assert isinstance(exc.value.__cause__, requests.RequestException)


def test_malformed_responses_are_rejected():
    repo = HttpRepository("http://books.local", session=FakeSession(FakeResponse(invalid_json=True)))
    with pytest.raises(DataAccessError):
        repo.list_currencies()

    repo = HttpRepository("http://books.local", session=FakeSession(FakeResponse({"rows": []})))
    with pytest.raises(DataAccessError):
        repo.list_currencies()


SALE_DOCS = {
    "columns": ["id", "party_id", "party_name", "date", "total_amount", "currency_id", "currency_name", "exchange_rate", "notes"],
    "rows": [[1, 1, "Ahmad", "2024-01-10", 100.0, 1, "AFN", 1.0, None]],
}


def test_failed_child_fetch_fails_the_whole_report():
    session = FakeSession(
        FakeResponse(SALE_DOCS),
        FakeResponse({"columns": [], "rows": []}),
        FakeResponse({"error": "timeout"}, status_code=504, reason="Gateway Timeout"),
        FakeResponse({"columns": [], "rows": []}),
    )
    repo = HttpRepository("http://books.local", session=session)
    normalizer = CurrencyNormalizer(Currency(id=1, name="AFN", is_base=True, rate=1.0))

    reporting = ReportingService(repo, normalizer, EngineSettings(max_parallel_fetches=1))
    with pytest.raises(DataAccessError, match="timeout"):
        reporting.sales_report("2024-01-01", "2024-01-31")


def test_default_adapter_posts_each_query_without_a_shared_session(monkeypatch):
    lock = threading.Lock()
    sent = []

    def fake_post(url, json=None, timeout=None):
        with lock:
            sent.append((threading.get_ident(), json["sql"]))
        if "FROM sales d" in json["sql"]:
            return FakeResponse(SALE_DOCS)
        return FakeResponse({"columns": [], "rows": []})

    monkeypatch.setattr(requests, "post", fake_post)
    repo = HttpRepository("http://books.local")
    normalizer = CurrencyNormalizer(Currency(id=1, name="AFN", is_base=True, rate=1.0))

    report = ReportingService(repo, normalizer, EngineSettings(max_parallel_fetches=4)).sales_report("2024-01-01", "2024-01-31")

    assert repo.session is None
    assert report.summary["totalAmount"] == 100
    assert len(sent) == 4
