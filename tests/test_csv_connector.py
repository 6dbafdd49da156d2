# tests/test_csv_connector.py
import httpx

from tracker.config import SyncConfig
from tracker.connectors.csv_connector import CsvAdapter
from tracker.results import E_BAD_DATA, E_IO, E_NOT_CONFIGURED

CSV_URL = "https://docs.google.com/spreadsheets/d/e/abc/pub?output=csv"
CSV_BODY = (
    "Patreon Name,Tier,Request Date,Character Name,Origin,Type,Status,Notes\n"
    'alice,Tier 1,2026-01-02,Rem,"Re:Zero, Season 2",Poll,Not Started,\n'
    "bob,Tier 2,2026-01-03,Asuka,Evangelion,Not Poll,Done,thanks\n"
)


def make_adapter(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return CsvAdapter(SyncConfig(csv_url=CSV_URL), client=client)


def test_unconfigured():
    result = CsvAdapter(SyncConfig()).read()
    assert result.error_code == E_NOT_CONFIGURED


def test_read_parses_body():
    seen = {}

    def handler(request):
        seen["cache"] = request.headers.get("cache-control")
        return httpx.Response(200, text=CSV_BODY)

    result = make_adapter(handler).read()
    assert result.ok
    assert [r["patreonName"] for r in result.value] == ["alice", "bob"]
    assert result.value[0]["origin"] == "Re:Zero, Season 2"
    assert seen["cache"] == "no-cache"


def test_http_error_is_io():
    result = make_adapter(lambda request: httpx.Response(500, text="nope")).read()
    assert not result.ok
    assert result.error_code == E_IO


def test_transport_error_is_io():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = make_adapter(handler).read()
    assert result.error_code == E_IO


def test_html_sign_in_page_is_bad_data():
    result = make_adapter(lambda request: httpx.Response(200, text="<!DOCTYPE html><html>Sign in</html>")).read()
    assert result.error_code == E_BAD_DATA


def test_mutations_are_not_durable():
    adapter = CsvAdapter(SyncConfig(csv_url=CSV_URL))
    result = adapter.write({"status": "Done"}, "req-2")
    assert result.ok and not result.committed
    assert not adapter.append({"patreonName": "x"}).committed
