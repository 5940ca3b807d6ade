import json

import pytest
from httpx import ASGITransport, AsyncClient

from dfsrelay.api import create_app
from dfsrelay.config import RelaySettings

from tests.fake_platform import FakePlatform, happy_scripts, make_settings


def _sample_slate() -> str:
    return """Position,Name,ID,Salary,TeamAbbrev
PG,Alice Guard,1,8000,BOS
SG,Bob Bench,2,3000,LAL
"""


def _api(platform: FakePlatform, settings: RelaySettings | None = None) -> AsyncClient:
    app = create_app(settings or make_settings(), http=platform.client())
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.anyio
async def test_health():
    async with _api(FakePlatform()) as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_submit_success_returns_lineups_and_debug():
    platform = FakePlatform(happy_scripts())
    files = {"file": ("slate.csv", _sample_slate(), "text/csv")}

    async with _api(platform) as client:
        resp = await client.post("/api/submit", files=files, data={"sport": "NFL", "site": "FD"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["lineups"] == [["Alice"]]
    debug = body["debug"]
    assert debug["ingest_exec"] == "exec-1"
    assert debug["signals_exec"] == "exec-2"
    assert sorted(debug["proj_execs"]) == ["exec-3", "exec-4"]
    assert debug["cons_exec"] == "exec-5"
    assert debug["opt_exec"] == "exec-6"

    slate = platform.payloads("ingest-agent")[0]["slate"]
    assert slate["sport"] == "NFL"
    assert slate["site"] == "FD"
    assert slate["csv_text"] == _sample_slate()
    assert platform.headers[0]["authorization"] == "Bearer test-key"


@pytest.mark.anyio
async def test_submit_defaults_sport_and_site():
    platform = FakePlatform(happy_scripts())
    files = {"file": ("slate.csv", _sample_slate(), "text/csv")}

    async with _api(platform) as client:
        resp = await client.post("/api/submit", files=files)

    assert resp.status_code == 200
    slate = platform.payloads("ingest-agent")[0]["slate"]
    assert (slate["sport"], slate["site"]) == ("NBA", "DK")


@pytest.mark.anyio
async def test_submit_missing_file_makes_no_remote_calls():
    platform = FakePlatform(happy_scripts())

    async with _api(platform) as client:
        resp = await client.post("/api/submit", data={"sport": "NBA"})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Missing file"}
    assert platform.creates == []


@pytest.mark.anyio
async def test_submit_whitespace_file_is_rejected():
    platform = FakePlatform(happy_scripts())
    files = {"file": ("slate.csv", "  \n\n ", "text/csv")}

    async with _api(platform) as client:
        resp = await client.post("/api/submit", files=files)

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Empty file"}
    assert platform.creates == []


@pytest.mark.anyio
async def test_submit_missing_configuration():
    platform = FakePlatform(happy_scripts())
    files = {"file": ("slate.csv", _sample_slate(), "text/csv")}

    async with _api(platform, RelaySettings()) as client:
        resp = await client.post("/api/submit", files=files)

    assert resp.status_code == 500
    body = resp.json()
    assert body["ok"] is False
    assert body["error"] == "Missing configuration"
    assert "SWARMNODE_API_KEY" in body["extra"]
    assert "INGEST_AGENT_ID" in body["extra"]
    assert platform.creates == []


@pytest.mark.anyio
async def test_submit_falls_back_when_remote_ingest_unavailable():
    platform = FakePlatform(happy_scripts(), create_errors={"ingest-agent": 503})
    files = {"file": ("slate.csv", "name,salary\nAlice,8000\nBob,3000\n", "text/csv")}

    async with _api(platform) as client:
        resp = await client.post("/api/submit", files=files)

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["debug"]["ingest_source"] == "fallback"
    assert body["debug"]["ingest_exec"] is None
    players = platform.payloads("signals-agent")[0]["players"]
    assert [p["name"] for p in players] == ["Alice"]


@pytest.mark.anyio
async def test_submit_remote_failure_returns_envelope_with_diagnostics():
    platform = FakePlatform(happy_scripts(), create_errors={"cons-agent": 500})
    files = {"file": ("slate.csv", _sample_slate(), "text/csv")}

    async with _api(platform) as client:
        resp = await client.post("/api/submit", files=files)

    assert resp.status_code == 500
    body = resp.json()
    assert body["ok"] is False
    assert body["error"].startswith("[consensus]")
    assert "agent cons-agent unavailable" in body["extra"]
    assert body["debug"]["ingest_exec"] == "exec-1"
    assert body["debug"].get("cons_exec") is None
    assert "Traceback" not in resp.text


@pytest.mark.anyio
async def test_submit_ingestion_exhausted():
    platform = FakePlatform(happy_scripts(), create_errors={"ingest-agent": 503})
    files = {"file": ("slate.csv", "player,cost\nAlice,8000\n", "text/csv")}

    async with _api(platform) as client:
        resp = await client.post("/api/submit", files=files)

    assert resp.status_code == 500
    body = resp.json()
    assert body["ok"] is False
    assert "No players" in body["error"]
    assert "proj-agent" not in platform.created_agents()


@pytest.mark.anyio
async def test_echo_previews_upload():
    csv_text = "name,salary\n" + "Alice,8000\n" * 40

    async with _api(FakePlatform()) as client:
        resp = await client.post("/api/echo", files={"file": ("slate.csv", csv_text, "text/csv")})

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["bytes"] == len(csv_text.encode())
    assert body["preview"] == csv_text[:200]


@pytest.mark.anyio
async def test_echo_without_file():
    async with _api(FakePlatform()) as client:
        resp = await client.post("/api/echo")

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "No file"}


@pytest.mark.anyio
async def test_upload_starts_ingest_job_without_waiting():
    platform = FakePlatform(happy_scripts())
    csv_text = _sample_slate()

    async with _api(platform) as client:
        resp = await client.post("/api/upload", content=json.dumps({"csv": csv_text}))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["execution_address"] == "exec-1"
    assert body["job_id"] == "job-exec-1"
    assert body["details"]["csv_length"] == len(csv_text)
    assert platform.created_agents() == ["ingest-agent"]
    assert platform.lookups == []


@pytest.mark.anyio
async def test_upload_accepts_raw_text_and_rejects_short_csv():
    platform = FakePlatform(happy_scripts())

    async with _api(platform) as client:
        short = await client.post("/api/upload", content="name,salary\n")
        raw = await client.post("/api/upload", content=_sample_slate())

    assert short.status_code == 400
    assert short.json()["error"] == "Invalid CSV data"
    assert raw.status_code == 200
    assert platform.payloads("ingest-agent")[0]["slate"]["csv_text"] == _sample_slate()


@pytest.mark.anyio
async def test_submit_file_sent_as_text_field_returns_envelope():
    platform = FakePlatform(happy_scripts())

    async with _api(platform) as client:
        resp = await client.post("/api/submit", data={"file": "name,salary\nAlice,8000\n"})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "Missing file"}
    assert platform.creates == []


@pytest.mark.anyio
async def test_echo_file_sent_as_text_field_returns_envelope():
    platform = FakePlatform(happy_scripts())

    async with _api(platform) as client:
        resp = await client.post("/api/echo", data={"file": "name,salary"})

    assert resp.status_code == 400
    assert resp.json() == {"ok": False, "error": "No file"}
