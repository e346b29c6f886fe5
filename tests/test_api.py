import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from aidoc.api.routes import get_pipeline
from aidoc.config import Settings, get_settings
from aidoc.extraction.pipeline import DateExtractionPipeline
from aidoc.llm.client import TransportError, UpstreamError
from aidoc.main import app

client = TestClient(app)

GOOD = ('{"items":[{"date_text":"March 1, 2024","date_iso":"2024-03-01","type":"deadline",'
        '"summary":"Contract due","page":2,"confidence":0.9,"extra":"x"}]}')

@pytest.fixture
def use_model(scripted):
    """Route requests through a pipeline backed by the given scripted responses."""
    def install(*responses):
        model = scripted(*responses)
        app.dependency_overrides[get_pipeline] = lambda: DateExtractionPipeline(Settings(), model)
        return model
    yield install
    app.dependency_overrides.clear()

@pytest.fixture
def settings_override():
    def install(settings):
        app.dependency_overrides[get_settings] = lambda: settings
    yield install
    app.dependency_overrides.clear()

def upload(name="contract.txt", body=b"Contract due March 1, 2024.", mime="text/plain", path="/extract-dates"):
    return client.post(path, files={"file": (name, body, mime)})

def test_health():
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/health").json() == {"status": "ok"}

def test_metrics_exposed():
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "extraction_requests_total" in r.text

def test_extracts_dates(use_model):
    model = use_model(GOOD)
    r = upload()
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["source_file"] == "contract.txt"
    [item] = body["data"]["items"]
    assert item["type"] == "deadline"
    assert item["source_file"] == "contract.txt"
    assert "extra" not in item
    assert len(model.calls) == 1

def test_legacy_route_alias(use_model):
    use_model("[]")
    r = upload(path="/api/document-extraction/dates")
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": {"source_file": "contract.txt", "items": []}}

def test_unrepairable_output_is_an_empty_success(use_model):
    model = use_model("I could not find anything", "still not json")
    r = upload()
    assert r.status_code == 200
    assert r.json()["data"]["items"] == []
    assert len(model.calls) == 2

def test_repair_transport_failure_is_an_empty_success(use_model):
    use_model("{broken", TransportError("reset"))
    r = upload()
    assert r.status_code == 200
    assert r.json()["data"]["items"] == []

def test_missing_file_is_400():
    r = client.post("/extract-dates")
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["errorMessage"]

def test_unsupported_format_is_400(use_model):
    model = use_model(GOOD)
    r = upload(name="picture.png", body=b"\x89PNG", mime="image/png")
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert "PDF / DOCX / TXT" in r.json()["errorMessage"]
    assert model.calls == []

def test_corrupt_pdf_is_400(use_model):
    use_model(GOOD)
    r = upload(name="x.pdf", body=b"not a pdf", mime="application/pdf")
    assert r.status_code == 400
    assert r.json()["errorMessage"].startswith("Failed to parse file")

def test_upstream_error_is_500(use_model):
    use_model(UpstreamError(429, "rate limited"))
    r = upload()
    assert r.status_code == 500
    assert r.json()["success"] is False
    assert "429" in r.json()["errorMessage"]

def test_missing_api_key_is_500(settings_override):
    settings_override(Settings(openai_api_key=None))
    r = upload()
    assert r.status_code == 500
    assert "OPENAI_API_KEY" in r.json()["errorMessage"]

def test_upload_limit_is_enforced_before_parsing(settings_override, use_model):
    settings_override(Settings(max_upload_bytes=16))
    model = use_model(GOOD)
    r = upload(body=b"x" * 17)
    assert r.status_code == 413
    assert r.json()["success"] is False
    assert model.calls == []

def test_upload_at_the_limit_is_accepted(settings_override, use_model):
    settings_override(Settings(max_upload_bytes=16))
    use_model("[]")
    r = upload(body=b"x" * 16)
    assert r.status_code == 200

@pytest.mark.parametrize("err", [RuntimeError("boom"), KeyError("choices")])
def test_unexpected_error_keeps_the_error_envelope(use_model, err):
    use_model(err)
    r = upload()
    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json()["success"] is False
    assert r.json()["errorMessage"].startswith("LLM service failed")

def latency_count():
    return REGISTRY.get_sample_value("request_latency_ms_count") or 0.0

def test_latency_observed_for_missing_file():
    before = latency_count()
    client.post("/extract-dates")
    assert latency_count() == before + 1

def test_latency_observed_for_rejected_documents(use_model):
    use_model(GOOD)
    before = latency_count()
    upload(name="picture.png", body=b"\x89PNG", mime="image/png")
    assert latency_count() == before + 1

def test_latency_observed_for_oversize_upload(settings_override, use_model):
    settings_override(Settings(max_upload_bytes=4))
    use_model(GOOD)
    before = latency_count()
    upload(body=b"x" * 5)
    assert latency_count() == before + 1
