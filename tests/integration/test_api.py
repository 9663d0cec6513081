"""Integration tests for FastAPI API endpoints via TestClient."""

import pytest
from fastapi.testclient import TestClient

from sowdiff.api.main import create_app
from sowdiff.services.document_loader import DocumentLoader

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings=settings))


@pytest.fixture
def ai_client(settings, mock_llm):
    return TestClient(create_app(settings=settings, llm=mock_llm))


@pytest.fixture
def template_bytes(docx):
    return docx.build(
        docx.para(docx.run("1. Scope of Work", bold=True)),
        docx.para("Consulting services for the ERP rollout."),
        docx.para("2. Payment Terms"),
        docx.para("Invoices are payable within 30 days."),
        docx.para("3. Confidentiality"),
        docx.para("Keep it secret."),
    )


@pytest.fixture
def draft_bytes(docx):
    return docx.build(
        docx.para("1. Scope of Work"),
        docx.para("Consulting services for the ERP and CRM rollout."),
        docx.para("2. Payment Terms"),
        docx.para("Invoices are payable within 90 days."),
    )


@pytest.fixture
def pair(template_bytes, draft_bytes):
    loader = DocumentLoader()
    return {
        "template": loader.load_bytes(template_bytes, "template.docx").model_dump(mode="json"),
        "draft": loader.load_bytes(draft_bytes, "draft.docx").model_dump(mode="json"),
    }


class TestHealthEndpoints:

    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "sowdiff API"

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["services"]["llm"] == {}


class TestUploadEndpoint:

    def test_upload(self, client, template_bytes):
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("template.docx", template_bytes, DOCX_TYPE)},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert [s["number"] for s in data["outline"]] == ["1", "2", "3"]
        assert data["outline"][1]["title"] == "Payment Terms"
        assert data["document"]["filename"] == "template.docx"

    def test_rejects_other_extensions(self, client):
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert resp.status_code == 400

    def test_rejects_empty_file(self, client):
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("empty.docx", b"", DOCX_TYPE)},
        )
        assert resp.status_code == 400
        assert "empty" in resp.json()["detail"]

    def test_corrupt_docx(self, client):
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("broken.docx", b"not a zip archive", DOCX_TYPE)},
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "Document could not be parsed"


class TestAnalysisEndpoints:

    def test_align(self, client, pair):
        resp = client.post("/api/v1/analysis/align", json=pair)
        assert resp.status_code == 200
        data = resp.json()
        draft_ids = [s["id"] for s in pair["draft"]["sections"]]
        template_ids = [s["id"] for s in pair["template"]["sections"]]
        assert data["mapping"] == {draft_ids[0]: template_ids[0], draft_ids[1]: template_ids[1]}
        assert data["alignment"]["strategy"] == "lenient"

    def test_analyze_requires_ai(self, client, pair):
        resp = client.post("/api/v1/analysis/analyze", json=pair)
        assert resp.status_code == 503

    def test_analyze_with_model(self, ai_client, pair, mock_llm):
        resp = ai_client.post("/api/v1/analysis/analyze", json=pair)
        assert resp.status_code == 200
        data = resp.json()
        assert data["alignment"]["strategy"] == "strict"
        assert len(data["analysis"]["section_analyses"]) == 2
        # two sections plus the global pass
        assert mock_llm.generate_json.await_count == 3

    def test_formatting(self, client, pair):
        resp = client.post("/api/v1/analysis/formatting", json=pair)
        assert resp.status_code == 200
        formatting = resp.json()["formatting"]
        assert formatting["summary"]["total_formatting_issues"] == 1
        assert "CRM" in [a["acronym"] for a in formatting["acronyms"]]


class TestCompareEndpoint:

    def test_compare(self, client, template_bytes, draft_bytes):
        resp = client.post(
            "/api/v1/analysis/compare",
            files={
                "template": ("template.docx", template_bytes, DOCX_TYPE),
                "draft": ("draft.docx", draft_bytes, DOCX_TYPE),
            },
            data={"strategy": "lenient", "include_ai": "false"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["output_filename"] == "draft_reviewed.docx"
        assert data["report"]["analysis"] is None
        assert data["report"]["removed_template_sections"] == ["3. Confidentiality"]

    def test_compare_rejects_bad_upload(self, client, template_bytes):
        resp = client.post(
            "/api/v1/analysis/compare",
            files={
                "template": ("template.docx", template_bytes, DOCX_TYPE),
                "draft": ("draft.txt", b"text", "text/plain"),
            },
        )
        assert resp.status_code == 400
