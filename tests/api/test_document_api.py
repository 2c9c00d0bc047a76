"""
API tests for document endpoints.

Tests cover:
- State before and after load
- Load errors (empty, syntax, structure) in the common error shape
- New document, explicit save, download
"""

from fastapi.testclient import TestClient

from cashflow.codec import load


# =============================================================================
# STATE AND LOAD TESTS
# =============================================================================


class TestLoadDocumentAPI:
    """Tests for GET /document and POST /document/load."""

    def test_state_before_load(self, client: TestClient):
        response = client.get("/document")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "UNLOADED"
        assert data["stats"]["accounts"] == 0
        assert data["default_currency"] is None

    def test_load_success(self, client: TestClient, sample_toml):
        """
        GIVEN a valid TOML document
        WHEN I POST /document/load
        THEN the stats and the success message are returned
        """
        response = client.post("/document/load", json={"content": sample_toml})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["stats"] == {"currencies": 3, "accounts": 3, "transactions": 1, "budgets": 0, "recurring": 0}
        assert "Fichier chargé avec succès" in data["message"]

        state = client.get("/document").json()
        assert state["status"] == "LOADED"
        assert state["is_dirty"] is False
        assert state["default_currency"] == "CHF"

    def test_load_empty(self, client: TestClient):
        response = client.post("/document/load", json={"content": "  "})

        assert response.status_code == 400
        error = response.json()["errors"][0]
        assert error["kind"] == "EMPTY_INPUT"
        assert "vide" in error["message"]

    def test_load_syntax_error_has_line(self, client: TestClient):
        response = client.post("/document/load", json={"content": 'version = "1.0.0"\n[metadata\n'})

        assert response.status_code == 400
        error = response.json()["errors"][0]
        assert error["kind"] == "SYNTAX_ERROR"
        assert error["line"] == 2

    def test_failed_load_keeps_document(self, loaded_client: TestClient):
        response = loaded_client.post("/document/load", json={"content": "[metadata\n"})

        assert response.status_code == 400
        assert loaded_client.get("/document").json()["stats"]["accounts"] == 3

    def test_structural_errors_listed(self, client: TestClient, sample_toml):
        text = sample_toml.replace('version = "1.0.0"', 'version = "1.0"').replace('currency = "EUR"\nopened', 'currency = "GBP"\nopened')

        response = client.post("/document/load", json={"content": text})

        assert response.status_code == 400
        fields = [e.get("field") for e in response.json()["errors"]]
        assert "version" in fields
        assert "currency" in fields


# =============================================================================
# NEW / SAVE / DOWNLOAD TESTS
# =============================================================================


class TestNewAndSaveAPI:
    """Tests for POST /document/new, POST /document/save and GET /document/download."""

    def test_new_document(self, client: TestClient):
        response = client.post("/document/new", json={"default_currency": "EUR"})

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "MODIFIED"
        assert data["is_dirty"] is True
        assert data["default_currency"] == "EUR"

    def test_new_document_uses_configured_currency(self, client: TestClient):
        response = client.post("/document/new", json={})

        assert response.status_code == 201
        assert response.json()["default_currency"] == "CHF"

    def test_new_document_invalid_code(self, client: TestClient):
        response = client.post("/document/new", json={"default_currency": "eur"})

        assert response.status_code == 400
        assert client.get("/document").json()["status"] == "UNLOADED"

    def test_save_writes_and_clears_dirty(self, loaded_client: TestClient, app_context):
        """
        GIVEN a loaded document with one change
        WHEN I POST /document/save
        THEN the serialized document reaches the write target and the state is clean
        """
        loaded_client.delete("/currencies/USD")

        response = loaded_client.post("/document/save")

        assert response.status_code == 200
        data = response.json()
        assert data["writes"] == 1
        assert data["state"]["is_dirty"] is False
        assert data["state"]["last_saved_at"] is not None
        written = load(app_context.target.payload.decode("utf-8")).document
        assert [c.code for c in written.currencies] == ["CHF", "EUR"]

    def test_save_clean_document_writes_nothing(self, loaded_client: TestClient, app_context):
        response = loaded_client.post("/document/save")

        assert response.status_code == 200
        assert response.json()["writes"] == 0
        assert app_context.target.payload is None

    def test_save_without_document(self, client: TestClient):
        response = client.post("/document/save")

        assert response.status_code == 404
        assert response.json()["errors"][0]["kind"] == "NOT_LOADED"

    def test_download(self, loaded_client: TestClient):
        response = loaded_client.get("/document/download")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/toml")
        assert 'filename="budget.toml"' in response.headers["content-disposition"]
        assert load(response.text).stats.accounts == 3


class TestHealthAPI:
    def test_health(self, client: TestClient):
        assert client.get("/health").json() == {"status": "healthy"}
