"""End-to-end tests for health and root endpoints and app wiring."""

from src.main import APP_VERSION, app
from src.services.token_manager import TokenManager


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_endpoint_returns_200(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_health_does_not_need_credentials(self, test_client, mock_settings):
        mock_settings.instagram_access_token = ""

        assert test_client.get("/health").status_code == 200

    def test_generated_correlation_id_header(self, test_client):
        response = test_client.get("/health")

        assert response.headers["X-Correlation-ID"]


class TestMainApplication:
    def test_app_metadata(self):
        assert app.title == "Instagram Graph Adapter"
        assert app.version == APP_VERSION

    def test_root_endpoint(self, test_client):
        data = test_client.get("/").json()

        assert data["message"] == "Instagram Graph Adapter API"
        assert data["version"] == APP_VERSION

    def test_lifespan_creates_token_manager(self, test_client, mock_logfire):
        assert isinstance(test_client.app.state.token_manager, TokenManager)
        mock_logfire.configure.assert_called_once()
