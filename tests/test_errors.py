from fastapi import FastAPI
from fastapi.testclient import TestClient

from common.config import Settings
from common.errors import install_error_handlers


def _app(environment):
    app = FastAPI()
    install_error_handlers(app, Settings(service_name="t", db_url="sqlite://", environment=environment))

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    return TestClient(app, raise_server_exceptions=False)


def test_development_exposes_traceback():
    r = _app("development").get("/boom")
    assert r.status_code == 500
    assert r.json()["error"] == "Internal server error"
    assert any("kaboom" in line for line in r.json()["traceback"])


def test_production_hides_traceback():
    r = _app("production").get("/boom")
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("COURIER_TIMEOUT", "not-a-number")
    monkeypatch.setenv("COURIER_URL", "http://courier.test/")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("DB_URL", raising=False)
    settings = Settings.from_env("shipping")
    assert settings.db_url == "sqlite:///./shipping.sqlite"
    assert settings.log_level == "INFO"
    assert settings.courier_timeout == 5.0
    assert settings.courier_url == "http://courier.test"
    assert not settings.is_development
