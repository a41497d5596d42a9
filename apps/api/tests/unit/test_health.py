from sqlalchemy.exc import SQLAlchemyError

from orders_api.integrations.redis_client import RedisProtocolError
from orders_api.routers import health


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_check(client):
    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "dependencies": [{"name": "database", "status": "ok"}],
    }


def test_readiness_check_includes_redis_when_configured(client, monkeypatch):
    monkeypatch.setattr(health.settings, "redis_url", "redis://localhost:6379/0")
    monkeypatch.setattr(health, "_redis_status", lambda *_args: "ok")

    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json()["dependencies"] == [
        {"name": "database", "status": "ok"},
        {"name": "redis", "status": "ok"},
    ]


def test_readiness_check_degraded_when_dependency_check_raises(client, monkeypatch):
    def _broken_db(*_args):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(health, "_database_status", _broken_db)

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json() == {
        "status": "degraded",
        "dependencies": [{"name": "database", "status": "error"}],
    }


def test_database_status_handles_sqlalchemy_error():
    class BrokenSession:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            return False

        def execute(self, *args, **kwargs):
            raise SQLAlchemyError("db down")

    assert health._database_status(BrokenSession) == "error"


def test_redis_status_with_invalid_url_scheme():
    assert health._redis_status("rediss://localhost:6379/0") == "error"


def test_redis_status_maps_ping_result(monkeypatch):
    monkeypatch.setattr(health.RedisClient, "ping", lambda self: True)
    assert health._redis_status("redis://localhost:6379/0") == "ok"

    def _raise(self):
        raise RedisProtocolError("NOAUTH Authentication required")

    monkeypatch.setattr(health.RedisClient, "ping", _raise)
    assert health._redis_status("redis://localhost:6379/0") == "error"
