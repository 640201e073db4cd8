from fastapi.testclient import TestClient

from tracker.main import app
from tracker.utils import redis_client


class DummyRedis:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def test_close_redis_client(monkeypatch):
    dummy = DummyRedis()
    monkeypatch.setattr(redis_client, "_redis_client", dummy)
    redis_client.close_redis_client()
    assert dummy.closed
    assert redis_client._redis_client is None


def test_app_shutdown_closes_client(monkeypatch):
    dummy = DummyRedis()
    monkeypatch.setattr(redis_client, "_redis_client", dummy)

    with TestClient(app):
        pass

    assert dummy.closed
    assert redis_client._redis_client is None
