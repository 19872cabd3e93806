import pytest


@pytest.fixture(autouse=True)
def test_set_env(monkeypatch):
    monkeypatch.setenv("PASSIVETOTAL_USER", "analyst@example.com")
    monkeypatch.setenv("PASSIVETOTAL_KEY", "test-key")
    for name in (
        "PASSIVETOTAL_BASE_URL",
        "PASSIVETOTAL_TIMEOUT_SECONDS",
        "WISEBATCH_BATCH_SIZE",
        "WISEBATCH_FLUSH_INTERVAL_SECONDS",
        "WISEBATCH_TRANSPORT_ERROR_POLICY",
    ):
        monkeypatch.delenv(name, raising=False)
