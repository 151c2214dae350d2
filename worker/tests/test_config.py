from placesearch.core import config


def test_get_settings_reads_env(monkeypatch):
    monkeypatch.setenv("ELASTICSEARCH_URL", "http://localhost:9200")
    monkeypatch.setenv("PLACES_INDEX", "restaurants")
    monkeypatch.setenv("INDEXER_WORKERS", "4")
    monkeypatch.setenv("INDEXER_FLUSH_BYTES", "1024")
    monkeypatch.setenv("INDEXER_FLUSH_INTERVAL", "2.5")
    monkeypatch.setenv("PAGE_SIZE", "20")
    monkeypatch.setenv("PORT", "9100")

    settings = config.get_settings()

    assert settings.elasticsearch_url == "http://localhost:9200"
    assert settings.index_name == "restaurants"
    assert settings.num_workers == 4
    assert settings.flush_bytes == 1024
    assert settings.flush_interval == 2.5
    assert settings.page_size == 20
    assert settings.recommend_size == 3
    assert settings.server_port == 9100


def test_get_settings_defaults_and_warnings(monkeypatch, caplog):
    for name in ("ELASTICSEARCH_URL", "PLACES_INDEX", "INDEXER_FLUSH_BYTES", "PAGE_SIZE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INDEXER_WORKERS", "many")

    with caplog.at_level("WARNING"):
        settings = config.get_settings()

    messages = " ".join(caplog.messages)
    assert "ELASTICSEARCH_URL is not set" in messages
    assert "INDEXER_WORKERS" in messages
    assert settings.elasticsearch_url == config.DEFAULT_ELASTICSEARCH_URL
    assert settings.index_name == "places"
    assert settings.flush_bytes == 5_000_000
    assert settings.page_size == 10
    assert settings.num_workers >= 1


def test_get_settings_rejects_non_positive_values(monkeypatch):
    monkeypatch.setenv("PAGE_SIZE", "0")
    monkeypatch.setenv("INDEXER_FLUSH_INTERVAL", "-1")

    settings = config.get_settings()

    assert settings.page_size == 10
    assert settings.flush_interval == 30.0


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("PLACES_INDEX", "first")
    first = config.get_settings()
    monkeypatch.setenv("PLACES_INDEX", "second")

    assert config.get_settings() is first
