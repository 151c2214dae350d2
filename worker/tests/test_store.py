import pytest
from elastic_transport import ConnectionError as ESConnectionError

from placesearch.core import store
from placesearch.core.errors import MalformedResponseError, StoreUnavailableError
from placesearch.models import GeoPoint, Place


def _hit(n, lat=55.75, lon=37.61):
    return {
        "_id": str(n),
        "_source": {
            "id": n,
            "name": f"Place {n}",
            "address": "Main St",
            "phone": "123",
            "location": {"lat": lat, "lon": lon},
        },
    }


class DummyIndices:
    def __init__(self, exists):
        self._exists = exists
        self.created = []

    def exists(self, index):
        if isinstance(self._exists, Exception):
            raise self._exists
        return self._exists

    def create(self, index, settings, mappings):
        self.created.append((index, settings, mappings))


class DummySearchClient:
    def __init__(self, response=None, exists=True, error=None):
        self.indices = DummyIndices(exists)
        self.response = response
        self.error = error
        self.searches = []

    def search(self, **kwargs):
        self.searches.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def test_init_client_creates_singleton(monkeypatch):
    created = []

    class FakeElasticsearch:
        def __init__(self, hosts, node_class, request_timeout):
            created.append((hosts, node_class, request_timeout))

    monkeypatch.setenv("ELASTICSEARCH_URL", "http://search:9200")
    monkeypatch.setattr(store, "Elasticsearch", FakeElasticsearch)

    client1 = store.init_client()
    client2 = store.init_client()

    assert client1 is client2
    assert created == [("http://search:9200", "requests", 30.0)]


def test_init_client_without_url_uses_default(monkeypatch):
    created = []

    class FakeElasticsearch:
        def __init__(self, hosts, node_class, request_timeout):
            created.append(hosts)

    monkeypatch.delenv("ELASTICSEARCH_URL", raising=False)
    monkeypatch.setattr(store, "Elasticsearch", FakeElasticsearch)

    store.init_client()

    assert created == ["http://elasticsearch:9200"]


def test_ensure_index_creates_missing_index():
    client = DummySearchClient(exists=False)

    assert store.ensure_index(client, "places") is True

    index, settings, mappings = client.indices.created[0]
    assert index == "places"
    assert settings == {"index": {"max_result_window": 20000}}
    properties = mappings["properties"]
    assert properties["location"] == {"type": "geo_point"}
    assert {properties[name]["type"] for name in ("name", "address", "phone")} == {"text"}


def test_ensure_index_leaves_existing_index_alone():
    client = DummySearchClient(exists=True)

    assert store.ensure_index(client, "places") is False
    assert client.indices.created == []


def test_ensure_index_wraps_transport_errors():
    client = DummySearchClient(exists=ESConnectionError("connection refused"))

    with pytest.raises(StoreUnavailableError):
        store.ensure_index(client, "places")


def test_get_places_sends_paged_match_all():
    response = {"hits": {"total": {"value": 25, "relation": "eq"}, "hits": [_hit(21), _hit(22)]}}
    client = DummySearchClient(response=response)
    place_store = store.PlaceStore(client, "places")

    places, total = place_store.get_places(10, 20)

    assert total == 25
    assert [place.id for place in places] == [21, 22]
    sent = client.searches[0]
    assert sent["index"] == "places"
    assert sent["track_total_hits"] is True
    assert sent["size"] == 10
    assert sent["from_"] == 20
    assert "from" not in sent
    assert sent["query"] == {"match_all": {}}


def test_get_places_without_hits_reports_total():
    response = {"hits": {"total": {"value": 25, "relation": "eq"}, "hits": []}}
    client = DummySearchClient(response=response)

    places, total = store.PlaceStore(client, "places").get_places(0, 0)

    assert places == []
    assert total == 25
    assert client.searches[0]["size"] == 0
    assert client.searches[0]["from_"] == 0


def test_nearest_places_sends_geo_sort():
    response = {"hits": {"total": {"value": 500}, "hits": [_hit(1), _hit(2), _hit(3)]}}
    client = DummySearchClient(response=response)

    places = store.PlaceStore(client, "places").nearest_places(40.7, -74.0, 3)

    assert places[0] == Place(id=1, name="Place 1", address="Main St", phone="123", location=GeoPoint(55.75, 37.61))
    sent = client.searches[0]
    assert sent["size"] == 3
    geo = sent["sort"][0]["_geo_distance"]
    assert geo["location"] == {"lat": 40.7, "lon": -74.0}
    assert geo["order"] == "asc"


def test_search_transport_error_is_store_unavailable():
    client = DummySearchClient(error=ESConnectionError("connection refused"))

    with pytest.raises(StoreUnavailableError):
        store.PlaceStore(client, "places").get_places(10, 0)


def test_search_malformed_response_propagates():
    client = DummySearchClient(response={"took": 3})

    with pytest.raises(MalformedResponseError):
        store.PlaceStore(client, "places").get_places(10, 0)


def test_get_store_uses_configured_index(monkeypatch):
    monkeypatch.setenv("PLACES_INDEX", "restaurants")
    monkeypatch.setattr(store, "init_client", lambda: DummySearchClient())

    place_store = store.get_store()

    assert place_store.index == "restaurants"
