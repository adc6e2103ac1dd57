import pytest
import redis
from redis.exceptions import ReadOnlyError

from errors import ConflictExhaustedError, OperationTimeoutError, StoreUnavailableError
from game import membership, registry


def test_put_only_if_absent_does_not_overwrite(backend):
    assert backend.put("ABCDEF", {"v": 1}, only_if_absent=True)
    assert not backend.put("ABCDEF", {"v": 2}, only_if_absent=True)
    assert backend.get("ABCDEF") == {"v": 1}
    assert "ABCDEF" in backend.list_codes()


def test_patch_applies_all_fields(backend):
    backend.put("ABCDEF", {"started": False, "players": {"p1": {"role": "crewmate"}}})
    backend.patch("ABCDEF", {"started": True, "players.p1.role": "imposter"})
    assert backend.get("ABCDEF") == {"started": True, "players": {"p1": {"role": "imposter"}}}


def test_patch_on_missing_document_is_a_no_op(backend):
    assert backend.patch("NOPE22", {"started": True}) is None
    assert backend.get("NOPE22") is None


def test_transact_returning_none_deletes_and_unindexes(backend):
    backend.put("ABCDEF", {"v": 1})
    assert backend.transact("ABCDEF", lambda doc: None) is None
    assert backend.get("ABCDEF") is None
    assert "ABCDEF" not in backend.list_codes()


def test_transact_retries_after_a_concurrent_commit(backend, make_backend):
    other = make_backend()
    backend.put("ABCDEF", {"n": 0})
    calls = []

    def increment(doc):
        calls.append(doc["n"])
        if len(calls) == 1:
            # another client commits between our read and our write
            other.put("ABCDEF", {"n": 10})
        return {"n": doc["n"] + 1}

    assert backend.transact("ABCDEF", increment) == {"n": 11}
    assert calls == [0, 10]
    assert backend.get("ABCDEF") == {"n": 11}


def test_transact_gives_up_when_conflicts_never_stop(make_backend):
    backend = make_backend(retries=3)
    other = make_backend()
    backend.put("ABCDEF", {"n": 0})

    def always_contended(doc):
        other.put("ABCDEF", {"n": doc["n"] + 100})
        return {"n": doc["n"] + 1}

    with pytest.raises(ConflictExhaustedError):
        backend.transact("ABCDEF", always_contended)


def test_transact_reports_timeout_separately(make_backend):
    backend = make_backend(timeout=0.0)
    backend.put("ABCDEF", {"n": 0})
    with pytest.raises(OperationTimeoutError) as excinfo:
        backend.transact("ABCDEF", lambda doc: {"n": 1})
    assert isinstance(excinfo.value, TimeoutError)
    assert not isinstance(excinfo.value, ConflictExhaustedError)


def test_transform_errors_abort_without_writing(backend):
    backend.put("ABCDEF", {"n": 0})

    def broken(doc):
        doc["n"] = 99
        raise ValueError("boom")

    with pytest.raises(ValueError):
        backend.transact("ABCDEF", broken)
    assert backend.get("ABCDEF") == {"n": 0}


def _fail_pipeline(monkeypatch, backend, method, error):
    """Make `method` on every pipeline the backend opens raise `error`."""
    real_pipeline = backend.redis_client.pipeline

    def raising(*args, **kwargs):
        raise error

    def pipeline(*args, **kwargs):
        pipe = real_pipeline(*args, **kwargs)
        monkeypatch.setattr(pipe, method, raising)
        return pipe

    monkeypatch.setattr(backend.redis_client, "pipeline", pipeline)


def test_get_failure_is_store_unavailable_not_missing(backend, lobby, monkeypatch):
    def broken(*args, **kwargs):
        raise redis.ConnectionError("connection refused")

    monkeypatch.setattr(backend.redis_client, "get", broken)
    with pytest.raises(StoreUnavailableError):
        backend.get(lobby)
    with pytest.raises(StoreUnavailableError):
        registry.get_room(backend, lobby)


def test_put_failure_is_store_unavailable(backend, monkeypatch):
    _fail_pipeline(monkeypatch, backend, "execute", redis.ConnectionError("connection reset"))
    with pytest.raises(StoreUnavailableError):
        backend.put("ABCDEF", {"v": 1})


def test_transact_connection_failure_is_store_unavailable(backend, lobby, monkeypatch):
    _fail_pipeline(monkeypatch, backend, "watch", redis.ConnectionError("connection reset"))
    with pytest.raises(StoreUnavailableError):
        membership.join(backend, lobby, "dave", "Dave")


def test_transact_server_errors_are_store_unavailable(backend, lobby, monkeypatch):
    _fail_pipeline(monkeypatch, backend, "execute",
                   ReadOnlyError("You can't write against a read only replica."))
    with pytest.raises(StoreUnavailableError):
        backend.transact(lobby, lambda doc: dict(doc, started=True))
