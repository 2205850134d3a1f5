import pytest

from shared.clients.rag.chroma.RAGStoreChroma import RAGStoreChroma
from shared.exceptions import DimensionTooLarge, IndexIOError
from shared.models.vector import VectorRecord
from tests.conftest import TEST_DIMENSION


def _unit(position: int, dimension: int = TEST_DIMENSION) -> list[float]:
    vector = [0.01] * dimension
    vector[position] = 1.0
    return vector


def _record(record_id: str, position: int, text: str | None = None, **metadata) -> VectorRecord:
    return VectorRecord(id=record_id, vector=_unit(position), text=text or record_id, metadata=metadata)


def test_empty_store_returns_no_results(rag_store):
    assert rag_store.search(_unit(0), top_k=5) == []
    assert rag_store.stats().document_count == 0


def test_search_orders_by_similarity(rag_store):
    rag_store.upsert([_record("a", 0), _record("b", 1), _record("c", 2)])
    results = rag_store.search(_unit(1), top_k=3)
    assert [r.id for r in results][0] == "b"
    assert results[0].score == pytest.approx(1.0, abs=1e-3)
    assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)


def test_top_k_larger_than_store_returns_everything(rag_store):
    rag_store.upsert([_record("a", 0), _record("b", 1)])
    assert len(rag_store.search(_unit(0), top_k=50)) == 2


def test_upsert_replaces_record_with_same_id(rag_store):
    rag_store.upsert([_record("a", 0, text="old", source="text")])
    rag_store.upsert([_record("a", 0, text="new", source="ontology")])
    results = rag_store.search(_unit(0), top_k=5)
    assert len(results) == 1
    assert results[0].text == "new"
    assert results[0].metadata == {"source": "ontology"}


def test_duplicate_ids_in_one_batch_keep_the_last(rag_store):
    written = rag_store.upsert([_record("a", 0, text="first"), _record("a", 0, text="second")])
    assert written == 1
    assert rag_store.search(_unit(0), top_k=1)[0].text == "second"


def test_vectors_are_reconciled_to_store_dimension(rag_store):
    longer = VectorRecord(id="long", vector=_unit(3, TEST_DIMENSION + 4), text="long")
    shorter = VectorRecord(id="short", vector=[0.5, 0.5], text="short")
    assert rag_store.upsert([longer, shorter]) == 2
    assert rag_store.reconcile_vector([1.0] * 20).shape == (TEST_DIMENSION,)
    padded = rag_store.reconcile_vector([1.0, 2.0])
    assert padded.tolist() == [1.0, 2.0] + [0.0] * (TEST_DIMENSION - 2)
    assert rag_store.search(_unit(3), top_k=1)[0].id == "long"


def test_second_writer_is_rejected_until_first_closes(rag_store, helper_config):
    location = rag_store.get_index_location()
    with pytest.raises(IndexIOError) as info:
        RAGStoreChroma(helper_config=helper_config, dimension=TEST_DIMENSION, index_path=location)
    assert "locked" in info.value.reason

    rag_store.close()
    with RAGStoreChroma(helper_config=helper_config, dimension=TEST_DIMENSION, index_path=location) as reopened:
        assert reopened.stats().document_count == 0


def test_records_survive_reopen(helper_config, tmp_path):
    location = str(tmp_path / "persisted")
    with RAGStoreChroma(helper_config=helper_config, dimension=TEST_DIMENSION, index_path=location) as store:
        store.upsert([_record("a", 0), _record("b", 1)])
    with RAGStoreChroma(helper_config=helper_config, dimension=TEST_DIMENSION, index_path=location) as store:
        assert store.stats().document_count == 2
        assert store.search(_unit(0), top_k=1)[0].id == "a"


def test_reopen_with_other_dimension_fails(helper_config, tmp_path):
    location = str(tmp_path / "dims")
    with RAGStoreChroma(helper_config=helper_config, dimension=TEST_DIMENSION, index_path=location) as store:
        store.upsert([_record("a", 0)])
    with pytest.raises(IndexIOError):
        RAGStoreChroma(helper_config=helper_config, dimension=TEST_DIMENSION * 2, index_path=location)


def test_clear_keeps_store_usable(rag_store):
    rag_store.upsert([_record("a", 0), _record("b", 1)])
    rag_store.clear()
    assert rag_store.stats().document_count == 0
    rag_store.upsert([_record("c", 2)])
    assert [r.id for r in rag_store.search(_unit(2), top_k=5)] == ["c"]


def test_close_is_idempotent_and_blocks_use(rag_store):
    rag_store.close()
    rag_store.close()
    with pytest.raises(IndexIOError):
        rag_store.search(_unit(0), top_k=1)


def test_dimension_cap(helper_config, tmp_path):
    with pytest.raises(DimensionTooLarge):
        RAGStoreChroma(helper_config=helper_config, dimension=1025, index_path=str(tmp_path / "big"))
