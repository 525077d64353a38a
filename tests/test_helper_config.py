# tests/test_helper_config.py

import pytest

from shared.helper.HelperConfig import DEFAULT_DOC_BOOST_RULES


def test_missing_required_value_raises(helper_config, monkeypatch):
    monkeypatch.delenv("SOME_UNSET_KEY", raising=False)
    with pytest.raises(ValueError, match="SOME_UNSET_KEY"):
        helper_config.get_string_val("some_unset_key")


def test_primitive_readers(helper_config, monkeypatch):
    monkeypatch.setenv("A_STRING", "  value ")
    monkeypatch.setenv("A_NUMBER", "0.25")
    monkeypatch.setenv("A_BOOL", "Yes")
    monkeypatch.setenv("A_LIST", "[mtt, cash,,]")

    assert helper_config.get_string_val("a_string") == "value"
    assert helper_config.get_number_val("A_NUMBER") == 0.25
    assert helper_config.get_bool_val("A_BOOL") is True
    assert helper_config.get_list_val("A_LIST") == ["mtt", "cash"]


def test_invalid_number_and_list_raise(helper_config, monkeypatch):
    monkeypatch.setenv("A_NUMBER", "many")
    monkeypatch.setenv("A_LIST", "mtt,cash")
    with pytest.raises(ValueError):
        helper_config.get_number_val("A_NUMBER")
    with pytest.raises(ValueError):
        helper_config.get_list_val("A_LIST")


def test_section_defaults(helper_config, monkeypatch):
    for key in ("CHUNK_MAX_TOKENS", "CHUNK_OVERLAP_TOKENS", "SEARCH_K_RAW", "SEARCH_K_FINAL", "EMBED_BATCH_SIZE"):
        monkeypatch.delenv(key, raising=False)

    chunking = helper_config.get_chunking_config()
    search = helper_config.get_search_config()
    ingest = helper_config.get_ingest_config()

    assert (chunking.max_tokens, chunking.overlap_tokens) == (1100, 180)
    assert (search.k_raw, search.k_final, search.max_per_doc) == (40, 12, 3)
    assert (ingest.batch_size, ingest.max_item_tokens) == (32, 7900)


def test_search_config_rejects_overlapping_k(helper_config, monkeypatch):
    monkeypatch.setenv("SEARCH_K_RAW", "10")
    monkeypatch.setenv("SEARCH_K_FINAL", "10")
    with pytest.raises(ValueError):
        helper_config.get_search_config()


def test_doc_boost_rules(helper_config, monkeypatch):
    monkeypatch.delenv("SEARCH_DOC_BOOSTS", raising=False)
    assert helper_config.get_doc_boost_rules() == DEFAULT_DOC_BOOST_RULES

    monkeypatch.setenv("SEARCH_DOC_BOOSTS", '[{"pattern": "wsop", "doc_id": "wsop.pdf", "factor": 1.1}]')
    [rule] = helper_config.get_doc_boost_rules()
    assert (rule.pattern, rule.doc_id, rule.factor) == ("wsop", "wsop.pdf", 1.1)

    monkeypatch.setenv("SEARCH_DOC_BOOSTS", '[{"pattern": "x", "doc_id": "x.pdf", "factor": -2}]')
    with pytest.raises(ValueError, match="SEARCH_DOC_BOOSTS"):
        helper_config.get_doc_boost_rules()
