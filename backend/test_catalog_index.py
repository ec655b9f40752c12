from medorder.services.catalog_index import CatalogIndex, normalize_name

NAMES = ["Paracetamol", "Amoxicillin", "Cetirizine", "Ibuprofen", "Azithromycin"]


def test_normalize_name():
    assert normalize_name("  PARACETAMOL   500mg ") == "paracetamol 500mg"
    assert normalize_name("") == ""
    assert normalize_name(None) == ""


def test_misspelling_finds_item():
    index = CatalogIndex(score_cutoff=60).rebuild(NAMES)
    results = index.search("paracetmol")
    assert results
    assert results[0][0] == "Paracetamol"


def test_results_are_best_first_and_above_cutoff():
    index = CatalogIndex(score_cutoff=60).rebuild(NAMES)
    results = index.search("amoxcilin")
    scores = [score for _, score in results]
    assert scores == sorted(scores, reverse=True)
    assert all(score >= 60 for score in scores)
    assert results[0][0] == "Amoxicillin"


def test_unrelated_query_returns_nothing():
    index = CatalogIndex(score_cutoff=80).rebuild(NAMES)
    assert index.search("zzzzqqq") == []


def test_empty_query_and_empty_index():
    assert CatalogIndex().search("paracetamol") == []
    assert CatalogIndex().rebuild(NAMES).search("   ") == []


def test_rebuild_is_deterministic_regardless_of_input_order():
    a = CatalogIndex(score_cutoff=50).rebuild(NAMES)
    b = CatalogIndex(score_cutoff=50).rebuild(list(reversed(NAMES)))
    for query in ("cetrizine", "ibuprofin", "azithro"):
        assert a.search(query) == b.search(query)


def test_rebuild_replaces_snapshot():
    index = CatalogIndex(score_cutoff=60).rebuild(NAMES)
    index.rebuild([(1, "Dolo 650")])
    assert len(index) == 1
    assert index.search("paracetamol") == []
    assert index.lookup_id("dolo   650") == 1


def test_refresh_from_database(db, catalog):
    index = CatalogIndex(score_cutoff=60).refresh(db)
    assert len(index) == len(catalog)
    assert index.lookup_id("paracetamol") == catalog["Paracetamol"].id


def test_rebuilding_twice_gives_identical_results(db, catalog):
    index = CatalogIndex(score_cutoff=50).refresh(db)
    first = [index.search(q) for q in ("paracetmol", "amox", "cetrizin")]
    index.refresh(db)
    assert [index.search(q) for q in ("paracetmol", "amox", "cetrizin")] == first


def test_fragments_do_not_match_whole_names():
    index = CatalogIndex(score_cutoff=60).rebuild(NAMES)
    assert index.search("Ol") == []
    assert index.search("Ace") == []
    assert index.search("Dolo") == []
