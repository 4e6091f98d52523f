from utils.recommendations import collect_interests, match_count, rank_recommendations


def test_collect_interests_normalizes_strings_and_lists():
    interests = collect_interests({"tripTypes": [" Beach ", "ADVENTURE"], "excitement": "Food "})
    assert interests == {"beach", "adventure", "food"}


def test_collect_interests_handles_odd_profiles():
    assert collect_interests(None) == set()
    assert collect_interests({"tripTypes": "Culture", "excitement": 3}) == {"culture"}
    assert collect_interests({"tripTypes": ["", None, "  "]}) == set()


def test_match_count_with_comma_separated_tags():
    product = {"theme_tags": "beach, Nightlife ,food"}
    assert match_count(product, {"beach", "food"}) == 2


def test_rank_orders_by_overlap_and_truncates():
    products = [
        {"id": "p1", "theme_tags": ["mountains"]},
        {"id": "p2", "theme_tags": ["Beach", "food"]},
        {"id": "p3", "theme_tags": "beach"},
        {"id": "p4", "theme_tags": ["beach", "food", "adventure"]},
        {"id": "p5", "theme_tags": None},
    ]
    ranked = rank_recommendations(products, {"beach", "food", "adventure"})
    assert [p["id"] for p in ranked] == ["p4", "p2", "p3"]
    assert [p["match_count"] for p in ranked] == [3, 2, 1]


def test_rank_ties_keep_catalog_order():
    products = [{"id": f"p{i}", "theme_tags": []} for i in range(5)]
    ranked = rank_recommendations(products, {"beach"}, limit=2)
    assert [p["id"] for p in ranked] == ["p0", "p1"]


def test_rank_does_not_mutate_input():
    products = [{"id": "p1", "theme_tags": ["beach"]}]
    rank_recommendations(products, {"beach"})
    assert "match_count" not in products[0]
