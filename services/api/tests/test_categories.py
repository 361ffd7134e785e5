import pytest

from nutriflow.services.categories import CATEGORY_IDS, categorize_ingredient


@pytest.mark.parametrize("name,category", [
    ("tomates cerises", "other"),  # plural is not in the vocabulary
    ("tomate", "fruits-vegetables"),
    ("Saumon frais", "proteins"),
    ("yaourt grec", "dairy"),
    ("quinoa", "grains"),
    ("huile d'olive", "condiments"),
    ("jus d'orange", "fruits-vegetables"),  # "orange" is checked before beverages
    ("thé vert", "beverages"),
    ("sorbet citron", "fruits-vegetables"),
    ("glace vanille", "condiments"),
    ("croissant", "bakery"),
    ("tofu", "other"),
])
def test_categorize_ingredient(name, category):
    assert categorize_ingredient(name) == category


def test_matches_whole_words_only():
    # "ail" must not match inside "caille" or "maillot"
    assert categorize_ingredient("ail") == "fruits-vegetables"
    assert categorize_ingredient("caille") == "other"


def test_unicode_word_boundaries():
    assert categorize_ingredient("œuf dur") == "proteins"
    assert categorize_ingredient("Crème fraîche") == "dairy"


def test_every_result_is_a_known_category():
    for name in ("", "pain", "eau gazeuse", "n'importe quoi"):
        assert categorize_ingredient(name) in CATEGORY_IDS
