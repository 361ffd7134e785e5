import pytest

from nutriflow.parsing import (
    format_quantity,
    normalize_name,
    parse_ingredient_line,
    parse_leading_token,
    sanitize_ingredient_text,
)


@pytest.mark.parametrize("line,expected", [
    ("150g quinoa", ("quinoa", 150.0, "g")),
    ("50 ml huile d'olive", ("huile d'olive", 50.0, "ml")),
    ("1 avocat", ("avocat", 1.0, None)),
    ("2.5kg pommes de terre", ("pommes de terre", 2.5, "kg")),
])
def test_parse_ingredient_line_with_quantity(line, expected):
    parsed = parse_ingredient_line(line)
    assert (parsed.name, parsed.quantity, parsed.unit) == expected


def test_parse_ingredient_line_keeps_unquantified_text():
    parsed = parse_ingredient_line("Sel et poivre")
    assert parsed.name == "Sel et poivre"
    assert parsed.quantity is None
    assert parsed.unit is None


def test_parse_ingredient_line_strips_markdown():
    parsed = parse_ingredient_line("- **200g** riz basmati")
    assert parsed.name == "riz basmati"
    assert parsed.quantity == 200.0
    assert parsed.unit == "g"


def test_parse_leading_token_accepts_comma_decimal():
    parsed = parse_leading_token("1,5l lait")
    assert parsed.quantity == 1.5
    assert parsed.unit == "l"
    assert parsed.name == "lait"


def test_parse_leading_token_single_word_is_name_only():
    parsed = parse_leading_token("150g")
    assert parsed.name == "150g"
    assert parsed.quantity is None


def test_parse_leading_token_non_numeric_first_word():
    parsed = parse_leading_token("une pincée de sel")
    assert parsed.name == "une pincée de sel"
    assert parsed.quantity is None


def test_sanitize_and_normalize():
    assert sanitize_ingredient_text("  •  tomates   cerises ") == "tomates cerises"
    assert sanitize_ingredient_text("") == ""
    assert normalize_name("  Bowl   de Quinoa ") == "bowl de quinoa"
    assert normalize_name(None) == ""


def test_format_quantity_avoids_float_artifacts():
    assert format_quantity(300.0) == "300"
    assert format_quantity(0.1 + 0.2) == "0.3"
    assert format_quantity(1.25) == "1.25"
    assert format_quantity(None) is None
