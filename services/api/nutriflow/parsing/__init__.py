from .ingredient_parser import (
    ParsedIngredient,
    parse_ingredient_line,
    parse_leading_token,
    sanitize_ingredient_text,
    normalize_name,
    format_quantity,
)

__all__ = [
    "ParsedIngredient",
    "parse_ingredient_line",
    "parse_leading_token",
    "sanitize_ingredient_text",
    "normalize_name",
    "format_quantity",
]
