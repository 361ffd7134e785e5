import re
from typing import Optional

from pydantic import BaseModel

# "<number><unit>? <name>", e.g. "150g quinoa", "50 ml huile d'olive", "1 avocat"
QUANTITY_LINE = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-zA-Z]+)?\s+(.+)$")

# Weaker check applied to the first whitespace-delimited token only
NUMERIC_PREFIX = re.compile(r"^(\d+(?:[.,]\d+)?)([^\d\s]*)$")


class ParsedIngredient(BaseModel):
    name: str
    quantity: Optional[float] = None
    unit: Optional[str] = None


def sanitize_ingredient_text(text: str) -> str:
    """Strip markdown and normalize whitespace."""
    if not text:
        return ""

    s = text.replace("**", "").replace("__", "")
    # Leading bullets ("- ", "* ", "• ")
    s = re.sub(r'^[\s\-\*•]+', '', s)
    s = re.sub(r'\s+', ' ', s).strip()
    return s


def normalize_name(name: Optional[str]) -> str:
    """Case- and whitespace-insensitive comparison key."""
    if not name:
        return ""
    return re.sub(r'\s+', ' ', name).strip().lower()


def parse_ingredient_line(line: str) -> ParsedIngredient:
    """
    Parse "<number><unit>? <name>".
    Lines without a leading quantity keep the whole text as the name; nothing is discarded.
    """
    clean = sanitize_ingredient_text(line)
    match = QUANTITY_LINE.match(clean)
    if not match:
        return ParsedIngredient(name=clean)

    qty_str, unit, name = match.group(1), match.group(2), match.group(3)
    return ParsedIngredient(
        name=name.strip(),
        quantity=float(qty_str),
        unit=unit or None,
    )


def parse_leading_token(line: str) -> ParsedIngredient:
    """
    Fallback parse for raw ingredient strings.
    Only the first token is inspected: "150g" -> (150, "g"), "2" -> (2, None).
    """
    clean = sanitize_ingredient_text(line)
    words = clean.split(" ")
    if len(words) < 2:
        return ParsedIngredient(name=clean)

    match = NUMERIC_PREFIX.match(words[0])
    if not match:
        return ParsedIngredient(name=clean)

    qty = float(match.group(1).replace(",", "."))
    unit = match.group(2) or None
    return ParsedIngredient(name=" ".join(words[1:]), quantity=qty, unit=unit)


def format_quantity(value: Optional[float]) -> Optional[str]:
    """Render a numeric quantity without float artifacts (300.0 -> "300", 0.1+0.2 -> "0.3")."""
    if value is None:
        return None
    rounded = round(float(value), 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0").rstrip(".")
