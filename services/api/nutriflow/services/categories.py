"""Shopping-list categories.

Categorization is a pure function over an ordered rule table: the first
pattern that matches the lower-cased name wins, anything else is "other".
The vocabulary is French; names outside it fall back to "other".
"""

import re

OTHER = "other"

# (category id, display name)
CATEGORIES: list[tuple[str, str]] = [
    ("fruits-vegetables", "Fruits & Légumes"),
    ("proteins", "Protéines"),
    ("dairy", "Produits laitiers"),
    ("grains", "Céréales & Féculents"),
    ("condiments", "Condiments & Épices"),
    ("beverages", "Boissons"),
    ("frozen", "Produits surgelés"),
    ("bakery", "Boulangerie"),
    (OTHER, "Autres"),
]

CATEGORY_IDS = [cid for cid, _ in CATEGORIES]


def _words(*terms: str) -> re.Pattern:
    return re.compile(r"\b(" + "|".join(terms) + r")\b")


CATEGORY_RULES: list[tuple[str, re.Pattern]] = [
    ("fruits-vegetables", _words(
        "pomme", "poire", "banane", "orange", "citron", "tomate", "carotte", "oignon", "ail",
        "épinard", "laitue", "brocoli", "courgette", "aubergine", "poivron", "champignon",
        "avocat", "concombre", "radis", "salade", "chou", "haricot", "petit pois", "maïs",
        "artichaut", "asperge", "betterave", "céleri", "fenouil", "navet", "panais", "poireau",
        "potiron", "courge", "melon", "pastèque", "fraise", "cerise", "abricot", "pêche",
        "prune", "raisin", "kiwi", "ananas", "mangue", "papaye", "fruit", "légume", "herbe",
        "persil", "ciboulette", "basilic", "thym", "romarin", "menthe", "coriandre", "estragon",
    )),
    ("proteins", _words(
        "viande", "porc", "bœuf", "agneau", "veau", "poisson", "saumon", "thon", "sardine",
        "maquereau", "truite", "cabillaud", "sole", "lotte", "crevette", "moule", "huître",
        "crabe", "homard", "poulet", "dinde", "canard", "œuf", "jambon", "lard", "bacon",
        "saucisse", "merguez", "steak", "escalope", "rôti", "côte", "filet", "gigot", "cuisse",
        "blanc",
    )),
    ("dairy", _words(
        "lait", "yaourt", "fromage", "beurre", "crème", "mozzarella", "gruyère", "emmental",
        "chèvre", "roquefort", "camembert", "brie", "mascarpone", "ricotta", "parmesan", "feta",
        "crème fraîche", "crème liquide", "lait de coco", "lait d'amande", "lait d'avoine",
    )),
    ("grains", _words(
        "riz", "pâtes", "blé", "farine", "pain", "céréales", "avoine", "quinoa", "orge",
        "sarrasin", "millet", "semoule", "couscous", "boulgour", "vermicelle", "tagliatelle",
        "spaghetti", "penne", "fusilli", "farfalle", "lasagne", "ravioli", "gnocchi",
        "pomme de terre", "patate", "manioc", "igname", "tapioca", "polenta", "épeautre",
        "kamut", "amarante",
    )),
    ("condiments", _words(
        "sel", "poivre", "sucre", "huile", "vinaigre", "moutarde", "mayonnaise", "ketchup",
        "sauce", "épice", "cannelle", "muscade", "clou de girofle", "cardamome", "coriandre",
        "cumin", "curry", "paprika", "piment", "cayenne", "tabasco", "harissa", "wasabi",
        "gingembre", "curcuma", "safran", "vanille", "sirop", "miel", "confiture", "gelée",
        "compote", "bouillon", "fond", "concentré", "levure", "bicarbonate", "agar", "gélatine",
    )),
    ("beverages", _words(
        "eau", "jus", "vin", "bière", "cidre", "champagne", "whisky", "rhum", "vodka", "gin",
        "cognac", "liqueur", "apéritif", "digestif", "tisane", "thé", "café", "chocolat",
        "cacao", "soda", "limonade", "sirop", "smoothie", "milkshake", "boisson",
    )),
    ("frozen", _words("surgelé", "congelé", "glace", "sorbet", "frozen")),
    ("bakery", _words(
        "pain", "baguette", "croissant", "brioche", "viennoiserie", "pâtisserie", "gâteau",
        "tarte", "muffin", "cookie", "biscuit", "cracker", "toast", "biscottes", "chapelure",
        "levure", "pâte feuilletée", "pâte brisée", "pâte sablée",
    )),
]


def categorize_ingredient(name: str) -> str:
    """Return the category id for an ingredient name (first matching rule wins)."""
    lower = (name or "").lower()
    for category, pattern in CATEGORY_RULES:
        if pattern.search(lower):
            return category
    return OTHER
