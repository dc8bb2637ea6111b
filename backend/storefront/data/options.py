"""Option lists offered by the item configuration flow."""

NO_SAUCE = "ohne Soße"
NO_SIDES = "Ohne Beilagen bzw. Salate"

SAUCE_TYPES = [
    "Zaziki",
    "Cocktail-Soße",
    "Scharfe Soße",
    "Joghurt-Soße",
    "Knoblauch-Soße",
    "Kräuter-Soße",
    "Curry-Soße",
    "Hollandaise",
    NO_SAUCE,
]

SALAD_SAUCE_TYPES = [
    "Joghurt-Dressing",
    "Essig & Öl",
    "Cocktail-Dressing",
    "ohne Dressing",
]

POMMES_SAUCE_TYPES = [
    "Ketchup",
    "Mayonnaise",
    "Joppiesauce",
    "Süßsauer",
]

# Burger sauces: the standard list without the doner-only sauces, plus the burger sauce
BURGER_SAUCE_TYPES = sorted(
    [s for s in SAUCE_TYPES if s not in ("Zaziki", "Kräuter-Soße", "Curry-Soße")] + ["Burger Sauce"]
)

MEAT_TYPES = [
    "Kalb",
    "Hähnchen",
    "Gemischt (Kalb & Hähnchen)",
    "Nur Fleisch (ohne Salat)",
]

SALAD_EXCLUSION_OPTIONS = [
    "ohne Zwiebeln",
    "ohne Tomaten",
    "ohne Gurken",
    "ohne Eisbergsalat",
    "ohne Rotkohl",
    "ohne Weißkohl",
    "ohne Weichkäse",
    "ohne Mais",
    "ohne Peperoni",
    "ohne Soße",
    NO_SIDES,
]

SIDE_DISH_OPTIONS = [
    "Pommes frites",
    "Reis",
    "Kroketten",
]

PASTA_TYPES = [
    "Spaghetti",
    "Rigatoni",
    "Tortellini",
    "Gnocchi",
    "Penne",
]

BEER_TYPES = [
    "Pils",
    "Weizen",
    "Alster",
    "Alt",
]

# Build-your-own toppings; also offered as paid extras on regular pizzas
PIZZA_TOPPINGS = [
    "Salami",
    "Schinken",
    "Pilze",
    "Paprika",
    "Zwiebeln",
    "Thunfisch",
    "Spinat",
    "Brokkoli",
    "Ei",
    "Mozzarella",
    "Gorgonzola",
    "Weichkäse",
    "Oliven",
    "Peperoni",
    "Mais",
    "Ananas",
    "Spargel",
    "Artischocken",
    "Sardellen",
    "Meeresfrüchte",
    "Krabben",
    "Hähnchen",
    "Kalb",
    "Sucuk",
    "Jalapenos",
    "Hollandaise",
    "BBQ-Sauce",
    "Curry-Sauce",
]

WUNSCH_PIZZA_INGREDIENTS = PIZZA_TOPPINGS
PIZZA_EXTRAS = PIZZA_TOPPINGS

MAX_INGREDIENTS = 4
VISIBLE_OPTION_COUNT = 3
