"""
Item Selection Service
Drives the item configuration dialog: which options an item offers, the
meat → sauce → exclusions → side dish wizard, and the finalized selections
handed to the cart.

The step sequence is decided by catalog tags on the item, never by item
numbers:

- meat-selection items that are neither pizzas nor tagged
  ``skips_meat_wizard`` walk the wizard;
- of those, items with ``has_side_dish_selection`` get the side dish step;
- ``sauce_policy`` picks the sauce list;
- ``limits_sauce_list`` starts the sauce list collapsed.
"""

import logging
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional

from storefront.core.config import settings
from storefront.core.errors import ValidationFailedError
from storefront.core.formatting import format_price
from storefront.data.options import (
    BEER_TYPES,
    BURGER_SAUCE_TYPES,
    MAX_INGREDIENTS,
    MEAT_TYPES,
    NO_SAUCE,
    NO_SIDES,
    PASTA_TYPES,
    PIZZA_EXTRAS,
    POMMES_SAUCE_TYPES,
    SALAD_EXCLUSION_OPTIONS,
    SALAD_SAUCE_TYPES,
    SAUCE_TYPES,
    SIDE_DISH_OPTIONS,
    VISIBLE_OPTION_COUNT,
    WUNSCH_PIZZA_INGREDIENTS,
)
from storefront.models.menu import SaucePolicy
from storefront.schemas.cart import ItemSelections, SelectionRequest
from storefront.schemas.menu import PizzaSize

logger = logging.getLogger(__name__)


class Step(str, Enum):
    MEAT = "meat"
    SAUCE = "sauce"
    EXCLUSIONS = "exclusions"
    SIDEDISH = "sidedish"
    COMPLETE = "complete"


REQUIRED_FIELD_LABELS = {
    "size": "Größe",
    "pasta_type": "Nudelsorte",
    "drink": "Getränk",
}


# ------------------------------------------------------------------
# Item predicates
# ------------------------------------------------------------------

def is_configurable(item: Any) -> bool:
    """True when adding the item needs the configuration dialog."""
    return bool(
        item.sizes
        or item.is_wunsch_pizza
        or item.is_pizza
        or item.is_pasta
        or item.is_beer_selection
        or item.is_meat_selection
        or (item.is_spezialitaet and item.sauce_policy != SaucePolicy.NONE)
    )


def uses_wizard(item: Any) -> bool:
    return bool(item.is_meat_selection and not item.is_pizza and not item.skips_meat_wizard)


def has_side_dish_step(item: Any) -> bool:
    return uses_wizard(item) and bool(item.has_side_dish_selection)


def sauce_options(item: Any) -> List[str]:
    """Sauce list for the item's sauce policy."""
    policy = item.sauce_policy
    if policy == SaucePolicy.SALAD_DRESSING:
        return list(SALAD_SAUCE_TYPES)
    if policy == SaucePolicy.FRIES:
        return list(POMMES_SAUCE_TYPES)
    if policy == SaucePolicy.BURGER:
        return list(BURGER_SAUCE_TYPES)
    if policy == SaucePolicy.NONE:
        return []
    return list(SAUCE_TYPES)


def _unique(values: Iterable[str]) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class ItemSelectionFlow:
    """
    State machine behind the item dialog.

    ``add_to_cart()`` either advances the wizard (returns None) or finalizes
    the selections, hands them to ``on_add`` and returns them.
    """

    def __init__(
        self,
        item: Any,
        on_add: Optional[Callable[[Any, ItemSelections], None]] = None,
        extra_price: Optional[float] = None,
    ):
        self.item = item
        self.on_add = on_add
        self.extra_price = settings.extra_price if extra_price is None else extra_price
        self.sizes = [PizzaSize.model_validate(s) for s in (item.sizes or [])]

        self.selected_size: Optional[PizzaSize] = self.sizes[0] if self.sizes else None
        self.selected_ingredients: List[str] = []
        self.selected_extras: List[str] = []
        self.selected_pasta_type = PASTA_TYPES[0] if item.is_pasta else ""
        self.selected_sauce = ""
        self.selected_meat_type = MEAT_TYPES[0] if item.is_meat_selection else ""
        self.selected_sauces: List[str] = []
        self.selected_exclusions: List[str] = []
        self.selected_side_dish = (
            SIDE_DISH_OPTIONS[0] if item.has_side_dish_selection else ""
        )
        self.selected_drink = ""
        self.current_step = Step.MEAT
        self.show_all_sauces = False
        self.show_all_exclusions = False

    @property
    def uses_wizard(self) -> bool:
        return uses_wizard(self.item)

    # Single-choice selections

    def select_size(self, name: str):
        for size in self.sizes:
            if size.name == name:
                self.selected_size = size
                return
        raise ValidationFailedError(f"Unbekannte Größe: {name}", field="size")

    def select_meat_type(self, meat_type: str):
        if meat_type not in MEAT_TYPES:
            raise ValidationFailedError(f"Unbekannte Fleischsorte: {meat_type}", field="meat_type")
        self.selected_meat_type = meat_type

    def select_pasta_type(self, pasta_type: str):
        if pasta_type not in PASTA_TYPES:
            raise ValidationFailedError(f"Unbekannte Nudelsorte: {pasta_type}", field="pasta_type")
        self.selected_pasta_type = pasta_type

    def select_sauce(self, sauce: str):
        if sauce not in sauce_options(self.item):
            raise ValidationFailedError(f"Unbekannte Soße: {sauce}", field="sauce")
        self.selected_sauce = sauce

    def select_side_dish(self, side_dish: str):
        if side_dish not in SIDE_DISH_OPTIONS:
            raise ValidationFailedError(f"Unbekannte Beilage: {side_dish}", field="side_dish")
        self.selected_side_dish = side_dish

    def select_drink(self, drink: str):
        if drink not in BEER_TYPES:
            raise ValidationFailedError(f"Unbekanntes Getränk: {drink}", field="drink")
        self.selected_drink = drink

    # Multi-choice toggles

    def toggle_ingredient(self, ingredient: str):
        """Toggle a build-your-own topping. A fifth topping is ignored."""
        if ingredient not in WUNSCH_PIZZA_INGREDIENTS:
            raise ValidationFailedError(f"Unbekannte Zutat: {ingredient}", field="ingredients")
        if ingredient in self.selected_ingredients:
            self.selected_ingredients.remove(ingredient)
        elif len(self.selected_ingredients) < MAX_INGREDIENTS:
            self.selected_ingredients.append(ingredient)

    def toggle_extra(self, extra: str):
        if extra not in PIZZA_EXTRAS:
            raise ValidationFailedError(f"Unbekanntes Extra: {extra}", field="extras")
        if extra in self.selected_extras:
            self.selected_extras.remove(extra)
        else:
            self.selected_extras.append(extra)

    def toggle_sauce(self, sauce: str):
        """Toggle a sauce; "ohne Soße" excludes every other sauce."""
        if sauce not in sauce_options(self.item):
            raise ValidationFailedError(f"Unbekannte Soße: {sauce}", field="sauces")
        if sauce == NO_SAUCE:
            self.selected_sauces = [] if NO_SAUCE in self.selected_sauces else [NO_SAUCE]
            return

        remaining = [s for s in self.selected_sauces if s != NO_SAUCE]
        if sauce in remaining:
            remaining.remove(sauce)
        else:
            remaining.append(sauce)
        self.selected_sauces = remaining

    def toggle_exclusion(self, exclusion: str):
        """Toggle a salad exclusion; "no sides at all" excludes every other one."""
        if exclusion not in SALAD_EXCLUSION_OPTIONS:
            raise ValidationFailedError(f"Unbekannte Salat-Option: {exclusion}", field="exclusions")
        if exclusion == NO_SIDES:
            self.selected_exclusions = [] if NO_SIDES in self.selected_exclusions else [NO_SIDES]
            return

        if NO_SIDES in self.selected_exclusions:
            self.selected_exclusions = [exclusion]
        elif exclusion in self.selected_exclusions:
            self.selected_exclusions.remove(exclusion)
        else:
            self.selected_exclusions.append(exclusion)

    # Navigation

    def back_to_meat(self):
        self.current_step = Step.MEAT
        self.selected_sauce = ""
        self.selected_sauces = []

    def back_to_sauce(self):
        self.current_step = Step.SAUCE
        self.selected_exclusions = []

    def back_to_exclusions(self):
        self.current_step = Step.EXCLUSIONS
        self.selected_side_dish = SIDE_DISH_OPTIONS[0]

    def missing_required_fields(self) -> List[str]:
        missing = []
        if self.sizes and self.selected_size is None:
            missing.append("size")
        if self.item.is_pasta and not self.selected_pasta_type:
            missing.append("pasta_type")
        if self.item.is_beer_selection and not self.selected_drink:
            missing.append("drink")
        return missing

    def calculate_price(self) -> float:
        base = self.selected_size.price if self.selected_size else float(self.item.price)
        return round(base + len(self.selected_extras) * self.extra_price, 2)

    def final_sauce(self) -> Optional[str]:
        if self.item.is_meat_selection and self.selected_meat_type:
            if self.selected_sauces:
                return f"{self.selected_meat_type} - {', '.join(self.selected_sauces)}"
            return self.selected_meat_type
        if self.item.is_multiple_sauce_selection or self.selected_sauces:
            return ", ".join(self.selected_sauces) or None
        return self.selected_sauce or None

    def add_to_cart(self) -> Optional[ItemSelections]:
        """Advance the wizard, or finalize and hand the selections to ``on_add``."""
        if self.current_step == Step.COMPLETE:
            raise ValidationFailedError("Artikel wurde bereits hinzugefügt")

        if self.uses_wizard:
            if self.current_step == Step.MEAT:
                self.current_step = Step.SAUCE
                return None
            if self.current_step == Step.SAUCE:
                self.current_step = Step.EXCLUSIONS
                return None
            if self.current_step == Step.EXCLUSIONS and has_side_dish_step(self.item):
                self.current_step = Step.SIDEDISH
                return None

        missing = self.missing_required_fields()
        if missing:
            labels = ", ".join(REQUIRED_FIELD_LABELS[f] for f in missing)
            raise ValidationFailedError(f"Bitte wählen Sie: {labels}", field=missing[0])

        selections = ItemSelections(
            selected_size=self.selected_size,
            selected_ingredients=list(self.selected_ingredients),
            selected_extras=list(self.selected_extras),
            selected_pasta_type=self.selected_pasta_type or None,
            selected_sauce=self.final_sauce(),
            selected_exclusions=list(self.selected_exclusions),
            selected_side_dish=self.selected_side_dish or None,
            selected_drink=self.selected_drink or None,
        )
        self.current_step = Step.COMPLETE
        if self.on_add is not None:
            self.on_add(self.item, selections)
        return selections

    # Dialog texts and option lists

    def modal_title(self) -> str:
        if self.uses_wizard:
            if self.current_step == Step.MEAT:
                return "Schritt 1: Fleischauswahl"
            if self.current_step == Step.SAUCE:
                return "Schritt 2: Soßen wählen (mehrere möglich)"
            if self.current_step == Step.EXCLUSIONS:
                return "Schritt 3: Salat anpassen (mehrere möglich)"
            if self.current_step == Step.SIDEDISH:
                return "Schritt 4: Beilage wählen"
        return f"Nr. {self.item.number} {self.item.name}"

    def button_text(self) -> str:
        if self.uses_wizard and self.current_step == Step.MEAT:
            return "Weiter zur Soßenauswahl"
        if self.uses_wizard and self.current_step == Step.SAUCE:
            return "Weiter zur Salat-Anpassung"
        if has_side_dish_step(self.item) and self.current_step == Step.EXCLUSIONS:
            return "Weiter zur Beilagenauswahl"
        return f"Hinzufügen - {format_price(self.calculate_price())} €"

    def _shows_limited_sauces(self) -> bool:
        return bool(
            (self.item.is_meat_selection and self.current_step == Step.SAUCE)
            or self.item.is_multiple_sauce_selection
            or self.item.limits_sauce_list
        )

    def visible_sauce_options(self) -> List[str]:
        options = sauce_options(self.item)
        if self._shows_limited_sauces() and not self.show_all_sauces:
            return options[:VISIBLE_OPTION_COUNT]
        return options

    def visible_exclusion_options(self) -> List[str]:
        options = list(SALAD_EXCLUSION_OPTIONS)
        if self.item.is_meat_selection and self.current_step == Step.EXCLUSIONS and not self.show_all_exclusions:
            return options[:VISIBLE_OPTION_COUNT]
        return options


def build_selections(item: Any, request: SelectionRequest) -> ItemSelections:
    """Replay raw dialog choices through the flow so the API enforces the same rules."""
    flow = ItemSelectionFlow(item)

    if request.size:
        flow.select_size(request.size)
    for ingredient in _unique(request.ingredients):
        flow.toggle_ingredient(ingredient)
    for extra in _unique(request.extras):
        flow.toggle_extra(extra)
    if request.pasta_type:
        flow.select_pasta_type(request.pasta_type)
    if request.drink:
        flow.select_drink(request.drink)

    if flow.uses_wizard:
        if request.meat_type:
            flow.select_meat_type(request.meat_type)
        flow.add_to_cart()
        for sauce in _unique(request.sauces):
            flow.toggle_sauce(sauce)
        flow.add_to_cart()
        for exclusion in _unique(request.exclusions):
            flow.toggle_exclusion(exclusion)
        if has_side_dish_step(item):
            flow.add_to_cart()
            if request.side_dish:
                flow.select_side_dish(request.side_dish)
        return flow.add_to_cart()

    if request.meat_type and item.is_meat_selection:
        flow.select_meat_type(request.meat_type)
    for sauce in _unique(request.sauces):
        flow.toggle_sauce(sauce)
    if request.sauce:
        flow.select_sauce(request.sauce)
    for exclusion in _unique(request.exclusions):
        flow.toggle_exclusion(exclusion)
    if request.side_dish and item.has_side_dish_selection:
        flow.select_side_dish(request.side_dish)

    return flow.add_to_cart()
