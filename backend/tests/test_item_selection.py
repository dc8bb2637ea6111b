"""Tests for the item configuration flow."""

import pytest

from storefront.core.errors import ValidationFailedError
from storefront.data.options import (
    BURGER_SAUCE_TYPES,
    NO_SAUCE,
    NO_SIDES,
    PIZZA_TOPPINGS,
    POMMES_SAUCE_TYPES,
    SALAD_SAUCE_TYPES,
    SIDE_DISH_OPTIONS,
)
from storefront.models.menu import SaucePolicy
from storefront.schemas.cart import MenuItemRef, SelectionRequest
from storefront.schemas.menu import MenuItemResponse
from storefront.services.cart_service import CartStore, line_total
from storefront.services.item_selection_service import (
    ItemSelectionFlow,
    Step,
    build_selections,
    is_configurable,
    sauce_options,
    uses_wizard,
)


def _item(**fields) -> MenuItemResponse:
    base = {"id": 1, "number": 1, "name": "Artikel", "price": 5.0}
    base.update(fields)
    return MenuItemResponse(**base)


CHEFSALAT = _item(id=7, number=7, name="Chefsalat", price=8.00, is_meat_selection=True)
DOENERTELLER = _item(
    id=4, number=4, name="Dönerteller", price=11.00, is_meat_selection=True, has_side_dish_selection=True
)
PIZZA = _item(
    id=20, number=20, name="Pizza Margherita", price=7.50, is_pizza=True,
    sizes=[{"name": "Klein", "price": 7.50, "description": "26cm"},
           {"name": "Groß", "price": 10.00, "description": "32cm"}],
)
WUNSCH = _item(id=21, number=21, name="Wunschpizza", price=9.00, is_wunsch_pizza=True)
PASTA = _item(id=30, number=30, name="Pasta Bolognese", price=9.00, is_pasta=True)
BEER = _item(id=90, number=90, name="Bier", price=3.50, is_beer_selection=True)


# ============== Item Predicates ==============

class TestItemPredicates:
    def test_plain_item_is_not_configurable(self):
        assert is_configurable(_item()) is False

    def test_configurable_flags(self):
        for item in (CHEFSALAT, PIZZA, WUNSCH, PASTA, BEER):
            assert is_configurable(item) is True

    def test_spezialitaet_depends_on_sauce_policy(self):
        assert is_configurable(_item(is_spezialitaet=True)) is True
        assert is_configurable(_item(is_spezialitaet=True, sauce_policy=SaucePolicy.NONE)) is False

    def test_wizard_tags(self):
        assert uses_wizard(CHEFSALAT) is True
        assert uses_wizard(_item(is_meat_selection=True, is_pizza=True)) is False
        assert uses_wizard(_item(is_meat_selection=True, skips_meat_wizard=True)) is False

    def test_sauce_policy_lists(self):
        assert sauce_options(_item(sauce_policy=SaucePolicy.SALAD_DRESSING)) == SALAD_SAUCE_TYPES
        assert sauce_options(_item(sauce_policy=SaucePolicy.FRIES)) == POMMES_SAUCE_TYPES
        assert sauce_options(_item(sauce_policy=SaucePolicy.NONE)) == []

    def test_burger_sauces(self):
        burger = sauce_options(_item(sauce_policy=SaucePolicy.BURGER))
        assert burger == BURGER_SAUCE_TYPES
        assert "Burger Sauce" in burger
        assert "Zaziki" not in burger
        assert burger == sorted(burger)


# ============== Wizard Gating ==============

class TestWizardGating:
    def test_add_from_meat_only_advances(self):
        added = []
        flow = ItemSelectionFlow(CHEFSALAT, on_add=lambda item, sel: added.append(sel))

        assert flow.add_to_cart() is None
        assert flow.current_step == Step.SAUCE
        assert added == []

        assert flow.add_to_cart() is None
        assert flow.current_step == Step.EXCLUSIONS
        assert added == []

        selections = flow.add_to_cart()
        assert selections is not None
        assert flow.current_step == Step.COMPLETE
        assert added == [selections]

    def test_side_dish_step(self):
        flow = ItemSelectionFlow(DOENERTELLER)
        flow.add_to_cart()
        flow.add_to_cart()
        assert flow.add_to_cart() is None
        assert flow.current_step == Step.SIDEDISH
        assert flow.button_text() == "Hinzufügen - 11,00 €"

        flow.select_side_dish("Reis")
        assert flow.add_to_cart().selected_side_dish == "Reis"

    def test_non_wizard_item_adds_immediately(self):
        added = []
        flow = ItemSelectionFlow(PIZZA, on_add=lambda item, sel: added.append(sel))
        assert flow.add_to_cart() is not None
        assert len(added) == 1

    def test_cannot_add_twice(self):
        flow = ItemSelectionFlow(PIZZA)
        flow.add_to_cart()
        with pytest.raises(ValidationFailedError):
            flow.add_to_cart()

    def test_titles_and_buttons_follow_steps(self):
        flow = ItemSelectionFlow(DOENERTELLER)
        assert flow.modal_title() == "Schritt 1: Fleischauswahl"
        assert flow.button_text() == "Weiter zur Soßenauswahl"
        flow.add_to_cart()
        assert flow.modal_title() == "Schritt 2: Soßen wählen (mehrere möglich)"
        assert flow.button_text() == "Weiter zur Salat-Anpassung"
        flow.add_to_cart()
        assert flow.modal_title() == "Schritt 3: Salat anpassen (mehrere möglich)"
        assert flow.button_text() == "Weiter zur Beilagenauswahl"
        flow.add_to_cart()
        assert flow.modal_title() == "Schritt 4: Beilage wählen"

    def test_plain_title(self):
        assert ItemSelectionFlow(PIZZA).modal_title() == "Nr. 20 Pizza Margherita"


# ============== End To End ==============

class TestChefsalatScenario:
    def test_full_wizard_into_cart(self, memory_storage):
        cart = CartStore("c", memory_storage)
        flow = ItemSelectionFlow(
            CHEFSALAT,
            on_add=lambda item, sel: cart.add_item(MenuItemRef.model_validate(item.model_dump()), sel),
        )

        flow.select_meat_type("Hähnchen")
        flow.add_to_cart()
        flow.toggle_sauce("Zaziki")
        flow.toggle_sauce("Scharfe Soße")
        flow.add_to_cart()
        flow.toggle_exclusion("ohne Zwiebeln")
        flow.add_to_cart()

        assert len(cart.items) == 1
        line = cart.items[0]
        assert line.selected_sauce == "Hähnchen - Zaziki, Scharfe Soße"
        assert line.selected_exclusions == ["ohne Zwiebeln"]
        assert line.quantity == 1
        assert line_total(line) == 8.00

    def test_build_selections_replays_flow(self):
        selections = build_selections(
            CHEFSALAT,
            SelectionRequest(
                meat_type="Hähnchen",
                sauces=["Zaziki", "Scharfe Soße"],
                exclusions=["ohne Zwiebeln"],
            ),
        )
        assert selections.selected_sauce == "Hähnchen - Zaziki, Scharfe Soße"
        assert selections.selected_exclusions == ["ohne Zwiebeln"]

    def test_build_selections_rejects_unknown_option(self):
        with pytest.raises(ValidationFailedError):
            build_selections(PIZZA, SelectionRequest(size="Riesig"))


# ============== Toggles ==============

class TestToggles:
    def test_ingredient_cap(self):
        flow = ItemSelectionFlow(WUNSCH)
        for topping in PIZZA_TOPPINGS[:5]:
            flow.toggle_ingredient(topping)
        assert flow.selected_ingredients == PIZZA_TOPPINGS[:4]

        flow.toggle_ingredient(PIZZA_TOPPINGS[0])
        assert PIZZA_TOPPINGS[0] not in flow.selected_ingredients

    def test_no_sauce_is_exclusive(self):
        flow = ItemSelectionFlow(CHEFSALAT)
        flow.toggle_sauce("Zaziki")
        flow.toggle_sauce(NO_SAUCE)
        assert flow.selected_sauces == [NO_SAUCE]
        flow.toggle_sauce("Zaziki")
        assert flow.selected_sauces == ["Zaziki"]

    def test_no_sides_is_exclusive(self):
        flow = ItemSelectionFlow(CHEFSALAT)
        flow.toggle_exclusion("ohne Tomaten")
        flow.toggle_exclusion(NO_SIDES)
        assert flow.selected_exclusions == [NO_SIDES]
        flow.toggle_exclusion("ohne Gurken")
        assert flow.selected_exclusions == ["ohne Gurken"]

    def test_extras_raise_price(self):
        flow = ItemSelectionFlow(PIZZA, extra_price=1.0)
        flow.select_size("Groß")
        flow.toggle_extra("Pilze")
        flow.toggle_extra("Ei")
        assert flow.calculate_price() == 12.00
        assert flow.button_text() == "Hinzufügen - 12,00 €"

    def test_limited_sauce_list_in_sauce_step(self):
        flow = ItemSelectionFlow(CHEFSALAT)
        flow.add_to_cart()
        assert len(flow.visible_sauce_options()) == 3
        flow.show_all_sauces = True
        assert len(flow.visible_sauce_options()) == len(sauce_options(CHEFSALAT))

    def test_tagged_item_limits_sauce_list(self):
        burger = _item(number=11, name="Hamburger", is_spezialitaet=True, sauce_policy=SaucePolicy.BURGER)
        assert len(ItemSelectionFlow(burger).visible_sauce_options()) == len(sauce_options(burger))

        tagged = burger.model_copy(update={"limits_sauce_list": True})
        flow = ItemSelectionFlow(tagged)
        assert len(flow.visible_sauce_options()) == 3
        flow.show_all_sauces = True
        assert len(flow.visible_sauce_options()) == len(sauce_options(tagged))


# ============== Back Navigation ==============

class TestBackNavigation:
    def test_back_to_meat_clears_sauces(self):
        flow = ItemSelectionFlow(CHEFSALAT)
        flow.add_to_cart()
        flow.toggle_sauce("Zaziki")
        flow.back_to_meat()
        assert flow.current_step == Step.MEAT
        assert flow.selected_sauces == []

    def test_back_to_sauce_clears_exclusions(self):
        flow = ItemSelectionFlow(CHEFSALAT)
        flow.add_to_cart()
        flow.add_to_cart()
        flow.toggle_exclusion("ohne Mais")
        flow.back_to_sauce()
        assert flow.current_step == Step.SAUCE
        assert flow.selected_exclusions == []

    def test_back_to_exclusions_resets_side_dish(self):
        flow = ItemSelectionFlow(DOENERTELLER)
        flow.add_to_cart()
        flow.add_to_cart()
        flow.add_to_cart()
        flow.select_side_dish("Kroketten")
        flow.back_to_exclusions()
        assert flow.current_step == Step.EXCLUSIONS
        assert flow.selected_side_dish == SIDE_DISH_OPTIONS[0]


# ============== Required Fields ==============

class TestRequiredFields:
    def test_beer_needs_a_drink(self):
        flow = ItemSelectionFlow(BEER)
        with pytest.raises(ValidationFailedError) as exc_info:
            flow.add_to_cart()
        assert exc_info.value.message == "Bitte wählen Sie: Getränk"

        flow.select_drink("Pils")
        assert flow.add_to_cart().selected_drink == "Pils"

    def test_pasta_defaults_to_first_type(self):
        assert ItemSelectionFlow(PASTA).add_to_cart().selected_pasta_type == "Spaghetti"
