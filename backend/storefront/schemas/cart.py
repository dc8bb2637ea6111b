"""Cart schemas: selections, cart lines and cart requests."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.schemas.menu import PizzaSize


class MenuItemRef(BaseModel):
    """Snapshot of the menu item a cart line refers to."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    number: int
    name: str
    price: float
    sizes: List[PizzaSize] = Field(default_factory=list)
    is_pizza: bool = False
    is_pasta: bool = False
    is_meat_selection: bool = False


class ItemSelections(BaseModel):
    """Modifiers chosen for one add-to-cart. List fields are always lists."""

    selected_size: Optional[PizzaSize] = None
    selected_ingredients: List[str] = Field(default_factory=list)
    selected_extras: List[str] = Field(default_factory=list)
    selected_pasta_type: Optional[str] = None
    selected_sauce: Optional[str] = None
    selected_exclusions: List[str] = Field(default_factory=list)
    selected_side_dish: Optional[str] = None
    selected_drink: Optional[str] = None


class CartLine(ItemSelections):
    """One order line: item, quantity and its selections."""

    menu_item: MenuItemRef
    quantity: int = Field(1, ge=1)

    @property
    def selections(self) -> ItemSelections:
        return ItemSelections(**self.model_dump(exclude={"menu_item", "quantity"}))


class CartLineResponse(CartLine):
    key: str
    unit_price: float
    line_total: float


class CartResponse(BaseModel):
    cart_id: str
    items: List[CartLineResponse]
    total_items: int
    total_price: float
    subtotal: float


class SelectionRequest(BaseModel):
    """Raw choices from the item dialog, replayed through the selection flow."""

    size: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    extras: List[str] = Field(default_factory=list)
    pasta_type: Optional[str] = None
    sauce: Optional[str] = None
    sauces: List[str] = Field(default_factory=list)
    meat_type: Optional[str] = None
    exclusions: List[str] = Field(default_factory=list)
    side_dish: Optional[str] = None
    drink: Optional[str] = None


class AddToCartRequest(BaseModel):
    menu_item_id: int
    selections: SelectionRequest = Field(default_factory=SelectionRequest)


class CartLineRef(BaseModel):
    """Identifies an existing line by item id and its exact selections."""

    menu_item_id: int
    selections: ItemSelections = Field(default_factory=ItemSelections)


class UpdateQuantityRequest(CartLineRef):
    quantity: int
