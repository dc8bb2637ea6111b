"""Menu catalog schemas."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.menu import SaucePolicy


class PizzaSize(BaseModel):
    """A size variant with its own price."""

    name: str = Field(..., min_length=1, max_length=50)
    price: float = Field(..., ge=0)
    description: Optional[str] = None


class MenuItemBase(BaseModel):
    number: int = Field(..., ge=0)
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    price: float = Field(..., ge=0)
    allergens: str = ""
    sizes: List[PizzaSize] = Field(default_factory=list)
    is_wunsch_pizza: bool = False
    is_pizza: bool = False
    is_pasta: bool = False
    is_spezialitaet: bool = False
    is_beer_selection: bool = False
    is_meat_selection: bool = False
    is_multiple_sauce_selection: bool = False
    has_side_dish_selection: bool = False
    skips_meat_wizard: bool = False
    limits_sauce_list: bool = False
    sauce_policy: SaucePolicy = SaucePolicy.STANDARD


class MenuItemCreate(MenuItemBase):
    category_id: int


class MenuItemUpdate(BaseModel):
    """Partial update; only the fields sent are written."""

    category_id: Optional[int] = None
    number: Optional[int] = Field(None, ge=0)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    allergens: Optional[str] = None
    sizes: Optional[List[PizzaSize]] = None
    is_wunsch_pizza: Optional[bool] = None
    is_pizza: Optional[bool] = None
    is_pasta: Optional[bool] = None
    is_spezialitaet: Optional[bool] = None
    is_beer_selection: Optional[bool] = None
    is_meat_selection: Optional[bool] = None
    is_multiple_sauce_selection: Optional[bool] = None
    has_side_dish_selection: Optional[bool] = None
    skips_meat_wizard: Optional[bool] = None
    limits_sauce_list: Optional[bool] = None
    sauce_policy: Optional[SaucePolicy] = None


class MenuItemResponse(MenuItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: Optional[int] = None
    order: Optional[int] = None
    order_count: int = 0


class CategoryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=120)
    description: str = ""
    order: Optional[int] = None


class CategoryUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None
    order: Optional[int] = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    title: str
    description: str
    order: int


class MenuSection(BaseModel):
    """A category with its items, as shown on the storefront."""

    id: str
    title: str
    description: str
    order: int
    items: List[MenuItemResponse]


class OrderEntry(BaseModel):
    id: int
    order: int


class ReorderRequest(BaseModel):
    """New display positions for categories or items."""

    entries: List[OrderEntry] = Field(..., min_length=1)


class ItemOptions(BaseModel):
    """Everything the item dialog needs to configure one menu item."""

    item: MenuItemResponse
    configurable: bool
    uses_wizard: bool
    sizes: List[PizzaSize]
    sauces: List[str]
    meat_types: List[str]
    exclusions: List[str]
    side_dishes: List[str]
    pasta_types: List[str]
    drinks: List[str]
    ingredients: List[str]
    extras: List[str]
    max_ingredients: int
    extra_price: float


class RepairResponse(BaseModel):
    success: bool
    message: str
    deleted_count: int = 0
