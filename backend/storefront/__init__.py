"""Storefront backend: menu, cart, checkout, order monitor and store hours."""
