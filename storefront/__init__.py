"""Storefront backend: catalog, carts, checkout, orders and reviews."""
