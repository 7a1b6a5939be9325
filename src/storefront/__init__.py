"""Storefront catalog, cart, and checkout apps for Django."""
