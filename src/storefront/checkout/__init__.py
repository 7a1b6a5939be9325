"""Checkout app: carts, orders, serial codes, and payments."""
