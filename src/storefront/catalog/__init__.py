"""Catalog app: software plans and cartridge products."""
