"""Catalog package - script reference data."""

from mystery.catalog.script_catalog import (
    GameScriptCatalog,
    load_script_document,
    SCRIPT_SUFFIXES,
)

__all__ = [
    "GameScriptCatalog",
    "load_script_document",
    "SCRIPT_SUFFIXES",
]
