"""Command line entrypoint (``ingredient-import`` / ``python -m ingredient_import.cli``)."""
