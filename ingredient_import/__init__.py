"""CSV -> ingredient catalog import pipeline.

Parses an operator-supplied CSV file, auto-maps its columns onto ingredient
fields, validates every row and commits the valid ones to a catalog store.
"""

__version__ = "0.1.0"
