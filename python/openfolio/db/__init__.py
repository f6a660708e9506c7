"""OpenFolio database layer.

Stores a whole project in a single SQLite file: scalar metadata in
``project_meta`` and one JSON payload per logical section in
``project_sections``. Heavy time series (price and FX history) live in
their own sections so they can be hydrated lazily.
"""
