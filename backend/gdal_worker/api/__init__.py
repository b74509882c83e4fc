"""API router subpackage for the GDAL worker.

Submodules:
    - imports: ``POST /import`` and its Method Not Allowed fallback.
"""
