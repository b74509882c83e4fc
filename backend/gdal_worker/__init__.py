"""GDAL Worker: HTTP service that loads spatial sources into PostGIS.

A single endpoint accepts either an uploaded file or a remote URL and
drives ogr2ogr to write it into a PostgreSQL/PostGIS table.

- Sources are resolved to one local file; downloaded copies are owned by
  the pipeline and deleted after every run
- ogrinfo is probed first to decide whether an explicit source SRS must be
  assigned before reprojection
- ogr2ogr runs as a bounded subprocess (timeout plus output cap) and its
  command, stdout and stderr are echoed back for diagnosis

See module docstrings under api/, services/ and utils/ for details.
"""
