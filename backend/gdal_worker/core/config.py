"""Worker settings read from the environment (or a .env file).

Destination credentials use the standard libpq ``PG*`` variable names so
the worker can share an environment with psql and ogr2ogr itself. Limits
and request defaults (table, SRID) are plain environment variables too,
e.g. ``CONVERT_TIMEOUT_SECONDS=300``.
"""

import functools
import pathlib
import tempfile

import psycopg2.extensions
import pydantic_settings

from gdal_worker.core import errors

_SCRATCH_ROOT = pathlib.Path(tempfile.gettempdir()) / "gdal"


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.
    The destination credentials are optional at load time so the service
    can start (and answer health checks) without them; they are enforced
    per import by destination_dsn().

    Attributes:
        pghost: PostgreSQL host of the destination database.
        pgport: PostgreSQL port (default 5432).
        pgdatabase: Destination database name.
        pguser: Destination database user.
        pgpassword: Destination database password.
        pgsslmode: Optional libpq sslmode (require, verify-full, ...).
        scratch_dir: Root directory for downloaded sources.
        upload_dir: Directory where multipart uploads are materialized.
        max_upload_size_bytes: Maximum accepted upload size (default 512MB).
        max_download_size_bytes: Maximum accepted download size (512MB).
        download_timeout_seconds: Timeout for fetching a remote source.
        download_max_redirects: Redirects followed before giving up.
        convert_timeout_seconds: Wall-clock limit for one ogr2ogr run.
        probe_timeout_seconds: Wall-clock limit for the ogrinfo SRS probe.
        max_output_bytes: Cap applied to captured stdout/stderr.
        default_table: Destination table used when the caller omits one.
        default_srid: Target SRID used when the caller omits one.
        ogr2ogr_bin: Executable used for the conversion.
        ogrinfo_bin: Executable used for the SRS probe.
        log_level: Level for the gdal_worker logger.
    """

    pghost: str | None = None
    pgport: int = 5432
    pgdatabase: str | None = None
    pguser: str | None = None
    pgpassword: str | None = None
    pgsslmode: str | None = None

    scratch_dir: pathlib.Path = _SCRATCH_ROOT
    upload_dir: pathlib.Path = _SCRATCH_ROOT / "uploads"
    max_upload_size_bytes: int = 512 * 1024 * 1024
    max_download_size_bytes: int = 512 * 1024 * 1024

    download_timeout_seconds: float = 120.0
    download_max_redirects: int = 5
    convert_timeout_seconds: float = 180.0
    probe_timeout_seconds: float = 60.0
    max_output_bytes: int = 64 * 1024 * 1024

    default_table: str = "parcelas_muros"
    default_srid: int = 25830

    ogr2ogr_bin: str = "ogr2ogr"
    ogrinfo_bin: str = "ogrinfo"
    log_level: str = "INFO"

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def ensure_directories(self) -> None:
        """Create local directories for downloads and uploads."""
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def missing_credentials(self) -> list[str]:
        """Return the names of required PG* variables that are unset."""
        required = {
            "PGHOST": self.pghost,
            "PGDATABASE": self.pgdatabase,
            "PGUSER": self.pguser,
            "PGPASSWORD": self.pgpassword,
        }
        return [name for name, value in required.items() if not value]

    def destination_dsn(self) -> str:
        """Build the libpq connection string for the destination database.

        psycopg2's make_dsn takes care of quoting values that contain
        spaces, quotes or backslashes, so the result can be handed to
        ogr2ogr behind a ``PG:`` prefix unchanged.

        Returns:
            A conninfo string such as
            ``host=db port=5432 dbname=gis user=loader password=secret``.

        Raises:
            ConfigError: If any required credential is missing.
        """
        missing = self.missing_credentials()
        if missing:
            raise errors.ConfigError(
                "Missing destination database settings: " + ", ".join(missing)
            )

        params: dict[str, str | int] = {
            "host": self.pghost or "",
            "port": self.pgport,
            "dbname": self.pgdatabase or "",
            "user": self.pguser or "",
            "password": self.pgpassword or "",
        }
        if self.pgsslmode:
            params["sslmode"] = self.pgsslmode
        return psycopg2.extensions.make_dsn(**params)


@functools.lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, creating its directories once."""
    settings = Settings()
    settings.ensure_directories()
    return settings
