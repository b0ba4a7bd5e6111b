import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from src.adapters.sqlite.document_store import SQLiteDocumentStore
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.core.config import ServiceConfig
from src.rules.models import Rules

logger = logging.getLogger(__name__)

# Optional env overrides for upload policy and CDN output.
ENV_MAX_FILE_SIZE = "IMAGEKIT_MAX_FILE_SIZE"
ENV_ALLOWED_TYPES = "IMAGEKIT_ALLOWED_TYPES"
ENV_QUALITY = "IMAGEKIT_QUALITY"
ENV_FORMAT = "IMAGEKIT_FORMAT"

DB_FILENAME = "assets.db"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def validate_ops_rules(rules: Rules, environ: Mapping[str, str] | None = None) -> None:
    """
    Validate operational requirements before startup.
    Exits the process when required environment variables are missing.
    """
    env = os.environ if environ is None else environ

    missing = [name for name in rules.ops.required_env if not env.get(name)]
    if missing:
        logger.critical("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    logger.info("Configuration validated")


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    return value if value > 0 else default


def build_service_config(rules: Rules, environ: Mapping[str, str] | None = None) -> ServiceConfig:
    """Combine the rules file with credentials and overrides from the environment."""
    env = os.environ if environ is None else environ
    store = rules.object_store

    allowed = tuple(rules.uploads.allowed_content_types)
    if env.get(ENV_ALLOWED_TYPES):
        allowed = tuple(t.strip() for t in env[ENV_ALLOWED_TYPES].split(",") if t.strip())

    return ServiceConfig(
        public_key=env.get(store.public_key_env) or None,
        private_key=env.get(store.private_key_env) or None,
        url_endpoint=(env.get(store.url_endpoint_env) or "").rstrip("/") or None,
        upload_url=store.upload_url,
        files_api_url=store.files_api_url,
        max_file_size_bytes=_int_from_env(
            env, ENV_MAX_FILE_SIZE, rules.uploads.max_file_size_bytes
        ),
        allowed_content_types=allowed,
        max_retained=rules.history.max_retained,
        timeout_seconds=rules.transfer.timeout_seconds,
        chunk_size_bytes=rules.transfer.chunk_size_bytes,
        credential_ttl_seconds=rules.credentials.ttl_seconds,
        quality=env.get(ENV_QUALITY) or rules.derived_urls.quality,
        output_format=env.get(ENV_FORMAT) or rules.derived_urls.output_format,
        system_tag=store.system_tag,
    )


def open_document_store(rules: Rules, base_dir: Path) -> SQLiteDocumentStore:
    """Create the data dir, apply migrations and return the SQLite store."""
    data_dir = Path(rules.ops.data_dir)
    if not data_dir.is_absolute():
        data_dir = base_dir / data_dir
    data_dir.mkdir(parents=True, exist_ok=True)

    migrations_dir = Path(rules.ops.migrations_dir)
    if not migrations_dir.is_absolute():
        migrations_dir = base_dir / migrations_dir

    db_path = str(data_dir / DB_FILENAME)
    SQLiteMigrator(db_path, str(migrations_dir)).run_migrations()
    logger.info("Document store ready at %s", db_path)
    return SQLiteDocumentStore(db_path)
