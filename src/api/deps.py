import os
from functools import lru_cache
from pathlib import Path

from src.app_shell.config import build_service_config, open_document_store
from src.components.assets import AssetHistoryService, create_asset_history_service
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.environ.get("ASSET_BASE_DIR", os.getcwd()))
        self.rules_path = Path(os.environ.get("ASSET_RULES_PATH", self.base_dir / "rules.yaml"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Service ---
_service_instance: AssetHistoryService | None = None


def get_service() -> AssetHistoryService:
    """Get the asset history service singleton (built on first use)."""
    global _service_instance
    if _service_instance is None:
        rules = get_rules()
        store = open_document_store(rules, get_settings().base_dir)
        _service_instance = create_asset_history_service(
            build_service_config(rules),
            store,
            delete_pruned_files=rules.object_store.delete_pruned_files,
        )
    return _service_instance


async def close_service() -> None:
    """Wait for pending remote cleanups and drop the singleton."""
    global _service_instance
    if _service_instance is not None:
        await _service_instance.aclose()
        _service_instance = None
