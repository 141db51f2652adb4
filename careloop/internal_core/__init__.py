from .config import ShellConfig, load_config
from .session_store import InMemoryKeyValueStore, SessionStorage, StorageResult

__all__ = ["ShellConfig", "load_config", "InMemoryKeyValueStore", "SessionStorage", "StorageResult"]
