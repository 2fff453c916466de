from .ini_config import AppSettings, IniConfig, StorageSettings

__all__ = ["AppSettings", "IniConfig", "StorageSettings"]
