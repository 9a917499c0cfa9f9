# Config package for configuration management

from .models import (
    GeminiConfig,
    StorageConfig,
    FetchConfig,
    ServerConfig,
    LogConfig,
    AppConfig,
    EDIT_SOURCES,
    validate_config_dict,
    get_default_config
)

from .manager import (
    ConfigManager,
    get_config_manager,
    init_config,
    get_current_config
)

__all__ = [
    # Models
    'GeminiConfig',
    'StorageConfig',
    'FetchConfig',
    'ServerConfig',
    'LogConfig',
    'AppConfig',
    'EDIT_SOURCES',
    'validate_config_dict',
    'get_default_config',

    # Manager
    'ConfigManager',
    'get_config_manager',
    'init_config',
    'get_current_config'
]
