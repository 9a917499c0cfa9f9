"""
配置管理器

负责从文件和环境变量加载配置、处理默认值和配置合并逻辑。
"""

import os
import copy
import yaml
import json
from pathlib import Path
from typing import Dict, Any, Optional, Mapping
import logging

from dotenv import load_dotenv

from .models import AppConfig, validate_config_dict, get_default_config

logger = logging.getLogger(__name__)


# 环境变量 -> (配置段, 配置项, 类型转换)
ENV_OVERRIDES = {
    "HOST": ("server", "host", str),
    "PORT": ("server", "port", int),
    "EDIT_SOURCE": ("server", "edit_source", str),
    "UPLOAD_DIR": ("server", "upload_dir", str),
    "GEMINI_API_KEY": ("gemini", "api_key", str),
    "GEMINI_MODEL": ("gemini", "model", str),
    "CLOUD_NAME": ("storage", "cloud_name", str),
    "CLOUDINARY_API_KEY": ("storage", "api_key", str),
    "CLOUDINARY_API_SECRET": ("storage", "api_secret", str),
    "CLOUDINARY_FOLDER": ("storage", "folder", str),
    "FETCH_TIMEOUT": ("fetch", "timeout", float),
    "LOG_LEVEL": ("log", "level", str),
}


class ConfigManager:
    """配置管理器类"""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径，如果为 None 则只使用默认配置和环境变量
            environ: 环境变量映射，默认读取 os.environ
        """
        self._config: Optional[AppConfig] = None
        self._config_path = config_path
        self._environ = environ
        self._default_config = get_default_config()

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """
        加载配置：默认值 <- 配置文件 <- 环境变量

        Args:
            config_path: 配置文件路径，如果为 None 则使用初始化时的路径

        Returns:
            AppConfig: 加载并验证后的配置对象

        Raises:
            FileNotFoundError: 配置文件不存在
            ValueError: 配置文件格式错误或验证失败
        """
        if config_path:
            self._config_path = config_path

        merged_config = copy.deepcopy(self._default_config)

        if self._config_path:
            config_file = Path(self._config_path)
            if not config_file.exists():
                raise FileNotFoundError(f"配置文件不存在: {self._config_path}")

            try:
                # 根据文件扩展名选择解析方法
                if config_file.suffix.lower() in ['.yaml', '.yml']:
                    file_config = self._load_yaml_config(config_file)
                elif config_file.suffix.lower() == '.json':
                    file_config = self._load_json_config(config_file)
                else:
                    raise ValueError(f"不支持的配置文件格式: {config_file.suffix}")
            except Exception as e:
                raise ValueError(f"加载配置文件失败 {self._config_path}: {str(e)}")

            merged_config = self._merge_configs(merged_config, file_config)
            logger.info(f"成功加载配置文件: {self._config_path}")
        else:
            logger.info("未指定配置文件，使用默认配置和环境变量")

        merged_config = self._apply_env_overrides(merged_config)

        self._config = validate_config_dict(merged_config)
        return self._config

    def _load_yaml_config(self, config_file: Path) -> Dict[str, Any]:
        """
        加载 YAML 配置文件

        Args:
            config_file: 配置文件路径

        Returns:
            Dict[str, Any]: 配置字典
        """
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"YAML 格式错误: {str(e)}")

    def _load_json_config(self, config_file: Path) -> Dict[str, Any]:
        """加载 JSON 配置文件"""
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON 格式错误: {str(e)}")

    def _merge_configs(self, default: Dict[str, Any], file_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        合并默认配置和文件配置

        Args:
            default: 默认配置字典
            file_config: 文件配置字典

        Returns:
            Dict[str, Any]: 合并后的配置字典
        """
        merged = default.copy()

        for key, value in file_config.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                # 递归合并嵌套字典
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def _apply_env_overrides(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """用环境变量覆盖配置项，空字符串视为未设置"""
        if self._environ is None:
            load_dotenv()
            environ = os.environ
        else:
            environ = self._environ

        for env_name, (section, key, cast) in ENV_OVERRIDES.items():
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                config_dict.setdefault(section, {})[key] = cast(raw)
            except ValueError:
                raise ValueError(f"环境变量 {env_name} 的值无效: {raw!r}")
            logger.debug(f"配置项 {section}.{key} 由环境变量 {env_name} 覆盖")

        return config_dict

    def get_config(self) -> AppConfig:
        """
        获取当前配置，未加载时按默认值和环境变量加载

        Returns:
            AppConfig: 当前配置对象
        """
        if self._config is None:
            return self.load_config()
        return self._config

    def validate_config(self) -> bool:
        """
        检查运行所需的凭据是否齐全

        Returns:
            bool: 配置是否可用于处理请求
        """
        config = self.get_config()
        valid = True

        if not config.gemini.api_key:
            logger.warning("GEMINI_API_KEY 未配置")
            valid = False

        storage = config.storage
        missing = [
            name for name, value in (
                ("CLOUD_NAME", storage.cloud_name),
                ("CLOUDINARY_API_KEY", storage.api_key),
                ("CLOUDINARY_API_SECRET", storage.api_secret),
            ) if not value
        ]
        if missing:
            logger.warning(f"存储后端凭据缺失: {', '.join(missing)}")
            valid = False

        if config.server.edit_source == "upload" and not os.path.isdir(config.server.upload_dir):
            logger.warning(f"上传暂存目录不存在: {config.server.upload_dir}")
            valid = False

        return valid

    def reload_config(self) -> AppConfig:
        """重新加载配置"""
        logger.info("重新加载配置")
        return self.load_config()


# 全局配置管理器实例
_global_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """
    获取全局配置管理器实例

    未显式初始化时，配置文件路径取自环境变量 CONFIG_FILE。

    Returns:
        ConfigManager: 配置管理器实例
    """
    global _global_config_manager
    if _global_config_manager is None:
        _global_config_manager = ConfigManager(os.environ.get("CONFIG_FILE") or None)
    return _global_config_manager


def init_config(config_path: Optional[str] = None) -> AppConfig:
    """
    初始化全局配置

    Args:
        config_path: 配置文件路径

    Returns:
        AppConfig: 加载的配置对象
    """
    manager = get_config_manager()
    return manager.load_config(config_path)


def get_current_config() -> AppConfig:
    """获取当前全局配置"""
    manager = get_config_manager()
    return manager.get_config()
