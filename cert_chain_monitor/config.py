"""
插件配置
"""
import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional

__version__ = "0.9.0"

APP_NAME = "check-cert"

DEFAULT_PORT = 443
DEFAULT_TIMEOUT = 10
DEFAULT_AGE_WARNING = 30
DEFAULT_AGE_CRITICAL = 15
DEFAULT_LOG_LEVEL = "INFO"

# 作为 SANs 列表第一项时跳过 SANs 检查（不区分大小写）
SKIP_SANS_CHECK_KEYWORD = "SKIPSANSCHECKS"

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def parse_sans_entries(value: Any) -> List[str]:
    """
    解析 SANs 条目列表

    Args:
        value: 逗号分隔的字符串或字符串列表

    Returns:
        List[str]: 去除空白后的非空条目
    """
    if not value:
        return []

    if isinstance(value, str):
        raw_entries = value.split(',')
    else:
        raw_entries = []
        for item in value:
            raw_entries.extend(str(item).split(','))

    return [entry.strip() for entry in raw_entries if entry.strip()]


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class PluginConfig:
    """插件运行配置"""
    server: str = ""
    dns_name: str = ""
    port: int = DEFAULT_PORT
    filename: str = ""
    timeout: int = DEFAULT_TIMEOUT
    age_warning: int = DEFAULT_AGE_WARNING
    age_critical: int = DEFAULT_AGE_CRITICAL
    sans_entries: List[str] = field(default_factory=list)
    disable_hostname_verification_if_empty_sans: bool = False
    verbose: bool = False
    emit_branding: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    sns_topic_arn: Optional[str] = None

    @property
    def hostname_value(self) -> str:
        """用于与叶子证书比对的主机名"""
        return self.dns_name or self.server

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PluginConfig":
        """
        从键值映射构建配置（键名为小写字段名）

        Args:
            values: 配置映射，缺失的键使用默认值

        Returns:
            PluginConfig: 配置对象

        Raises:
            ValueError: 数值字段格式无效
        """
        config = cls()

        for key in ('server', 'dns_name', 'filename', 'log_level'):
            if values.get(key) is not None:
                setattr(config, key, str(values[key]).strip())

        for key in ('port', 'timeout', 'age_warning', 'age_critical'):
            if values.get(key) not in (None, ''):
                try:
                    setattr(config, key, int(values[key]))
                except (TypeError, ValueError):
                    raise ValueError(f"invalid integer value for {key}: {values[key]!r}")

        for key in ('disable_hostname_verification_if_empty_sans', 'verbose', 'emit_branding'):
            if values.get(key) is not None:
                setattr(config, key, _parse_bool(values[key]))

        if values.get('sans_entries') is not None:
            config.sans_entries = parse_sans_entries(values['sans_entries'])

        if values.get('sns_topic_arn'):
            config.sns_topic_arn = str(values['sns_topic_arn']).strip()

        return config

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PluginConfig":
        """
        从环境变量构建配置

        环境变量名为字段名的大写形式，例如 SERVER、AGE_WARNING、SANS_ENTRIES。
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.__dataclass_fields__:
            env_value = environ.get(name.upper())
            if env_value is not None:
                values[name] = env_value
        return cls.from_mapping(values)


def version() -> str:
    return f"{APP_NAME} {__version__}"


def branding(prefix: str = "Notification generated by ") -> str:
    return f"{prefix}{APP_NAME} {__version__}"
