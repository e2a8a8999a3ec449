"""
配置验证服务
"""
import logging
import re
from typing import Any, Dict

from ..config import PluginConfig, SKIP_SANS_CHECK_KEYWORD
from ..exceptions import ConfigurationError
from .host_resolver import HostResolver

_SNS_ARN_PATTERN = re.compile(r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$')

_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)
        self.host_resolver = HostResolver()

    def validate(self, config: PluginConfig) -> Dict[str, Any]:
        """
        验证插件配置

        Args:
            config: 插件配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': []
        }

        self._validate_target(config, result)
        self._validate_connection(config, result)
        self._validate_thresholds(config, result)
        self._validate_sans_entries(config, result)
        self._validate_logging(config, result)
        self._validate_sns(config, result)

        result['is_valid'] = not result['errors']
        return result

    def ensure_valid(self, config: PluginConfig) -> PluginConfig:
        """
        验证配置，无效时抛出异常

        Args:
            config: 插件配置

        Returns:
            PluginConfig: 原配置

        Raises:
            ConfigurationError: 配置无效
        """
        result = self.validate(config)

        for warning in result['warnings']:
            self.logger.warning(f"配置警告: {warning}")

        if not result['is_valid']:
            raise ConfigurationError("; ".join(result['errors']), errors=result['errors'])

        return config

    def _validate_target(self, config: PluginConfig, result: Dict[str, Any]):
        if not config.server and not config.filename:
            result['errors'].append("one of server or filename must be specified")
            return

        if config.server and config.filename:
            result['warnings'].append("both server and filename specified; filename takes precedence")

        if config.server and not config.filename:
            server = config.server.strip()
            # IP、CIDR 和IP范围交由主机展开步骤处理
            looks_like_address = ':' in server or re.match(r'^[\d./-]+$', server)
            if not looks_like_address and not self.host_resolver.validate_hostname(server):
                result['errors'].append(f"invalid server value: {config.server!r}")

        if config.dns_name and not self.host_resolver.validate_hostname(config.dns_name):
            result['errors'].append(f"invalid dns name value: {config.dns_name!r}")

    def _validate_connection(self, config: PluginConfig, result: Dict[str, Any]):
        if not 1 <= config.port <= 65535:
            result['errors'].append(f"port out of range: {config.port}")

        if config.timeout < 1:
            result['errors'].append(f"timeout must be at least 1 second: {config.timeout}")

    def _validate_thresholds(self, config: PluginConfig, result: Dict[str, Any]):
        if config.age_warning < 1:
            result['errors'].append(f"age warning threshold must be at least 1 day: {config.age_warning}")

        if config.age_critical < 1:
            result['errors'].append(f"age critical threshold must be at least 1 day: {config.age_critical}")

        if config.age_critical > config.age_warning:
            result['warnings'].append(
                f"age critical threshold ({config.age_critical}) is greater than "
                f"age warning threshold ({config.age_warning})"
            )

    def _validate_sans_entries(self, config: PluginConfig, result: Dict[str, Any]):
        keyword = SKIP_SANS_CHECK_KEYWORD.lower()
        for position, entry in enumerate(config.sans_entries):
            if position > 0 and entry.strip().lower() == keyword:
                result['warnings'].append(
                    f"{SKIP_SANS_CHECK_KEYWORD} keyword only has effect as the first SANs entry"
                )

    def _validate_logging(self, config: PluginConfig, result: Dict[str, Any]):
        if config.log_level.upper() not in _LOG_LEVELS:
            result['warnings'].append(f"unknown log level {config.log_level!r}, using INFO")

    def _validate_sns(self, config: PluginConfig, result: Dict[str, Any]):
        if config.sns_topic_arn and not _SNS_ARN_PATTERN.match(config.sns_topic_arn):
            result['errors'].append(f"invalid SNS topic ARN: {config.sns_topic_arn}")
