"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from ..interfaces import LoggerServiceInterface
from ..models import (
    CertificateState,
    CertificateVerdict,
    CheckResult,
    HostnameCheckResult,
    HostnameOutcome,
    SANsCheckResult,
)


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "cert_chain_monitor", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.execution_stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'source': None,
            'certificates': 0,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器；标准输出留给插件结果，日志写到标准错误
        if not self.logger.handlers:
            handler = logging.StreamHandler()

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        for handler in self.logger.handlers:
            handler.setLevel(level)
        self.logger.propagate = False

    def log_check_start(self, source: str):
        """
        记录检查开始

        Args:
            source: 证书链来源描述
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['source'] = source

        self.logger.info(f"开始证书链检查: {source}")

    def log_certificate_verdict(self, verdict: CertificateVerdict):
        """
        记录证书分类结果

        Args:
            verdict: 证书分类结果
        """
        cert = verdict.certificate
        self.execution_stats['certificates'] += 1

        message = (
            f"证书 {cert.position + 1} ({cert.role.value}) - "
            f"CN: {cert.subject_cn}, "
            f"过期时间: {cert.expiration.isoformat()}, "
            f"状态: {verdict.state.name}, "
            f"{verdict.remaining}"
        )

        if verdict.state is CertificateState.OK:
            self.logger.debug(message)
        else:
            self.logger.warning(message)

    def log_hostname_result(self, result: HostnameCheckResult, cert_cn: str):
        """
        记录主机名验证结果

        Args:
            result: 主机名验证结果
            cert_cn: 叶子证书 CN
        """
        if result.outcome is HostnameOutcome.PASSED:
            self.logger.debug(f"主机名 {result.hostname} 验证通过，证书 CN: {cert_cn}")
        elif result.outcome is HostnameOutcome.SKIPPED and result.reason:
            self.logger.debug(f"跳过主机名验证: {result.reason}")
        elif result.outcome is HostnameOutcome.SKIPPED:
            self.logger.warning(
                f"叶子证书 SANs 列表为空，按要求跳过主机名验证 - 主机名: {result.hostname}, 证书 CN: {cert_cn}"
            )
        else:
            self.logger.error(
                f"主机名 {result.hostname} 验证失败 ({result.outcome.value}) - "
                f"证书 CN: {cert_cn}, 原因: {result.reason}"
            )

    def log_sans_result(self, result: SANsCheckResult):
        """
        记录 SANs 检查结果

        Args:
            result: SANs 检查结果
        """
        if result.skipped:
            self.logger.debug("按要求跳过 SANs 条目检查")
        elif result.passed:
            self.logger.debug(f"SANs 条目匹配 - 请求: {result.requested}, 找到: {result.found}")
        else:
            self.logger.warning(
                f"SANs 条目不匹配 - 请求: {result.requested}, 找到: {result.found}, "
                f"缺失: {', '.join(result.missing_entries)}"
            )

    def log_error(self, context: str, error: Exception):
        """
        记录错误信息

        Args:
            context: 出错时的操作或目标
            error: 异常对象
        """
        error_info = {
            'context': context,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)

        self.logger.error(f"{context} 发生错误: {type(error).__name__}: {str(error)}")

        # 记录详细的堆栈跟踪（调试级别）
        self.logger.debug(f"{context} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_check_end(self, result: CheckResult):
        """
        记录检查结束

        Args:
            result: 检查结果
        """
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        if self.execution_stats['start_time']:
            duration = (self.execution_stats['end_time'] - self.execution_stats['start_time']).total_seconds()
        else:
            duration = 0

        self.logger.info(f"证书链检查完成，状态: {result.state.label}，耗时 {duration:.2f} 秒")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.debug("插件配置信息:")
        for key, value in safe_config.items():
            self.logger.debug(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        sensitive_keys = {'password', 'secret', 'token', 'credential', 'sns_topic_arn'}

        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in sensitive_keys or
                key_lower == 'key' or
                key_lower.endswith('_key') or
                key_lower.endswith('_secret') or
                key_lower.endswith('_password') or
                key_lower.endswith('_token')
            )

            if is_sensitive and isinstance(value, str) and value:
                if 'arn:' in value:
                    # ARN类型，隐藏账号ID
                    parts = value.split(':')
                    if len(parts) >= 6:
                        safe_value = f"{':'.join(parts[:4])}:***:{parts[-1]}"
                    else:
                        safe_value = "***"
                else:
                    safe_value = value[:3] + "***" if len(value) > 3 else "***"
                safe_config[key] = safe_value
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        duration = 0
        if self.execution_stats['start_time'] and self.execution_stats['end_time']:
            duration = (self.execution_stats['end_time'] - self.execution_stats['start_time']).total_seconds()

        return {
            'start_time': self.execution_stats['start_time'].isoformat() if self.execution_stats['start_time'] else None,
            'end_time': self.execution_stats['end_time'].isoformat() if self.execution_stats['end_time'] else None,
            'duration_seconds': duration,
            'source': self.execution_stats['source'],
            'certificates': self.execution_stats['certificates'],
            'error_count': len(self.execution_stats['errors']),
            'errors': self.execution_stats['errors']
        }

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = self._empty_stats()
