"""
错误处理服务
"""
import logging
import socket
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from OpenSSL import SSL

from ..exceptions import (
    CertificateParseError,
    CertificateRetrievalError,
    ConfigurationError,
    EmptyChainError,
    HostExpansionError,
)


class ErrorHandler:
    """错误处理器：为错误补充排查建议"""

    def __init__(self):
        """初始化错误处理器"""
        self.logger = logging.getLogger(__name__)

    def handle_error(self, context: str, error: Exception) -> Dict[str, Any]:
        """
        处理错误

        Args:
            context: 出错时的操作或目标
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_info = {
            'context': context,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self.get_suggested_action(error),
        }

        self.logger.debug(f"{context} 发生错误: {error_info['error_type']}: {error_info['error_message']}")

        return error_info

    def annotate_errors(self, errors: Iterable[Exception], context: str = "") -> List[str]:
        """
        为错误附加排查建议

        Args:
            errors: 异常列表
            context: 出错时的操作或目标

        Returns:
            List[str]: 附带建议的错误描述
        """
        annotated = []
        for error in errors:
            error_info = self.handle_error(context, error)
            if error_info['suggested_action']:
                annotated.append(f"{error_info['error_message']} [{error_info['suggested_action']}]")
            else:
                annotated.append(error_info['error_message'])
        return annotated

    def get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案，没有建议时为空字符串
        """
        # 获取失败时原始原因保存在 __cause__ 中
        cause = error.__cause__ if error.__cause__ is not None else error
        error_message = str(error).lower()

        if isinstance(cause, (socket.timeout, TimeoutError)) or 'timed out' in error_message:
            return "consider increasing the timeout value or check network connectivity"
        if isinstance(cause, socket.gaierror) or isinstance(error, HostExpansionError):
            return "check that the host name is correct and that DNS is available"
        if isinstance(cause, ConnectionRefusedError) or 'connection refused' in error_message:
            return "check that the service is running and that the port is correct"
        if isinstance(cause, SSL.Error):
            return "TLS handshake failed; confirm the port serves TLS and supports a compatible protocol version"
        if isinstance(error, CertificateParseError):
            return "confirm the file contains only PEM encoded certificates"
        if isinstance(error, EmptyChainError):
            return "confirm the service presents a certificate chain"
        if isinstance(error, ConfigurationError):
            return "review the plugin flags or environment configuration"
        if 'network is unreachable' in error_message or 'no route to host' in error_message:
            return "check firewall and routing configuration"
        if isinstance(error, CertificateRetrievalError):
            return "check network connectivity and remote server status"
        return ""
