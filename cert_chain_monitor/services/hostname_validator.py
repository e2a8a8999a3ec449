"""
主机名验证服务

只使用 SAN 条目进行匹配，不再回退到主题 CN。叶子证书没有任何 DNS 类型的
SAN 条目时单独归类，便于给出“重新签发证书”的处理建议。
"""
import ipaddress
import logging
from typing import Optional, Union

from ..models import Certificate, HostnameCheckResult, HostnameOutcome


def _parse_ip(hostname: str) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    candidate = hostname
    if len(candidate) >= 3 and candidate.startswith('[') and candidate.endswith(']'):
        candidate = candidate[1:-1]
    try:
        return ipaddress.ip_address(candidate)
    except ValueError:
        return None


def _valid_hostname(host: str, is_pattern: bool) -> bool:
    """
    校验主机名/匹配模式的语法

    Args:
        host: 主机名或证书中的匹配模式
        is_pattern: 是否为证书中的模式（允许最左侧通配符）

    Returns:
        bool: 语法是否有效
    """
    if not is_pattern and host.endswith('.'):
        host = host[:-1]
    if not host:
        return False
    if host == '*':
        # 裸通配符只能按精确匹配处理
        return False

    for i, part in enumerate(host.split('.')):
        if not part:
            return False
        if is_pattern and i == 0 and part == '*':
            continue
        for j, ch in enumerate(part):
            if ch.isascii() and ch.isalnum():
                continue
            if ch == '-' and j != 0:
                continue
            if ch == '_':
                # 非标准但广泛存在
                continue
            return False
    return True


def _match_exactly(pattern: str, hostname: str) -> bool:
    if not hostname or hostname == '.' or not pattern or pattern == '.':
        return False
    return pattern.lower() == hostname


def _match_hostnames(pattern: str, hostname: str) -> bool:
    pattern = pattern.rstrip('.')
    hostname = hostname.rstrip('.')

    if not pattern or not hostname:
        return False

    pattern_parts = pattern.split('.')
    host_parts = hostname.split('.')

    if len(pattern_parts) != len(host_parts):
        return False

    for i, pattern_part in enumerate(pattern_parts):
        if i == 0 and pattern_part == '*':
            continue
        if pattern_part.lower() != host_parts[i]:
            return False
    return True


class HostnameValidator:
    """主机名验证器"""

    def __init__(self):
        """初始化主机名验证器"""
        self.logger = logging.getLogger(__name__)

    def validate(self, leaf: Certificate, hostname: str, skip_if_empty_sans: bool = False) -> HostnameCheckResult:
        """
        验证叶子证书是否适用于指定主机名

        Args:
            leaf: 叶子证书（链中位置0）
            hostname: 目标主机名或IP
            skip_if_empty_sans: 叶子证书没有 SAN 条目时是否跳过验证

        Returns:
            HostnameCheckResult: 验证结果
        """
        if not hostname:
            # 读取证书文件且未指定 server/dns-name 时没有可比对的主机名
            return HostnameCheckResult(hostname=hostname, outcome=HostnameOutcome.SKIPPED,
                                       reason="no hostname given")

        if not leaf.has_sans and skip_if_empty_sans:
            return HostnameCheckResult(hostname=hostname, outcome=HostnameOutcome.SKIPPED)

        if self.matches(leaf, hostname):
            return HostnameCheckResult(hostname=hostname, outcome=HostnameOutcome.PASSED)

        if not leaf.has_sans:
            return HostnameCheckResult(
                hostname=hostname,
                outcome=HostnameOutcome.MISSING_SANS,
                reason=self._failure_reason(leaf, hostname),
            )

        return HostnameCheckResult(
            hostname=hostname,
            outcome=HostnameOutcome.MISMATCH,
            reason=self._failure_reason(leaf, hostname),
        )

    def matches(self, cert: Certificate, hostname: str) -> bool:
        """
        判断证书的 SAN 条目是否匹配主机名

        Args:
            cert: 证书
            hostname: 目标主机名或IP

        Returns:
            bool: 是否匹配
        """
        ip = _parse_ip(hostname)
        if ip is not None:
            for candidate in cert.ip_addresses:
                try:
                    if ipaddress.ip_address(candidate) == ip:
                        return True
                except ValueError:
                    self.logger.debug(f"忽略无效的 IP SAN 条目: {candidate}")
            return False

        candidate_name = hostname.lower()
        valid_candidate = _valid_hostname(candidate_name, is_pattern=False)

        for pattern in cert.sans:
            if valid_candidate and _valid_hostname(pattern, is_pattern=True):
                if _match_hostnames(pattern, candidate_name):
                    return True
            elif _match_exactly(pattern, candidate_name):
                return True

        return False

    def _failure_reason(self, cert: Certificate, hostname: str) -> str:
        """
        生成与 x509 主机名错误一致的失败原因

        Args:
            cert: 证书
            hostname: 目标主机名

        Returns:
            str: 失败原因
        """
        if _parse_ip(hostname) is not None:
            if not cert.ip_addresses:
                return f"x509: cannot validate certificate for {hostname} because it doesn't contain any IP SANs"
            valid = ", ".join(cert.ip_addresses)
            return f"x509: certificate is valid for {valid}, not {hostname}"

        if not cert.sans:
            if cert.subject_cn:
                return "x509: certificate relies on legacy Common Name field, use SANs instead"
            return f"x509: certificate is not valid for any names, but wanted to match {hostname}"

        valid = ", ".join(cert.sans)
        return f"x509: certificate is valid for {valid}, not {hostname}"
