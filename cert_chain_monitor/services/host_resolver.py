"""
主机名展开服务
"""
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass, field
from typing import List

from ..exceptions import HostExpansionError

# 部分IP范围，例如 192.168.1.10-20
_PARTIAL_RANGE_PATTERN = re.compile(r'^(\d{1,3}\.){3}\d{1,3}-\d{1,3}$')

_DOMAIN_PATTERN = re.compile(
    r'^(?:[a-zA-Z0-9_](?:[a-zA-Z0-9_-]{0,61}[a-zA-Z0-9])?\.)*[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.?$'
)


@dataclass(frozen=True)
class ExpandedHost:
    """主机展开结果"""
    given: str
    expanded: List[str] = field(default_factory=list)
    resolved: bool = False
    is_range: bool = False


class HostResolver:
    """将用户给定的主机值展开为IP地址列表"""

    def __init__(self):
        """初始化主机解析器"""
        self.logger = logging.getLogger(__name__)

    def expand(self, host: str) -> ExpandedHost:
        """
        展开主机值

        IP地址原样返回；CIDR 和部分IP范围标记为范围（调用方拒绝）；
        主机名通过 DNS 解析，按解析顺序去重。

        Args:
            host: 主机名、IP地址、CIDR 或IP范围

        Returns:
            ExpandedHost: 展开结果

        Raises:
            HostExpansionError: 主机名格式无效或解析失败
        """
        given = host.strip()
        if not given:
            raise HostExpansionError("empty host value", host=host)

        candidate = given[1:-1] if given.startswith('[') and given.endswith(']') else given
        try:
            ip = ipaddress.ip_address(candidate)
            return ExpandedHost(given=given, expanded=[str(ip)])
        except ValueError:
            pass

        if '/' in given:
            try:
                network = ipaddress.ip_network(given, strict=False)
            except ValueError:
                raise HostExpansionError(f"invalid CIDR host pattern {given!r}", host=given)
            # 范围只做标记，不展开
            return ExpandedHost(given=given, expanded=[str(network.network_address)], is_range=True)

        if _PARTIAL_RANGE_PATTERN.match(given):
            return ExpandedHost(given=given, expanded=self._expand_partial_range(given), is_range=True)

        if not self.validate_hostname(given):
            raise HostExpansionError(f"invalid host value {given!r}", host=given)

        return ExpandedHost(given=given, expanded=self.resolve(given), resolved=True)

    def resolve(self, hostname: str) -> List[str]:
        """
        解析主机名

        Args:
            hostname: 主机名

        Returns:
            List[str]: 去重后的IP地址（保持解析顺序）

        Raises:
            HostExpansionError: DNS 解析失败
        """
        try:
            results = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
        except socket.gaierror as e:
            raise HostExpansionError(f"failed to resolve {hostname!r}: {e}", host=hostname) from e

        addresses = []
        for family, _, _, _, sockaddr in results:
            if family not in (socket.AF_INET, socket.AF_INET6):
                continue
            address = sockaddr[0]
            if address not in addresses:
                addresses.append(address)

        self.logger.debug(f"主机 {hostname} 解析得到 {len(addresses)} 个IP地址: {addresses}")
        return addresses

    def validate_hostname(self, hostname: str) -> bool:
        """
        验证主机名格式

        Args:
            hostname: 主机名

        Returns:
            bool: 是否有效
        """
        if not hostname or len(hostname) > 253:
            return False
        return bool(_DOMAIN_PATTERN.match(hostname))

    def _expand_partial_range(self, host_range: str) -> List[str]:
        base, end = host_range.rsplit('-', 1)
        prefix, start = base.rsplit('.', 1)
        try:
            first = int(start)
            last = int(end)
            addresses = [str(ipaddress.ip_address(f"{prefix}.{octet}")) for octet in range(first, last + 1)]
        except ValueError:
            raise HostExpansionError(f"invalid IP range host pattern {host_range!r}", host=host_range)
        if not addresses:
            raise HostExpansionError(f"empty IP range host pattern {host_range!r}", host=host_range)
        return addresses
