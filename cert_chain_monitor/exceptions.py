"""
异常定义
"""
from typing import Optional


class CertChainMonitorError(Exception):
    """证书链监控的基础异常"""


class ConfigurationError(CertChainMonitorError):
    """配置无效"""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


class HostExpansionError(CertChainMonitorError):
    """主机名/IP 展开失败"""

    def __init__(self, message: str, host: Optional[str] = None):
        super().__init__(message)
        self.host = host


class CertificateRetrievalError(CertChainMonitorError):
    """从远程服务获取证书链失败"""

    def __init__(self, message: str, host: Optional[str] = None, port: Optional[int] = None):
        super().__init__(message)
        self.host = host
        self.port = port


class CertificateParseError(CertChainMonitorError):
    """证书文件解析失败，或存在无法解析的残留数据"""

    def __init__(self, message: str, filename: Optional[str] = None, leftover: bytes = b""):
        super().__init__(message)
        self.filename = filename
        self.leftover = leftover


class EmptyChainError(CertChainMonitorError):
    """证书链为空"""


class HostnameVerificationError(CertChainMonitorError):
    """叶子证书与目标主机名不匹配"""

    def __init__(self, message: str, hostname: Optional[str] = None, missing_sans: bool = False):
        super().__init__(message)
        self.hostname = hostname
        self.missing_sans = missing_sans


class SANsMismatchError(CertChainMonitorError):
    """期望的 SANs 条目未全部出现在叶子证书中"""

    def __init__(self, message: str, mismatched: int = 0, found: int = 0):
        super().__init__(message)
        self.mismatched = mismatched
        self.found = found


class CertificateExpirationError(CertChainMonitorError):
    """证书链中存在已过期或即将过期的证书"""
