"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import List, Tuple

from .models import Certificate, CertificateVerdict, CheckResult


class CertificateFetcherInterface(ABC):
    """远程证书链获取接口"""

    @abstractmethod
    def fetch_chain(self, host_value: str, ip_address: str, port: int) -> List[Certificate]:
        """从远程服务获取证书链（叶子证书在前）"""
        pass


class CertificateLoaderInterface(ABC):
    """本地证书文件加载接口"""

    @abstractmethod
    def load(self, filename: str) -> Tuple[List[Certificate], bytes]:
        """加载证书链，同时返回无法解析的残留数据"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def send_check_result(self, result: CheckResult, source: str) -> bool:
        """发送检查结果通知"""
        pass

    @abstractmethod
    def format_notification_content(self, result: CheckResult, source: str) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, source: str):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_certificate_verdict(self, verdict: CertificateVerdict):
        """记录证书分类结果"""
        pass

    @abstractmethod
    def log_error(self, context: str, error: Exception):
        """记录错误信息"""
        pass
