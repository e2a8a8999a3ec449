"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class CertificateState(IntEnum):
    """单个证书的严重级别，数值越大越严重"""
    OK = 0
    WARNING = 1
    CRITICAL = 2
    EXPIRED = 3

    @property
    def service_state(self) -> "ServiceState":
        """映射为监控系统的服务状态"""
        if self is CertificateState.OK:
            return ServiceState.OK
        if self is CertificateState.WARNING:
            return ServiceState.WARNING
        return ServiceState.CRITICAL


class ServiceState(Enum):
    """监控系统服务状态（Nagios 约定）"""
    OK = ("OK", 0)
    WARNING = ("WARNING", 1)
    CRITICAL = ("CRITICAL", 2)
    UNKNOWN = ("UNKNOWN", 3)

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def exit_code(self) -> int:
        return self.value[1]


class CertificateRole(str, Enum):
    """证书在链中的角色"""
    LEAF = "leaf"
    INTERMEDIATE = "intermediate"
    ROOT = "root"


@dataclass(frozen=True)
class Certificate:
    """已解析的证书（只读快照）"""
    position: int
    role: CertificateRole
    subject_cn: str
    issuer_cn: str
    serial_number: str
    expiration: datetime
    sans: Tuple[str, ...] = ()
    ip_addresses: Tuple[str, ...] = ()
    not_before: Optional[datetime] = None
    key_id: Optional[str] = None
    issuer_key_id: Optional[str] = None
    raw: bytes = field(default=b"", repr=False, compare=False)

    @property
    def is_leaf(self) -> bool:
        return self.position == 0

    @property
    def has_sans(self) -> bool:
        """是否包含 DNS 类型的 SAN 条目"""
        return len(self.sans) > 0


@dataclass(frozen=True)
class Thresholds:
    """过期阈值（绝对 UTC 时间）"""
    now: datetime
    warning: datetime
    critical: datetime
    warning_days: int
    critical_days: int


@dataclass(frozen=True)
class CertificateVerdict:
    """单个证书的分类结果"""
    certificate: Certificate
    state: CertificateState
    remaining: str

    @property
    def is_expired(self) -> bool:
        return self.state is CertificateState.EXPIRED

    @property
    def is_expiring(self) -> bool:
        return self.state in (CertificateState.CRITICAL, CertificateState.WARNING)


@dataclass(frozen=True)
class ChainSummary:
    """证书链汇总"""
    total: int
    counts: Mapping[CertificateState, int]
    verdicts: Tuple[CertificateVerdict, ...]
    state: CertificateState

    def __post_init__(self):
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))

    @property
    def ok_count(self) -> int:
        return self.counts.get(CertificateState.OK, 0)

    @property
    def warning_count(self) -> int:
        return self.counts.get(CertificateState.WARNING, 0)

    @property
    def critical_count(self) -> int:
        return self.counts.get(CertificateState.CRITICAL, 0)

    @property
    def expired_count(self) -> int:
        return self.counts.get(CertificateState.EXPIRED, 0)

    @property
    def expiring_count(self) -> int:
        """即将过期（CRITICAL + WARNING）的证书数量"""
        return self.critical_count + self.warning_count

    @property
    def is_critical_state(self) -> bool:
        return self.state >= CertificateState.CRITICAL

    @property
    def is_warning_state(self) -> bool:
        return self.state is CertificateState.WARNING

    @property
    def service_state(self) -> ServiceState:
        return self.state.service_state

    @property
    def leaf(self) -> CertificateVerdict:
        return self.verdicts[0]

    @property
    def next_to_expire(self) -> CertificateVerdict:
        """最早过期的证书（相同时间取链中靠前者）"""
        return min(self.verdicts, key=lambda v: v.certificate.expiration)


class HostnameOutcome(str, Enum):
    """主机名验证结果类别"""
    PASSED = "passed"
    SKIPPED = "skipped"
    MISSING_SANS = "missing_sans"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class HostnameCheckResult:
    """主机名验证结果"""
    hostname: str
    outcome: HostnameOutcome
    reason: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome in (HostnameOutcome.MISSING_SANS, HostnameOutcome.MISMATCH)


@dataclass(frozen=True)
class SANsCheckResult:
    """SANs 条目检查结果"""
    mismatched: int
    found: int
    requested: int = 0
    skipped: bool = False
    missing_entries: Tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return self.mismatched == 0


@dataclass(frozen=True)
class ChainEvaluation:
    """一次完整评估的结果"""
    summary: ChainSummary
    hostname: HostnameCheckResult
    sans: Optional[SANsCheckResult] = None

    @property
    def service_state(self) -> ServiceState:
        if self.hostname.failed:
            return ServiceState.CRITICAL
        if self.sans is not None and not self.sans.passed:
            return ServiceState.CRITICAL
        return self.summary.service_state


@dataclass(frozen=True)
class PerformanceData:
    """性能数据指标"""
    label: str
    value: str
    unit: str = ""

    def __str__(self) -> str:
        return f"'{self.label}'={self.value}{self.unit};;;;"


@dataclass(frozen=True)
class CheckResult:
    """插件一次运行的最终结果"""
    state: ServiceState
    service_output: str
    long_service_output: str = ""
    errors: Tuple[str, ...] = ()
    warning_threshold: str = ""
    critical_threshold: str = ""
    perf_data: Tuple[PerformanceData, ...] = ()
    evaluation: Optional[ChainEvaluation] = None

    @property
    def exit_code(self) -> int:
        return self.state.exit_code
