"""
证书过期计算服务
"""
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional, Sequence

from ..exceptions import EmptyChainError
from ..models import (
    Certificate,
    CertificateState,
    CertificateVerdict,
    ChainSummary,
    Thresholds,
)


class ExpiryCalculator:
    """证书过期计算器"""

    def __init__(self, warning_days: int = 30, critical_days: int = 15):
        """
        初始化过期计算器

        Args:
            warning_days: 提前警告天数，默认30天
            critical_days: 提前严重告警天数，默认15天
        """
        self.warning_days = warning_days
        self.critical_days = critical_days

    def calculate_thresholds(self, now: Optional[datetime] = None) -> Thresholds:
        """
        根据天数计算过期阈值

        按日历天累加（带时区的 datetime 加 timedelta 为墙上时间运算），
        结果统一转换为 UTC。

        Args:
            now: 当前时间，默认取当前 UTC 时间

        Returns:
            Thresholds: 警告/严重阈值
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        warning = (now + timedelta(days=self.warning_days)).astimezone(timezone.utc)
        critical = (now + timedelta(days=self.critical_days)).astimezone(timezone.utc)

        return Thresholds(
            now=now.astimezone(timezone.utc),
            warning=warning,
            critical=critical,
            warning_days=self.warning_days,
            critical_days=self.critical_days,
        )

    def classify_certificate(self, cert: Certificate, thresholds: Thresholds) -> CertificateVerdict:
        """
        判断单个证书的状态

        按顺序匹配，先命中者生效：已过期、严重、警告、正常。
        所有边界均为严格小于。

        Args:
            cert: 证书
            thresholds: 过期阈值

        Returns:
            CertificateVerdict: 分类结果
        """
        expiration = cert.expiration

        if expiration < thresholds.now:
            state = CertificateState.EXPIRED
        elif expiration < thresholds.critical:
            state = CertificateState.CRITICAL
        elif expiration < thresholds.warning:
            state = CertificateState.WARNING
        else:
            state = CertificateState.OK

        return CertificateVerdict(
            certificate=cert,
            state=state,
            remaining=self.format_remaining(expiration, thresholds.now),
        )

    def summarize_chain(self, chain: Sequence[Certificate], thresholds: Thresholds) -> ChainSummary:
        """
        对整条证书链进行分类汇总

        Args:
            chain: 证书链（叶子证书在位置0）
            thresholds: 过期阈值

        Returns:
            ChainSummary: 链汇总

        Raises:
            EmptyChainError: 证书链为空
        """
        if not chain:
            raise EmptyChainError("no certificates found")

        verdicts = tuple(self.classify_certificate(cert, thresholds) for cert in chain)

        counts: Dict[CertificateState, int] = {state: 0 for state in CertificateState}
        for verdict in verdicts:
            counts[verdict.state] += 1

        return ChainSummary(
            total=len(verdicts),
            counts=counts,
            verdicts=verdicts,
            state=max(verdict.state for verdict in verdicts),
        )

    @staticmethod
    def format_remaining(expiration: datetime, now: datetime) -> str:
        """
        格式化剩余时间，只保留整天数和整小时数

        Args:
            expiration: 过期时间
            now: 当前时间

        Returns:
            str: 例如 "67d 0h remaining" 或 "[EXPIRED] 5d 3h ago"
        """
        delta = expiration - now
        expired = delta < timedelta(0)
        if expired:
            delta = -delta

        days = delta.days
        hours = delta.seconds // 3600

        if expired:
            return f"[EXPIRED] {days}d {hours}h ago"
        return f"{days}d {hours}h remaining"

    def get_expiry_summary(self, summary: ChainSummary) -> str:
        """
        获取过期状态摘要

        Args:
            summary: 链汇总

        Returns:
            str: 摘要信息
        """
        summary_parts = [f"{summary.total} certs"]

        if summary.expired_count:
            summary_parts.append(f"{summary.expired_count} expired")
        if summary.critical_count:
            summary_parts.append(f"{summary.critical_count} critical (<{self.critical_days}d)")
        if summary.warning_count:
            summary_parts.append(f"{summary.warning_count} warning (<{self.warning_days}d)")
        if summary.ok_count:
            summary_parts.append(f"{summary.ok_count} ok")

        return ", ".join(summary_parts)
