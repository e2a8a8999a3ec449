"""
证书链评估引擎

纯函数式评估：不做 I/O、不写日志、不修改输入。证书链位置0始终视为叶子证书，
链顺序由调用方保证。
"""
from typing import Optional, Sequence

from ..exceptions import EmptyChainError
from ..models import Certificate, ChainEvaluation, Thresholds
from .expiry_calculator import ExpiryCalculator
from .hostname_validator import HostnameValidator
from .sans_validator import SANsValidator


class ChainEvaluator:
    """证书链评估器"""

    def __init__(
        self,
        expiry_calculator: Optional[ExpiryCalculator] = None,
        hostname_validator: Optional[HostnameValidator] = None,
        sans_validator: Optional[SANsValidator] = None,
    ):
        self.expiry_calculator = expiry_calculator or ExpiryCalculator()
        self.hostname_validator = hostname_validator or HostnameValidator()
        self.sans_validator = sans_validator or SANsValidator()

    def evaluate(
        self,
        chain: Sequence[Certificate],
        thresholds: Thresholds,
        hostname: str,
        expected_sans: Sequence[str] = (),
        skip_hostname_if_no_sans: bool = False,
    ) -> ChainEvaluation:
        """
        评估证书链

        主机名验证失败时不再进行 SANs 检查。

        Args:
            chain: 证书链（叶子证书在前）
            thresholds: 过期阈值
            hostname: 用于验证叶子证书的主机名
            expected_sans: 期望的 SANs 条目，可为空
            skip_hostname_if_no_sans: 叶子证书没有 SANs 时跳过主机名验证

        Returns:
            ChainEvaluation: 评估结果

        Raises:
            EmptyChainError: 证书链为空
        """
        if not chain:
            raise EmptyChainError("no certificates found")

        summary = self.expiry_calculator.summarize_chain(chain, thresholds)

        leaf = chain[0]
        hostname_result = self.hostname_validator.validate(leaf, hostname, skip_hostname_if_no_sans)
        if hostname_result.failed:
            return ChainEvaluation(summary=summary, hostname=hostname_result)

        sans_result = None
        if expected_sans:
            sans_result = self.sans_validator.validate(leaf, chain, expected_sans)

        return ChainEvaluation(summary=summary, hostname=hostname_result, sans=sans_result)
