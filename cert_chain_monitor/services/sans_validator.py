"""
SANs 条目验证服务
"""
from typing import Sequence

from ..config import SKIP_SANS_CHECK_KEYWORD
from ..models import Certificate, SANsCheckResult


def is_skip_keyword(entry: str) -> bool:
    """判断条目是否为跳过检查的关键字（忽略大小写和首尾空白）"""
    return entry.strip().lower() == SKIP_SANS_CHECK_KEYWORD.strip().lower()


class SANsValidator:
    """SANs 条目验证器"""

    def validate(
        self,
        leaf: Certificate,
        chain: Sequence[Certificate],
        expected: Sequence[str],
    ) -> SANsCheckResult:
        """
        检查期望的 SANs 条目是否都出现在叶子证书中

        只检查期望条目是否存在（区分大小写的精确匹配），证书中多出的条目
        不计为不匹配。期望列表第一项为跳过关键字时直接通过。

        Args:
            leaf: 叶子证书
            chain: 完整证书链
            expected: 期望的 SANs 条目

        Returns:
            SANsCheckResult: 检查结果
        """
        if expected and is_skip_keyword(expected[0]):
            return SANsCheckResult(mismatched=0, found=0, requested=0, skipped=True)

        actual = set(leaf.sans)
        found = 0
        missing = []
        for entry in expected:
            if entry in actual:
                found += 1
            else:
                missing.append(entry)

        return SANsCheckResult(
            mismatched=len(missing),
            found=found,
            requested=len(expected),
            missing_entries=tuple(missing),
        )

    def describe_mismatch(self, result: SANsCheckResult, chain: Sequence[Certificate]) -> str:
        """
        生成不匹配的诊断信息

        Args:
            result: 检查结果
            chain: 完整证书链

        Returns:
            str: 诊断信息
        """
        return (
            f"{result.mismatched} of {result.requested} requested SANs entries missing from "
            f"leaf certificate (1 of {len(chain)} in chain, {result.found} found): "
            f"{', '.join(result.missing_entries)}"
        )
