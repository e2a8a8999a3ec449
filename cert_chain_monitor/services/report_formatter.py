"""
检查结果格式化服务（Nagios 插件输出格式）
"""
from datetime import datetime
from typing import List, Optional

from ..models import (
    CertificateState,
    CertificateVerdict,
    ChainSummary,
    CheckResult,
    PerformanceData,
)

CERT_VALIDITY_DATE_LAYOUT = "%Y-%m-%d %H:%M:%S %z %Z"

CHECK_OUTPUT_EOL = "\n"

MISSING_SANS_GUIDANCE = (
    "This certificate is missing Subject Alternate Names (SANs) and should be replaced."
    + CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL
    + "As a temporary workaround, you can specify the flag to skip hostname"
    " verification if the SANs list is found to be empty."
    + CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL
    + "Hostname matching against the legacy Common Name field is no longer"
    " supported by current TLS clients; SANs entries are required."
)

HOSTNAME_MISMATCH_GUIDANCE = (
    "Consider updating the service check or command definition to specify"
    " the website FQDN instead of the host FQDN as the 'dns-name' (or 'server')"
    " flag value. E.g., use 'www.example.org' instead of 'host7.example.com' in"
    " order to allow the remote server to select the correct certificate instead"
    " of using the default certificate."
)

SKIPPED_HOSTNAME_NOTE = (
    "NOTE: The option to skip hostname verification when certificate SANs list"
    " is empty has been specified."
    + CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL
    + "While viable as a short-term workaround for certificates missing SANs"
    " list entries, this is not recommended as a long-term fix."
)


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return "unknown"
    return value.strftime(CERT_VALIDITY_DATE_LAYOUT)


def threshold_description(boundary: datetime, days: int) -> str:
    """阈值描述，例如 "Expires before 2024-01-31 00:00:00 +0000 UTC (30 days)" """
    return f"Expires before {format_date(boundary)} ({days} days)"


class ReportFormatter:
    """检查结果格式化器"""

    def one_line_summary(self, summary: ChainSummary) -> str:
        """
        生成单行摘要

        Args:
            summary: 链汇总

        Returns:
            str: 单行摘要
        """
        next_verdict = summary.next_to_expire
        detail = self._describe_next(next_verdict)

        if summary.state is CertificateState.OK:
            return f"{summary.service_state.label}: {detail}"

        problems = summary.expired_count + summary.expiring_count
        return (
            f"{summary.service_state.label}: {problems} certs expired or expiring "
            f"({summary.expired_count} expired, {summary.critical_count} critical, "
            f"{summary.warning_count} warning); {detail}"
        )

    def _describe_next(self, verdict: CertificateVerdict) -> str:
        cert = verdict.certificate
        if verdict.is_expired:
            return (
                f'{cert.role.value} cert "{cert.subject_cn}" has expired '
                f"({verdict.remaining}; expiration {format_date(cert.expiration)})"
            )
        return (
            f'{cert.role.value} cert "{cert.subject_cn}" expires next with '
            f"{verdict.remaining} (until {format_date(cert.expiration)})"
        )

    def certs_report(self, summary: ChainSummary, verbose: bool = False) -> str:
        """
        生成证书链详细报告

        Args:
            summary: 链汇总
            verbose: 是否输出密钥标识等额外信息

        Returns:
            str: 详细报告
        """
        blocks = []
        for verdict in summary.verdicts:
            cert = verdict.certificate
            lines = [
                f"Certificate {cert.position + 1} of {summary.total} ({cert.role.value}):",
                f"\tName: {cert.subject_cn}",
                f"\tSANs entries: {', '.join(cert.sans) if cert.sans else '(none)'}",
                f"\tIssuer: {cert.issuer_cn}",
                f"\tSerial: {cert.serial_number}",
                f"\tIssued On: {format_date(cert.not_before)}",
                f"\tExpiration: {format_date(cert.expiration)}",
                f"\tStatus: {verdict.state.name}, {verdict.remaining}",
            ]
            if verbose:
                if cert.ip_addresses:
                    lines.append(f"\tIP Address SANs: {', '.join(cert.ip_addresses)}")
                lines.append(f"\tKeyID: {cert.key_id or '(none)'}")
                lines.append(f"\tIssuerKeyID: {cert.issuer_key_id or '(none)'}")
            blocks.append(CHECK_OUTPUT_EOL.join(lines))

        return (CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL).join(blocks)

    def performance_data(self, summary: Optional[ChainSummary], runtime_ms: int) -> List[PerformanceData]:
        """
        生成性能数据

        Args:
            summary: 链汇总，获取证书失败时为None
            runtime_ms: 运行耗时（毫秒）

        Returns:
            List[PerformanceData]: 性能数据
        """
        perf_data = [PerformanceData(label="time", value=str(runtime_ms), unit="ms")]
        if summary is not None:
            perf_data.extend([
                PerformanceData(label="certs_total", value=str(summary.total)),
                PerformanceData(label="certs_expired", value=str(summary.expired_count)),
                PerformanceData(label="certs_expiring", value=str(summary.expiring_count)),
            ])
        return perf_data

    def render(self, result: CheckResult, branding: Optional[str] = None) -> str:
        """
        渲染完整插件输出

        Args:
            result: 检查结果
            branding: 附加在末尾的品牌信息

        Returns:
            str: 插件输出文本
        """
        first_line = result.service_output
        if result.perf_data:
            first_line += " | " + " ".join(str(item) for item in result.perf_data)

        sections = [first_line]

        if result.errors:
            sections.append(
                "**ERRORS**" + CHECK_OUTPUT_EOL
                + CHECK_OUTPUT_EOL.join(f"* {error}" for error in result.errors)
            )

        if result.critical_threshold or result.warning_threshold:
            sections.append(
                "**THRESHOLDS**" + CHECK_OUTPUT_EOL
                + f"* CRITICAL: {result.critical_threshold}" + CHECK_OUTPUT_EOL
                + f"* WARNING: {result.warning_threshold}"
            )

        if result.long_service_output:
            sections.append("**DETAILED INFO**" + CHECK_OUTPUT_EOL + result.long_service_output)

        if branding:
            sections.append(branding)

        return (CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL).join(sections) + CHECK_OUTPUT_EOL
