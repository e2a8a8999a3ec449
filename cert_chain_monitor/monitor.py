"""
证书链监控器
"""
import dataclasses
import time
from datetime import datetime
from typing import List, Optional, Tuple

from .config import PluginConfig, branding
from .exceptions import (
    CertificateExpirationError,
    CertificateParseError,
    CertificateRetrievalError,
    ConfigurationError,
    EmptyChainError,
    HostExpansionError,
    HostnameVerificationError,
    SANsMismatchError,
)
from .interfaces import (
    CertificateFetcherInterface,
    CertificateLoaderInterface,
    NotificationServiceInterface,
)
from .models import Certificate, CheckResult, HostnameOutcome, ServiceState
from .services.cert_parser import CertificateFileLoader
from .services.chain_evaluator import ChainEvaluator
from .services.config_validator import ConfigValidator
from .services.error_handler import ErrorHandler
from .services.expiry_calculator import ExpiryCalculator
from .services.host_resolver import HostResolver
from .services.logger import LoggerService
from .services.report_formatter import (
    CHECK_OUTPUT_EOL,
    HOSTNAME_MISMATCH_GUIDANCE,
    MISSING_SANS_GUIDANCE,
    SKIPPED_HOSTNAME_NOTE,
    ReportFormatter,
    threshold_description,
)
from .services.sans_validator import SANsValidator
from .services.sns_notification import SNSNotificationService
from .services.ssl_checker import SSLCertificateChecker


class _CheckAborted(Exception):
    """获取证书链阶段的失败，携带插件输出"""

    def __init__(self, service_output: str, error: Exception, long_service_output: str = ""):
        super().__init__(service_output)
        self.service_output = service_output
        self.error = error
        self.long_service_output = long_service_output


def _critical(message: str) -> str:
    return f"{ServiceState.CRITICAL.label}: {message}"


class CertChainMonitor:
    """证书链监控器主类"""

    def __init__(
        self,
        config: PluginConfig,
        logger_service: Optional[LoggerService] = None,
        host_resolver: Optional[HostResolver] = None,
        cert_fetcher: Optional[CertificateFetcherInterface] = None,
        cert_loader: Optional[CertificateLoaderInterface] = None,
        notification_service: Optional[NotificationServiceInterface] = None,
    ):
        """
        初始化监控器

        Args:
            config: 插件配置
            logger_service: 日志服务
            host_resolver: 主机展开服务
            cert_fetcher: 远程证书链获取服务
            cert_loader: 本地证书文件加载服务
            notification_service: 通知服务，未指定且配置了SNS主题时自动创建
        """
        self.config = config
        self.logger_service = logger_service or LoggerService(log_level=config.log_level)
        self.config_validator = ConfigValidator()
        self.host_resolver = host_resolver or HostResolver()
        self.cert_fetcher = cert_fetcher or SSLCertificateChecker(timeout=config.timeout, port=config.port)
        self.cert_loader = cert_loader or CertificateFileLoader()
        self.expiry_calculator = ExpiryCalculator(
            warning_days=config.age_warning,
            critical_days=config.age_critical,
        )
        self.sans_validator = SANsValidator()
        self.evaluator = ChainEvaluator(
            expiry_calculator=self.expiry_calculator,
            sans_validator=self.sans_validator,
        )
        self.formatter = ReportFormatter()
        self.error_handler = ErrorHandler()

        if notification_service is None and config.sns_topic_arn:
            notification_service = SNSNotificationService(topic_arn=config.sns_topic_arn)
        self.notification_service = notification_service

        self.logger_service.log_configuration_info(config.to_dict())

    def run(self, now: Optional[datetime] = None) -> CheckResult:
        """
        执行一次证书链检查

        所有预期内的失败都转换为 CRITICAL 结果，不向调用方抛出。

        Args:
            now: 当前时间，默认取当前 UTC 时间

        Returns:
            CheckResult: 检查结果
        """
        self.logger_service.reset_stats()
        start = time.monotonic()

        result, errors, source = self._check(now)

        runtime_ms = int((time.monotonic() - start) * 1000)
        summary = result.evaluation.summary if result.evaluation else None
        result = dataclasses.replace(
            result,
            errors=tuple(self.error_handler.annotate_errors(errors, source or self.config.hostname_value)),
            perf_data=tuple(self.formatter.performance_data(summary, runtime_ms)),
        )

        self.logger_service.log_check_end(result)

        if self.notification_service is not None:
            self.notification_service.send_check_result(result, source or self.config.hostname_value)

        return result

    def render(self, result: CheckResult) -> str:
        """渲染插件输出"""
        return self.formatter.render(result, branding() if self.config.emit_branding else None)

    def _check(self, now: Optional[datetime]) -> Tuple[CheckResult, List[Exception], str]:
        config = self.config

        try:
            self.config_validator.ensure_valid(config)
        except ConfigurationError as e:
            self.logger_service.log_error("初始化配置", e)
            return CheckResult(
                state=ServiceState.CRITICAL,
                service_output=_critical("Error initializing application"),
            ), [e], ""

        thresholds = self.expiry_calculator.calculate_thresholds(now)
        threshold_text = {
            'warning_threshold': threshold_description(thresholds.warning, thresholds.warning_days),
            'critical_threshold': threshold_description(thresholds.critical, thresholds.critical_days),
        }

        try:
            chain, source = self._obtain_chain()
        except _CheckAborted as aborted:
            self.logger_service.log_error(aborted.service_output, aborted.error)
            return CheckResult(
                state=ServiceState.CRITICAL,
                service_output=aborted.service_output,
                long_service_output=aborted.long_service_output,
                **threshold_text,
            ), [aborted.error], ""

        self.logger_service.log_check_start(source)

        try:
            evaluation = self.evaluator.evaluate(
                chain,
                thresholds,
                hostname=config.hostname_value,
                expected_sans=config.sans_entries,
                skip_hostname_if_no_sans=config.disable_hostname_verification_if_empty_sans,
            )
        except EmptyChainError as e:
            self.logger_service.log_error(source, e)
            if config.filename:
                message = f"0 certificates found in {config.filename!r}"
            else:
                message = f"0 certificates found at port {config.port} on {config.server!r}"
            return CheckResult(
                state=ServiceState.CRITICAL,
                service_output=_critical(message),
                **threshold_text,
            ), [e], source

        summary = evaluation.summary
        for verdict in summary.verdicts:
            self.logger_service.log_certificate_verdict(verdict)
        self.logger_service.logger.info(f"证书链汇总: {self.expiry_calculator.get_expiry_summary(summary)}")

        leaf = chain[0]
        self.logger_service.log_hostname_result(evaluation.hostname, leaf.subject_cn)

        errors: List[Exception] = []
        hostname_result = evaluation.hostname

        if hostname_result.failed:
            missing_sans = hostname_result.outcome is HostnameOutcome.MISSING_SANS
            errors.append(HostnameVerificationError(
                hostname_result.reason,
                hostname=hostname_result.hostname,
                missing_sans=missing_sans,
            ))
            state = ServiceState.CRITICAL
            service_output = _critical(
                f"Verification of hostname {hostname_result.hostname!r} failed for first cert in chain"
            )
            long_output = MISSING_SANS_GUIDANCE if missing_sans else HOSTNAME_MISMATCH_GUIDANCE

        elif evaluation.sans is not None and not evaluation.sans.passed:
            sans_result = evaluation.sans
            self.logger_service.log_sans_result(sans_result)
            errors.append(SANsMismatchError(
                self.sans_validator.describe_mismatch(sans_result, chain),
                mismatched=sans_result.mismatched,
                found=sans_result.found,
            ))
            state = ServiceState.CRITICAL
            service_output = _critical(f"Mismatch of {sans_result.mismatched} SANs entries for certificate")
            long_output = self.formatter.certs_report(summary, config.verbose)

        else:
            if evaluation.sans is not None:
                self.logger_service.log_sans_result(evaluation.sans)

            state = summary.service_state
            service_output = self.formatter.one_line_summary(summary)
            long_output = self.formatter.certs_report(summary, config.verbose)

            if state is not ServiceState.OK:
                errors.append(CertificateExpirationError(
                    f"{summary.expired_count + summary.expiring_count} certificates expired or expiring"
                ))
                self.logger_service.logger.error(
                    f"证书链中存在已过期或即将过期的证书 - 已过期: {summary.expired_count}, "
                    f"即将过期: {summary.expiring_count}"
                )
            else:
                self.logger_service.logger.debug("证书链未发现问题")

            if hostname_result.outcome is HostnameOutcome.SKIPPED and hostname_result.reason is None:
                long_output += CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL + SKIPPED_HOSTNAME_NOTE

        lead_in = f"{summary.total} certs found for {source}"
        long_output = lead_in + CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL + long_output

        return CheckResult(
            state=state,
            service_output=service_output,
            long_service_output=long_output,
            evaluation=evaluation,
            **threshold_text,
        ), errors, source

    def _obtain_chain(self) -> Tuple[List[Certificate], str]:
        """
        获取证书链，优先读取本地文件

        Returns:
            Tuple[List[Certificate], str]: 证书链与来源描述

        Raises:
            _CheckAborted: 获取失败
        """
        config = self.config

        if config.filename:
            self.logger_service.logger.debug(f"解析证书文件 {config.filename}")
            try:
                chain, leftover = self.cert_loader.load(config.filename)
            except CertificateParseError as e:
                raise _CheckAborted(
                    _critical(f"Error parsing certificates file {config.filename!r}"), e
                ) from e

            if leftover:
                error = CertificateParseError(
                    f"{len(leftover)} unknown/unparsed bytes remaining at end of cert file {config.filename!r}",
                    filename=config.filename,
                    leftover=leftover,
                )
                raise _CheckAborted(
                    _critical(f"Unknown data encountered while parsing certificates file {config.filename!r}"),
                    error,
                    long_service_output=(
                        f"The following text from the {config.filename!r} certificate file failed to parse"
                        " and is provided here for troubleshooting purposes:"
                        + CHECK_OUTPUT_EOL + CHECK_OUTPUT_EOL
                        + leftover.decode('utf-8', 'replace')
                    ),
                )

            return chain, config.filename

        try:
            expanded = self.host_resolver.expand(config.server)
        except HostExpansionError as e:
            raise _CheckAborted(
                _critical(f"Error expanding given host pattern {config.server!r} to target IP Address"), e
            ) from e

        if expanded.is_range:
            raise _CheckAborted(
                _critical("Given host pattern invalid; host pattern is a CIDR or partial IP range"),
                HostExpansionError("invalid host pattern", host=config.server),
            )

        if not expanded.expanded:
            raise _CheckAborted(
                _critical("Error expanding given host value to IP Address"),
                HostExpansionError("host pattern expansion failed", host=config.server),
            )

        if len(expanded.expanded) > 1:
            self.logger_service.logger.debug(
                f"主机 {expanded.given} 解析得到多个IP地址 {expanded.expanded}，使用第一个"
            )

        ip_address = expanded.expanded[0]

        if config.dns_name:
            host_value = config.dns_name
        elif expanded.resolved:
            host_value = expanded.given
        else:
            host_value = ""

        if host_value:
            source = (
                f"service running on {expanded.given} ({ip_address}) at port {config.port}"
                f" using host value {host_value!r}"
            )
        else:
            source = f"service running on {ip_address} at port {config.port}"

        try:
            chain = self.cert_fetcher.fetch_chain(host_value, ip_address, config.port)
        except CertificateRetrievalError as e:
            raise _CheckAborted(
                _critical(f"Error fetching certificates from port {config.port} on {config.server}"), e
            ) from e

        return chain, source
