"""
证书链监控器测试
"""
import pytest
from datetime import timedelta
from unittest.mock import Mock, patch

from cert_chain_monitor.config import PluginConfig
from cert_chain_monitor.exceptions import (
    CertificateParseError,
    CertificateRetrievalError,
    HostExpansionError,
)
from cert_chain_monitor.interfaces import (
    CertificateFetcherInterface,
    CertificateLoaderInterface,
    NotificationServiceInterface,
)
from cert_chain_monitor.models import HostnameOutcome, ServiceState
from cert_chain_monitor.monitor import CertChainMonitor
from cert_chain_monitor.services.host_resolver import ExpandedHost, HostResolver
from cert_chain_monitor.services.logger import LoggerService
from cert_chain_monitor.services.report_formatter import (
    HOSTNAME_MISMATCH_GUIDANCE,
    MISSING_SANS_GUIDANCE,
    SKIPPED_HOSTNAME_NOTE,
)


class TestCertChainMonitor:
    """证书链监控器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.logger_service = LoggerService(logger_name="test_monitor", log_level="CRITICAL")
        self.fetcher = Mock(spec=CertificateFetcherInterface)
        self.loader = Mock(spec=CertificateLoaderInterface)
        self.resolver = Mock(spec=HostResolver)
        self.resolver.expand.return_value = ExpandedHost(
            given="www.example.com", expanded=["192.0.2.10", "192.0.2.11"], resolved=True
        )

    def _monitor(self, resolver=None, notification_service=None, **config_values):
        config = PluginConfig(**config_values)
        return CertChainMonitor(
            config,
            logger_service=self.logger_service,
            host_resolver=resolver or self.resolver,
            cert_fetcher=self.fetcher,
            cert_loader=self.loader,
            notification_service=notification_service,
        )

    @pytest.fixture
    def healthy_chain(self, make_certificate, now):
        """健康的证书链"""
        return [
            make_certificate(expiration=now + timedelta(days=90)),
            make_certificate(expiration=now + timedelta(days=365), position=1,
                             subject_cn="Example Issuing CA", sans=()),
        ]

    def test_healthy_service(self, healthy_chain, now):
        """测试健康的远程服务"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(server="www.example.com")

        result = monitor.run(now)

        assert result.state is ServiceState.OK
        assert result.exit_code == 0
        assert result.errors == ()
        assert result.service_output.startswith('OK: leaf cert "www.example.com" expires next with 90d 0h')
        assert result.long_service_output.startswith(
            "2 certs found for service running on www.example.com (192.0.2.10) at port 443"
            " using host value 'www.example.com'\n\nCertificate 1 of 2 (leaf):"
        )
        assert result.warning_threshold.startswith("Expires before 2024-03-31 12:00:00")
        assert result.critical_threshold.endswith("(15 days)")
        assert [item.label for item in result.perf_data] == [
            "time", "certs_total", "certs_expired", "certs_expiring"
        ]
        # 多个IP时使用第一个
        self.fetcher.fetch_chain.assert_called_once_with("www.example.com", "192.0.2.10", 443)

    def test_execution_stats_per_run(self, healthy_chain, now):
        """测试每次检查重新统计执行信息"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(server="www.example.com")

        monitor.run(now)
        monitor.run(now)

        execution = self.logger_service.get_execution_summary()
        assert execution['certificates'] == 2
        assert execution['error_count'] == 0
        assert execution['source'].startswith("service running on www.example.com")

    def test_chain_summary_logged(self, healthy_chain, now):
        """测试记录证书链汇总"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(server="www.example.com")

        with patch.object(monitor.expiry_calculator, 'get_expiry_summary',
                          wraps=monitor.expiry_calculator.get_expiry_summary) as spy:
            result = monitor.run(now)

        spy.assert_called_once_with(result.evaluation.summary)

    def test_ip_server_without_dns_name(self, make_certificate, now):
        """测试IP服务器且未指定 DNS 名称时不发送 SNI"""
        self.fetcher.fetch_chain.return_value = [make_certificate(ip_addresses=("192.0.2.10",))]
        monitor = self._monitor(resolver=HostResolver(), server="192.0.2.10", port=8443)

        result = monitor.run(now)

        assert result.state is ServiceState.OK
        assert result.long_service_output.startswith("1 certs found for service running on 192.0.2.10 at port 8443\n")
        self.fetcher.fetch_chain.assert_called_once_with("", "192.0.2.10", 8443)

    def test_ip_server_with_dns_name(self, healthy_chain, now):
        """测试IP服务器使用 DNS 名称作为 SNI 和验证主机名"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(resolver=HostResolver(), server="192.0.2.10", dns_name="www.example.com")

        result = monitor.run(now)

        assert result.state is ServiceState.OK
        self.fetcher.fetch_chain.assert_called_once_with("www.example.com", "192.0.2.10", 443)
        assert "using host value 'www.example.com'" in result.long_service_output

    def test_expiring_intermediate(self, make_certificate, now):
        """测试中间证书即将过期"""
        self.fetcher.fetch_chain.return_value = [
            make_certificate(expiration=now + timedelta(days=90)),
            make_certificate(expiration=now + timedelta(days=20), position=1, sans=()),
        ]
        monitor = self._monitor(server="www.example.com")

        result = monitor.run(now)

        assert result.state is ServiceState.WARNING
        assert result.exit_code == 1
        assert result.service_output.startswith("WARNING: 1 certs expired or expiring")
        assert result.errors == ("1 certificates expired or expiring",)

    def test_expired_leaf(self, make_certificate, now):
        """测试叶子证书已过期"""
        self.fetcher.fetch_chain.return_value = [make_certificate(expiration=now - timedelta(days=1))]
        monitor = self._monitor(server="www.example.com")

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.evaluation.summary.expired_count == 1
        assert "has expired" in result.service_output

    def test_hostname_mismatch(self, healthy_chain, now):
        """测试主机名不匹配"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(server="www.example.com", dns_name="mail.example.org",
                                sans_entries=["www.example.com", "missing.example.com"])

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.service_output == (
            "CRITICAL: Verification of hostname 'mail.example.org' failed for first cert in chain"
        )
        assert HOSTNAME_MISMATCH_GUIDANCE in result.long_service_output
        assert result.errors[0].startswith("x509: certificate is valid for www.example.com, not mail.example.org")
        # 主机名失败时不再检查 SANs
        assert result.evaluation.sans is None

    def test_missing_sans(self, make_certificate, now):
        """测试叶子证书缺少 SANs"""
        self.fetcher.fetch_chain.return_value = [make_certificate(sans=())]
        monitor = self._monitor(server="www.example.com")

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.evaluation.hostname.outcome is HostnameOutcome.MISSING_SANS
        assert MISSING_SANS_GUIDANCE in result.long_service_output

    def test_skip_hostname_verification_for_empty_sans(self, make_certificate, now):
        """测试 SANs 为空时按要求跳过主机名验证"""
        self.fetcher.fetch_chain.return_value = [make_certificate(sans=())]
        monitor = self._monitor(server="www.example.com", disable_hostname_verification_if_empty_sans=True)

        result = monitor.run(now)

        assert result.state is ServiceState.OK
        assert result.long_service_output.endswith(SKIPPED_HOSTNAME_NOTE)

    def test_sans_mismatch(self, healthy_chain, now):
        """测试 SANs 条目不匹配"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(server="www.example.com", sans_entries=["www.example.com", "api.example.com"])

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.service_output == "CRITICAL: Mismatch of 1 SANs entries for certificate"
        assert result.errors[0].startswith(
            "1 of 2 requested SANs entries missing from leaf certificate (1 of 2 in chain, 1 found): api.example.com"
        )
        assert "Certificate 1 of 2 (leaf):" in result.long_service_output

    def test_sans_check_skipped(self, healthy_chain, now):
        """测试跳过 SANs 检查"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(server="www.example.com", sans_entries=["SKIPSANSCHECKS", "api.example.com"])

        result = monitor.run(now)

        assert result.state is ServiceState.OK
        assert result.evaluation.sans.skipped is True

    def test_fetch_error(self, now):
        """测试获取证书链失败"""
        cause = ConnectionRefusedError("Connection refused")
        error = CertificateRetrievalError("failed to connect to 192.0.2.10 on port 443: Connection refused")
        error.__cause__ = cause
        self.fetcher.fetch_chain.side_effect = error
        monitor = self._monitor(server="www.example.com")

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.exit_code == 2
        assert result.service_output == "CRITICAL: Error fetching certificates from port 443 on www.example.com"
        assert "port is correct" in result.errors[0]
        assert result.evaluation is None
        assert [item.label for item in result.perf_data] == ["time"]
        assert result.warning_threshold != ""

    def test_host_expansion_error(self, now):
        """测试主机名解析失败"""
        self.resolver.expand.side_effect = HostExpansionError("failed to resolve", host="missing.example.com")
        monitor = self._monitor(server="missing.example.com")

        result = monitor.run(now)

        assert result.service_output == (
            "CRITICAL: Error expanding given host pattern 'missing.example.com' to target IP Address"
        )
        self.fetcher.fetch_chain.assert_not_called()

    def test_host_range_rejected(self, now):
        """测试拒绝 CIDR 主机值"""
        monitor = self._monitor(resolver=HostResolver(), server="192.0.2.0/24")

        result = monitor.run(now)

        assert result.service_output == (
            "CRITICAL: Given host pattern invalid; host pattern is a CIDR or partial IP range"
        )

    def test_host_without_addresses(self, now):
        """测试主机名未解析到任何地址"""
        self.resolver.expand.return_value = ExpandedHost(given="www.example.com", expanded=[], resolved=True)
        monitor = self._monitor(server="www.example.com")

        result = monitor.run(now)

        assert result.service_output == "CRITICAL: Error expanding given host value to IP Address"

    def test_empty_chain_from_service(self, now):
        """测试服务未返回证书"""
        self.fetcher.fetch_chain.return_value = []
        monitor = self._monitor(server="www.example.com")

        result = monitor.run(now)

        assert result.service_output == "CRITICAL: 0 certificates found at port 443 on 'www.example.com'"

    def test_file_source(self, healthy_chain, now):
        """测试读取证书文件"""
        self.loader.load.return_value = (healthy_chain, b"")
        monitor = self._monitor(filename="/tmp/chain.pem")

        result = monitor.run(now)

        assert result.state is ServiceState.OK
        assert result.long_service_output.startswith("2 certs found for /tmp/chain.pem\n\n")
        assert SKIPPED_HOSTNAME_NOTE not in result.long_service_output
        self.loader.load.assert_called_once_with("/tmp/chain.pem")
        self.fetcher.fetch_chain.assert_not_called()

    def test_file_with_dns_name(self, healthy_chain, now):
        """测试读取证书文件时按 DNS 名称验证"""
        self.loader.load.return_value = (healthy_chain, b"")
        monitor = self._monitor(filename="/tmp/chain.pem", dns_name="mail.example.org")

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.evaluation.hostname.outcome is HostnameOutcome.MISMATCH

    def test_empty_file(self, now):
        """测试证书文件为空"""
        self.loader.load.return_value = ([], b"")
        monitor = self._monitor(filename="/tmp/chain.pem")

        result = monitor.run(now)

        assert result.service_output == "CRITICAL: 0 certificates found in '/tmp/chain.pem'"

    def test_file_leftover(self, healthy_chain, now):
        """测试证书文件存在无法解析的数据"""
        self.loader.load.return_value = (healthy_chain, b"garbage")
        monitor = self._monitor(filename="/tmp/chain.pem")

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.service_output == (
            "CRITICAL: Unknown data encountered while parsing certificates file '/tmp/chain.pem'"
        )
        assert result.long_service_output.endswith("\n\ngarbage")
        assert result.errors[0].startswith("7 unknown/unparsed bytes remaining at end of cert file")

    def test_file_parse_error(self, now):
        """测试证书文件解析失败"""
        self.loader.load.side_effect = CertificateParseError("bad", filename="/tmp/chain.pem")
        monitor = self._monitor(filename="/tmp/chain.pem")

        result = monitor.run(now)

        assert result.service_output == "CRITICAL: Error parsing certificates file '/tmp/chain.pem'"
        assert "PEM" in result.errors[0]

    def test_invalid_configuration(self, now):
        """测试配置无效"""
        monitor = self._monitor()

        result = monitor.run(now)

        assert result.state is ServiceState.CRITICAL
        assert result.service_output == "CRITICAL: Error initializing application"
        assert "server or filename" in result.errors[0]
        assert result.warning_threshold == ""

    def test_notification_sent(self, healthy_chain, now):
        """测试检查完成后发送通知"""
        notification_service = Mock(spec=NotificationServiceInterface)
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(notification_service=notification_service, server="www.example.com")

        result = monitor.run(now)

        notification_service.send_check_result.assert_called_once()
        sent_result, source = notification_service.send_check_result.call_args[0]
        assert sent_result is result
        assert source.startswith("service running on www.example.com")

    def test_render_with_branding(self, healthy_chain, now):
        """测试输出品牌信息"""
        self.fetcher.fetch_chain.return_value = healthy_chain
        monitor = self._monitor(server="www.example.com", emit_branding=True)

        output = monitor.render(monitor.run(now))

        assert output.startswith("OK: ")
        assert "**THRESHOLDS**" in output
        assert output.endswith("Notification generated by check-cert 0.9.0\n")
