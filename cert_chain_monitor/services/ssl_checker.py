"""
SSL证书链获取服务
"""
import logging
import select
import socket
import time
from typing import List, Optional

from OpenSSL import SSL

from ..exceptions import CertificateRetrievalError
from ..interfaces import CertificateFetcherInterface
from ..models import Certificate
from .cert_parser import build_chain


class SSLCertificateChecker(CertificateFetcherInterface):
    """通过 TLS 握手获取远程服务提供的证书链"""

    def __init__(self, timeout: int = 10, port: int = 443):
        """
        初始化SSL证书检查器

        Args:
            timeout: 连接和握手超时时间（秒）
            port: SSL端口，默认443
        """
        self.timeout = timeout
        self.port = port
        self.logger = logging.getLogger(__name__)

    def fetch_chain(self, host_value: str, ip_address: str, port: Optional[int] = None) -> List[Certificate]:
        """
        获取证书链

        只获取服务端提供的证书，不做信任链验证，也不重试。

        Args:
            host_value: SNI 主机名，为空时不发送 SNI
            ip_address: 连接的IP地址
            port: 端口，默认使用初始化时的端口

        Returns:
            List[Certificate]: 按服务端提供顺序排列的证书链

        Raises:
            CertificateRetrievalError: 连接、握手失败或服务端未提供证书
        """
        port = port or self.port
        self.logger.debug(f"连接 {ip_address}:{port}，SNI: {host_value or '(none)'}")

        try:
            sock = socket.create_connection((ip_address, port), timeout=self.timeout)
        except OSError as e:
            raise CertificateRetrievalError(
                f"failed to connect to {ip_address} on port {port}: {e}",
                host=ip_address,
                port=port,
            ) from e

        try:
            peer_chain = self._handshake(sock, host_value)
        finally:
            sock.close()

        if not peer_chain:
            raise CertificateRetrievalError(
                f"no certificates presented by {ip_address} on port {port}",
                host=ip_address,
                port=port,
            )

        chain = build_chain([cert.to_cryptography() for cert in peer_chain])
        self.logger.debug(f"从 {ip_address}:{port} 获取到 {len(chain)} 个证书")
        return chain

    def _handshake(self, sock: socket.socket, host_value: str) -> list:
        """
        执行 TLS 握手并返回对端证书链

        Args:
            sock: 已连接的套接字
            host_value: SNI 主机名

        Returns:
            list: pyOpenSSL 证书对象列表
        """
        context = SSL.Context(SSL.TLS_CLIENT_METHOD)
        context.set_verify(SSL.VERIFY_NONE)

        conn = SSL.Connection(context, sock)
        if host_value:
            conn.set_tlsext_host_name(host_value.encode('idna'))
        conn.set_connect_state()

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                conn.do_handshake()
                break
            except (SSL.WantReadError, SSL.WantWriteError) as e:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise CertificateRetrievalError(f"TLS handshake timed out after {self.timeout}s") from e
                if isinstance(e, SSL.WantReadError):
                    select.select([sock], [], [], remaining)
                else:
                    select.select([], [sock], [], remaining)
            except SSL.Error as e:
                # 需要客户端证书时握手会失败，但仍可能已收到服务端证书链
                peer_chain = conn.get_peer_cert_chain()
                if peer_chain:
                    self.logger.debug(f"TLS 握手失败，但已收到证书链: {e}")
                    return peer_chain
                raise CertificateRetrievalError(f"TLS handshake failed: {e}") from e

        peer_chain = conn.get_peer_cert_chain() or []
        try:
            conn.shutdown()
        except SSL.Error as e:
            self.logger.debug(f"关闭 TLS 连接时出错: {e}")
        return peer_chain
