"""
证书解析服务
"""
import logging
import re
from typing import List, Optional, Sequence, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from ..exceptions import CertificateParseError
from ..interfaces import CertificateLoaderInterface
from ..models import Certificate, CertificateRole

_PEM_BLOCK_RE = re.compile(
    rb'-----BEGIN (?P<label>[A-Z0-9 ]+)-----\r?\n'
    rb'(?P<body>.*?)'
    rb'-----END (?P=label)-----[ \t]*(?:\r?\n)?',
    re.DOTALL,
)

logger = logging.getLogger(__name__)


def _common_name(name: x509.Name) -> str:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return ""
    value = attributes[0].value
    return value.decode('utf-8', 'replace') if isinstance(value, bytes) else value


def _format_hex(data: bytes) -> str:
    return ":".join(f"{b:02X}" for b in data)


def format_serial(serial_number: int) -> str:
    """
    将证书序列号格式化为冒号分隔的十六进制

    Args:
        serial_number: 序列号

    Returns:
        str: 例如 "03:A1:5F"
    """
    length = max(1, (serial_number.bit_length() + 7) // 8)
    return _format_hex(serial_number.to_bytes(length, 'big'))


def _get_sans(cert: x509.Certificate) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return (), ()
    dns_names = tuple(ext.value.get_values_for_type(x509.DNSName))
    ip_addresses = tuple(str(ip) for ip in ext.value.get_values_for_type(x509.IPAddress))
    return dns_names, ip_addresses


def _get_ski(cert: x509.Certificate) -> Optional[str]:
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
    except x509.ExtensionNotFound:
        return None
    return _format_hex(ext.value.digest)


def _get_aki(cert: x509.Certificate) -> Optional[str]:
    try:
        ext = cert.extensions.get_extension_for_class(x509.AuthorityKeyIdentifier)
    except x509.ExtensionNotFound:
        return None
    if ext.value.key_identifier is None:
        return None
    return _format_hex(ext.value.key_identifier)


def chain_role(cert: x509.Certificate, position: int) -> CertificateRole:
    """
    推断证书在链中的角色

    位置0始终为叶子证书；其余位置中自签发（主题与颁发者相同）的为根证书。
    """
    if position == 0:
        return CertificateRole.LEAF
    if cert.subject == cert.issuer:
        return CertificateRole.ROOT
    return CertificateRole.INTERMEDIATE


def to_certificate(cert: x509.Certificate, position: int) -> Certificate:
    """
    将 cryptography 证书对象转换为只读的 Certificate

    Args:
        cert: cryptography 证书
        position: 在链中的位置

    Returns:
        Certificate: 证书快照
    """
    sans, ip_addresses = _get_sans(cert)
    return Certificate(
        position=position,
        role=chain_role(cert, position),
        subject_cn=_common_name(cert.subject),
        issuer_cn=_common_name(cert.issuer),
        serial_number=format_serial(cert.serial_number),
        expiration=cert.not_valid_after_utc,
        sans=sans,
        ip_addresses=ip_addresses,
        not_before=cert.not_valid_before_utc,
        key_id=_get_ski(cert),
        issuer_key_id=_get_aki(cert),
        raw=cert.public_bytes(serialization.Encoding.DER),
    )


def build_chain(certs: Sequence[x509.Certificate]) -> List[Certificate]:
    """按给定顺序构建证书链，不做重新排序或去重"""
    return [to_certificate(cert, position) for position, cert in enumerate(certs)]


def parse_certificates(data: bytes) -> Tuple[List[Certificate], bytes]:
    """
    从字节数据中解析证书链

    依次读取 PEM 证书块；块之前及块之间的文本（如 subject=、Bag Attributes 等头部）
    被忽略，只有最后一个块之后的数据作为残留返回。不含任何 PEM 块的数据按单个
    DER 证书处理。

    Args:
        data: 原始数据

    Returns:
        Tuple[List[Certificate], bytes]: 证书链与无法解析的残留数据

    Raises:
        CertificateParseError: 证书块内容无效
    """
    certs: List[x509.Certificate] = []
    offset = 0

    for match in _PEM_BLOCK_RE.finditer(data):
        offset = match.end()

        if match.group('label') != b'CERTIFICATE':
            logger.debug(f"跳过非证书 PEM 块: {match.group('label').decode()}")
            continue

        try:
            certs.append(x509.load_pem_x509_certificate(match.group(0)))
        except ValueError as e:
            raise CertificateParseError(f"failed to parse certificate #{len(certs) + 1}: {e}")

    if not certs and data.strip() and offset == 0:
        try:
            return build_chain([x509.load_der_x509_certificate(data)]), b""
        except ValueError:
            return [], data

    return build_chain(certs), data[offset:].strip()


def load_certificates_from_file(filename: str) -> Tuple[List[Certificate], bytes]:
    """
    从文件加载证书链

    Args:
        filename: 证书文件路径

    Returns:
        Tuple[List[Certificate], bytes]: 证书链与无法解析的残留数据

    Raises:
        CertificateParseError: 文件无法读取或证书无效
    """
    try:
        with open(filename, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise CertificateParseError(f"failed to read certificates file {filename!r}: {e}", filename=filename)

    try:
        return parse_certificates(data)
    except CertificateParseError as e:
        raise CertificateParseError(str(e), filename=filename) from e


class CertificateFileLoader(CertificateLoaderInterface):
    """本地证书文件加载器"""

    def load(self, filename: str) -> Tuple[List[Certificate], bytes]:
        return load_certificates_from_file(filename)
