"""
测试公共夹具
"""
import ipaddress
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from cert_chain_monitor.models import Certificate, CertificateRole

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """固定的当前时间"""
    return FIXED_NOW


@pytest.fixture
def make_certificate():
    """构建 Certificate 模型对象的工厂"""

    def _make(expiration=None, position=0, role=None, subject_cn="www.example.com",
              issuer_cn="Example Issuing CA", sans=("www.example.com",), ip_addresses=()):
        if role is None:
            role = CertificateRole.LEAF if position == 0 else CertificateRole.INTERMEDIATE
        return Certificate(
            position=position,
            role=role,
            subject_cn=subject_cn,
            issuer_cn=issuer_cn,
            serial_number="01:02:03",
            expiration=expiration or FIXED_NOW + timedelta(days=90),
            sans=tuple(sans),
            ip_addresses=tuple(ip_addresses),
            not_before=FIXED_NOW - timedelta(days=30),
            key_id="AA:BB",
            issuer_key_id="CC:DD",
        )

    return _make


@pytest.fixture
def make_x509():
    """生成真实 X.509 证书的工厂，返回 (证书, 私钥)"""

    def _make(common_name="www.example.com", dns_names=("www.example.com",), ip_addresses=(),
              not_after=None, issuer=None, is_ca=False):
        key = ec.generate_private_key(ec.SECP256R1())
        subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])

        if issuer is None:
            issuer_name, signing_key = subject, key
        else:
            issuer_cert, signing_key = issuer
            issuer_name = issuer_cert.subject

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(FIXED_NOW - timedelta(days=1))
            .not_valid_after(not_after or FIXED_NOW + timedelta(days=90))
            .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        )

        names = [x509.DNSName(name) for name in dns_names]
        names.extend(x509.IPAddress(ipaddress.ip_address(ip)) for ip in ip_addresses)
        if names:
            builder = builder.add_extension(x509.SubjectAlternativeName(names), critical=False)

        cert = builder.sign(signing_key, hashes.SHA256())
        return cert, key

    return _make


@pytest.fixture
def to_pem():
    """将证书序列化为 PEM 字节"""

    def _to_pem(*certs):
        return b"".join(cert.public_bytes(serialization.Encoding.PEM) for cert in certs)

    return _to_pem
