"""
SSL证书检查器测试
"""
import pytest
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone, timedelta
import ssl
import socket
import threading
import time

from sslcheckdomain.services.cancellation import CancelToken
from sslcheckdomain.services.ssl_checker import SSLCertificateChecker
from sslcheckdomain.models import Certificate, CertificateStatus

from conftest import TEST_ISSUER, TEST_SERIAL, TEST_SUBJECT


class BlockingConnectSocket:
    """connect() 一直阻塞，直到 shutdown() 被调用"""

    def __init__(self, *args):
        self.released = threading.Event()
        self.closed = False
        self.timeout = None

    def settimeout(self, timeout):
        self.timeout = timeout

    def connect(self, address):
        if not self.released.wait(5):
            raise socket.timeout("timed out")
        raise ConnectionAbortedError("Software caused connection abort")

    def shutdown(self, how):
        self.released.set()

    def close(self):
        self.closed = True


class TestSSLCertificateChecker:
    """SSL证书检查器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.checker = SSLCertificateChecker(timeout=5)

    def test_init(self):
        """测试初始化"""
        assert self.checker.timeout == 5
        assert self.checker.port == 443
        assert self.checker.context.minimum_version == ssl.TLSVersion.TLSv1_2
        assert self.checker.context.verify_mode == ssl.CERT_NONE
        assert self.checker.context.check_hostname is False

    def test_init_invalid_timeout(self):
        """测试无效超时时间"""
        with pytest.raises(ValueError):
            SSLCertificateChecker(timeout=0)

    @patch.object(SSLCertificateChecker, '_connect')
    def test_probe_connection_error(self, mock_connection):
        """测试连接错误"""
        mock_connection.side_effect = ConnectionRefusedError("Connection refused")

        result = self.checker.probe("nonexistent.com", 30)

        assert isinstance(result, Certificate)
        assert result.domain == "nonexistent.com"
        assert result.status == CertificateStatus.ERROR
        assert result.error == "failed to connect: Connection refused"
        assert result.expires_at is None
        assert result.issued_at is None
        assert result.issuer == ""
        assert result.subject == ""
        assert result.serial_number == ""
        assert result.days_left == 0
        mock_connection.assert_called_once_with("nonexistent.com", None)

    @patch('sslcheckdomain.services.ssl_checker.socket.getaddrinfo')
    def test_probe_dns_failure(self, mock_getaddrinfo):
        """测试DNS解析失败"""
        mock_getaddrinfo.side_effect = socket.gaierror(-2, "Name or service not known")

        result = self.checker.probe("does-not-exist.invalid", 30)

        assert result.status == CertificateStatus.ERROR
        assert result.error.startswith("failed to connect: ")
        assert "Name or service not known" in result.error

    @patch.object(SSLCertificateChecker, '_handshake')
    @patch.object(SSLCertificateChecker, '_connect')
    def test_probe_no_certificate(self, mock_connection, mock_handshake):
        """测试服务器没有提供证书"""
        mock_sock = MagicMock()
        mock_connection.return_value = mock_sock
        mock_handshake.return_value = None

        result = self.checker.probe("example.com", 30)

        assert result.status == CertificateStatus.ERROR
        assert result.error == "no certificate found"
        # 连接总会被关闭
        mock_sock.__exit__.assert_called_once()

    @patch.object(SSLCertificateChecker, '_handshake')
    @patch.object(SSLCertificateChecker, '_connect')
    def test_probe_handshake_error_closes_connection(self, mock_connection, mock_handshake):
        """测试握手失败时关闭连接"""
        mock_sock = MagicMock()
        mock_connection.return_value = mock_sock
        mock_handshake.side_effect = ssl.SSLError("handshake failure")

        result = self.checker.probe("example.com", 30)

        assert result.status == CertificateStatus.ERROR
        assert result.error.startswith("failed to connect: ")
        mock_sock.__exit__.assert_called_once()

    @patch.object(SSLCertificateChecker, '_handshake')
    @patch.object(SSLCertificateChecker, '_connect')
    def test_probe_unparseable_certificate(self, mock_connection, mock_handshake):
        """测试证书无法解析"""
        mock_connection.return_value = MagicMock()
        mock_handshake.return_value = b"not a certificate"

        result = self.checker.probe("example.com", 30)

        assert result.status == CertificateStatus.ERROR
        assert result.error.startswith("failed to parse certificate: ")

    @patch.object(SSLCertificateChecker, '_connect')
    def test_probe_cancelled_before_start(self, mock_connection):
        """测试开始前已取消"""
        token = CancelToken()
        token.cancel()

        result = self.checker.probe("example.com", 30, token)

        assert result.status == CertificateStatus.ERROR
        assert result.error == "check cancelled"
        mock_connection.assert_not_called()

    @patch('sslcheckdomain.services.ssl_checker.socket.socket', BlockingConnectSocket)
    @patch('sslcheckdomain.services.ssl_checker.socket.getaddrinfo')
    def test_cancel_during_connect(self, mock_getaddrinfo):
        """测试TCP连接过程中取消"""
        mock_getaddrinfo.return_value = [
            (socket.AF_INET, socket.SOCK_STREAM, 6, '', ("192.0.2.10", 443))
        ]
        checker = SSLCertificateChecker(timeout=30)
        token = CancelToken.with_timeout(0.2)

        start_time = time.time()
        result = checker.probe("slow.example.com", 30, token)
        elapsed = time.time() - start_time

        assert result.status == CertificateStatus.ERROR
        assert result.error == "check cancelled"
        assert elapsed < 4

    @patch('sslcheckdomain.services.ssl_checker.socket.getaddrinfo')
    def test_connect_no_addresses(self, mock_getaddrinfo):
        """测试域名没有解析出地址"""
        mock_getaddrinfo.return_value = []

        result = self.checker.probe("empty.example.com", 30)

        assert result.status == CertificateStatus.ERROR
        assert result.error == "failed to connect: no address found for empty.example.com"


class TestSSLCertificateCheckerLocalServer:
    """使用本地TLS服务器的探测测试"""

    def test_warning_certificate(self, tls_server_factory):
        """测试10天后过期的证书为 WARNING"""
        not_after = datetime.now(timezone.utc) + timedelta(days=10, hours=1)
        server = tls_server_factory(not_after)
        checker = SSLCertificateChecker(timeout=5, port=server.port)

        result = checker.probe("127.0.0.1", 30)

        assert result.error is None
        assert result.status == CertificateStatus.WARNING
        assert result.days_left == 10
        assert result.domain == "127.0.0.1"
        assert result.issuer == TEST_ISSUER
        assert result.subject == TEST_SUBJECT
        assert result.serial_number == str(TEST_SERIAL)
        assert result.expires_at == not_after.replace(microsecond=0)
        assert result.issued_at < result.expires_at
        assert result.expires_at.tzinfo is not None

    def test_healthy_certificate(self, tls_server_factory):
        """测试远期证书为 OK"""
        server = tls_server_factory(datetime.now(timezone.utc) + timedelta(days=200))
        checker = SSLCertificateChecker(timeout=5, port=server.port)

        result = checker.probe("127.0.0.1", 30)

        assert result.status == CertificateStatus.OK
        assert result.days_left >= 199

    def test_expired_certificate(self, tls_server_factory):
        """测试已过期证书"""
        server = tls_server_factory(datetime.now(timezone.utc) - timedelta(days=3))
        checker = SSLCertificateChecker(timeout=5, port=server.port)

        result = checker.probe("127.0.0.1", 30)

        assert result.status == CertificateStatus.EXPIRED
        assert result.days_left < 0
        assert result.error is None

    def test_idempotent(self, tls_server_factory):
        """测试重复探测结果一致"""
        server = tls_server_factory(datetime.now(timezone.utc) + timedelta(days=45))
        checker = SSLCertificateChecker(timeout=5, port=server.port)

        first = checker.probe("127.0.0.1", 30)
        second = checker.probe("127.0.0.1", 30)

        assert first.status == second.status
        assert first.issuer == second.issuer
        assert first.subject == second.subject
        assert first.serial_number == second.serial_number
        assert abs(first.days_left - second.days_left) <= 1

    def test_connection_refused(self, closed_port):
        """测试端口未开放"""
        checker = SSLCertificateChecker(timeout=2, port=closed_port)

        result = checker.probe("127.0.0.1", 30)

        assert result.status == CertificateStatus.ERROR
        assert result.error.startswith("failed to connect: ")
        assert result.expires_at is None
        assert result.issuer == ""
        assert result.serial_number == ""

    def test_connect_tries_next_address(self, tls_server_factory, closed_port):
        """测试第一个地址拒绝连接时尝试下一个地址"""
        server = tls_server_factory(datetime.now(timezone.utc) + timedelta(days=60))
        checker = SSLCertificateChecker(timeout=5)
        addresses = [
            (socket.AF_INET, socket.SOCK_STREAM, 6, '', ("127.0.0.1", closed_port)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, '', ("127.0.0.1", server.port)),
        ]

        with patch('sslcheckdomain.services.ssl_checker.socket.getaddrinfo', return_value=addresses):
            result = checker.probe("multi.example.com", 30)

        assert result.error is None
        assert result.status == CertificateStatus.OK

    def test_handshake_timeout(self, silent_server):
        """测试服务器不响应握手时按超时失败"""
        checker = SSLCertificateChecker(timeout=0.5, port=silent_server)

        start_time = time.time()
        result = checker.probe("127.0.0.1", 30)
        elapsed = time.time() - start_time

        assert result.status == CertificateStatus.ERROR
        assert result.error.startswith("failed to connect: ")
        assert elapsed < 3

    def test_cancel_during_handshake(self, silent_server):
        """测试握手过程中取消"""
        checker = SSLCertificateChecker(timeout=10, port=silent_server)
        token = CancelToken.with_timeout(0.3)

        start_time = time.time()
        result = checker.probe("127.0.0.1", 30, token)
        elapsed = time.time() - start_time

        assert result.status == CertificateStatus.ERROR
        assert result.error == "check cancelled"
        assert elapsed < 5
