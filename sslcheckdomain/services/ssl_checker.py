"""
SSL证书检查服务
"""
import ssl
import socket
from datetime import datetime
from typing import Optional, Dict, Any
import logging

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..interfaces import SSLCertificateCheckerInterface
from ..models import Certificate
from .cancellation import CancelToken
from .error_handler import NetworkErrorHandler
from .status_classifier import classify

CANCELLED_MESSAGE = "check cancelled"
NO_CERTIFICATE_MESSAGE = "no certificate found"


class SSLCertificateChecker(SSLCertificateCheckerInterface):
    """SSL证书检查器实现（单个域名的探测）"""

    def __init__(self, timeout: float = 10, port: int = 443):
        """
        初始化SSL证书检查器

        Args:
            timeout: 连接和握手的超时时间（秒）
            port: SSL端口，默认443
        """
        if timeout <= 0:
            raise ValueError(f"超时时间必须大于0: {timeout}")

        self.timeout = timeout
        self.port = port
        self.logger = logging.getLogger(__name__)
        self.error_handler = NetworkErrorHandler()
        self.context = self._create_context()

    def _create_context(self) -> ssl.SSLContext:
        """
        创建TLS上下文

        只读取证书的过期信息，不校验证书链和主机名。
        """
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    def probe(self, domain: str, warning_threshold: int,
              cancel_token: Optional[CancelToken] = None) -> Certificate:
        """
        探测单个域名的SSL证书

        每个失败都会变成 ERROR 状态的记录，不会向调用方抛出异常。

        Args:
            domain: 要检查的域名
            warning_threshold: 警告阈值（天）
            cancel_token: 取消信号

        Returns:
            Certificate: 证书信息
        """
        if cancel_token is not None and cancel_token.is_cancelled:
            return self._build_record(domain, warning_threshold, error=CANCELLED_MESSAGE)

        try:
            sock = self._connect(domain, cancel_token)
        except OSError as e:
            return self._failed(domain, warning_threshold, e, cancel_token)

        with sock:
            try:
                der_cert = self._handshake(sock, domain, cancel_token)
            except (OSError, ValueError) as e:
                return self._failed(domain, warning_threshold, e, cancel_token)

        if not der_cert:
            return self._build_record(domain, warning_threshold, error=NO_CERTIFICATE_MESSAGE)

        try:
            fields = self._parse_certificate(der_cert)
        except ValueError as e:
            self.logger.debug(f"域名 {domain} 的证书无法解析: {str(e)}")
            return self._build_record(
                domain, warning_threshold, error=f"failed to parse certificate: {e}"
            )

        return self._build_record(domain, warning_threshold, fields=fields)

    def _connect(self, domain: str, cancel_token: Optional[CancelToken]) -> socket.socket:
        """
        建立TCP连接

        依次尝试解析出的每个地址。连接前注册取消回调，取消时正在进行的连接立即失败。

        Args:
            domain: 域名
            cancel_token: 取消信号

        Returns:
            socket.socket: 已连接的套接字

        Raises:
            OSError: 域名无法解析或所有地址都无法连接
        """
        addresses = socket.getaddrinfo(domain, self.port, type=socket.SOCK_STREAM)
        if not addresses:
            raise OSError(f"no address found for {domain}")

        last_error = None
        for family, sock_type, proto, _, address in addresses:
            sock = socket.socket(family, sock_type, proto)
            unregister = (
                cancel_token.on_cancel(lambda s=sock: self._abort(s))
                if cancel_token is not None else None
            )
            try:
                if cancel_token is not None and cancel_token.is_cancelled:
                    raise ConnectionAbortedError(CANCELLED_MESSAGE)
                sock.settimeout(self.timeout)
                sock.connect(address)
                return sock
            except OSError as e:
                sock.close()
                last_error = e
                if cancel_token is not None and cancel_token.is_cancelled:
                    break
            finally:
                if unregister is not None:
                    unregister()

        raise last_error

    def _handshake(self, sock: socket.socket, domain: str,
                   cancel_token: Optional[CancelToken]) -> Optional[bytes]:
        """
        在已建立的连接上完成TLS握手并取回叶子证书

        Args:
            sock: TCP连接
            domain: 用作SNI的域名
            cancel_token: 取消信号，触发时中断握手

        Returns:
            Optional[bytes]: DER编码的叶子证书，服务器未提供证书时为None
        """
        with self.context.wrap_socket(sock, server_hostname=domain,
                                      do_handshake_on_connect=False) as tls_sock:
            unregister = (
                cancel_token.on_cancel(lambda: self._abort(tls_sock))
                if cancel_token is not None else None
            )
            try:
                tls_sock.do_handshake()
                return tls_sock.getpeercert(binary_form=True)
            finally:
                if unregister is not None:
                    unregister()

    @staticmethod
    def _abort(sock: socket.socket):
        """关闭底层TCP连接，使阻塞的连接或握手立即返回"""
        try:
            socket.socket.shutdown(sock, socket.SHUT_RDWR)
        except OSError:
            # 连接已经关闭
            pass

    def _parse_certificate(self, der_cert: bytes) -> Dict[str, Any]:
        """
        解析叶子证书字段

        Args:
            der_cert: DER编码的证书

        Returns:
            Dict[str, Any]: 证书字段
        """
        cert = x509.load_der_x509_certificate(der_cert)

        return {
            'expires_at': cert.not_valid_after_utc,
            'issued_at': cert.not_valid_before_utc,
            'issuer': self._common_name(cert.issuer),
            'subject': self._common_name(cert.subject),
            'serial_number': str(cert.serial_number),
        }

    @staticmethod
    def _common_name(name: x509.Name) -> str:
        attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
        if not attributes:
            return ""
        value = attributes[0].value
        return value.decode('utf-8', 'replace') if isinstance(value, bytes) else value

    def _failed(self, domain: str, warning_threshold: int, error: Exception,
                cancel_token: Optional[CancelToken]) -> Certificate:
        if cancel_token is not None and cancel_token.is_cancelled:
            return self._build_record(domain, warning_threshold, error=CANCELLED_MESSAGE)

        self.error_handler.handle_ssl_connection_error(domain, error)
        return self._build_record(domain, warning_threshold, error=f"failed to connect: {error}")

    def _build_record(self, domain: str, warning_threshold: int,
                      error: Optional[str] = None,
                      fields: Optional[Dict[str, Any]] = None,
                      now: Optional[datetime] = None) -> Certificate:
        """
        构建并分类证书记录

        Args:
            domain: 域名
            warning_threshold: 警告阈值（天）
            error: 错误描述
            fields: 解析出的证书字段
            now: 当前时间

        Returns:
            Certificate: 分类完成的证书记录
        """
        fields = fields or {}
        status, days_left = classify(error, fields.get('expires_at'), warning_threshold, now)

        return Certificate(
            domain=domain,
            status=status,
            days_left=days_left,
            error=error,
            **fields
        )
