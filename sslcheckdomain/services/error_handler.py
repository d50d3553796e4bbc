"""
错误类型与重试策略
"""
import socket
import ssl
import time
from typing import Callable, Any, Dict, TypeVar
from datetime import datetime, timezone
import logging

import requests
from botocore.exceptions import ClientError

T = TypeVar('T')


class ConfigurationError(ValueError):
    """配置或调用参数无效，整个运行无法继续"""


class ProviderError(Exception):
    """DNS服务商接口调用失败"""


# 按顺序匹配，先命中的建议生效
SUGGESTED_ACTIONS = (
    (socket.timeout, None, "检查网络连接，考虑增加 --timeout"),
    (socket.gaierror, None, "检查域名拼写和DNS解析"),
    (ConnectionRefusedError, None, "目标主机没有在443端口提供服务"),
    (ssl.SSLError, 'unsupported protocol', "服务器不支持TLS 1.2及以上版本"),
    (ssl.SSLError, 'version', "服务器不支持TLS 1.2及以上版本"),
    (ssl.SSLError, 'handshake failure', "SSL握手失败，检查服务器的TLS配置"),
    (ssl.SSLError, None, "SSL连接问题，检查服务器SSL配置"),
    (Exception, 'network is unreachable', "网络不可达，检查本机网络和路由"),
    (Exception, 'no route to host', "无法路由到主机，检查防火墙"),
)

DEFAULT_ACTION = "检查网络连接和服务器状态"


class NetworkErrorHandler:
    """
    网络错误分类与重试

    DNS服务商的HTTP/AWS调用通过 with_retry 执行；证书探测不重试，
    只用 handle_ssl_connection_error 记录失败原因。
    """

    # 可重试的HTTP状态码
    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    # 可重试的AWS错误代码
    RETRYABLE_AWS_CODES = {
        'Throttling',
        'ThrottlingException',
        'PriorRequestNotComplete',
        'ServiceUnavailable',
        'InternalError',
        'RequestTimeout'
    }

    RETRYABLE_MESSAGES = (
        'timeout',
        'timed out',
        'connection refused',
        'connection reset',
        'network is unreachable',
        'no route to host',
        'temporary failure',
        'name resolution failed'
    )

    def __init__(self, max_retries: int = 3, base_delay: float = 1.0):
        """
        Args:
            max_retries: 首次调用之后最多重试的次数
            base_delay: 第一次重试前的等待时间（秒），之后每次翻倍
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.logger = logging.getLogger(__name__)

        # 先判断不可重试的类型，ssl.CertificateError 同时也是 OSError
        self.non_retryable_errors = {
            ssl.CertificateError,
            ConfigurationError,
            ProviderError,
            ValueError,
            TypeError
        }
        self.retryable_errors = {
            socket.timeout,
            socket.gaierror,
            ConnectionRefusedError,
            ConnectionResetError,
            requests.ConnectionError,
            requests.Timeout,
            OSError,
            ssl.SSLError
        }

    def with_retry(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        调用 func，遇到可重试的错误时按指数退避重试

        Raises:
            Exception: 不可重试的错误，或重试用尽后的最后一个错误
        """
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                reason = f"{type(e).__name__}: {e}"
                if not self._is_retryable_error(e):
                    self.logger.error(f"调用失败，不重试: {reason}")
                    raise
                if attempt + 1 == attempts:
                    self.logger.error(f"已重试 {self.max_retries} 次仍然失败: {reason}")
                    raise

                delay = self.base_delay * (2 ** attempt)
                self.logger.warning(f"第 {attempt + 1}/{attempts} 次调用失败: {reason}，{delay:.1f}秒后重试")
                time.sleep(delay)

    def _is_retryable_error(self, error: Exception) -> bool:
        if isinstance(error, requests.HTTPError):
            response = error.response
            return response is not None and response.status_code in self.RETRYABLE_STATUS_CODES

        if isinstance(error, ClientError):
            return error.response.get('Error', {}).get('Code') in self.RETRYABLE_AWS_CODES

        if isinstance(error, tuple(self.non_retryable_errors)):
            return False
        if isinstance(error, tuple(self.retryable_errors)):
            return True

        message = str(error).lower()
        return any(keyword in message for keyword in self.RETRYABLE_MESSAGES)

    def handle_ssl_connection_error(self, domain: str, error: Exception) -> Dict[str, Any]:
        """
        分析证书探测的连接失败，在 DEBUG 级别记录建议

        Args:
            domain: 域名
            error: 连接或握手时的异常

        Returns:
            Dict[str, Any]: 错误类型、是否可重试和建议处理方式
        """
        error_info = {
            'domain': domain,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'is_retryable': self._is_retryable_error(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }

        self.logger.debug(
            f"域名 {domain} 连接失败 ({error_info['error_type']}: {error_info['error_message']})，"
            f"建议: {error_info['suggested_action']}"
        )
        return error_info

    def _get_suggested_action(self, error: Exception) -> str:
        message = str(error).lower()
        for error_type, keyword, action in SUGGESTED_ACTIONS:
            if isinstance(error, error_type) and (keyword is None or keyword in message):
                return action
        return DEFAULT_ACTION
