"""
日志服务
"""
import os
import sys
import logging
import threading
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from ..interfaces import LoggerServiceInterface
from ..models import Certificate, CertificateStatus

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# 配置项名称以这些后缀结尾时视为凭证
SENSITIVE_SUFFIXES = ('password', 'secret', 'token', 'key', 'key_id')

# 单条证书结果的日志级别和描述
CERTIFICATE_MESSAGES = {
    CertificateStatus.EXPIRED: (logging.WARNING, "证书已过期"),
    CertificateStatus.WARNING: (logging.WARNING, "证书即将过期"),
    CertificateStatus.OK: (logging.INFO, "证书正常"),
}

MAX_LOGGED_ERRORS = 5


class LoggerService(LoggerServiceInterface):
    """
    日志服务实现

    报告写到标准输出，日志一律写到标准错误。探测线程并发调用，统计信息由锁保护。
    """

    def __init__(self, logger_name: str = "sslcheckdomain", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，为None时读取 LOG_LEVEL 环境变量，默认 WARNING
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'WARNING')

        self.logger = logging.getLogger(logger_name)
        self._setup_handler()

        self._lock = threading.Lock()
        self.execution_stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'total_domains': 0,
            'successful_checks': 0,
            'failed_checks': 0,
            'status_counts': {status.value: 0 for status in CertificateStatus},
            'errors': []
        }

    def _setup_handler(self):
        self.set_level(self.log_level)

        # 同名日志器只挂一个处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            self.logger.addHandler(handler)

        self.logger.propagate = False

    def set_level(self, log_level: str):
        """调整日志级别，无法识别时使用 WARNING"""
        self.log_level = log_level
        self.logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))

    def log_check_start(self, domain_count: int):
        """
        记录检查开始

        Args:
            domain_count: 要检查的域名数量
        """
        with self._lock:
            self.execution_stats.update(
                start_time=datetime.now(timezone.utc),
                total_domains=domain_count,
            )

        self.logger.info(f"开始SSL证书检查，共 {domain_count} 个域名")

    def log_certificate_info(self, domain: str, cert: Certificate):
        """
        记录单个域名的检查结果并更新统计

        Args:
            domain: 域名
            cert: 证书信息
        """
        failed = cert.status == CertificateStatus.ERROR
        with self._lock:
            stats = self.execution_stats
            stats['status_counts'][cert.status.value] += 1
            stats['failed_checks' if failed else 'successful_checks'] += 1

        if failed:
            self.logger.error(f"证书检查失败 - 域名: {domain}, 错误: {cert.error}")
            return

        level, title = CERTIFICATE_MESSAGES[cert.status]
        if cert.status == CertificateStatus.EXPIRED:
            remaining = f"已过期: {abs(cert.days_left)} 天"
        else:
            remaining = f"剩余天数: {cert.days_left} 天"

        self.logger.log(
            level,
            f"{title} - 域名: {domain}, 过期时间: {cert.expires_at.isoformat()}, "
            f"{remaining}, 颁发者: {cert.issuer}"
        )

    def log_error(self, domain: str, error: Exception):
        """
        记录探测过程中的意外异常

        Args:
            domain: 域名
            error: 异常对象
        """
        with self._lock:
            self.execution_stats['errors'].append({
                'domain': domain,
                'error_type': type(error).__name__,
                'error_message': str(error),
                'timestamp': datetime.now(timezone.utc).isoformat()
            })

        self.logger.error(f"域名 {domain} 检查时发生错误: {type(error).__name__}: {error}")
        self.logger.debug(f"域名 {domain} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_check_end(self):
        """记录检查结束"""
        with self._lock:
            end_time = datetime.now(timezone.utc)
            self.execution_stats['end_time'] = end_time
            start_time = self.execution_stats['start_time']

        duration = (end_time - start_time).total_seconds() if start_time else 0
        self.logger.info(f"SSL证书检查完成，总执行时间: {duration:.2f} 秒")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息，凭证只保留前几个字符

        Args:
            config: 配置信息字典
        """
        self.logger.info("系统配置信息:")
        for key, value in self._sanitize_config(config).items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        safe_config = {}
        for key, value in config.items():
            name = key.lower()
            is_sensitive = any(name == suffix or name.endswith('_' + suffix) for suffix in SENSITIVE_SUFFIXES)

            if is_sensitive and isinstance(value, str) and value:
                safe_config[key] = value[:3] + "***" if len(value) > 3 else "***"
            else:
                safe_config[key] = value
        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行时间、按状态的计数和意外异常
        """
        with self._lock:
            stats = dict(self.execution_stats)
            status_counts = dict(stats['status_counts'])
            errors = list(stats['errors'])

        start_time, end_time = stats['start_time'], stats['end_time']
        total = stats['total_domains']

        return {
            'start_time': start_time.isoformat() if start_time else None,
            'end_time': end_time.isoformat() if end_time else None,
            'duration_seconds': (end_time - start_time).total_seconds() if start_time and end_time else 0,
            'total_domains': total,
            'successful_checks': stats['successful_checks'],
            'failed_checks': stats['failed_checks'],
            'status_counts': status_counts,
            'success_rate': stats['successful_checks'] / total if total > 0 else 0,
            'error_count': len(errors),
            'errors': errors
        }

    def log_execution_summary(self):
        """在 INFO 级别输出执行摘要"""
        summary = self.get_execution_summary()
        counts = summary['status_counts']

        lines = ["=" * 50, "执行摘要", "=" * 50]
        if summary['start_time']:
            lines.append(f"开始时间: {summary['start_time']}")
        if summary['end_time']:
            lines.append(f"结束时间: {summary['end_time']}")
        lines.extend([
            f"执行时长: {summary['duration_seconds']:.2f} 秒",
            f"总域名数: {summary['total_domains']}",
            f"成功检查: {summary['successful_checks']}",
            f"失败检查: {summary['failed_checks']}",
            f"成功率: {summary['success_rate']:.1%}",
            f"状态分布: 已过期 {counts['expired']}, 即将过期 {counts['warning']}, "
            f"正常 {counts['ok']}, 失败 {counts['error']}",
        ])

        errors = summary['errors']
        if errors:
            lines.append(f"异常数量: {summary['error_count']}")
            for i, error in enumerate(errors[:MAX_LOGGED_ERRORS], 1):
                lines.append(f"  异常 {i}: {error['domain']} - {error['error_type']}: {error['error_message']}")
            if len(errors) > MAX_LOGGED_ERRORS:
                lines.append(f"  ... 还有 {len(errors) - MAX_LOGGED_ERRORS} 个异常")
        lines.append("=" * 50)

        for line in lines:
            self.logger.info(line)

    def reset_stats(self):
        """重置执行统计"""
        with self._lock:
            self.execution_stats = self._empty_stats()
