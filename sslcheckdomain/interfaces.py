"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import List, Optional, TextIO
from .models import Certificate, CertificateReport


class DNSProviderInterface(ABC):
    """DNS服务商接口（域名来源）"""

    @property
    @abstractmethod
    def name(self) -> str:
        """服务商名称"""
        pass

    @abstractmethod
    def list_domains(self) -> List[str]:
        """获取账号下所有域名"""
        pass

    @abstractmethod
    def list_domains_in_zone(self, zone: str) -> List[str]:
        """获取指定区域下的域名"""
        pass


class SSLCertificateCheckerInterface(ABC):
    """SSL证书检查器接口"""

    @abstractmethod
    def probe(self, domain: str, warning_threshold: int, cancel_token=None) -> Certificate:
        """探测单个域名的SSL证书"""
        pass


class ReportFormatterInterface(ABC):
    """报告输出接口"""

    @abstractmethod
    def render(self, report: CertificateReport, stream: Optional[TextIO] = None) -> None:
        """输出报告"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, domain_count: int):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_certificate_info(self, domain: str, cert: Certificate):
        """记录证书信息"""
        pass

    @abstractmethod
    def log_error(self, domain: str, error: Exception):
        """记录错误信息"""
        pass
