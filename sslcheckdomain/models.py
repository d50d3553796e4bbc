"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class CertificateStatus(str, Enum):
    """证书健康状态"""
    EXPIRED = "expired"
    WARNING = "warning"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class Certificate:
    """单个域名的SSL证书探测结果"""
    domain: str
    status: CertificateStatus
    expires_at: Optional[datetime] = None
    issued_at: Optional[datetime] = None
    issuer: str = ""
    subject: str = ""
    days_left: int = 0
    serial_number: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        转换为可JSON序列化的字典

        Returns:
            Dict[str, Any]: 证书字段，error为空时省略
        """
        data = {
            'domain': self.domain,
            'status': self.status.value,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'issued_at': self.issued_at.isoformat() if self.issued_at else None,
            'issuer': self.issuer,
            'subject': self.subject,
            'days_left': self.days_left,
            'serial_number': self.serial_number,
        }
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class ReportSummary:
    """按状态汇总的统计"""
    expired: int = 0
    warning: int = 0
    ok: int = 0
    error: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'expired': self.expired,
            'warning': self.warning,
            'ok': self.ok,
            'error': self.error,
        }


@dataclass
class CertificateReport:
    """一次检查的完整报告"""
    timestamp: datetime
    total_domains: int
    summary: ReportSummary
    certificates: List[Certificate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'total_domains': self.total_domains,
            'summary': self.summary.to_dict(),
            'certificates': [cert.to_dict() for cert in self.certificates],
        }
