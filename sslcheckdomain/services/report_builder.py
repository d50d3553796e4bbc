"""
报告构建服务
"""
from datetime import datetime, timezone
from typing import List, Optional

from ..models import Certificate, CertificateReport, CertificateStatus, ReportSummary

EXIT_OK = 0
EXIT_WARNING = 1
EXIT_EXPIRED = 2
EXIT_ERROR = 3


def filter_expiring(certificates: List[Certificate], days: int) -> List[Certificate]:
    """
    只保留剩余天数不超过 days 的证书

    days 为0时不过滤。失败记录的剩余天数为0，因此总会保留。
    """
    if days <= 0:
        return list(certificates)
    return [cert for cert in certificates if cert.days_left <= days]


def sort_by_days_left(certificates: List[Certificate]) -> List[Certificate]:
    """按剩余天数升序排列，天数相同时按域名排列"""
    return sorted(certificates, key=lambda cert: (cert.days_left, cert.domain))


def create_report(certificates: List[Certificate], now: Optional[datetime] = None) -> CertificateReport:
    """
    汇总证书检查结果

    Args:
        certificates: 证书列表
        now: 报告时间

    Returns:
        CertificateReport: 报告
    """
    summary = ReportSummary()
    for cert in certificates:
        if cert.status == CertificateStatus.EXPIRED:
            summary.expired += 1
        elif cert.status == CertificateStatus.WARNING:
            summary.warning += 1
        elif cert.status == CertificateStatus.OK:
            summary.ok += 1
        else:
            summary.error += 1

    return CertificateReport(
        timestamp=now or datetime.now(timezone.utc),
        total_domains=len(certificates),
        summary=summary,
        certificates=list(certificates),
    )


def exit_code_for(report: CertificateReport) -> int:
    """
    根据报告计算进程退出码

    已过期优先于即将过期，即将过期优先于检查失败。
    """
    if report.summary.expired > 0:
        return EXIT_EXPIRED
    if report.summary.warning > 0:
        return EXIT_WARNING
    if report.summary.error > 0:
        return EXIT_ERROR
    return EXIT_OK
