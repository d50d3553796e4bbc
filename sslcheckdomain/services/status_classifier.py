"""
证书状态分类服务
"""
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Optional, Tuple

from ..models import Certificate, CertificateStatus

_ONE_DAY = timedelta(days=1)


def days_until(expires_at: datetime, now: Optional[datetime] = None) -> int:
    """
    计算距离过期的整天数

    向负无穷取整：两小时前过期的证书返回 -1，而不是 0。

    Args:
        expires_at: 过期时间（UTC）
        now: 当前时间，默认取系统UTC时间

    Returns:
        int: 剩余天数（负数表示已过期）
    """
    now = now or datetime.now(timezone.utc)
    return (expires_at - now) // _ONE_DAY


def classify(
    error: Optional[str],
    expires_at: Optional[datetime],
    warning_threshold_days: int,
    now: Optional[datetime] = None,
) -> Tuple[CertificateStatus, int]:
    """
    根据错误信息和过期时间确定证书状态

    Args:
        error: 探测错误，None表示探测成功
        expires_at: 证书过期时间
        warning_threshold_days: 警告阈值（天）
        now: 当前时间，便于测试时固定

    Returns:
        Tuple[CertificateStatus, int]: (状态, 剩余天数)
    """
    if error is not None or expires_at is None:
        return CertificateStatus.ERROR, 0

    days_left = days_until(expires_at, now)

    if days_left < 0:
        return CertificateStatus.EXPIRED, days_left
    if days_left <= warning_threshold_days:
        return CertificateStatus.WARNING, days_left
    return CertificateStatus.OK, days_left


class StatusClassifier:
    """固定阈值的证书状态分类器"""

    def __init__(self, warning_days: int = 30):
        """
        初始化状态分类器

        Args:
            warning_days: 提前警告天数，默认30天
        """
        if warning_days < 0:
            raise ValueError(f"警告阈值不能为负数: {warning_days}")
        self.warning_days = warning_days

    def classify(
        self,
        error: Optional[str],
        expires_at: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> Tuple[CertificateStatus, int]:
        return classify(error, expires_at, self.warning_days, now)

    def categorize(self, certificates: List[Certificate]) -> Dict[str, List[Certificate]]:
        """
        按状态对证书分组

        Args:
            certificates: 证书列表

        Returns:
            dict: 状态值 -> 证书列表
        """
        groups = {status.value: [] for status in CertificateStatus}
        for cert in certificates:
            groups[cert.status.value].append(cert)
        return groups

    def get_summary_text(self, certificates: List[Certificate]) -> str:
        """
        获取状态摘要

        Args:
            certificates: 证书列表

        Returns:
            str: 摘要信息
        """
        groups = self.categorize(certificates)

        summary_parts = [f"总计: {len(certificates)} 个域名"]
        if groups['expired']:
            summary_parts.append(f"已过期: {len(groups['expired'])} 个")
        if groups['warning']:
            summary_parts.append(f"即将过期({self.warning_days}天内): {len(groups['warning'])} 个")
        if groups['ok']:
            summary_parts.append(f"正常: {len(groups['ok'])} 个")
        if groups['error']:
            summary_parts.append(f"检查失败: {len(groups['error'])} 个")

        return ", ".join(summary_parts)
