"""
Prometheus文本格式输出
"""
import sys
from typing import List, Optional, TextIO

from ..interfaces import ReportFormatterInterface
from ..models import CertificateReport, CertificateStatus

STATUS_VALUES = {
    CertificateStatus.EXPIRED: 0,
    CertificateStatus.WARNING: 1,
    CertificateStatus.OK: 2,
    CertificateStatus.ERROR: 3,
}


def escape_label(value: str) -> str:
    """按exposition格式转义标签值"""
    return value.replace('\\', '\\\\').replace('\n', '\\n').replace('"', '\\"')


class PrometheusFormatter(ReportFormatterInterface):
    """以Prometheus指标文本输出报告"""

    def render(self, report: CertificateReport, stream: Optional[TextIO] = None) -> None:
        stream = stream or sys.stdout
        stream.write("\n\n".join(self._blocks(report)))
        stream.write("\n")

    def _blocks(self, report: CertificateReport) -> List[str]:
        expiry = self._header("ssl_certificate_expiry_days", "Days until SSL certificate expiration")
        for cert in report.certificates:
            if cert.error is None:
                expiry.append(
                    f'ssl_certificate_expiry_days{{domain="{escape_label(cert.domain)}",'
                    f'issuer="{escape_label(cert.issuer)}",status="{cert.status.value}"}} {cert.days_left}'
                )

        status = self._header(
            "ssl_certificate_status",
            "SSL certificate status (0=expired, 1=warning, 2=ok, 3=error)"
        )
        for cert in report.certificates:
            status.append(
                f'ssl_certificate_status{{domain="{escape_label(cert.domain)}",'
                f'issuer="{escape_label(cert.issuer)}"}} {STATUS_VALUES.get(cert.status, 3)}'
            )

        summary = report.summary
        totals = [
            ("ssl_certificates_total", "Total number of certificates checked", report.total_domains),
            ("ssl_certificates_expired", "Number of expired certificates", summary.expired),
            ("ssl_certificates_warning", "Number of certificates with warnings", summary.warning),
            ("ssl_certificates_ok", "Number of OK certificates", summary.ok),
            ("ssl_certificates_error", "Number of certificates with errors", summary.error),
        ]

        blocks = ["\n".join(expiry), "\n".join(status)]
        for name, help_text, value in totals:
            blocks.append("\n".join(self._header(name, help_text) + [f"{name} {value}"]))
        return blocks

    @staticmethod
    def _header(name: str, help_text: str) -> List[str]:
        return [f"# HELP {name} {help_text}", f"# TYPE {name} gauge"]
