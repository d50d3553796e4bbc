"""
表格格式输出
"""
import sys
from typing import List, Optional, TextIO

import click

from ..interfaces import ReportFormatterInterface
from ..models import Certificate, CertificateReport, CertificateStatus

TITLE = "SSL Certificate Expiration Report"
HEADERS = ["Domain", "Status", "Days Left", "Expires", "Issuer"]

STATUS_LABELS = {
    CertificateStatus.EXPIRED: ("✗ EXPIRED", "bright_red"),
    CertificateStatus.WARNING: ("⚠ WARN", "bright_yellow"),
    CertificateStatus.OK: ("✓ OK", "bright_green"),
    CertificateStatus.ERROR: ("✗ ERROR", "bright_red"),
}


class TableFormatter(ReportFormatterInterface):
    """以表格输出报告，终端下带颜色"""

    def __init__(self, color: Optional[bool] = None):
        """
        Args:
            color: 是否着色，None表示根据输出流是否为终端自动判断
        """
        self.color = color

    def render(self, report: CertificateReport, stream: Optional[TextIO] = None) -> None:
        stream = stream or sys.stdout
        color = self.color if self.color is not None else _isatty(stream)

        certs = sorted(report.certificates, key=lambda cert: cert.days_left)
        rows = [self._row(cert) for cert in certs]

        widths = [len(header) for header in HEADERS]
        for cells, _ in rows:
            widths = [max(width, len(cell)) for width, cell in zip(widths, cells)]

        def line(left: str, middle: str, right: str) -> str:
            return left + middle.join("─" * (width + 2) for width in widths) + right

        def paint(text: str, **styles) -> str:
            return click.style(text, **styles) if color else text

        def format_row(cells: List[str], styles: List[dict]) -> str:
            padded = [
                " " + paint(cell.ljust(width), **style) + " "
                for cell, width, style in zip(cells, widths, styles)
            ]
            return "│" + "│".join(padded) + "│"

        summary = self._summary(report)
        inner_width = sum(widths) + 3 * len(widths) - 1
        if len(summary) + 2 > inner_width:
            widths[-1] += len(summary) + 2 - inner_width
            inner_width = len(summary) + 2

        lines = [
            "╭" + "─" * inner_width + "╮",
            "│" + paint(TITLE.center(inner_width), fg="bright_cyan", bold=True) + "│",
            line("├", "┬", "┤"),
            format_row(HEADERS, [{"fg": "bright_cyan", "bold": True}] * len(HEADERS)),
            line("├", "┼", "┤"),
        ]
        lines.extend(format_row(cells, styles) for cells, styles in rows)
        lines.append(line("├", "┴", "┤"))
        lines.append("│" + paint(" " + summary.ljust(inner_width - 1), fg="bright_cyan") + "│")
        lines.append("╰" + "─" * inner_width + "╯")

        stream.write("\n".join(lines) + "\n")

    def _row(self, cert: Certificate):
        label, status_color = STATUS_LABELS.get(cert.status, ("? UNKNOWN", "bright_magenta"))

        if cert.error is not None:
            cells = [cert.domain, label, "N/A", "N/A", cert.error]
            styles = [{}, {"fg": status_color, "bold": True}, {"dim": True}, {"dim": True},
                      {"fg": "bright_red", "dim": True}]
            return cells, styles

        expires = cert.expires_at.strftime("%Y-%m-%d %H:%M") if cert.expires_at else "N/A"
        cells = [cert.domain, label, str(cert.days_left), expires, cert.issuer]
        styles = [{}, {"fg": status_color, "bold": True}, {"fg": status_color}, {}, {"dim": True}]
        return cells, styles

    @staticmethod
    def _summary(report: CertificateReport) -> str:
        summary = report.summary
        return (
            f"Summary  Total: {report.total_domains}  │  Expired: {summary.expired}  │  "
            f"Warning: {summary.warning}  │  OK: {summary.ok}  │  Error: {summary.error}"
        )


def _isatty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())
