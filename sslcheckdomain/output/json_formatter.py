"""
JSON格式输出
"""
import json
import sys
from typing import Optional, TextIO

from ..interfaces import ReportFormatterInterface
from ..models import CertificateReport


class JSONFormatter(ReportFormatterInterface):
    """以JSON文档输出报告"""

    def render(self, report: CertificateReport, stream: Optional[TextIO] = None) -> None:
        stream = stream or sys.stdout
        stream.write(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        stream.write("\n")
