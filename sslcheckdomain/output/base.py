"""
输出格式选择
"""
from ..interfaces import ReportFormatterInterface
from ..services.error_handler import ConfigurationError
from .json_formatter import JSONFormatter
from .prometheus import PrometheusFormatter
from .table import TableFormatter

FORMATTERS = {
    "table": TableFormatter,
    "json": JSONFormatter,
    "prometheus": PrometheusFormatter,
}


def get_formatter(name: str) -> ReportFormatterInterface:
    """
    按名称获取报告输出器

    Raises:
        ConfigurationError: 不支持的输出格式
    """
    formatter_cls = FORMATTERS.get(name)
    if formatter_cls is None:
        raise ConfigurationError(f"unsupported output format: {name}")
    return formatter_cls()
