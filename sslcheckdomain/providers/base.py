"""
DNS服务商工厂与公共逻辑
"""
import logging
from typing import Callable, Dict, Iterable, List, Tuple

from ..interfaces import DNSProviderInterface
from ..services.error_handler import ConfigurationError

# 指向外部资源的记录类型
CHECKABLE_RECORD_TYPES = {"A", "AAAA", "CNAME"}

logger = logging.getLogger(__name__)


def select_subdomains(records: Iterable[Tuple[str, str]], zone_name: str) -> List[str]:
    """
    从DNS记录中挑选需要检查的子域名

    只保留区域下的 A/AAAA/CNAME 记录，跳过区域根和通配符记录，并去重。

    Args:
        records: (记录名称, 记录类型) 序列
        zone_name: 区域名称

    Returns:
        List[str]: 排序后的子域名
    """
    zone_name = zone_name.rstrip('.').lower()
    subdomains = set()

    for name, record_type in records:
        if record_type not in CHECKABLE_RECORD_TYPES:
            continue

        name = name.rstrip('.').lower()
        if name == zone_name:
            continue

        if name.endswith('.' + zone_name) and '*' not in name:
            subdomains.add(name)

    return sorted(subdomains)


class ProviderFactory:
    """按名称创建DNS服务商"""

    def __init__(self):
        self._providers: Dict[str, Callable[[], DNSProviderInterface]] = {}

    def register(self, name: str, constructor: Callable[[], DNSProviderInterface]):
        """
        注册服务商构造函数

        Args:
            name: 服务商名称
            constructor: 无参构造函数
        """
        self._providers[name] = constructor

    def create(self, name: str) -> DNSProviderInterface:
        """
        创建服务商实例

        Raises:
            ConfigurationError: 未知的服务商
        """
        constructor = self._providers.get(name)
        if constructor is None:
            raise ConfigurationError(
                f"unsupported provider: {name} (supported: {', '.join(self.available_providers())})"
            )
        logger.debug(f"创建DNS服务商: {name}")
        return constructor()

    def available_providers(self) -> List[str]:
        return sorted(self._providers)
