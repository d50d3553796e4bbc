"""
Cloudflare DNS服务商
"""
import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..interfaces import DNSProviderInterface
from ..services.error_handler import NetworkErrorHandler, ProviderError
from .base import select_subdomains

CLOUDFLARE_API = "https://api.cloudflare.com/client/v4"


class CloudflareProvider(DNSProviderInterface):
    """通过Cloudflare REST API获取域名"""

    def __init__(self, api_token: str, session: Optional[requests.Session] = None,
                 base_url: str = CLOUDFLARE_API, timeout: float = 30, per_page: int = 50):
        """
        初始化Cloudflare服务商

        Args:
            api_token: API令牌
            session: HTTP会话，便于测试注入
            base_url: API地址
            timeout: HTTP请求超时（秒）
            per_page: 每页条数
        """
        if not api_token:
            raise ProviderError("cloudflare API token is required")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.per_page = per_page
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        })
        self.error_handler = NetworkErrorHandler(max_retries=2, base_delay=1.0)
        self.logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return "cloudflare"

    def list_domains(self) -> List[str]:
        """
        获取所有区域及其子域名

        单个区域的记录读取失败时记录日志并继续处理其他区域。
        """
        domains = []
        for zone in self._paginate("/zones"):
            domains.append(zone['name'])
            try:
                domains.extend(self._get_subdomains(zone['id'], zone['name']))
            except (ProviderError, requests.RequestException) as e:
                self.logger.warning(f"读取区域 {zone['name']} 的DNS记录失败，已跳过: {str(e)}")

        self.logger.info(f"从Cloudflare获取 {len(domains)} 个域名")
        return domains

    def list_domains_in_zone(self, zone: str) -> List[str]:
        """获取指定区域及其子域名"""
        zones = list(self._paginate("/zones", {"name": zone}))
        if not zones:
            raise ProviderError(f"zone not found: {zone}")

        found = zones[0]
        try:
            subdomains = self._get_subdomains(found['id'], found['name'])
        except requests.RequestException as e:
            raise ProviderError(f"failed to get subdomains: {e}") from e

        return [found['name']] + subdomains

    def _get_subdomains(self, zone_id: str, zone_name: str) -> List[str]:
        records = (
            (record.get('name', ''), record.get('type', ''))
            for record in self._paginate(f"/zones/{zone_id}/dns_records")
        )
        return select_subdomains(records, zone_name)

    def _paginate(self, path: str, params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """逐页读取API结果"""
        page = 1
        while True:
            query = dict(params or {}, page=page, per_page=self.per_page)
            body = self.error_handler.with_retry(self._get, path, query)

            for item in body.get('result') or []:
                yield item

            total_pages = (body.get('result_info') or {}).get('total_pages', 1)
            if page >= total_pages:
                return
            page += 1

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()

        body = response.json()
        if not body.get('success', False):
            messages = "; ".join(error.get('message', '') for error in body.get('errors', []))
            raise ProviderError(f"cloudflare API error: {messages or 'unknown error'}")
        return body
