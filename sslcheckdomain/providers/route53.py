"""
AWS Route 53 DNS服务商
"""
import logging
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import DNSProviderInterface
from ..services.error_handler import ProviderError
from .base import select_subdomains


class Route53Provider(DNSProviderInterface):
    """通过Route 53托管区域获取域名"""

    def __init__(self, region_name: str = "us-east-1",
                 aws_access_key_id: Optional[str] = None,
                 aws_secret_access_key: Optional[str] = None,
                 client=None):
        """
        初始化Route 53服务商

        Args:
            region_name: AWS区域
            aws_access_key_id: 访问密钥，为空时使用默认凭证链
            aws_secret_access_key: 访问密钥
            client: Route 53客户端，便于测试注入
        """
        self.logger = logging.getLogger(__name__)
        if client is not None:
            self.client = client
        else:
            self.client = boto3.client(
                'route53',
                region_name=region_name,
                aws_access_key_id=aws_access_key_id or None,
                aws_secret_access_key=aws_secret_access_key or None,
            )

    @property
    def name(self) -> str:
        return "route53"

    def list_domains(self) -> List[str]:
        """
        获取所有托管区域及其子域名

        单个区域的记录读取失败时记录日志并继续处理其他区域。
        """
        domains = []
        for zone in self._list_hosted_zones():
            zone_name = zone['Name'].rstrip('.')
            domains.append(zone_name)
            try:
                domains.extend(self._get_subdomains(zone['Id'], zone_name))
            except (ClientError, BotoCoreError) as e:
                self.logger.warning(f"读取托管区域 {zone_name} 的记录失败，已跳过: {str(e)}")

        self.logger.info(f"从Route 53获取 {len(domains)} 个域名")
        return domains

    def list_domains_in_zone(self, zone: str) -> List[str]:
        """获取指定托管区域及其子域名"""
        wanted = zone.rstrip('.').lower()
        for hosted_zone in self._list_hosted_zones():
            zone_name = hosted_zone['Name'].rstrip('.')
            if zone_name.lower() != wanted:
                continue

            try:
                subdomains = self._get_subdomains(hosted_zone['Id'], zone_name)
            except (ClientError, BotoCoreError) as e:
                raise ProviderError(f"failed to get subdomains: {e}") from e
            return [zone_name] + subdomains

        raise ProviderError(f"zone not found: {zone}")

    def _list_hosted_zones(self) -> List[Dict]:
        try:
            paginator = self.client.get_paginator('list_hosted_zones')
            return [zone for page in paginator.paginate() for zone in page['HostedZones']]
        except (ClientError, BotoCoreError) as e:
            raise ProviderError(f"failed to list hosted zones: {e}") from e

    def _get_subdomains(self, zone_id: str, zone_name: str) -> List[str]:
        paginator = self.client.get_paginator('list_resource_record_sets')
        records = []
        for page in paginator.paginate(HostedZoneId=zone_id):
            for record_set in page['ResourceRecordSets']:
                # Route 53 将通配符编码为 \052
                name = record_set['Name'].replace('\\052', '*')
                records.append((name, record_set['Type']))
        return select_subdomains(records, zone_name)
