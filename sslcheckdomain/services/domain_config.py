"""
域名列表整理服务
"""
import os
import re
from typing import Iterable, List, Optional
import logging


class DomainConfigManager:
    """从命令行参数或环境变量整理待检查的域名"""

    def __init__(self, env_var_name: str = "DOMAINS"):
        """
        初始化域名配置管理器

        Args:
            env_var_name: 环境变量名称，默认为"DOMAINS"
        """
        self.env_var_name = env_var_name
        self.logger = logging.getLogger(__name__)

        # 域名格式验证正则表达式
        self.domain_pattern = re.compile(
            r'^(?:[a-zA-Z0-9_](?:[a-zA-Z0-9_-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$'
        )

    def read_domains(self, env: Optional[dict] = None) -> List[str]:
        """
        读取环境变量中逗号分隔的原始域名

        Args:
            env: 环境变量映射，默认为 os.environ

        Returns:
            List[str]: 未经清理的域名，未配置时为空列表
        """
        env = os.environ if env is None else env
        domains_str = env.get(self.env_var_name, "")

        if not domains_str.strip():
            return []

        return domains_str.split(',')

    def get_domains(self, env: Optional[dict] = None, keep_invalid: bool = False) -> List[str]:
        """
        从环境变量获取域名列表（逗号分隔）

        Args:
            env: 环境变量映射，默认为 os.environ
            keep_invalid: 是否保留格式无效的域名

        Returns:
            List[str]: 域名列表，未配置时为空列表
        """
        return self.clean_domains(self.read_domains(env), keep_invalid=keep_invalid)

    def clean_domains(self, raw_domains: Iterable[str], keep_invalid: bool = False) -> List[str]:
        """
        清理并验证域名，保留输入顺序和重复项

        用户直接给出的域名使用 keep_invalid=True，格式无效的域名仍然保留，
        由探测结果报告错误。

        Args:
            raw_domains: 原始域名
            keep_invalid: 是否保留格式无效的域名

        Returns:
            List[str]: 清理后的域名列表
        """
        domains = []
        for domain in raw_domains:
            if not domain or not domain.strip():
                continue

            cleaned_domain = self._clean_domain(domain)
            if self.validate_domain(cleaned_domain):
                domains.append(cleaned_domain)
            elif keep_invalid and cleaned_domain:
                self.logger.warning(f"域名格式无效，仍将检查: {domain}")
                domains.append(cleaned_domain)
            else:
                self.logger.warning(f"跳过无效域名: {domain}")

        self.logger.info(f"成功加载 {len(domains)} 个域名")
        return domains

    def validate_domain(self, domain: str) -> bool:
        """
        验证域名格式

        Args:
            domain: 要验证的域名

        Returns:
            bool: 域名是否有效
        """
        if not domain or not isinstance(domain, str):
            return False

        if len(domain) > 253:
            return False

        if domain.startswith('.') or domain.endswith('.') or '*' in domain:
            return False

        return bool(self.domain_pattern.match(domain))

    def _clean_domain(self, domain: str) -> str:
        """
        清理域名格式

        Args:
            domain: 原始域名

        Returns:
            str: 清理后的域名
        """
        domain = domain.strip()

        # 移除协议前缀
        if '://' in domain:
            domain = domain.split('://', 1)[1]

        # 移除路径部分
        if '/' in domain:
            domain = domain.split('/')[0]

        # 移除端口号
        if ':' in domain:
            domain = domain.split(':')[0]

        return domain.lower()
