"""
SSL证书检查主流程
"""
from typing import List, Optional, TextIO

import requests
from botocore.exceptions import BotoCoreError, ClientError

from .models import Certificate, CertificateReport
from .output.base import get_formatter
from .providers.base import ProviderFactory
from .providers.cloudflare import CloudflareProvider
from .providers.route53 import Route53Provider
from .services.cancellation import CancelToken
from .services.config import Config
from .services.domain_config import DomainConfigManager
from .services.error_handler import ConfigurationError, ProviderError
from .services.logger import LoggerService
from .services.probe_engine import ProbeEngine
from .services.report_builder import (
    create_report, exit_code_for, filter_expiring, sort_by_days_left
)
from .services.status_classifier import StatusClassifier


def build_provider_factory(config: Config) -> ProviderFactory:
    """注册内置的DNS服务商"""
    factory = ProviderFactory()
    factory.register("cloudflare", lambda: CloudflareProvider(config.cloudflare_token))
    factory.register("route53", lambda: Route53Provider(
        region_name=config.aws_region,
        aws_access_key_id=config.aws_access_key_id,
        aws_secret_access_key=config.aws_secret_access_key,
    ))
    return factory


class SSLCheckDomainApp:
    """SSL证书检查主类"""

    def __init__(self, config: Config,
                 logger_service: Optional[LoggerService] = None,
                 provider_factory: Optional[ProviderFactory] = None,
                 engine: Optional[ProbeEngine] = None,
                 domain_manager: Optional[DomainConfigManager] = None):
        """
        初始化主流程

        Args:
            config: 运行配置
            logger_service: 日志服务
            provider_factory: DNS服务商工厂
            engine: 探测引擎
            domain_manager: 域名整理服务
        """
        config.validate(require_provider=False)
        self.config = config
        self.logger_service = logger_service or LoggerService(
            log_level="INFO" if config.verbose else None
        )
        self.provider_factory = provider_factory or build_provider_factory(config)
        self.engine = engine or ProbeEngine(
            timeout=config.timeout,
            concurrency=config.concurrent,
            logger_service=self.logger_service,
        )
        self.domain_manager = domain_manager or DomainConfigManager()

        self._log_configuration()

    def _log_configuration(self):
        """记录系统配置信息"""
        config = {
            'provider': self.config.provider,
            'timeout': self.config.timeout,
            'concurrent': self.config.concurrent,
            'threshold': self.config.threshold,
            'output': self.config.output,
            'zone': self.config.zone,
            'expiring_in': self.config.expiring_in,
            'cloudflare_token': self.config.cloudflare_token,
            'aws_access_key_id': self.config.aws_access_key_id,
            'aws_region': self.config.aws_region,
        }
        self.logger_service.log_configuration_info(config)

    @property
    def logger(self):
        return self.logger_service.logger

    def explicit_domains(self, test_domain: Optional[str] = None) -> Optional[List[str]]:
        """
        命令行或环境变量中直接给出的域名

        优先级：--test 单个域名 > 命令行域名 > DOMAINS 环境变量。
        所有来源都经过相同的清理，格式无效的域名保留下来，由探测结果报告错误。

        Returns:
            Optional[List[str]]: 清理后的域名，没有直接给出域名时为 None
        """
        if test_domain:
            raw_domains = [test_domain]
        elif self.config.domains:
            raw_domains = self.config.domains
        else:
            raw_domains = self.domain_manager.read_domains()

        if not raw_domains:
            return None
        return self.domain_manager.clean_domains(raw_domains, keep_invalid=True)

    def collect_domains(self) -> List[str]:
        """
        从DNS服务商获取待检查的域名

        Raises:
            ProviderError: 从DNS服务商获取域名失败
        """
        provider = self.provider_factory.create(self.config.provider)
        self.logger.info(f"从 {provider.name} 获取域名")

        try:
            if self.config.zone:
                return provider.list_domains_in_zone(self.config.zone)
            return provider.list_domains()
        except (requests.RequestException, ClientError, BotoCoreError) as e:
            raise ProviderError(f"failed to get domains: {e}") from e

    def check(self, domains: List[str], cancel_token: Optional[CancelToken] = None) -> List[Certificate]:
        """
        检查证书并记录执行统计

        Args:
            domains: 域名列表
            cancel_token: 取消信号

        Returns:
            List[Certificate]: 每个域名一条记录
        """
        self.logger_service.log_check_start(len(domains))
        certificates = self.engine.check_domains(domains, self.config.threshold, cancel_token)
        self.logger_service.log_check_end()

        self.logger.info(StatusClassifier(self.config.threshold).get_summary_text(certificates))
        self.logger_service.log_execution_summary()
        return certificates

    def build_report(self, certificates: List[Certificate]) -> CertificateReport:
        """过滤、排序并汇总"""
        certificates = filter_expiring(certificates, self.config.expiring_in)
        return create_report(sort_by_days_left(certificates))

    def run(self, test_domain: Optional[str] = None, stream: Optional[TextIO] = None,
            cancel_token: Optional[CancelToken] = None) -> int:
        """
        执行一次完整检查并输出报告

        Args:
            test_domain: 只检查单个域名
            stream: 报告输出流，默认标准输出
            cancel_token: 取消信号

        Returns:
            int: 进程退出码

        Raises:
            ConfigurationError: 配置无效
            ProviderError: 无法获取域名
        """
        explicit = self.explicit_domains(test_domain)
        self.config.validate(require_provider=explicit is None)
        formatter = get_formatter(self.config.output)

        if explicit is None:
            domains = self.collect_domains()
            if not domains:
                raise ProviderError("no domains to check")
        elif not explicit:
            raise ConfigurationError("no domains to check")
        else:
            domains = explicit

        self.logger.info(f"找到 {len(domains)} 个待检查域名")

        certificates = self.check(domains, cancel_token)
        report = self.build_report(certificates)
        formatter.render(report, stream)

        return exit_code_for(report)
