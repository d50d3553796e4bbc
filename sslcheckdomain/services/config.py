"""
配置加载与验证服务
"""
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Any, Optional, Mapping, Sequence
import logging

import yaml
from dotenv import dotenv_values

from .error_handler import ConfigurationError

CONFIG_FILE_NAMES = ("sslcheckdomain.yaml", "sslcheckdomain.yml")
ENV_PREFIX = "SSL_CHECK_"
VALID_OUTPUTS = ("table", "json", "prometheus")
SUPPORTED_PROVIDERS = ("cloudflare", "route53")

# 服务商凭证使用各自约定的环境变量名
BOUND_ENV_VARS = {
    'cloudflare_token': 'CLOUDFLARE_API_TOKEN',
    'cloudflare_email': 'CLOUDFLARE_EMAIL',
    'cloudflare_account_id': 'CLOUDFLARE_ACCOUNT_ID',
    'aws_access_key_id': 'AWS_ACCESS_KEY_ID',
    'aws_secret_access_key': 'AWS_SECRET_ACCESS_KEY',
    'aws_region': 'AWS_REGION',
}

INT_FIELDS = ('timeout', 'concurrent', 'threshold', 'expiring_in')

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """运行配置，启动时构建一次后显式传递"""
    provider: str = "cloudflare"
    cloudflare_token: str = ""
    cloudflare_email: str = ""
    cloudflare_account_id: str = ""
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "us-east-1"
    timeout: int = 10
    concurrent: int = 10
    threshold: int = 30
    output: str = "table"
    verbose: bool = False
    zone: str = ""
    expiring_in: int = 0
    domains: List[str] = field(default_factory=list)

    def validate(self, require_provider: bool = True):
        """
        验证配置

        Args:
            require_provider: 是否需要校验DNS服务商及其凭证

        Raises:
            ConfigurationError: 配置无效
        """
        if require_provider:
            if self.provider == "cloudflare":
                if not self.cloudflare_token:
                    raise ConfigurationError("CLOUDFLARE_API_TOKEN is required for cloudflare provider")
            elif self.provider == "route53":
                # 未显式提供密钥时交给boto3的默认凭证链
                if bool(self.aws_access_key_id) != bool(self.aws_secret_access_key):
                    raise ConfigurationError(
                        "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together for route53 provider"
                    )
            else:
                raise ConfigurationError(
                    f"unsupported provider: {self.provider} (supported: {', '.join(SUPPORTED_PROVIDERS)})"
                )

        if self.timeout <= 0:
            raise ConfigurationError("timeout must be greater than 0")

        if self.concurrent <= 0:
            raise ConfigurationError("concurrent must be greater than 0")

        if self.threshold < 0:
            raise ConfigurationError("threshold must be non-negative")

        if self.expiring_in < 0:
            raise ConfigurationError("expiring-in must be non-negative")

        if self.output not in VALID_OUTPUTS:
            raise ConfigurationError(
                f"invalid output format: {self.output} (valid: {', '.join(VALID_OUTPUTS)})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_file: Optional[str] = None,
                env: Optional[Mapping[str, str]] = None,
                search_paths: Optional[Sequence[Path]] = None,
                dotenv_path: Optional[str] = ".env") -> Config:
    """
    加载配置

    优先级从低到高：默认值、YAML配置文件、.env 文件、环境变量。
    命令行参数由调用方在之后覆盖。

    Args:
        config_file: 显式指定的配置文件路径
        env: 环境变量映射，默认为 os.environ
        search_paths: 配置文件搜索目录
        dotenv_path: .env 文件路径，None表示不读取

    Returns:
        Config: 配置对象

    Raises:
        ConfigurationError: 配置文件无法读取或取值无效
    """
    values: Dict[str, Any] = {}

    path = _find_config_file(config_file, search_paths)
    if path is not None:
        values.update(_read_yaml(path))

    merged_env: Dict[str, str] = {}
    if dotenv_path and Path(dotenv_path).is_file():
        logger.debug(f"读取 .env 文件: {dotenv_path}")
        merged_env.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
    merged_env.update(os.environ if env is None else env)

    values.update(_read_env(merged_env))

    known = Config.__dataclass_fields__
    unknown = sorted(set(values) - set(known))
    if unknown:
        logger.warning(f"忽略未知配置项: {', '.join(unknown)}")

    kwargs = {key: value for key, value in values.items() if key in known}
    for key in INT_FIELDS:
        if key in kwargs:
            kwargs[key] = _to_int(key, kwargs[key])
    if 'verbose' in kwargs:
        kwargs['verbose'] = _to_bool(kwargs['verbose'])
    if 'domains' in kwargs:
        kwargs['domains'] = _to_list(kwargs['domains'])

    return Config(**kwargs)


def _find_config_file(config_file: Optional[str],
                      search_paths: Optional[Sequence[Path]]) -> Optional[Path]:
    if config_file:
        path = Path(config_file).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"config file not found: {config_file}")
        return path

    if search_paths is None:
        home = Path.home()
        search_paths = [Path.cwd(), home / ".config", home]

    for directory in search_paths:
        for name in CONFIG_FILE_NAMES:
            candidate = Path(directory) / name
            if candidate.is_file():
                return candidate
    return None


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"error reading config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")

    logger.debug(f"读取配置文件: {path}")
    return {str(key).lower().replace('-', '_'): value for key, value in data.items()}


def _read_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for key in Config.__dataclass_fields__:
        bound = BOUND_ENV_VARS.get(key)
        if bound and env.get(bound):
            values[key] = env[bound]
        prefixed = ENV_PREFIX + key.upper()
        if env.get(prefixed):
            values[key] = env[prefixed]
    return values


def _to_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _to_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(',') if item.strip()]
    return [str(item) for item in value or []]
