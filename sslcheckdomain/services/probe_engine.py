"""
并发证书探测引擎
"""
import queue
import threading
import logging
from typing import List, Optional

from ..interfaces import SSLCertificateCheckerInterface
from ..models import Certificate
from .cancellation import CancelToken
from .logger import LoggerService
from .ssl_checker import SSLCertificateChecker
from .status_classifier import classify

# 工作队列关闭标记
_STOP = object()


class ProbeEngine:
    """
    固定大小的工作线程池

    所有域名先放入与输入等长的工作队列，随后为每个工作线程放入一个结束标记。
    每个出队的域名都会产生一条记录，汇总到线程安全的结果队列。
    """

    def __init__(self, timeout: float = 10, concurrency: int = 10,
                 checker: Optional[SSLCertificateCheckerInterface] = None,
                 logger_service: Optional[LoggerService] = None):
        """
        初始化探测引擎

        Args:
            timeout: 单个域名的连接和握手超时（秒）
            concurrency: 工作线程数量
            checker: 单域名探测器，默认为 SSLCertificateChecker
            logger_service: 日志服务

        Raises:
            ValueError: 超时时间或并发数不是正数
        """
        if timeout <= 0:
            raise ValueError(f"超时时间必须大于0: {timeout}")
        if concurrency < 1:
            raise ValueError(f"并发数必须大于0: {concurrency}")

        self.timeout = timeout
        self.concurrency = concurrency
        self.checker = checker or SSLCertificateChecker(timeout=timeout)
        self.logger_service = logger_service
        self.logger = logging.getLogger(__name__)

    def check_domains(self, domains: List[str], warning_threshold: int,
                      cancel_token: Optional[CancelToken] = None) -> List[Certificate]:
        """
        并发检查多个域名的SSL证书

        重复的域名分别探测，各自产生一条记录。返回顺序为完成顺序。

        Args:
            domains: 域名列表
            warning_threshold: 警告阈值（天）
            cancel_token: 取消信号

        Returns:
            List[Certificate]: 每个输入域名对应一条记录

        Raises:
            ValueError: 域名列表为空或阈值为负数
        """
        if not domains:
            raise ValueError("no domains to check")
        if warning_threshold < 0:
            raise ValueError(f"警告阈值不能为负数: {warning_threshold}")

        jobs = queue.Queue(maxsize=len(domains) + self.concurrency)
        results = queue.Queue()

        for domain in domains:
            jobs.put_nowait(domain)
        for _ in range(self.concurrency):
            jobs.put_nowait(_STOP)

        self.logger.debug(f"启动 {self.concurrency} 个工作线程，检查 {len(domains)} 个域名")

        workers = [
            threading.Thread(
                target=self._worker,
                args=(jobs, results, warning_threshold, cancel_token),
                name=f"probe-worker-{i}",
                daemon=True
            )
            for i in range(self.concurrency)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        certificates = []
        while not results.empty():
            certificates.append(results.get_nowait())

        if len(certificates) != len(domains):
            # 工作线程总会为每个域名放入一条记录
            raise RuntimeError(
                f"结果数量不一致: 期望 {len(domains)} 条，实际 {len(certificates)} 条"
            )

        return certificates

    def _worker(self, jobs: queue.Queue, results: queue.Queue, warning_threshold: int,
                cancel_token: Optional[CancelToken]):
        """工作线程：持续取出域名直到遇到结束标记"""
        while True:
            domain = jobs.get()
            if domain is _STOP:
                return

            failure = None
            try:
                cert = self.checker.probe(domain, warning_threshold, cancel_token)
            except Exception as e:
                failure = e
                error = f"unexpected error: {e}"
                status, days_left = classify(error, None, warning_threshold)
                cert = Certificate(domain=domain, status=status, days_left=days_left, error=error)

            results.put(cert)
            self._log_record(domain, cert, failure)

    def _log_record(self, domain: str, cert: Certificate, failure: Optional[Exception]):
        """记录单个域名的结果，日志失败不影响已放入的记录"""
        if not self.logger_service:
            if failure is not None:
                self.logger.error(f"探测域名 {domain} 时发生意外错误: {failure}", exc_info=failure)
            return

        try:
            if failure is not None:
                self.logger_service.log_error(domain, failure)
            self.logger_service.log_certificate_info(domain, cert)
        except Exception:
            self.logger.exception(f"记录域名 {domain} 的检查结果失败")
