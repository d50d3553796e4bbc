"""
证书状态分类测试
"""
import pytest
from datetime import datetime, timezone, timedelta

from sslcheckdomain.models import Certificate, CertificateStatus
from sslcheckdomain.services.status_classifier import StatusClassifier, classify, days_until

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


class TestDaysUntil:
    """剩余天数计算测试类"""

    def test_whole_days(self):
        """测试整天数"""
        assert days_until(NOW + timedelta(days=10), NOW) == 10

    def test_partial_day_rounds_down(self):
        """测试不足一天的部分向下取整"""
        assert days_until(NOW + timedelta(days=10, hours=23), NOW) == 10
        assert days_until(NOW + timedelta(hours=5), NOW) == 0

    def test_recently_expired_is_negative(self):
        """测试两小时前过期的证书为 -1 天"""
        assert days_until(NOW - timedelta(hours=2), NOW) == -1

    def test_long_expired(self):
        """测试过期较久的证书"""
        assert days_until(NOW - timedelta(days=5), NOW) == -5
        assert days_until(NOW - timedelta(days=5, minutes=1), NOW) == -6

    def test_defaults_to_current_time(self):
        """测试默认使用当前时间"""
        future_date = datetime.now(timezone.utc) + timedelta(days=15, hours=1)
        assert days_until(future_date) == 15


class TestClassify:
    """classify 函数测试类"""

    @pytest.mark.parametrize("threshold", [0, 1, 7, 30, 90])
    @pytest.mark.parametrize("days", [-400, -31, -1, 0, 1, 6, 7, 8, 29, 30, 31, 89, 90, 91, 400])
    def test_truth_table(self, threshold, days):
        """测试状态与剩余天数、阈值的对应关系"""
        status, days_left = classify(None, NOW + timedelta(days=days), threshold, NOW)

        assert days_left == days
        if days < 0:
            assert status == CertificateStatus.EXPIRED
        elif days <= threshold:
            assert status == CertificateStatus.WARNING
        else:
            assert status == CertificateStatus.OK

    @pytest.mark.parametrize("offset", [-100, -1, 0, 10, 1000])
    def test_error_always_wins(self, offset):
        """测试存在错误时一律为 ERROR"""
        status, days_left = classify("failed to connect: refused", NOW + timedelta(days=offset), 30, NOW)

        assert status == CertificateStatus.ERROR
        assert days_left == 0

    def test_missing_expiry_is_error(self):
        """测试没有过期时间时为 ERROR"""
        assert classify(None, None, 30, NOW) == (CertificateStatus.ERROR, 0)

    def test_threshold_boundary(self):
        """测试阈值当天为 WARNING"""
        assert classify(None, NOW + timedelta(days=30), 30, NOW)[0] == CertificateStatus.WARNING
        assert classify(None, NOW + timedelta(days=31), 30, NOW)[0] == CertificateStatus.OK

    def test_expired_two_hours_ago(self):
        """测试刚过期不会被误判为 WARNING"""
        status, days_left = classify(None, NOW - timedelta(hours=2), 30, NOW)

        assert status == CertificateStatus.EXPIRED
        assert days_left == -1


class TestStatusClassifier:
    """状态分类器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.classifier = StatusClassifier(warning_days=30)

    def _cert(self, domain, status, days_left=0, error=None):
        return Certificate(domain=domain, status=status, days_left=days_left, error=error)

    def test_negative_threshold_rejected(self):
        """测试负数阈值"""
        with pytest.raises(ValueError):
            StatusClassifier(warning_days=-1)

    def test_classify_uses_threshold(self):
        """测试使用固定阈值分类"""
        classifier = StatusClassifier(warning_days=7)

        assert classifier.classify(None, NOW + timedelta(days=8), NOW) == (CertificateStatus.OK, 8)
        assert classifier.classify(None, NOW + timedelta(days=7), NOW) == (CertificateStatus.WARNING, 7)

    def test_categorize(self):
        """测试按状态分组"""
        certs = [
            self._cert("expired.com", CertificateStatus.EXPIRED, -5),
            self._cert("expiring.com", CertificateStatus.WARNING, 10),
            self._cert("healthy.com", CertificateStatus.OK, 90),
            self._cert("broken.com", CertificateStatus.ERROR, error="no certificate found"),
            self._cert("healthy2.com", CertificateStatus.OK, 200),
        ]

        groups = self.classifier.categorize(certs)

        assert [c.domain for c in groups['expired']] == ["expired.com"]
        assert [c.domain for c in groups['warning']] == ["expiring.com"]
        assert [c.domain for c in groups['ok']] == ["healthy.com", "healthy2.com"]
        assert [c.domain for c in groups['error']] == ["broken.com"]

    def test_get_summary_text(self):
        """测试摘要文本"""
        certs = [
            self._cert("expired.com", CertificateStatus.EXPIRED, -5),
            self._cert("healthy.com", CertificateStatus.OK, 90),
        ]

        summary = self.classifier.get_summary_text(certs)

        assert "总计: 2 个域名" in summary
        assert "已过期: 1 个" in summary
        assert "正常: 1 个" in summary
        assert "即将过期" not in summary
