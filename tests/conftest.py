"""
测试公共夹具：本地TLS服务器
"""
import socket
import ssl
import threading
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

TEST_SERIAL = 123456789
TEST_ISSUER = "Test CA"
TEST_SUBJECT = "test.local"


def make_certificate(tmp_path, not_after, not_before=None, serial=TEST_SERIAL):
    """生成自签名证书，返回 (证书路径, 私钥路径)"""
    key = ec.generate_private_key(ec.SECP256R1())
    not_before = not_before or min(not_after, datetime.now(timezone.utc)) - timedelta(days=30)

    cert = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, TEST_SUBJECT)]))
        .issuer_name(x509.Name([
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
            x509.NameAttribute(NameOID.COMMON_NAME, TEST_ISSUER),
        ]))
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )

    cert_path = tmp_path / f"cert-{serial}.pem"
    key_path = tmp_path / f"key-{serial}.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))
    return cert_path, key_path


class LocalTLSServer:
    """在本地随机端口上完成TLS握手后关闭连接"""

    def __init__(self, cert_path, key_path):
        self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self.context.load_cert_chain(str(cert_path), str(key_path))
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(128)
        self.port = self.sock.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)

    def start(self):
        self.thread.start()
        return self

    def _serve(self):
        while True:
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        conn.settimeout(5)
        try:
            with self.context.wrap_socket(conn, server_side=True) as tls_conn:
                tls_conn.settimeout(2)
                try:
                    tls_conn.recv(1)
                except OSError:
                    pass
        except OSError:
            conn.close()

    def stop(self):
        self.sock.close()


@pytest.fixture
def tls_server_factory(tmp_path):
    """按给定过期时间启动本地TLS服务器"""
    servers = []

    def factory(not_after, serial=TEST_SERIAL):
        cert_path, key_path = make_certificate(tmp_path, not_after, serial=serial)
        server = LocalTLSServer(cert_path, key_path).start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        server.stop()


@pytest.fixture
def silent_server():
    """接受TCP连接但从不响应TLS握手的服务器"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(128)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def closed_port():
    """没有服务监听的端口"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
