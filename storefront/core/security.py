"""
安全工具模块

- JWT 访问令牌的签发（管理后台和用户接口使用 Bearer 认证）
- 支付回调的 HMAC-SHA256 签名校验
- 库存单元内容的 AES-256-GCM 加解密
"""
import base64
import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from storefront.core.config import settings

ALGORITHM = "HS256"
NONCE_SIZE = 12
TAG_SIZE = 16


def create_access_token(subject: str | Any, expires_delta: timedelta | None = None) -> str:
    """
    创建 JWT 访问令牌

    Args:
        subject: 令牌主体（用户 ID）
        expires_delta: 过期时长，默认使用 ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        编码后的 JWT 字符串
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def sign_payload(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """常量时间比较请求体签名"""
    expected = sign_payload(payload, secret)
    return hmac.compare_digest(signature.strip().lower(), expected)


def _cipher(key: str | None = None) -> AESGCM:
    return AESGCM(bytes.fromhex(key or settings.ENCRYPTION_KEY))


def encrypt_text(plaintext: str, key: str | None = None) -> str:
    """
    加密文本，返回 base64(nonce + 密文 + tag)

    每次加密使用随机 nonce，同一明文的密文每次都不同。
    """
    nonce = os.urandom(NONCE_SIZE)
    sealed = _cipher(key).encrypt(nonce, plaintext.encode(), None)
    return base64.b64encode(nonce + sealed).decode()


def decrypt_text(token: str, key: str | None = None) -> str:
    """
    解密 encrypt_text 的输出

    Raises:
        ValueError: 格式错误、密钥不匹配或密文被篡改
    """
    raw = base64.b64decode(token, validate=True)
    if len(raw) <= NONCE_SIZE + TAG_SIZE:
        raise ValueError("Encrypted value is too short")
    try:
        plaintext = _cipher(key).decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], None)
    except InvalidTag as e:
        raise ValueError("Failed to decrypt value") from e
    return plaintext.decode()
