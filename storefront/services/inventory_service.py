"""
库存单元入库服务

库存单元的内容是 "email:password" 形式的账号凭据：
1. 入库前逐行校验格式，所有错误一起返回
2. 以 JSON 形式 AES-256-GCM 加密后存库
3. 去重基于解密后的 "email:password"（密文每次都不同，无法直接比较）
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from sqlmodel import Session

from storefront import crud
from storefront.core.security import decrypt_text, encrypt_text

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class Credential:
    email: str
    password: str

    @property
    def key(self) -> str:
        return f"{self.email}:{self.password}"


def parse_credentials(lines: list[str]) -> list[Credential]:
    """
    解析并校验账号凭据，空行跳过

    Raises:
        ValueError: 任意一行格式错误，消息中列出所有错误行（行号从 1 开始）
    """
    credentials: list[Credential] = []
    errors: list[str] = []
    for number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        parts = line.split(":")
        if len(parts) != 2:
            errors.append(f'Line {number}: Invalid format. Expected "email:password"')
            continue
        email, password = (part.strip() for part in parts)
        if not EMAIL_RE.match(email):
            errors.append(f"Line {number}: Invalid email format")
            continue
        if not password:
            errors.append(f"Line {number}: Password cannot be empty")
            continue
        credentials.append(Credential(email=email, password=password))

    if errors:
        raise ValueError("Validation errors:\n" + "\n".join(errors))
    if not credentials:
        raise ValueError("No valid credentials provided")
    return credentials


def encrypt_credential(credential: Credential) -> str:
    return encrypt_text(json.dumps({"email": credential.email, "password": credential.password}))


def decrypt_credential(token: str) -> Credential:
    """
    Raises:
        ValueError: 无法解密或内容不是合法凭据
    """
    data = json.loads(decrypt_text(token))
    if not isinstance(data, dict):
        raise ValueError("Decrypted unit is not an object")
    email, password = data.get("email"), data.get("password")
    if not isinstance(email, str) or not isinstance(password, str):
        raise ValueError("Decrypted unit is missing email or password")
    return Credential(email=email, password=password)


def add_credentials(
    *,
    session: Session,
    variant_id: int,
    credentials: list[Credential],
    logger: logging.Logger,
) -> tuple[int, int]:
    """
    加密并添加库存单元，跳过同规格下已存在或本批次内重复的凭据

    Returns:
        (新增数量, 重复数量)
    """
    existing: set[str] = set()
    for payload in crud.list_unit_payloads(session=session, variant_id=variant_id):
        try:
            existing.add(decrypt_credential(payload).key)
        except ValueError as e:
            logger.warning("Skipping undecryptable unit of variant %s: %s", variant_id, e)

    payloads: list[str] = []
    for credential in credentials:
        if credential.key in existing:
            continue
        existing.add(credential.key)
        payloads.append(encrypt_credential(credential))

    crud.add_inventory_units(session=session, variant_id=variant_id, payloads=payloads)
    return len(payloads), len(credentials) - len(payloads)
