"""
支付回调 IP 白名单校验

白名单条目可以是单个 IPv4 地址，也可以是 CIDR 网段（如 "103.255.238.0/24"）。
格式错误的条目会记录日志并跳过，不影响其他条目的匹配。
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from storefront.api.errors import ClientIPUnresolvable, Forbidden

_FULL_MASK = 0xFFFFFFFF


def ip_to_int(ip: str) -> int:
    """
    将点分十进制 IPv4 地址转换为 32 位整数

    Raises:
        ValueError: 地址格式错误
    """
    parts = ip.strip().split(".")
    if len(parts) != 4:
        raise ValueError(f"Invalid IPv4 address: {ip}")
    value = 0
    for part in parts:
        if not (part.isascii() and part.isdigit()):
            raise ValueError(f"Invalid IPv4 address: {ip}")
        octet = int(part)
        if octet > 255:
            raise ValueError(f"Invalid IPv4 address: {ip}")
        value = (value << 8) | octet
    return value


def prefix_mask(prefix: int) -> int:
    if prefix < 0 or prefix > 32:
        raise ValueError(f"Invalid CIDR prefix length: {prefix}")
    return (_FULL_MASK << (32 - prefix)) & _FULL_MASK


def is_ip_in_cidr(ip: str, cidr: str) -> bool:
    """
    判断 IP 是否在 CIDR 网段内

    (ip & mask) == (network & mask)，mask 由前缀长度（0-32）生成。

    Raises:
        ValueError: IP 或 CIDR 格式错误
    """
    network, sep, prefix_str = cidr.partition("/")
    prefix_str = prefix_str.strip()
    if not sep or not (prefix_str.isascii() and prefix_str.isdigit()):
        raise ValueError(f"Invalid CIDR: {cidr}")
    mask = prefix_mask(int(prefix_str))
    return (ip_to_int(ip) & mask) == (ip_to_int(network) & mask)


def is_ip_allowed(ip: str, allowed: list[str], logger: logging.Logger) -> bool:
    """
    判断 IP 是否在白名单中

    白名单为空时拒绝所有请求。
    """
    if not allowed:
        logger.warning("IP allow-list is empty, rejecting %s", ip)
        return False
    try:
        ip_value = ip_to_int(ip)
    except ValueError:
        logger.warning("Client IP %r is not a valid IPv4 address", ip)
        return False

    for entry in allowed:
        entry = entry.strip()
        if not entry:
            continue
        try:
            if "/" in entry:
                if is_ip_in_cidr(ip, entry):
                    return True
            else:
                if ip_value == ip_to_int(entry):
                    return True
        except ValueError as e:
            logger.error("Skipping allow-list entry %r for %s: %s", entry, ip, e)
    return False


def get_client_ip(headers: Mapping[str, str]) -> str:
    """
    从请求头中提取客户端 IP

    优先级：cf-connecting-ip > x-forwarded-for（第一个）> x-real-ip

    Raises:
        ClientIPUnresolvable: 三个请求头都不存在
    """
    cf_ip = (headers.get("cf-connecting-ip") or "").strip()
    if cf_ip:
        return cf_ip

    forwarded = headers.get("x-forwarded-for") or ""
    first = forwarded.split(",")[0].strip()
    if first:
        return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip

    raise ClientIPUnresolvable()


def ensure_ip_allowed(ip: str, allowed: list[str], logger: logging.Logger) -> None:
    if not is_ip_allowed(ip, allowed, logger):
        logger.warning("Unauthorized webhook IP attempt: %s", ip)
        raise Forbidden(f"IP not allowed: {ip}")
