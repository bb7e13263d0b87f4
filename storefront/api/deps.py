"""
FastAPI 依赖注入模块

提供可复用的依赖项：
- 数据库会话
- 当前用户 / 管理员（Bearer JWT）
- 业务组件使用的 logger（注入而不是在业务代码里取全局 logger）
- 原始请求体（签名校验需要未解析的字节）
"""
import logging
from collections.abc import Generator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session

from storefront.api.schemas import TokenPayload
from storefront.core import security
from storefront.core.config import settings
from storefront.core.db import engine
from storefront.core.logging import INVENTORY_LOGGER, ORDERS_LOGGER, PAYMENTS_LOGGER
from storefront.enums import UserRole
from storefront.models import User

reusable_oauth2 = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    """
    获取数据库会话（依赖注入）

    使用 yield 确保会话在请求结束后自动关闭。
    """
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[HTTPAuthorizationCredentials, Depends(reusable_oauth2)]


def get_current_user(session: SessionDep, token: TokenDep) -> User:
    """
    获取当前登录用户

    Raises:
        HTTPException: token 无效或用户不存在时返回 401
    """
    try:
        payload = jwt.decode(
            token.credentials, settings.SECRET_KEY, algorithms=[security.ALGORITHM]
        )
        token_data = TokenPayload(**payload)
    except (InvalidTokenError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    if not token_data.sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    try:
        user_id = int(token_data.sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_current_admin(current_user: CurrentUser) -> User:
    if current_user.role != UserRole.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required"
        )
    return current_user


CurrentAdmin = Annotated[User, Depends(get_current_admin)]


def get_payments_logger() -> logging.Logger:
    return logging.getLogger(PAYMENTS_LOGGER)


def get_inventory_logger() -> logging.Logger:
    return logging.getLogger(INVENTORY_LOGGER)


def get_orders_logger() -> logging.Logger:
    return logging.getLogger(ORDERS_LOGGER)


PaymentsLogger = Annotated[logging.Logger, Depends(get_payments_logger)]
InventoryLogger = Annotated[logging.Logger, Depends(get_inventory_logger)]
OrdersLogger = Annotated[logging.Logger, Depends(get_orders_logger)]


async def get_raw_body(request: Request) -> bytes:
    return await request.body()


RawBody = Annotated[bytes, Depends(get_raw_body)]
