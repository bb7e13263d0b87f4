"""
数据库连接模块

管理数据库引擎和会话的创建。
使用 SQLModel 的 create_engine 创建数据库连接池。

重要提示：
- 确保在使用前导入所有模型（storefront.models），否则建表时会遗漏
"""
import logging

from sqlmodel import Session, SQLModel, create_engine, select

from storefront import models
from storefront.core.config import settings
from storefront.enums import UserRole

logger = logging.getLogger(__name__)

# 创建数据库引擎（连接池）
engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI))


def init_db(session: Session) -> None:
    """
    初始化数据库

    创建所有表（已存在的表会跳过），并确保存在一个管理员账户。
    管理员账户的邮箱来自 FIRST_ADMIN_EMAIL 配置。

    Args:
        session: 数据库会话
    """
    SQLModel.metadata.create_all(session.get_bind())

    admin = session.exec(
        select(models.User).where(models.User.email == settings.FIRST_ADMIN_EMAIL)
    ).first()
    if admin:
        return
    session.add(
        models.User(
            email=settings.FIRST_ADMIN_EMAIL,
            name=settings.FIRST_ADMIN_NAME,
            role=UserRole.admin,
        )
    )
    session.commit()
    logger.info("Created admin user %s", settings.FIRST_ADMIN_EMAIL)
