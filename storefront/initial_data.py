"""
初始数据脚本

建表并创建管理员账户（FIRST_ADMIN_EMAIL）。
在数据库就绪（backend_pre_start）之后、应用启动之前执行。
"""
import logging

from sqlmodel import Session

from storefront.core.db import engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init() -> None:
    with Session(engine) as session:
        init_db(session)


def main() -> None:
    logger.info("Creating initial data")
    init()
    logger.info("Initial data created")


if __name__ == "__main__":  # pragma: no cover
    main()
