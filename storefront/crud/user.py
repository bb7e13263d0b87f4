"""用户 CRUD 操作"""
from sqlmodel import Session, select

from storefront.enums import UserRole
from storefront.models import User


def get_by_email(*, session: Session, email: str) -> User | None:
    """根据邮箱查询用户"""
    return session.exec(select(User).where(User.email == email)).first()


def create(
    *, session: Session, email: str, name: str | None = None, role: UserRole = UserRole.user
) -> User:
    """创建新用户"""
    user = User(email=email, name=name, role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user
