"""
应用配置模块

使用 Pydantic Settings 管理所有环境变量和配置。
配置从项目根目录的 .env 文件读取，支持类型验证和默认值。

关键概念：
- BaseSettings: Pydantic 的配置基类，自动从环境变量读取
- computed_field: 计算字段，根据其他字段动态生成
- model_validator: 模型验证器，用于自定义验证逻辑
"""
import secrets  # 用于生成安全的随机字符串
import warnings  # 用于发出警告
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    HttpUrl,
    PostgresDsn,
    computed_field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_list(v: Any) -> list[str] | str:
    """
    解析逗号分隔的列表配置

    支持两种格式：
    1. 逗号分隔的字符串："1.2.3.4,10.0.0.0/8"
    2. 列表格式：["1.2.3.4", "10.0.0.0/8"]

    Raises:
        ValueError: 当输入格式不正确时
    """
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    """
    应用配置类

    配置来源优先级：
    1. 环境变量（最高优先级）
    2. .env 文件
    3. 代码中的默认值（最低优先级）
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,  # 忽略空的环境变量
        extra="ignore",  # 忽略未定义的额外字段
    )
    PROJECT_NAME: str = "Storefront"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = secrets.token_urlsafe(32)  # JWT 签名密钥（默认随机生成）
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_list)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    SENTRY_DSN: HttpUrl | None = None

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "storefront"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # 初始管理员账户（initial_data 脚本使用）
    FIRST_ADMIN_EMAIL: str = "admin@example.com"
    FIRST_ADMIN_NAME: str = "Administrator"

    # SePay 支付回调配置
    SEPAY_WEBHOOK_SECRET: str | None = None  # HMAC-SHA256 签名密钥
    SEPAY_ALLOWED_IPS: Annotated[
        list[str] | str, BeforeValidator(parse_list)
    ] = []  # 允许的回调来源 IP，支持 CIDR
    SEPAY_AMOUNT_TOLERANCE: int = 0  # 金额允许误差（VND），0 表示必须完全相等
    SEPAY_DESCRIPTION_PREFIX: str = "ORDER"  # 银行转账备注前缀，后接订单号

    # SePay 支付网关（发起付款）
    SEPAY_ENV: Literal["sandbox", "production"] = "sandbox"
    SEPAY_MERCHANT_ID: str | None = None
    SEPAY_SECRET_KEY: str | None = None  # 结账表单签名密钥
    APP_BASE_URL: str = "http://localhost:3000"  # 支付完成后跳转回的前端地址

    # 库存配置
    LOW_STOCK_THRESHOLD: int = 5
    # 库存单元加密密钥（AES-256-GCM，64 位十六进制，默认随机生成）
    ENCRYPTION_KEY: str = secrets.token_hex(32)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def sepay_allowed_ips(self) -> list[str]:
        if isinstance(self.SEPAY_ALLOWED_IPS, str):
            return [self.SEPAY_ALLOWED_IPS] if self.SEPAY_ALLOWED_IPS else []
        return list(self.SEPAY_ALLOWED_IPS)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def sepay_checkout_url(self) -> str:
        if self.SEPAY_ENV == "production":
            return "https://pay.sepay.vn/v1/checkout/init"
        return "https://pay-sandbox.sepay.vn/v1/checkout/init"

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        """
        检查敏感配置是否使用了默认值

        本地环境只发出警告，其他环境直接报错。
        """
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    def _check_encryption_key(self) -> None:
        try:
            key = bytes.fromhex(self.ENCRYPTION_KEY)
        except ValueError:
            key = b""
        if len(key) != 32:
            raise ValueError("ENCRYPTION_KEY must be 64 hexadecimal characters (32 bytes)")

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("SEPAY_WEBHOOK_SECRET", self.SEPAY_WEBHOOK_SECRET)
        self._check_default_secret("SEPAY_SECRET_KEY", self.SEPAY_SECRET_KEY)
        self._check_encryption_key()

        return self


# 创建全局配置实例，整个应用共享
settings = Settings()  # type: ignore
