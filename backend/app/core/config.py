from __future__ import annotations

import os
from pydantic_settings import BaseSettings


# 应用配置：统一管理环境变量与默认值
class Settings(BaseSettings):
    # 运行环境标识（便于日志、调试、区分开发/生产）
    app_env: str = "dev"
    # FastAPI 根路径（反向代理或子路径部署时使用）
    root_path: str = ""
    # API 前缀（默认 /api，与前端 fetch 路径保持一致）
    api_prefix: str | None = None
    # 日志级别
    log_level: str = "INFO"
    # 项目运行时数据根目录
    data_dir: str = "data"
    # SQLite 数据库文件路径（默认本地文件）
    sqlite_path: str = "data/app.db"
    # 可选数据库连接串（优先用于 PostgreSQL 等外部数据库）
    database_url: str | None = None

    # 允许跨域访问的前端地址列表（逗号分隔）
    cors_origins: str = "http://localhost:3000"

    # Supabase 项目地址
    supabase_url: str = ""
    # Supabase JWKS 地址（用于后端 JWT 验证，留空则由 supabase_url 推导）
    supabase_jwks_url: str | None = None
    # Supabase JWT Secret（对称签名时使用，可与 JWKS 二选一）
    supabase_jwt_secret: str | None = None
    # JWT 验证时的 audience（Supabase 默认是 authenticated）
    supabase_jwt_audience: str = "authenticated"
    # JWT 验证时的 issuer（留空则由 supabase_url 推导）
    supabase_jwt_issuer: str | None = None

    # 推荐书目使用的 LLM API Key（OpenAI 兼容协议），为空时不调用模型
    llm_api_key: str | None = None
    # LLM 兼容接口地址
    llm_base_url: str = "https://api.openai.com/v1"
    # LLM 接口路径
    llm_api_path: str = "/chat/completions"
    # LLM 模型名
    llm_model: str = "gpt-4o-mini"
    # LLM 请求超时时间（秒）
    llm_timeout_seconds: int = 60
    # 每次返回的推荐数量
    recommendation_count: int = 5

    # Pydantic Settings 行为配置
    class Config:
        env_file = (
            os.getenv("APP_ENV_FILE") or "config/.env",
            "backend/config/.env",
            ".env",
        )
        case_sensitive = False
        extra = "ignore" if os.getenv("APP_ENV", "dev").lower() == "dev" else "forbid"

    # 解析 CORS 允许域名列表（供中间件直接使用）
    @property
    def cors_origin_list(self) -> list[str]:
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]

    # Supabase JWKS 地址（优先使用配置值）
    @property
    def resolved_supabase_jwks_url(self) -> str | None:
        if self.supabase_jwks_url:
            return self.supabase_jwks_url
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"

    # Supabase JWT issuer（优先使用配置值）
    @property
    def resolved_supabase_jwt_issuer(self) -> str | None:
        if self.supabase_jwt_issuer:
            return self.supabase_jwt_issuer
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    # 确保 SQLite 数据目录存在
    def ensure_dirs(self) -> None:
        for path in (self.data_dir, os.path.dirname(self.sqlite_path)):
            if path:
                os.makedirs(path, exist_ok=True)


# 全局配置实例
settings = Settings()
