from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import books, goals, recommendations, stats
from app.core.auth import get_current_user
from app.core.config import settings
from app.core.database import init_db
from app.core.errors import register_error_handlers


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# 应用入口：初始化 FastAPI 实例
app = FastAPI(title="Book Tracker", root_path=settings.root_path or "")

# 配置 CORS，允许前端访问后端 API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 统一错误响应格式；请求体校验失败时先检查身份凭证
register_error_handlers(app, authenticate=get_current_user)

# 注册业务路由（路径与前端 fetch 调用保持一致）
api_prefix = settings.api_prefix
if api_prefix is None:
    api_prefix = "" if (settings.root_path or "").strip() else "/api"
api_prefix = api_prefix.rstrip("/")
app.include_router(books.router, prefix=api_prefix, tags=["books"])
app.include_router(goals.router, prefix=api_prefix, tags=["goals"])
app.include_router(stats.router, prefix=api_prefix, tags=["stats"])
app.include_router(recommendations.router, prefix=api_prefix, tags=["recommendations"])


@app.get("/health", include_in_schema=False)
def health() -> dict[str, str]:
    return {"status": "ok"}


# 启动事件：创建数据库表结构
@app.on_event("startup")
def on_startup() -> None:
    init_db()
